from __future__ import annotations

from enum import Enum


class TokenLockError(str, Enum):
    INVALID_AUTHORITY = "invalid_authority"
    INVALID_OWNER = "invalid_owner"
    INVALID_TOKEN_ACCOUNT = "invalid_token_account"
    INVALID_LOCK_DURATION = "invalid_lock_duration"
    INVALID_LOCK_AMOUNT = "invalid_lock_amount"
    LOCK_DURATION_TOO_SHORT = "lock_duration_too_short"
    LOCK_DURATION_TOO_LONG = "lock_duration_too_long"
    LOCK_NOT_ACTIVE = "lock_not_active"
    MATH_OVERFLOW = "math_overflow"
