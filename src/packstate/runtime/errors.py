from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ValidationCode(str, Enum):
    """Codes raised by the shared validation primitives."""

    WRONG_OWNER = "wrong_owner"
    MISSING_SIGNATURE = "missing_signature"
    DUPLICATE_ACCOUNT = "duplicate_account"
    ALREADY_INITIALIZED = "already_initialized"
    UNINITIALIZED = "uninitialized"
    TOO_EARLY = "too_early"
    TOO_LATE = "too_late"
    OUT_OF_RANGE = "out_of_range"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    NOT_ENOUGH_ACCOUNT_KEYS = "not_enough_account_keys"
    ACCOUNT_NOT_WRITABLE = "account_not_writable"
    UNAUTHORIZED_DEBIT = "unauthorized_debit"


@dataclass
class ValidationError(Exception):
    """Canonical error type for a rejected instruction.

    ``code`` is always an enum member: ``ValidationCode`` for primitives or a
    program's own code enum for domain rules. Stored state is never touched.
    """

    code: Enum
    reason: str = ""
    details: Any | None = None

    def __str__(self) -> str:  # pragma: no cover
        code = getattr(self.code, "value", self.code)
        if self.details is None:
            return f"{code}:{self.reason}"
        return f"{code}:{self.reason}:{self.details}"


class IntegrationFault(RuntimeError):
    """A declared write or transfer could not be applied atomically by the host.

    Fatal for the whole system; callers must never swallow it.
    """

    def __init__(self, code: str, msg: str, details: Any | None = None) -> None:
        super().__init__(msg)
        self.code = code
        self.details = details
