from __future__ import annotations

from enum import Enum


class TimelockError(str, Enum):
    INVALID_AUTHORITY = "invalid_authority"
    INVALID_CONFIG = "invalid_config"
    INVALID_VOTING_DELAY = "invalid_voting_delay"
    INVALID_VOTING_PERIOD = "invalid_voting_period"
    INVALID_TIMELOCK_DELAY = "invalid_timelock_delay"
    INVALID_EXECUTION_TIME = "invalid_execution_time"
    GOVERNANCE_NOT_ACTIVE = "governance_not_active"
    TOO_MANY_ACTIONS = "too_many_actions"
    EXECUTION_TIME_NOT_REACHED = "execution_time_not_reached"
    ALREADY_EXECUTED = "already_executed"
    ALREADY_CANCELED = "already_canceled"
    MATH_OVERFLOW = "math_overflow"
