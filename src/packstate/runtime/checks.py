# src/packstate/runtime/checks.py
"""Validation primitives shared by every program.

Each primitive returns None or raises ``ValidationError``. Processors call them
in a fixed order (ownership, signer, uniqueness, initialization state, domain
rules); the first failure wins and nothing has been written yet.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from packstate.codec.pubkey import Pubkey
from packstate.runtime.accounts import AccountInfo
from packstate.runtime.errors import ValidationCode, ValidationError

MAX_BASIS_POINTS = 10_000


def owned_by(account: AccountInfo, program_id: Pubkey) -> None:
    if account.owner != program_id:
        raise ValidationError(
            ValidationCode.WRONG_OWNER,
            "account_not_owned_by_program",
            {"account": account.key.hex(), "owner": account.owner.hex(), "expected": program_id.hex()},
        )


def is_signer(account: AccountInfo) -> None:
    if not account.is_signer:
        raise ValidationError(ValidationCode.MISSING_SIGNATURE, "missing_required_signature", {"account": account.key.hex()})


def is_writable(account: AccountInfo) -> None:
    if not account.is_writable:
        raise ValidationError(ValidationCode.ACCOUNT_NOT_WRITABLE, "account_not_writable", {"account": account.key.hex()})


def unique(*accounts: AccountInfo) -> None:
    # pairwise; account lists are small and bounded
    for i, a in enumerate(accounts):
        for b in accounts[i + 1 :]:
            if a.key == b.key:
                raise ValidationError(ValidationCode.DUPLICATE_ACCOUNT, "duplicate_account", {"account": a.key.hex()})


def not_yet_initialized(record: Any) -> None:
    if bool(getattr(record, "is_initialized", False)):
        raise ValidationError(ValidationCode.ALREADY_INITIALIZED, "already_initialized", {"record": type(record).__name__})


def already_initialized(record: Any) -> None:
    if not bool(getattr(record, "is_initialized", False)):
        raise ValidationError(ValidationCode.UNINITIALIZED, "uninitialized", {"record": type(record).__name__})


def within_window(
    now: int,
    start: int,
    end: int,
    *,
    too_early: Enum = ValidationCode.TOO_EARLY,
    too_late: Enum = ValidationCode.TOO_LATE,
) -> None:
    """Inclusive window check; programs may substitute their own codes."""
    if now < start:
        raise ValidationError(too_early, "before_window", {"value": int(now), "start": int(start)})
    if now > end:
        raise ValidationError(too_late, "after_window", {"value": int(now), "end": int(end)})


def bounded_percentage(value: int, max_value: int = MAX_BASIS_POINTS) -> None:
    if int(value) > int(max_value):
        raise ValidationError(ValidationCode.OUT_OF_RANGE, "basis_points_out_of_range", {"value": int(value), "max": int(max_value)})


def sufficient_balance(account: AccountInfo, amount: int) -> None:
    if int(account.balance) < int(amount):
        raise ValidationError(
            ValidationCode.INSUFFICIENT_FUNDS,
            "insufficient_funds",
            {"account": account.key.hex(), "balance": int(account.balance), "required": int(amount)},
        )
