# src/packstate/runtime/accounts.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from packstate.codec.pubkey import Pubkey
from packstate.runtime.errors import ValidationCode, ValidationError


@dataclass(frozen=True)
class AccountMeta:
    """How an instruction references an account: key plus requested privileges."""

    key: Pubkey
    is_signer: bool = False
    is_writable: bool = False


@dataclass(frozen=True)
class AccountInfo:
    """Host-supplied snapshot of one account for the current instruction.

    ``is_signer`` and ``owner`` come from the host's signature/ownership oracle;
    ``balance`` from the ledger. ``data`` is immutable, so a processor can never
    half-write it.
    """

    key: Pubkey
    owner: Pubkey
    data: bytes = b""
    balance: int = 0
    is_signer: bool = False
    is_writable: bool = False


class AccountCursor:
    """Ordered walk over an instruction's account list."""

    def __init__(self, accounts: Sequence[AccountInfo]) -> None:
        self._accounts = tuple(accounts)
        self._pos = 0

    def next(self, role: str = "") -> AccountInfo:
        if self._pos >= len(self._accounts):
            raise ValidationError(
                ValidationCode.NOT_ENOUGH_ACCOUNT_KEYS,
                "missing_account",
                {"index": self._pos, "role": role},
            )
        acct = self._accounts[self._pos]
        self._pos += 1
        return acct
