from __future__ import annotations

from typing import List

import pytest

from packstate.codec.pubkey import Pubkey
from packstate.programs.token_lock.errors import TokenLockError
from packstate.programs.token_lock.instruction import InitializeConfig, LockTokens, UnlockTokens
from packstate.programs.token_lock.processor import TokenLockProgram, unlock_fee
from packstate.programs.token_lock.state import LockConfig, LockStatus, TokenLock
from packstate.runtime.accounts import AccountInfo
from packstate.runtime.errors import ValidationCode, ValidationError
from packstate.runtime.processor import Transfer

TK = Pubkey.derive("program:token_lock")
SYSTEM = Pubkey.derive("program:system")

AUTHORITY = Pubkey.derive("lock-authority")
MINT = Pubkey.derive("mint")
CONFIG = Pubkey.derive("lock-config")
LOCK = Pubkey.derive("lock")
OWNER = Pubkey.derive("owner")
TOKEN_ACCOUNT = Pubkey.derive("owner-token-account")

PROGRAM = TokenLockProgram(TK)


def _config_bytes(*, fee: int = 100, penalty: int = 500, total: int = 0) -> bytes:
    return LockConfig(
        is_initialized=True,
        authority=AUTHORITY,
        token_mint=MINT,
        total_locked=total,
        min_lock_duration=100,
        max_lock_duration=1000,
        unlock_fee=fee,
        early_unlock_penalty=penalty,
    ).to_bytes()


def _active_lock_bytes(amount: int = 10_000, start: int = 0, duration: int = 500) -> bytes:
    return TokenLock(
        is_initialized=True,
        owner=OWNER,
        token_account=TOKEN_ACCOUNT,
        amount=amount,
        start_time=start,
        end_time=start + duration,
        unlock_available=start + duration,
        status=LockStatus.ACTIVE,
    ).to_bytes()


def _code(ix, accounts: List[AccountInfo], now: int):
    with pytest.raises(ValidationError) as e:
        PROGRAM.apply(ix, accounts, now)
    return e.value.code


def test_unlock_fee_floors() -> None:
    assert unlock_fee(10_000, 100, 500, early=True) == 600
    assert unlock_fee(10_000, 100, 500, early=False) == 100
    assert unlock_fee(999, 1, 0, early=False) == 0
    assert unlock_fee(12_345, 10_000, 0, early=False) == 12_345


def _init_accounts() -> List[AccountInfo]:
    return [
        AccountInfo(key=CONFIG, owner=TK, data=bytes(LockConfig.LEN), is_writable=True),
        AccountInfo(key=AUTHORITY, owner=SYSTEM, is_signer=True),
        AccountInfo(key=MINT, owner=SYSTEM),
    ]


def test_initialize_config() -> None:
    ix = InitializeConfig(min_lock_duration=100, max_lock_duration=1000, unlock_fee=100, early_unlock_penalty=500)
    t = PROGRAM.apply(ix, _init_accounts(), 0)
    cfg = LockConfig.unpack(t.write_for(CONFIG))
    assert cfg.authority == AUTHORITY
    assert cfg.token_mint == MINT
    assert (cfg.min_lock_duration, cfg.max_lock_duration) == (100, 1000)
    assert (cfg.unlock_fee, cfg.early_unlock_penalty) == (100, 500)
    assert cfg.total_locked == 0 and cfg.lock_count == 0


@pytest.mark.parametrize(
    "min_d,max_d",
    [(0, 10), (10, 10), (10, 5), (-5, 10)],
)
def test_initialize_config_rejects_bad_durations(min_d: int, max_d: int) -> None:
    ix = InitializeConfig(min_lock_duration=min_d, max_lock_duration=max_d)
    assert _code(ix, _init_accounts(), 0) == TokenLockError.INVALID_LOCK_DURATION


def test_initialize_config_rejects_bad_basis_points() -> None:
    ix = InitializeConfig(min_lock_duration=1, max_lock_duration=2, unlock_fee=10_001)
    assert _code(ix, _init_accounts(), 0) == ValidationCode.OUT_OF_RANGE
    ix = InitializeConfig(min_lock_duration=1, max_lock_duration=2, unlock_fee=6_000, early_unlock_penalty=5_000)
    assert _code(ix, _init_accounts(), 0) == ValidationCode.OUT_OF_RANGE


def _lock_accounts(*, balance: int = 50_000, lock_data: bytes = b"") -> List[AccountInfo]:
    return [
        AccountInfo(key=CONFIG, owner=TK, data=_config_bytes(), is_writable=True),
        AccountInfo(key=LOCK, owner=TK, data=lock_data or bytes(TokenLock.LEN), is_writable=True),
        AccountInfo(key=OWNER, owner=SYSTEM, balance=balance, is_signer=True, is_writable=True),
        AccountInfo(key=TOKEN_ACCOUNT, owner=SYSTEM),
    ]


def test_lock_tokens() -> None:
    t = PROGRAM.apply(LockTokens(amount=10_000, duration=500), _lock_accounts(), 1000)

    lock = TokenLock.unpack(t.write_for(LOCK))
    assert lock.owner == OWNER
    assert lock.token_account == TOKEN_ACCOUNT
    assert lock.amount == 10_000
    assert (lock.start_time, lock.end_time, lock.unlock_available) == (1000, 1500, 1500)
    assert lock.status is LockStatus.ACTIVE

    cfg = LockConfig.unpack(t.write_for(CONFIG))
    assert cfg.total_locked == 10_000
    assert cfg.lock_count == 1

    assert t.transfers == (Transfer(source=OWNER, destination=LOCK, amount=10_000),)


def test_lock_tokens_validation() -> None:
    assert _code(LockTokens(amount=0, duration=500), _lock_accounts(), 0) == TokenLockError.INVALID_LOCK_AMOUNT
    assert _code(LockTokens(amount=1, duration=99), _lock_accounts(), 0) == TokenLockError.LOCK_DURATION_TOO_SHORT
    assert _code(LockTokens(amount=1, duration=1001), _lock_accounts(), 0) == TokenLockError.LOCK_DURATION_TOO_LONG
    assert _code(LockTokens(amount=10, duration=100), _lock_accounts(balance=9), 0) == ValidationCode.INSUFFICIENT_FUNDS
    assert _code(LockTokens(amount=10, duration=100), _lock_accounts(lock_data=_active_lock_bytes()), 0) == (
        ValidationCode.ALREADY_INITIALIZED
    )


def test_lock_tokens_owner_must_be_writable() -> None:
    accts = _lock_accounts()
    accts[2] = AccountInfo(key=OWNER, owner=SYSTEM, balance=50_000, is_signer=True)
    assert _code(LockTokens(amount=10, duration=100), accts, 0) == ValidationCode.ACCOUNT_NOT_WRITABLE


def _unlock_accounts(lock_data: bytes, *, treasury: Pubkey = AUTHORITY, owner: Pubkey = OWNER) -> List[AccountInfo]:
    return [
        AccountInfo(key=CONFIG, owner=TK, data=_config_bytes(total=10_000), is_writable=True),
        AccountInfo(key=LOCK, owner=TK, data=lock_data, balance=10_000, is_writable=True),
        AccountInfo(key=owner, owner=SYSTEM, is_signer=True),
        AccountInfo(key=TOKEN_ACCOUNT, owner=SYSTEM, is_writable=True),
        AccountInfo(key=treasury, owner=SYSTEM, is_writable=True),
    ]


def test_early_unlock_charges_penalty() -> None:
    t = PROGRAM.apply(UnlockTokens(), _unlock_accounts(_active_lock_bytes(start=0, duration=500)), 499)

    lock = TokenLock.unpack(t.write_for(LOCK))
    assert lock.status is LockStatus.RELEASED_EARLY
    assert lock.is_early_unlock is True
    assert LockConfig.unpack(t.write_for(CONFIG)).total_locked == 0
    assert t.transfers == (
        Transfer(source=LOCK, destination=TOKEN_ACCOUNT, amount=9_400),
        Transfer(source=LOCK, destination=AUTHORITY, amount=600),
    )


def test_unlock_at_end_time_charges_fee_only() -> None:
    t = PROGRAM.apply(UnlockTokens(), _unlock_accounts(_active_lock_bytes(start=0, duration=500)), 500)
    assert TokenLock.unpack(t.write_for(LOCK)).status is LockStatus.RELEASED
    assert t.transfers == (
        Transfer(source=LOCK, destination=TOKEN_ACCOUNT, amount=9_900),
        Transfer(source=LOCK, destination=AUTHORITY, amount=100),
    )


def test_zero_fee_transfer_is_not_declared() -> None:
    t = PROGRAM.apply(UnlockTokens(), _unlock_accounts(_active_lock_bytes(amount=9, duration=500)), 600)
    assert t.transfers == (Transfer(source=LOCK, destination=TOKEN_ACCOUNT, amount=9),)


def test_unlock_validation() -> None:
    released = TokenLock(is_initialized=True, owner=OWNER, token_account=TOKEN_ACCOUNT, status=LockStatus.RELEASED).to_bytes()
    assert _code(UnlockTokens(), _unlock_accounts(released), 600) == TokenLockError.LOCK_NOT_ACTIVE

    active = _active_lock_bytes()
    assert _code(UnlockTokens(), _unlock_accounts(active, owner=Pubkey.derive("thief")), 600) == TokenLockError.INVALID_OWNER
    assert _code(UnlockTokens(), _unlock_accounts(active, treasury=Pubkey.derive("elsewhere")), 600) == (
        TokenLockError.INVALID_AUTHORITY
    )

    accts = _unlock_accounts(active)
    accts[3] = AccountInfo(key=Pubkey.derive("other-token"), owner=SYSTEM, is_writable=True)
    assert _code(UnlockTokens(), accts, 600) == TokenLockError.INVALID_TOKEN_ACCOUNT
