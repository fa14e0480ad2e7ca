# src/packstate/programs/token_lock/processor.py
from __future__ import annotations

from packstate.runtime import checks
from packstate.runtime.errors import ValidationError
from packstate.runtime.processor import InstructionContext, Program
from packstate.programs.token_lock.errors import TokenLockError
from packstate.programs.token_lock.instruction import (
    TOKEN_LOCK_INSTRUCTIONS,
    InitializeConfig,
    LockTokens,
    UnlockTokens,
)
from packstate.programs.token_lock.state import LockConfig, LockStatus, TokenLock

U64_MAX = (1 << 64) - 1
U32_MAX = (1 << 32) - 1
I64_MAX = (1 << 63) - 1


def unlock_fee(amount: int, fee_bps: int, penalty_bps: int, *, early: bool) -> int:
    """Fee withheld on release, floored. The penalty only applies to early unlocks."""
    bps = int(fee_bps) + (int(penalty_bps) if early else 0)
    return (int(amount) * bps) // checks.MAX_BASIS_POINTS


class TokenLockProgram(Program):
    NAME = "token_lock"
    INSTRUCTIONS = TOKEN_LOCK_INSTRUCTIONS
    HANDLERS = {
        InitializeConfig: "_initialize_config",
        LockTokens: "_lock_tokens",
        UnlockTokens: "_unlock_tokens",
    }

    def _initialize_config(self, ctx: InstructionContext, ix: InitializeConfig) -> None:
        accts = ctx.cursor()
        config_acct = accts.next("config")
        authority = accts.next("authority")
        token_mint = accts.next("token_mint")

        checks.owned_by(config_acct, self.program_id)
        checks.is_signer(authority)
        checks.unique(config_acct, authority, token_mint)

        config = ctx.load(LockConfig, config_acct, unchecked=True)
        checks.not_yet_initialized(config)

        if ix.min_lock_duration <= 0 or ix.max_lock_duration <= ix.min_lock_duration:
            raise ValidationError(
                TokenLockError.INVALID_LOCK_DURATION,
                "require_0_lt_min_lt_max",
                {"min": ix.min_lock_duration, "max": ix.max_lock_duration},
            )
        checks.bounded_percentage(ix.unlock_fee)
        checks.bounded_percentage(ix.early_unlock_penalty)
        checks.bounded_percentage(ix.unlock_fee + ix.early_unlock_penalty)

        config.is_initialized = True
        config.authority = authority.key
        config.token_mint = token_mint.key
        config.total_locked = 0
        config.min_lock_duration = ix.min_lock_duration
        config.max_lock_duration = ix.max_lock_duration
        config.unlock_fee = ix.unlock_fee
        config.early_unlock_penalty = ix.early_unlock_penalty
        config.lock_count = 0
        ctx.store(config_acct, config)

    def _lock_tokens(self, ctx: InstructionContext, ix: LockTokens) -> None:
        accts = ctx.cursor()
        config_acct = accts.next("config")
        lock_acct = accts.next("lock")
        owner = accts.next("owner")
        token_account = accts.next("token_account")

        checks.owned_by(config_acct, self.program_id)
        checks.owned_by(lock_acct, self.program_id)
        checks.is_signer(owner)
        checks.unique(config_acct, lock_acct, owner, token_account)

        config = ctx.load(LockConfig, config_acct)
        lock = ctx.load(TokenLock, lock_acct, unchecked=True)
        checks.not_yet_initialized(lock)

        if ix.amount <= 0:
            raise ValidationError(TokenLockError.INVALID_LOCK_AMOUNT, "amount_must_be_positive", {"amount": ix.amount})
        checks.within_window(
            ix.duration,
            config.min_lock_duration,
            config.max_lock_duration,
            too_early=TokenLockError.LOCK_DURATION_TOO_SHORT,
            too_late=TokenLockError.LOCK_DURATION_TOO_LONG,
        )
        checks.sufficient_balance(owner, ix.amount)

        end_time = ctx.now + ix.duration
        total = config.total_locked + ix.amount
        if end_time > I64_MAX or total > U64_MAX or config.lock_count >= U32_MAX:
            raise ValidationError(TokenLockError.MATH_OVERFLOW, "lock_totals_overflow", {})

        lock.is_initialized = True
        lock.owner = owner.key
        lock.token_account = token_account.key
        lock.amount = ix.amount
        lock.start_time = ctx.now
        lock.end_time = end_time
        lock.unlock_available = end_time
        lock.is_early_unlock = False
        lock.status = LockStatus.ACTIVE

        config.total_locked = total
        config.lock_count += 1

        ctx.store(lock_acct, lock)
        ctx.store(config_acct, config)
        ctx.transfer(owner, lock_acct, ix.amount)

    def _unlock_tokens(self, ctx: InstructionContext, ix: UnlockTokens) -> None:
        accts = ctx.cursor()
        config_acct = accts.next("config")
        lock_acct = accts.next("lock")
        owner = accts.next("owner")
        token_account = accts.next("token_account")
        treasury = accts.next("treasury")

        checks.owned_by(config_acct, self.program_id)
        checks.owned_by(lock_acct, self.program_id)
        checks.is_signer(owner)
        checks.unique(config_acct, lock_acct, owner, token_account, treasury)

        config = ctx.load(LockConfig, config_acct)
        lock = ctx.load(TokenLock, lock_acct)

        if lock.status != LockStatus.ACTIVE:
            raise ValidationError(TokenLockError.LOCK_NOT_ACTIVE, "lock_not_active", {"status": getattr(lock.status, "name", lock.status)})
        if owner.key != lock.owner:
            raise ValidationError(TokenLockError.INVALID_OWNER, "signer_is_not_lock_owner", {"owner": owner.key.hex()})
        if token_account.key != lock.token_account:
            raise ValidationError(TokenLockError.INVALID_TOKEN_ACCOUNT, "token_account_mismatch", {"token_account": token_account.key.hex()})
        if treasury.key != config.authority:
            raise ValidationError(TokenLockError.INVALID_AUTHORITY, "treasury_is_not_config_authority", {"treasury": treasury.key.hex()})

        early = ctx.now < lock.end_time
        fee = unlock_fee(lock.amount, config.unlock_fee, config.early_unlock_penalty, early=early)
        payout = lock.amount - fee

        if config.total_locked < lock.amount:
            raise ValidationError(TokenLockError.MATH_OVERFLOW, "total_locked_underflow", {"total_locked": config.total_locked, "amount": lock.amount})
        config.total_locked -= lock.amount

        lock.is_early_unlock = early
        lock.status = LockStatus.RELEASED_EARLY if early else LockStatus.RELEASED

        ctx.store(lock_acct, lock)
        ctx.store(config_acct, config)
        ctx.transfer(lock_acct, token_account, payout)
        ctx.transfer(lock_acct, treasury, fee)
