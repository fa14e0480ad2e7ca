# src/packstate/programs/timelock/processor.py
from __future__ import annotations

from packstate.runtime import checks
from packstate.runtime.accounts import AccountInfo
from packstate.runtime.errors import ValidationError
from packstate.runtime.processor import InstructionContext, Program
from packstate.programs.timelock.errors import TimelockError
from packstate.programs.timelock.instruction import (
    TIMELOCK_INSTRUCTIONS,
    CancelActions,
    ExecuteActions,
    InitializeConfig,
    QueueActions,
    SetGuardian,
)
from packstate.programs.timelock.state import CAP_ACTIONS, Queue, TimelockConfig

I64_MAX = (1 << 63) - 1
I64_MIN = -(1 << 63)


def _checked_add_i64(a: int, b: int) -> int:
    out = int(a) + int(b)
    if out > I64_MAX or out < I64_MIN:
        raise ValidationError(TimelockError.MATH_OVERFLOW, "i64_overflow", {"a": int(a), "b": int(b)})
    return out


def _require_authority(config: TimelockConfig, signer: AccountInfo) -> None:
    if signer.key != config.authority:
        raise ValidationError(
            TimelockError.INVALID_AUTHORITY,
            "signer_is_not_config_authority",
            {"signer": signer.key.hex(), "authority": config.authority.hex()},
        )


def _require_queue_config(queue: Queue, config_acct: AccountInfo) -> None:
    if queue.config != config_acct.key:
        raise ValidationError(
            TimelockError.INVALID_CONFIG,
            "queue_belongs_to_other_config",
            {"config": config_acct.key.hex(), "queue_config": queue.config.hex()},
        )


class TimelockProgram(Program):
    """Governance timelock: queue a set of actions, execute after the delay, or cancel."""

    NAME = "timelock"
    INSTRUCTIONS = TIMELOCK_INSTRUCTIONS
    HANDLERS = {
        InitializeConfig: "_initialize_config",
        QueueActions: "_queue_actions",
        ExecuteActions: "_execute_actions",
        CancelActions: "_cancel_actions",
        SetGuardian: "_set_guardian",
    }

    def _initialize_config(self, ctx: InstructionContext, ix: InitializeConfig) -> None:
        accts = ctx.cursor()
        config_acct = accts.next("config")
        authority = accts.next("authority")
        governance_token = accts.next("governance_token")
        proposal_program = accts.next("proposal_program")

        checks.owned_by(config_acct, self.program_id)
        checks.is_signer(authority)
        checks.unique(config_acct, authority, governance_token, proposal_program)

        config = ctx.load(TimelockConfig, config_acct, unchecked=True)
        checks.not_yet_initialized(config)

        if ix.voting_delay < 0:
            raise ValidationError(TimelockError.INVALID_VOTING_DELAY, "negative_voting_delay", {"voting_delay": ix.voting_delay})
        if ix.voting_period < 0:
            raise ValidationError(TimelockError.INVALID_VOTING_PERIOD, "negative_voting_period", {"voting_period": ix.voting_period})
        if ix.timelock_delay < 0:
            raise ValidationError(TimelockError.INVALID_TIMELOCK_DELAY, "negative_timelock_delay", {"timelock_delay": ix.timelock_delay})

        config.is_initialized = True
        config.authority = authority.key
        config.governance_token = governance_token.key
        config.proposal_program = proposal_program.key
        config.voting_delay = ix.voting_delay
        config.voting_period = ix.voting_period
        config.quorum_votes = ix.quorum_votes
        config.timelock_delay = ix.timelock_delay
        config.guardian = ix.guardian
        config.is_active = True
        ctx.store(config_acct, config)

    def _queue_actions(self, ctx: InstructionContext, ix: QueueActions) -> None:
        accts = ctx.cursor()
        config_acct = accts.next("config")
        queue_acct = accts.next("queue")
        authority = accts.next("authority")
        proposal = accts.next("proposal")

        checks.owned_by(config_acct, self.program_id)
        checks.owned_by(queue_acct, self.program_id)
        checks.is_signer(authority)
        checks.unique(config_acct, queue_acct, authority, proposal)

        config = ctx.load(TimelockConfig, config_acct)
        queue = ctx.load(Queue, queue_acct, unchecked=True)

        _require_authority(config, authority)
        checks.not_yet_initialized(queue)

        if not config.is_active:
            raise ValidationError(TimelockError.GOVERNANCE_NOT_ACTIVE, "governance_not_active", {})

        # strictly after now + delay; equality is rejected
        earliest = _checked_add_i64(ctx.now, config.timelock_delay)
        if ix.execution_time <= earliest:
            raise ValidationError(
                TimelockError.INVALID_EXECUTION_TIME,
                "execution_time_within_delay",
                {"execution_time": ix.execution_time, "now": ctx.now, "timelock_delay": config.timelock_delay},
            )

        if len(ix.actions) > CAP_ACTIONS:
            raise ValidationError(TimelockError.TOO_MANY_ACTIONS, "too_many_actions", {"count": len(ix.actions), "max": CAP_ACTIONS})

        queue.is_initialized = True
        queue.proposal = proposal.key
        queue.config = config_acct.key
        queue.execution_time = ix.execution_time
        queue.actions = tuple(ix.actions)
        queue.executed = False
        queue.canceled = False
        ctx.store(queue_acct, queue)

    def _execute_actions(self, ctx: InstructionContext, ix: ExecuteActions) -> None:
        accts = ctx.cursor()
        config_acct = accts.next("config")
        queue_acct = accts.next("queue")
        authority = accts.next("authority")

        checks.owned_by(config_acct, self.program_id)
        checks.owned_by(queue_acct, self.program_id)
        checks.is_signer(authority)
        checks.unique(config_acct, queue_acct, authority)

        config = ctx.load(TimelockConfig, config_acct)
        queue = ctx.load(Queue, queue_acct)

        _require_queue_config(queue, config_acct)

        # terminal states are reported before anything about the caller
        if queue.canceled:
            raise ValidationError(TimelockError.ALREADY_CANCELED, "queue_canceled", {})
        if queue.executed:
            raise ValidationError(TimelockError.ALREADY_EXECUTED, "queue_executed", {})

        _require_authority(config, authority)

        if ctx.now < queue.execution_time:
            raise ValidationError(
                TimelockError.EXECUTION_TIME_NOT_REACHED,
                "execution_time_not_reached",
                {"now": ctx.now, "execution_time": queue.execution_time},
            )

        queue.executed = True
        ctx.store(queue_acct, queue)
        for action in queue.actions:
            ctx.invoke(action, "queued_action")

    def _cancel_actions(self, ctx: InstructionContext, ix: CancelActions) -> None:
        accts = ctx.cursor()
        config_acct = accts.next("config")
        queue_acct = accts.next("queue")
        caller = accts.next("caller")

        checks.owned_by(config_acct, self.program_id)
        checks.owned_by(queue_acct, self.program_id)
        checks.is_signer(caller)
        checks.unique(config_acct, queue_acct, caller)

        config = ctx.load(TimelockConfig, config_acct)
        queue = ctx.load(Queue, queue_acct)

        _require_queue_config(queue, config_acct)

        if queue.executed:
            raise ValidationError(TimelockError.ALREADY_EXECUTED, "queue_executed", {})
        if queue.canceled:
            raise ValidationError(TimelockError.ALREADY_CANCELED, "queue_canceled", {})

        is_guardian = config.guardian is not None and caller.key == config.guardian
        if caller.key != config.authority and not is_guardian:
            raise ValidationError(
                TimelockError.INVALID_AUTHORITY,
                "caller_is_neither_authority_nor_guardian",
                {"caller": caller.key.hex()},
            )

        queue.canceled = True
        ctx.store(queue_acct, queue)

    def _set_guardian(self, ctx: InstructionContext, ix: SetGuardian) -> None:
        accts = ctx.cursor()
        config_acct = accts.next("config")
        authority = accts.next("authority")

        checks.owned_by(config_acct, self.program_id)
        checks.is_signer(authority)
        checks.unique(config_acct, authority)

        config = ctx.load(TimelockConfig, config_acct)
        _require_authority(config, authority)

        config.guardian = ix.new_guardian
        ctx.store(config_acct, config)
