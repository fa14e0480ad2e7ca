# tests/test_timelock_processor.py
from __future__ import annotations

from typing import List, Optional

import pytest

from packstate.codec.errors import NotInitialized
from packstate.codec.pubkey import Pubkey
from packstate.programs.timelock.errors import TimelockError
from packstate.programs.timelock.instruction import (
    TIMELOCK_INSTRUCTIONS,
    CancelActions,
    ExecuteActions,
    InitializeConfig,
    QueueActions,
    SetGuardian,
)
from packstate.programs.timelock.processor import TimelockProgram
from packstate.programs.timelock.state import Queue, QueueStatus, TimelockConfig
from packstate.runtime.accounts import AccountInfo
from packstate.runtime.errors import ValidationCode, ValidationError
from packstate.runtime.processor import Invocation, Program

TL = Pubkey.derive("program:timelock")
SYSTEM = Pubkey.derive("program:system")

AUTHORITY = Pubkey.derive("authority")
GUARDIAN = Pubkey.derive("guardian")
STRANGER = Pubkey.derive("stranger")
CONFIG = Pubkey.derive("config")
QUEUE = Pubkey.derive("queue")
TOKEN = Pubkey.derive("governance-token")
PROPOSAL_PROGRAM = Pubkey.derive("proposal-program")
PROPOSAL = Pubkey.derive("proposal")

ACTIONS = (Pubkey.derive("action-1"), Pubkey.derive("action-2"))

PROGRAM = TimelockProgram(TL)


def _user(key: Pubkey, *, signer: bool = True) -> AccountInfo:
    return AccountInfo(key=key, owner=SYSTEM, is_signer=signer)


def _config_bytes(*, delay: int = 60, guardian: Optional[Pubkey] = GUARDIAN, active: bool = True) -> bytes:
    return TimelockConfig(
        is_initialized=True,
        authority=AUTHORITY,
        governance_token=TOKEN,
        proposal_program=PROPOSAL_PROGRAM,
        voting_delay=10,
        voting_period=100,
        quorum_votes=5,
        timelock_delay=delay,
        guardian=guardian,
        is_active=active,
    ).to_bytes()


def _queued_bytes(execution_time: int = 1100) -> bytes:
    return Queue(is_initialized=True, proposal=PROPOSAL, execution_time=execution_time, actions=ACTIONS, config=CONFIG).to_bytes()


def _config(data: bytes, *, writable: bool = False) -> AccountInfo:
    return AccountInfo(key=CONFIG, owner=TL, data=data, is_writable=writable)


def _queue(data: bytes, *, writable: bool = True, owner: Pubkey = TL) -> AccountInfo:
    return AccountInfo(key=QUEUE, owner=owner, data=data, is_writable=writable)


def _code(ix, accounts: List[AccountInfo], now: int):
    with pytest.raises(ValidationError) as e:
        PROGRAM.apply(ix, accounts, now)
    return e.value.code


# ---------------------------------------------------------------------------
# InitializeConfig
# ---------------------------------------------------------------------------


def _init_accounts(config_data: bytes) -> List[AccountInfo]:
    return [
        _config(config_data, writable=True),
        _user(AUTHORITY),
        _user(TOKEN, signer=False),
        _user(PROPOSAL_PROGRAM, signer=False),
    ]


def test_initialize_config_writes_record() -> None:
    ix = InitializeConfig(voting_delay=10, voting_period=100, quorum_votes=5, timelock_delay=60, guardian=GUARDIAN)
    t = PROGRAM.apply(ix, _init_accounts(bytes(TimelockConfig.LEN)), 1000)

    cfg = TimelockConfig.unpack(t.write_for(CONFIG))
    assert cfg.authority == AUTHORITY
    assert cfg.governance_token == TOKEN
    assert cfg.proposal_program == PROPOSAL_PROGRAM
    assert cfg.timelock_delay == 60
    assert cfg.guardian == GUARDIAN
    assert cfg.is_active is True
    assert t.transfers == () and t.invocations == ()


def test_initialize_config_twice_is_rejected() -> None:
    ix = InitializeConfig(voting_delay=0, voting_period=0, quorum_votes=0, timelock_delay=0)
    assert _code(ix, _init_accounts(_config_bytes()), 1000) == ValidationCode.ALREADY_INITIALIZED


@pytest.mark.parametrize(
    "kwargs,code",
    [
        ({"voting_delay": -1}, TimelockError.INVALID_VOTING_DELAY),
        ({"voting_period": -1}, TimelockError.INVALID_VOTING_PERIOD),
        ({"timelock_delay": -1}, TimelockError.INVALID_TIMELOCK_DELAY),
    ],
)
def test_initialize_config_rejects_negative_parameters(kwargs, code) -> None:
    base = {"voting_delay": 1, "voting_period": 1, "quorum_votes": 1, "timelock_delay": 1}
    base.update(kwargs)
    assert _code(InitializeConfig(**base), _init_accounts(bytes(TimelockConfig.LEN)), 1000) == code


def test_initialize_config_requires_signer_and_owner() -> None:
    ix = InitializeConfig(voting_delay=0, voting_period=0, quorum_votes=0, timelock_delay=0)
    accts = _init_accounts(bytes(TimelockConfig.LEN))
    accts[1] = _user(AUTHORITY, signer=False)
    assert _code(ix, accts, 1000) == ValidationCode.MISSING_SIGNATURE

    accts = _init_accounts(bytes(TimelockConfig.LEN))
    accts[0] = AccountInfo(key=CONFIG, owner=SYSTEM, data=bytes(TimelockConfig.LEN), is_writable=True)
    assert _code(ix, accts, 1000) == ValidationCode.WRONG_OWNER


# ---------------------------------------------------------------------------
# QueueActions
# ---------------------------------------------------------------------------


def _queue_accounts(config_data: bytes, queue_data: bytes, *, authority: Pubkey = AUTHORITY) -> List[AccountInfo]:
    return [_config(config_data), _queue(queue_data), _user(authority), _user(PROPOSAL, signer=False)]


def test_queue_actions_boundary_at_delay() -> None:
    accts = _queue_accounts(_config_bytes(delay=60), bytes(Queue.LEN))

    # execution time equal to now + delay is too early
    assert _code(QueueActions(execution_time=1060, actions=ACTIONS), accts, 1000) == TimelockError.INVALID_EXECUTION_TIME

    t = PROGRAM.apply(QueueActions(execution_time=1061, actions=ACTIONS), accts, 1000)
    q = Queue.unpack(t.write_for(QUEUE))
    assert q.proposal == PROPOSAL
    assert q.config == CONFIG
    assert q.execution_time == 1061
    assert q.actions == ACTIONS
    assert q.status is QueueStatus.QUEUED


def test_queue_actions_rejects_more_than_ten_actions() -> None:
    accts = _queue_accounts(_config_bytes(), bytes(Queue.LEN))
    many = tuple(Pubkey.derive(f"x{i}") for i in range(11))
    assert _code(QueueActions(execution_time=5000, actions=many), accts, 1000) == TimelockError.TOO_MANY_ACTIONS


def test_queue_actions_requires_config_authority() -> None:
    accts = _queue_accounts(_config_bytes(), bytes(Queue.LEN), authority=STRANGER)
    assert _code(QueueActions(execution_time=5000, actions=ACTIONS), accts, 1000) == TimelockError.INVALID_AUTHORITY


def test_queue_actions_on_queued_queue_is_rejected() -> None:
    accts = _queue_accounts(_config_bytes(), _queued_bytes())
    assert _code(QueueActions(execution_time=5000, actions=ACTIONS), accts, 1000) == ValidationCode.ALREADY_INITIALIZED


def test_queue_actions_requires_active_governance() -> None:
    accts = _queue_accounts(_config_bytes(active=False), bytes(Queue.LEN))
    assert _code(QueueActions(execution_time=5000, actions=ACTIONS), accts, 1000) == TimelockError.GOVERNANCE_NOT_ACTIVE


def test_queue_actions_overflow_is_math_overflow() -> None:
    accts = _queue_accounts(_config_bytes(delay=(1 << 63) - 1), bytes(Queue.LEN))
    assert _code(QueueActions(execution_time=5000, actions=ACTIONS), accts, 1) == TimelockError.MATH_OVERFLOW


def test_queue_actions_with_uninitialized_config_fails_decode() -> None:
    accts = _queue_accounts(bytes(TimelockConfig.LEN), bytes(Queue.LEN))
    with pytest.raises(NotInitialized):
        PROGRAM.apply(QueueActions(execution_time=5000, actions=ACTIONS), accts, 1000)


def test_queue_actions_account_checks() -> None:
    ix = QueueActions(execution_time=5000, actions=ACTIONS)

    accts = _queue_accounts(_config_bytes(), bytes(Queue.LEN))
    assert _code(ix, accts[:3], 1000) == ValidationCode.NOT_ENOUGH_ACCOUNT_KEYS

    accts = _queue_accounts(_config_bytes(), bytes(Queue.LEN))
    accts[1] = _queue(bytes(Queue.LEN), owner=SYSTEM)
    assert _code(ix, accts, 1000) == ValidationCode.WRONG_OWNER

    accts = _queue_accounts(_config_bytes(), bytes(Queue.LEN))
    accts[3] = _user(AUTHORITY, signer=False)
    assert _code(ix, accts, 1000) == ValidationCode.DUPLICATE_ACCOUNT

    accts = _queue_accounts(_config_bytes(), bytes(Queue.LEN))
    accts[1] = _queue(bytes(Queue.LEN), writable=False)
    assert _code(ix, accts, 1000) == ValidationCode.ACCOUNT_NOT_WRITABLE


# ---------------------------------------------------------------------------
# ExecuteActions / CancelActions
# ---------------------------------------------------------------------------


def _exec_accounts(queue_data: bytes, caller: Pubkey = AUTHORITY, *, config_data: Optional[bytes] = None) -> List[AccountInfo]:
    return [_config(config_data or _config_bytes()), _queue(queue_data), _user(caller)]


def test_execute_before_execution_time_is_rejected() -> None:
    assert _code(ExecuteActions(), _exec_accounts(_queued_bytes(1100)), 1099) == TimelockError.EXECUTION_TIME_NOT_REACHED


def test_execute_at_execution_time_invokes_actions_in_order() -> None:
    t = PROGRAM.apply(ExecuteActions(), _exec_accounts(_queued_bytes(1100)), 1100)
    q = Queue.unpack(t.write_for(QUEUE))
    assert q.executed is True
    assert q.status is QueueStatus.EXECUTED
    assert t.invocations == tuple(Invocation(target=a, reason="queued_action") for a in ACTIONS)


def test_execute_twice_is_rejected() -> None:
    t = PROGRAM.apply(ExecuteActions(), _exec_accounts(_queued_bytes(1100)), 1100)
    executed = t.write_for(QUEUE)
    assert _code(ExecuteActions(), _exec_accounts(executed), 2000) == TimelockError.ALREADY_EXECUTED
    assert _code(CancelActions(), _exec_accounts(executed), 2000) == TimelockError.ALREADY_EXECUTED


def test_execute_by_guardian_is_rejected() -> None:
    assert _code(ExecuteActions(), _exec_accounts(_queued_bytes(1100), GUARDIAN), 1200) == TimelockError.INVALID_AUTHORITY


def test_guardian_cancel_closes_queue() -> None:
    t = PROGRAM.apply(CancelActions(), _exec_accounts(_queued_bytes(1100), GUARDIAN), 1000)
    canceled = t.write_for(QUEUE)
    assert Queue.unpack(canceled).status is QueueStatus.CANCELED
    assert t.invocations == ()

    # terminal state is reported before the caller check
    assert _code(ExecuteActions(), _exec_accounts(canceled, STRANGER), 5000) == TimelockError.ALREADY_CANCELED
    assert _code(ExecuteActions(), _exec_accounts(canceled), 5000) == TimelockError.ALREADY_CANCELED
    assert _code(CancelActions(), _exec_accounts(canceled), 5000) == TimelockError.ALREADY_CANCELED


def test_authority_cancel_and_stranger_cancel() -> None:
    t = PROGRAM.apply(CancelActions(), _exec_accounts(_queued_bytes(1100)), 1000)
    assert Queue.unpack(t.write_for(QUEUE)).canceled is True

    assert _code(CancelActions(), _exec_accounts(_queued_bytes(1100), STRANGER), 1000) == TimelockError.INVALID_AUTHORITY


def test_cancel_without_guardian_requires_authority() -> None:
    cfg = _config_bytes(guardian=None)
    accts = _exec_accounts(_queued_bytes(1100), GUARDIAN, config_data=cfg)
    assert _code(CancelActions(), accts, 1000) == TimelockError.INVALID_AUTHORITY


def test_queue_is_bound_to_its_config() -> None:
    # a second config owned by the program, controlled by someone else
    other = TimelockConfig(is_initialized=True, authority=STRANGER, guardian=STRANGER, is_active=True).to_bytes()
    accts = [AccountInfo(key=Pubkey.derive("other-config"), owner=TL, data=other), _queue(_queued_bytes(1100)), _user(STRANGER)]

    assert _code(CancelActions(), accts, 1000) == TimelockError.INVALID_CONFIG
    assert _code(ExecuteActions(), accts, 5000) == TimelockError.INVALID_CONFIG


def test_execute_on_draft_queue_fails_decode() -> None:
    with pytest.raises(NotInitialized):
        PROGRAM.apply(ExecuteActions(), _exec_accounts(bytes(Queue.LEN)), 1000)


# ---------------------------------------------------------------------------
# SetGuardian
# ---------------------------------------------------------------------------


def test_set_guardian() -> None:
    new = Pubkey.derive("new-guardian")
    accts = [_config(_config_bytes(), writable=True), _user(AUTHORITY)]
    t = PROGRAM.apply(SetGuardian(new_guardian=new), accts, 1000)
    assert TimelockConfig.unpack(t.write_for(CONFIG)).guardian == new

    t = PROGRAM.apply(SetGuardian(new_guardian=None), accts, 1000)
    assert TimelockConfig.unpack(t.write_for(CONFIG)).guardian is None

    accts = [_config(_config_bytes(), writable=True), _user(GUARDIAN)]
    assert _code(SetGuardian(new_guardian=new), accts, 1000) == TimelockError.INVALID_AUTHORITY


# ---------------------------------------------------------------------------
# dispatch
# ---------------------------------------------------------------------------


def test_process_decodes_and_dispatches() -> None:
    data = QueueActions(execution_time=1061, actions=ACTIONS).pack()
    t = PROGRAM.process(_queue_accounts(_config_bytes(), bytes(Queue.LEN)), data, 1000)
    assert Queue.unpack(t.write_for(QUEUE)).execution_time == 1061


def test_program_must_handle_every_variant() -> None:
    with pytest.raises(TypeError):

        class Partial(Program):
            NAME = "partial"
            INSTRUCTIONS = TIMELOCK_INSTRUCTIONS
            HANDLERS = {InitializeConfig: "_initialize_config"}

            def _initialize_config(self, ctx, ix) -> None:
                return None

    with pytest.raises(TypeError):

        class Undefined(Program):
            NAME = "undefined"
            INSTRUCTIONS = TIMELOCK_INSTRUCTIONS
            HANDLERS = {v: "_missing" for v in TIMELOCK_INSTRUCTIONS.variants}


def test_queue_with_no_actions_is_valid() -> None:
    accts = _queue_accounts(_config_bytes(), bytes(Queue.LEN))
    t = PROGRAM.apply(QueueActions(execution_time=5000, actions=()), accts, 1000)
    assert Queue.unpack(t.write_for(QUEUE)).actions == ()

    t = PROGRAM.apply(ExecuteActions(), _exec_accounts(t.write_for(QUEUE)), 5000)
    assert t.invocations == ()
