# src/packstate/programs/timelock/state.py
"""Timelock records.

Byte ranges (end exclusive):

TimelockConfig (163 bytes)
  is_initialized     0..1
  authority          1..33
  governance_token   33..65
  proposal_program   65..97
  voting_delay       97..105    i64
  voting_period      105..113   i64
  quorum_votes       113..121   u64
  timelock_delay     121..129   i64
  guardian           129..162   tag + pubkey
  is_active          162..163

Queue (512 bytes)
  is_initialized     0..1
  proposal           1..33
  execution_time     33..41     i64
  actions            41..478    u16 count + 435-byte region (10 x 32 used)
  config             478..510
  executed           510..511
  canceled           511..512

Action (1024 bytes)
  is_initialized     0..1
  proposal           1..33
  program_id         33..65
  accounts           65..579    u16 count + 512-byte region (15 x 34 used)
  data               579..1023  u16 length + 442 bytes
  executed           1023..1024
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from packstate.codec.fields import BOOL, I64, PUBKEY, U64, BoundedBytes, BoundedList, OptionalKind, Struct
from packstate.codec.layout import RecordLayout
from packstate.codec.pubkey import Pubkey
from packstate.codec.record import Record

CAP_ACTIONS = 10
QUEUE_ACTIONS_REGION = 435

ACTION_ACCOUNTS_CAP = 15
ACTION_ACCOUNTS_REGION = 512
ACTION_DATA_CAP = 442


class QueueStatus(str, Enum):
    DRAFT = "draft"
    QUEUED = "queued"
    EXECUTED = "executed"
    CANCELED = "canceled"


@dataclass
class TimelockConfig(Record):
    LAYOUT = RecordLayout(
        ("is_initialized", BOOL),
        ("authority", PUBKEY),
        ("governance_token", PUBKEY),
        ("proposal_program", PUBKEY),
        ("voting_delay", I64),
        ("voting_period", I64),
        ("quorum_votes", U64),
        ("timelock_delay", I64),
        ("guardian", OptionalKind(PUBKEY)),
        ("is_active", BOOL),
    )

    is_initialized: bool = False
    authority: Pubkey = field(default_factory=Pubkey.zero)
    governance_token: Pubkey = field(default_factory=Pubkey.zero)
    proposal_program: Pubkey = field(default_factory=Pubkey.zero)
    voting_delay: int = 0
    voting_period: int = 0
    quorum_votes: int = 0
    timelock_delay: int = 0
    guardian: Optional[Pubkey] = None
    is_active: bool = False


@dataclass
class Queue(Record):
    LAYOUT = RecordLayout(
        ("is_initialized", BOOL),
        ("proposal", PUBKEY),
        ("execution_time", I64),
        ("actions", BoundedList(PUBKEY, CAP_ACTIONS, region=QUEUE_ACTIONS_REGION)),
        ("config", PUBKEY),
        ("executed", BOOL),
        ("canceled", BOOL),
    )

    is_initialized: bool = False
    proposal: Pubkey = field(default_factory=Pubkey.zero)
    execution_time: int = 0
    # identities of Action accounts; the queue does not own them
    actions: Tuple[Pubkey, ...] = ()
    config: Pubkey = field(default_factory=Pubkey.zero)
    executed: bool = False
    canceled: bool = False

    def __post_init__(self) -> None:
        self.actions = tuple(self.actions)

    @property
    def status(self) -> QueueStatus:
        if not self.is_initialized:
            return QueueStatus.DRAFT
        if self.canceled:
            return QueueStatus.CANCELED
        if self.executed:
            return QueueStatus.EXECUTED
        return QueueStatus.QUEUED


@dataclass
class ActionAccount(Record):
    LAYOUT = RecordLayout(
        ("pubkey", PUBKEY),
        ("is_signer", BOOL),
        ("is_writable", BOOL),
    )

    pubkey: Pubkey = field(default_factory=Pubkey.zero)
    is_signer: bool = False
    is_writable: bool = False


@dataclass
class Action(Record):
    LAYOUT = RecordLayout(
        ("is_initialized", BOOL),
        ("proposal", PUBKEY),
        ("program_id", PUBKEY),
        ("accounts", BoundedList(Struct(ActionAccount), ACTION_ACCOUNTS_CAP, region=ACTION_ACCOUNTS_REGION)),
        ("data", BoundedBytes(ACTION_DATA_CAP)),
        ("executed", BOOL),
    )

    is_initialized: bool = False
    proposal: Pubkey = field(default_factory=Pubkey.zero)
    program_id: Pubkey = field(default_factory=Pubkey.zero)
    accounts: Tuple[ActionAccount, ...] = ()
    data: bytes = b""
    executed: bool = False

    def __post_init__(self) -> None:
        self.accounts = tuple(self.accounts)
        self.data = bytes(self.data)
