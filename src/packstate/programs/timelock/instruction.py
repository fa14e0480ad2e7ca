# src/packstate/programs/timelock/instruction.py
"""Timelock instructions.

Accounts expected per variant:

InitializeConfig
  0. `[writable]` config account
  1. `[signer]` authority
  2. `[]` governance token
  3. `[]` proposal program

QueueActions
  0. `[]` config account
  1. `[writable]` queue account
  2. `[signer]` authority
  3. `[]` proposal

ExecuteActions
  0. `[]` config account
  1. `[writable]` queue account
  2. `[signer]` authority

CancelActions
  0. `[]` config account
  1. `[writable]` queue account
  2. `[signer]` authority or guardian

SetGuardian
  0. `[writable]` config account
  1. `[signer]` authority
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Optional, Tuple

from packstate.codec.pubkey import Pubkey
from packstate.instruction.base import Instruction, InstructionSet
from packstate.instruction.wire import InstructionReader, InstructionWriter
from packstate.programs.timelock.state import CAP_ACTIONS

MAX_QUEUED_ACTIONS = CAP_ACTIONS


@dataclass(frozen=True)
class InitializeConfig(Instruction):
    TAG: ClassVar[int] = 0

    voting_delay: int
    voting_period: int
    quorum_votes: int
    timelock_delay: int
    guardian: Optional[Pubkey] = None

    @classmethod
    def read_payload(cls, r: InstructionReader) -> "InitializeConfig":
        return cls(
            voting_delay=r.i64("voting_delay"),
            voting_period=r.i64("voting_period"),
            quorum_votes=r.u64("quorum_votes"),
            timelock_delay=r.i64("timelock_delay"),
            guardian=r.opt_pubkey("guardian"),
        )

    def write_payload(self, w: InstructionWriter) -> None:
        w.i64(self.voting_delay, "voting_delay")
        w.i64(self.voting_period, "voting_period")
        w.u64(self.quorum_votes, "quorum_votes")
        w.i64(self.timelock_delay, "timelock_delay")
        w.opt_pubkey(self.guardian, "guardian")


@dataclass(frozen=True)
class QueueActions(Instruction):
    TAG: ClassVar[int] = 1

    execution_time: int
    actions: Tuple[Pubkey, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "actions", tuple(self.actions))

    @classmethod
    def read_payload(cls, r: InstructionReader) -> "QueueActions":
        execution_time = r.i64("execution_time")
        actions = r.pubkey_list(MAX_QUEUED_ACTIONS, "actions")
        return cls(execution_time=execution_time, actions=tuple(actions))

    def write_payload(self, w: InstructionWriter) -> None:
        w.i64(self.execution_time, "execution_time")
        w.pubkey_list(self.actions, MAX_QUEUED_ACTIONS, "actions")


@dataclass(frozen=True)
class ExecuteActions(Instruction):
    TAG: ClassVar[int] = 2


@dataclass(frozen=True)
class CancelActions(Instruction):
    TAG: ClassVar[int] = 3


@dataclass(frozen=True)
class SetGuardian(Instruction):
    TAG: ClassVar[int] = 4

    new_guardian: Optional[Pubkey] = None

    @classmethod
    def read_payload(cls, r: InstructionReader) -> "SetGuardian":
        return cls(new_guardian=r.opt_pubkey("new_guardian"))

    def write_payload(self, w: InstructionWriter) -> None:
        w.opt_pubkey(self.new_guardian, "new_guardian")


TIMELOCK_INSTRUCTIONS = InstructionSet(
    "timelock",
    [InitializeConfig, QueueActions, ExecuteActions, CancelActions, SetGuardian],
)
