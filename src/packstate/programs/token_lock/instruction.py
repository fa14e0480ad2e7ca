# src/packstate/programs/token_lock/instruction.py
"""Token-lock instructions.

InitializeConfig
  0. `[writable]` config account
  1. `[signer]` authority
  2. `[]` token mint

LockTokens
  0. `[writable]` config account
  1. `[writable]` lock account
  2. `[signer, writable]` owner (funds the lock)
  3. `[]` owner's token account (receives the release)

UnlockTokens
  0. `[writable]` config account
  1. `[writable]` lock account
  2. `[signer]` owner
  3. `[writable]` owner's token account
  4. `[writable]` treasury (config authority)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from packstate.instruction.base import Instruction, InstructionSet
from packstate.instruction.wire import InstructionReader, InstructionWriter


@dataclass(frozen=True)
class InitializeConfig(Instruction):
    TAG: ClassVar[int] = 0

    min_lock_duration: int
    max_lock_duration: int
    unlock_fee: int = 0
    early_unlock_penalty: int = 0

    @classmethod
    def read_payload(cls, r: InstructionReader) -> "InitializeConfig":
        return cls(
            min_lock_duration=r.i64("min_lock_duration"),
            max_lock_duration=r.i64("max_lock_duration"),
            unlock_fee=r.u16("unlock_fee"),
            early_unlock_penalty=r.u16("early_unlock_penalty"),
        )

    def write_payload(self, w: InstructionWriter) -> None:
        w.i64(self.min_lock_duration, "min_lock_duration")
        w.i64(self.max_lock_duration, "max_lock_duration")
        w.u16(self.unlock_fee, "unlock_fee")
        w.u16(self.early_unlock_penalty, "early_unlock_penalty")


@dataclass(frozen=True)
class LockTokens(Instruction):
    TAG: ClassVar[int] = 1

    amount: int
    duration: int

    @classmethod
    def read_payload(cls, r: InstructionReader) -> "LockTokens":
        return cls(amount=r.u64("amount"), duration=r.i64("duration"))

    def write_payload(self, w: InstructionWriter) -> None:
        w.u64(self.amount, "amount")
        w.i64(self.duration, "duration")


@dataclass(frozen=True)
class UnlockTokens(Instruction):
    TAG: ClassVar[int] = 2


TOKEN_LOCK_INSTRUCTIONS = InstructionSet("token_lock", [InitializeConfig, LockTokens, UnlockTokens])
