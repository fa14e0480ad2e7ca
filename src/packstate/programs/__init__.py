"""Programs shipped with packstate.

  - timelock: governance timelock queue
  - token_lock: time-locked balances with fees
"""

from __future__ import annotations

from typing import List

from packstate.config import RuntimeConfig
from packstate.programs.timelock.processor import TimelockProgram
from packstate.programs.token_lock.processor import TokenLockProgram
from packstate.runtime.processor import Program

__all__ = ["default_programs", "TimelockProgram", "TokenLockProgram"]


def default_programs(cfg: RuntimeConfig) -> List[Program]:
    return [
        TimelockProgram(cfg.timelock_id()),
        TokenLockProgram(cfg.token_lock_id()),
    ]
