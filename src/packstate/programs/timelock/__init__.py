"""Governance timelock program.

  - state: TimelockConfig, Queue, Action, ActionAccount records
  - instruction: wire variants and TIMELOCK_INSTRUCTIONS
  - processor: TimelockProgram
  - errors: TimelockError codes
"""

from __future__ import annotations

__all__ = ["state", "instruction", "processor", "errors"]
