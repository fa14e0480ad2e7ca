"""Token-lock program: time-locked balances with fee and early-unlock penalty."""

from __future__ import annotations

__all__ = ["state", "instruction", "processor", "errors"]
