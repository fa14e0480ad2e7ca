# src/packstate/instruction/__init__.py
"""Instruction wire format: ``[1-byte tag][variant payload]``.

  - wire: little-endian reader/writer sub-decoders
  - base: Instruction variants and per-program InstructionSet
"""

from __future__ import annotations

__all__ = ["wire", "base"]
