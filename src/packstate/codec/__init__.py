# src/packstate/codec/__init__.py
"""
Record codec package.

  - pubkey: 32-byte identities
  - fields: field kinds (integers, bools, enums, optionals, bounded lists/bytes)
  - layout: declarative byte-range tables + generic encode/decode
  - record: Record base class with strict/unchecked decode
  - errors: typed codec errors

Programs define their records here-style and never slice buffers by hand.
"""

from __future__ import annotations

__all__ = [
    "pubkey",
    "fields",
    "layout",
    "record",
    "errors",
]
