"""packstate: fixed-layout account records, instruction wire codecs, and
state-transition processors, with a SQLite reference host.

  - codec: record layouts and strict/unchecked decoding
  - instruction: tagged instruction wire format
  - runtime: validation primitives, processor, account store, executor
  - programs: timelock and token_lock
"""

from __future__ import annotations

__version__ = "0.1.0"
