# src/packstate/codec/pubkey.py
from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Any

PUBKEY_LEN = 32


@dataclass(frozen=True, slots=True)
class Pubkey:
    """32-byte account identity. Equality is exact byte equality."""

    raw: bytes

    def __post_init__(self) -> None:
        if not isinstance(self.raw, (bytes, bytearray)):
            raise TypeError(f"Pubkey expects bytes, got {type(self.raw).__name__}")
        if len(self.raw) != PUBKEY_LEN:
            raise ValueError(f"Pubkey must be {PUBKEY_LEN} bytes, got {len(self.raw)}")
        object.__setattr__(self, "raw", bytes(self.raw))

    @staticmethod
    def zero() -> "Pubkey":
        return Pubkey(bytes(PUBKEY_LEN))

    @staticmethod
    def from_hex(s: str) -> "Pubkey":
        return Pubkey(bytes.fromhex(str(s).strip()))

    @staticmethod
    def derive(label: str) -> "Pubkey":
        """Deterministic identity from a stable label (program ids, fixtures)."""
        return Pubkey(hashlib.sha256(("packstate:" + str(label)).encode("utf-8")).digest())

    @staticmethod
    def coerce(v: Any) -> "Pubkey":
        if isinstance(v, Pubkey):
            return v
        if isinstance(v, (bytes, bytearray)):
            return Pubkey(bytes(v))
        if isinstance(v, str):
            return Pubkey.from_hex(v)
        raise TypeError(f"cannot coerce {type(v).__name__} to Pubkey")

    def is_zero(self) -> bool:
        return self.raw == bytes(PUBKEY_LEN)

    def hex(self) -> str:
        return self.raw.hex()

    def __bytes__(self) -> bytes:
        return self.raw

    def __str__(self) -> str:
        return self.raw.hex()

    def __repr__(self) -> str:
        return f"Pubkey({self.raw.hex()[:16]}...)"
