# src/packstate/codec/layout.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

from packstate.codec.errors import BufferTooShort
from packstate.codec.fields import FieldKind


@dataclass(frozen=True)
class FieldSpan:
    name: str
    kind: FieldKind
    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start


class RecordLayout:
    """Declarative byte-range table for one record type.

    Offsets are derived once from the ordered ``(name, kind)`` pairs; the same
    generic routine reads and writes every record type.
    """

    def __init__(self, *fields: Tuple[str, FieldKind]) -> None:
        spans: List[FieldSpan] = []
        seen: set[str] = set()
        off = 0
        for name, kind in fields:
            if name in seen:
                raise ValueError(f"duplicate field in layout: {name}")
            seen.add(name)
            spans.append(FieldSpan(name=name, kind=kind, start=off, end=off + kind.size))
            off += kind.size
        self.spans: Tuple[FieldSpan, ...] = tuple(spans)
        self.size = off

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(s.name for s in self.spans)

    def table(self) -> List[Tuple[str, int, int]]:
        """(field, start, end) rows, end exclusive."""
        return [(s.name, s.start, s.end) for s in self.spans]

    def read_values(self, buf: Any, base: int = 0, *, strict: bool, prefix: str = "") -> Dict[str, Any]:
        have = len(buf) - base
        if have < self.size:
            raise BufferTooShort(self.size, max(0, have), field=prefix.rstrip(".") or None)
        view = memoryview(buf)
        out: Dict[str, Any] = {}
        for s in self.spans:
            out[s.name] = s.kind.read(view, base + s.start, strict=strict, name=prefix + s.name)
        return out

    def write_values(self, obj: Any, out: bytearray, base: int = 0, *, prefix: str = "") -> None:
        for s in self.spans:
            s.kind.write(getattr(obj, s.name), out, base + s.start, name=prefix + s.name)

    def encode(self, obj: Any) -> bytes:
        # scratch is zero-filled, so unused optional payloads and list slots encode as zeros
        scratch = bytearray(self.size)
        self.write_values(obj, scratch)
        return bytes(scratch)

    def encode_into(self, obj: Any, dst: bytearray, offset: int = 0) -> None:
        have = len(dst) - offset
        if have < self.size:
            raise BufferTooShort(self.size, max(0, have))
        data = self.encode(obj)
        dst[offset : offset + self.size] = data
