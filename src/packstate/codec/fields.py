# src/packstate/codec/fields.py
"""Field kinds for fixed-layout records.

Every kind has a constant encoded ``size`` and knows how to read itself from a
buffer at an offset and write itself into a pre-zeroed scratch buffer. Layouts
(see ``layout.py``) compose kinds into byte-range tables; nothing here computes
record offsets.
"""

from __future__ import annotations

import struct
from enum import Enum
from collections.abc import Sequence
from typing import Any, Type

from packstate.codec.errors import (
    CapacityExceeded,
    InvalidBoolean,
    InvalidEnumDiscriminant,
    InvalidOptionalTag,
    ValueOutOfRange,
)
from packstate.codec.pubkey import PUBKEY_LEN, Pubkey

_COUNT = struct.Struct("<H")
_MAX_COUNT = 0xFFFF


def _require_int(v: Any, name: str) -> int:
    # bool is an int subclass; disallow it explicitly
    if isinstance(v, bool) or not isinstance(v, int):
        raise ValueOutOfRange(f"field '{name}' expects int, got {type(v).__name__}", field=name)
    return v


class FieldKind:
    size: int = 0

    def read(self, buf: Any, off: int, *, strict: bool, name: str) -> Any:
        raise NotImplementedError

    def write(self, value: Any, out: bytearray, off: int, *, name: str) -> None:
        raise NotImplementedError

    def describe(self) -> str:
        return type(self).__name__


class Integer(FieldKind):
    _FORMATS = {1: "B", 2: "H", 4: "I", 8: "Q"}

    def __init__(self, width: int, *, signed: bool = False) -> None:
        if width not in self._FORMATS:
            raise ValueError(f"unsupported integer width: {width}")
        fmt = self._FORMATS[width]
        self._st = struct.Struct("<" + (fmt.lower() if signed else fmt))
        self.size = width
        self.signed = signed
        bits = 8 * width
        self.min = -(1 << (bits - 1)) if signed else 0
        self.max = (1 << (bits - 1)) - 1 if signed else (1 << bits) - 1

    def read(self, buf: Any, off: int, *, strict: bool, name: str) -> int:
        return int(self._st.unpack_from(buf, off)[0])

    def write(self, value: Any, out: bytearray, off: int, *, name: str) -> None:
        v = _require_int(value, name)
        if v < self.min or v > self.max:
            raise ValueOutOfRange(f"field '{name}' value {v} outside [{self.min}, {self.max}]", field=name)
        self._st.pack_into(out, off, v)

    def describe(self) -> str:
        return f"{'i' if self.signed else 'u'}{8 * self.size}"


U8 = Integer(1)
U16 = Integer(2)
U32 = Integer(4)
U64 = Integer(8)
I64 = Integer(8, signed=True)


class Bool(FieldKind):
    size = 1

    def read(self, buf: Any, off: int, *, strict: bool, name: str) -> bool:
        b = buf[off]
        if b in (0, 1):
            return bool(b)
        if strict:
            raise InvalidBoolean(f"field '{name}' has non-boolean byte {b}", field=name)
        return True

    def write(self, value: Any, out: bytearray, off: int, *, name: str) -> None:
        if not isinstance(value, bool):
            raise ValueOutOfRange(f"field '{name}' expects bool, got {type(value).__name__}", field=name)
        out[off] = 1 if value else 0

    def describe(self) -> str:
        return "bool"


BOOL = Bool()


class FixedBytes(FieldKind):
    def __init__(self, length: int) -> None:
        self.size = int(length)

    def read(self, buf: Any, off: int, *, strict: bool, name: str) -> bytes:
        return bytes(buf[off : off + self.size])

    def write(self, value: Any, out: bytearray, off: int, *, name: str) -> None:
        if not isinstance(value, (bytes, bytearray)) or len(value) != self.size:
            raise ValueOutOfRange(f"field '{name}' expects exactly {self.size} bytes", field=name)
        out[off : off + self.size] = value

    def describe(self) -> str:
        return f"bytes[{self.size}]"


class PubkeyKind(FieldKind):
    size = PUBKEY_LEN

    def read(self, buf: Any, off: int, *, strict: bool, name: str) -> Pubkey:
        return Pubkey(bytes(buf[off : off + PUBKEY_LEN]))

    def write(self, value: Any, out: bytearray, off: int, *, name: str) -> None:
        if not isinstance(value, Pubkey):
            raise ValueOutOfRange(f"field '{name}' expects Pubkey, got {type(value).__name__}", field=name)
        out[off : off + PUBKEY_LEN] = value.raw

    def describe(self) -> str:
        return "pubkey"


PUBKEY = PubkeyKind()


class EnumByte(FieldKind):
    """Single-byte enum.

    Unchecked reads return the raw integer for unknown discriminants rather than
    picking a variant; strict reads reject them.
    """

    size = 1

    def __init__(self, enum_cls: Type[Enum]) -> None:
        self.enum_cls = enum_cls

    def read(self, buf: Any, off: int, *, strict: bool, name: str) -> Any:
        b = buf[off]
        try:
            return self.enum_cls(b)
        except ValueError:
            if strict:
                raise InvalidEnumDiscriminant(
                    f"field '{name}' has unknown {self.enum_cls.__name__} discriminant {b}", field=name
                ) from None
            return int(b)

    def write(self, value: Any, out: bytearray, off: int, *, name: str) -> None:
        if not isinstance(value, self.enum_cls):
            raise ValueOutOfRange(f"field '{name}' expects {self.enum_cls.__name__}", field=name)
        raw = _require_int(value.value, name)
        if raw < 0 or raw > 0xFF:
            raise ValueOutOfRange(f"field '{name}' discriminant {raw} does not fit one byte", field=name)
        out[off] = raw

    def describe(self) -> str:
        return f"enum {self.enum_cls.__name__}"


class OptionalKind(FieldKind):
    """1-byte presence tag followed by the inner payload, always full width."""

    def __init__(self, inner: FieldKind) -> None:
        self.inner = inner
        self.size = 1 + inner.size

    def read(self, buf: Any, off: int, *, strict: bool, name: str) -> Any:
        tag = buf[off]
        if tag == 0:
            return None
        if tag != 1:
            raise InvalidOptionalTag(f"field '{name}' has optional tag {tag}", field=name)
        return self.inner.read(buf, off + 1, strict=strict, name=name)

    def write(self, value: Any, out: bytearray, off: int, *, name: str) -> None:
        # absent payload stays zero-filled from the scratch buffer
        if value is None:
            out[off] = 0
            return
        out[off] = 1
        self.inner.write(value, out, off + 1, name=name)

    def describe(self) -> str:
        return f"optional {self.inner.describe()}"


class Struct(FieldKind):
    """Nested fixed-size entry described by another record class's layout."""

    def __init__(self, record_cls: Any) -> None:
        self.record_cls = record_cls
        self.size = record_cls.LAYOUT.size

    def read(self, buf: Any, off: int, *, strict: bool, name: str) -> Any:
        values = self.record_cls.LAYOUT.read_values(buf, off, strict=strict, prefix=name + ".")
        return self.record_cls(**values)

    def write(self, value: Any, out: bytearray, off: int, *, name: str) -> None:
        if not isinstance(value, self.record_cls):
            raise ValueOutOfRange(f"field '{name}' expects {self.record_cls.__name__}", field=name)
        self.record_cls.LAYOUT.write_values(value, out, off, prefix=name + ".")

    def describe(self) -> str:
        return self.record_cls.__name__


class BoundedList(FieldKind):
    """u16 LE count followed by a fixed region of up to ``cap`` entries.

    ``region`` may exceed ``cap * entry size`` to preserve a historical buffer
    size; the surplus is always zero.
    """

    def __init__(self, inner: FieldKind, cap: int, *, region: int | None = None) -> None:
        if cap < 0 or cap > _MAX_COUNT:
            raise ValueError(f"capacity must fit u16: {cap}")
        need = cap * inner.size
        region = need if region is None else int(region)
        if region < need:
            raise ValueError(f"region {region} cannot hold {cap} entries of {inner.size} bytes")
        self.inner = inner
        self.cap = int(cap)
        self.region = region
        self.size = _COUNT.size + region

    def read(self, buf: Any, off: int, *, strict: bool, name: str) -> tuple:
        n = _COUNT.unpack_from(buf, off)[0]
        if n > self.cap:
            raise CapacityExceeded(n, self.cap, field=name)
        base = off + _COUNT.size
        step = self.inner.size
        return tuple(
            self.inner.read(buf, base + i * step, strict=strict, name=f"{name}[{i}]") for i in range(n)
        )

    def write(self, value: Any, out: bytearray, off: int, *, name: str) -> None:
        if isinstance(value, (str, bytes, bytearray)) or not isinstance(value, Sequence):
            raise ValueOutOfRange(f"field '{name}' expects a list or tuple", field=name)
        if len(value) > self.cap:
            raise CapacityExceeded(len(value), self.cap, field=name)
        _COUNT.pack_into(out, off, len(value))
        base = off + _COUNT.size
        step = self.inner.size
        for i, item in enumerate(value):
            self.inner.write(item, out, base + i * step, name=f"{name}[{i}]")

    def describe(self) -> str:
        return f"list[{self.inner.describe()}; {self.cap}]"


class BoundedBytes(FieldKind):
    """u16 LE length followed by a fixed region of ``cap`` bytes."""

    def __init__(self, cap: int) -> None:
        if cap < 0 or cap > _MAX_COUNT:
            raise ValueError(f"capacity must fit u16: {cap}")
        self.cap = int(cap)
        self.size = _COUNT.size + self.cap

    def read(self, buf: Any, off: int, *, strict: bool, name: str) -> bytes:
        n = _COUNT.unpack_from(buf, off)[0]
        if n > self.cap:
            raise CapacityExceeded(n, self.cap, field=name)
        base = off + _COUNT.size
        return bytes(buf[base : base + n])

    def write(self, value: Any, out: bytearray, off: int, *, name: str) -> None:
        if not isinstance(value, (bytes, bytearray)):
            raise ValueOutOfRange(f"field '{name}' expects bytes", field=name)
        if len(value) > self.cap:
            raise CapacityExceeded(len(value), self.cap, field=name)
        _COUNT.pack_into(out, off, len(value))
        base = off + _COUNT.size
        out[base : base + len(value)] = value

    def describe(self) -> str:
        return f"bytes[..{self.cap}]"
