# src/packstate/codec/record.py
from __future__ import annotations

from dataclasses import fields as dc_fields
from enum import Enum
from typing import Any, ClassVar, Dict, Type, TypeVar

from packstate.codec.errors import NotInitialized
from packstate.codec.layout import RecordLayout
from packstate.codec.pubkey import Pubkey

R = TypeVar("R", bound="Record")

Json = Dict[str, Any]


class DecodeMode(str, Enum):
    STRICT = "strict"
    UNCHECKED = "unchecked"


class Record:
    """Base for fixed-layout records.

    Subclasses are dataclasses whose field names match their ``LAYOUT``. ``LEN``
    is derived from the layout when the subclass is created.
    """

    LAYOUT: ClassVar[RecordLayout]
    LEN: ClassVar[int]

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        layout = cls.__dict__.get("LAYOUT")
        if isinstance(layout, RecordLayout):
            cls.LEN = layout.size

    @classmethod
    def decode(cls: Type[R], buf: Any, mode: DecodeMode = DecodeMode.STRICT) -> R:
        strict = DecodeMode(mode) is DecodeMode.STRICT
        rec = cls(**cls.LAYOUT.read_values(buf, strict=strict))
        if strict and "is_initialized" in cls.LAYOUT.names and rec.is_initialized is not True:  # type: ignore[attr-defined]
            raise NotInitialized(f"{cls.__name__} is not initialized", field="is_initialized")
        return rec

    @classmethod
    def unpack(cls: Type[R], buf: Any) -> R:
        return cls.decode(buf, DecodeMode.STRICT)

    @classmethod
    def unpack_unchecked(cls: Type[R], buf: Any) -> R:
        return cls.decode(buf, DecodeMode.UNCHECKED)

    @classmethod
    def byte_ranges(cls) -> list:
        return cls.LAYOUT.table()

    def to_bytes(self) -> bytes:
        return self.LAYOUT.encode(self)

    def pack_into(self, dst: bytearray, offset: int = 0) -> None:
        self.LAYOUT.encode_into(self, dst, offset)

    def to_json(self) -> Json:
        return {f.name: _jsonable(getattr(self, f.name)) for f in dc_fields(self)}  # type: ignore[arg-type]


def _jsonable(v: Any) -> Any:
    if isinstance(v, Record):
        return v.to_json()
    if isinstance(v, Pubkey):
        return v.hex()
    if isinstance(v, Enum):
        return v.name
    if isinstance(v, (bytes, bytearray)):
        return bytes(v).hex()
    if isinstance(v, (list, tuple)):
        return [_jsonable(x) for x in v]
    return v
