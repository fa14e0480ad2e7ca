# src/packstate/codec/errors.py
from __future__ import annotations

from typing import Optional


class CodecError(RuntimeError):
    """Base for record codec failures. Never retryable: the bytes or the value are wrong."""

    code = "codec_error"

    def __init__(self, msg: str, *, field: Optional[str] = None) -> None:
        super().__init__(msg)
        self.field = field


class DecodeError(CodecError):
    code = "decode_error"


class EncodeError(CodecError):
    code = "encode_error"


class BufferTooShort(DecodeError, EncodeError):
    code = "buffer_too_short"

    def __init__(self, need: int, have: int, *, field: Optional[str] = None) -> None:
        super().__init__(f"buffer too short: need {need} bytes, have {have}", field=field)
        self.need = int(need)
        self.have = int(have)


class InvalidBoolean(DecodeError):
    code = "invalid_boolean"


class InvalidEnumDiscriminant(DecodeError):
    code = "invalid_enum_discriminant"


class InvalidOptionalTag(DecodeError):
    code = "invalid_optional_tag"


class CapacityExceeded(DecodeError, EncodeError):
    code = "capacity_exceeded"

    def __init__(self, count: int, cap: int, *, field: Optional[str] = None) -> None:
        super().__init__(f"collection length {count} exceeds capacity {cap}", field=field)
        self.count = int(count)
        self.cap = int(cap)


class NotInitialized(DecodeError):
    code = "not_initialized"


class ValueOutOfRange(EncodeError):
    code = "value_out_of_range"


DECODE_ERRORS = (
    BufferTooShort,
    InvalidBoolean,
    InvalidEnumDiscriminant,
    InvalidOptionalTag,
    CapacityExceeded,
    NotInitialized,
)
