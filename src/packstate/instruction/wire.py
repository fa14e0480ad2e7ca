# src/packstate/instruction/wire.py
from __future__ import annotations

import struct
from typing import List, Optional, Sequence

from packstate.codec.pubkey import PUBKEY_LEN, Pubkey

_U8 = struct.Struct("<B")
_U16 = struct.Struct("<H")
_U64 = struct.Struct("<Q")
_I64 = struct.Struct("<q")


class InstructionDecodeError(RuntimeError):
    """Malformed instruction bytes. Always fatal; the decoder never clamps or pads."""

    code = "invalid_instruction_data"

    def __init__(self, msg: str, *, offset: Optional[int] = None) -> None:
        super().__init__(msg)
        self.offset = offset


class InstructionEncodeError(RuntimeError):
    code = "invalid_instruction_value"


class InstructionReader:
    """Left-to-right cursor over instruction bytes."""

    def __init__(self, data: bytes) -> None:
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise InstructionDecodeError(f"instruction data must be bytes, got {type(data).__name__}")
        self._data = bytes(data)
        self._pos = 0

    @property
    def remaining(self) -> int:
        return len(self._data) - self._pos

    def _take(self, n: int, what: str) -> bytes:
        if self.remaining < n:
            raise InstructionDecodeError(
                f"truncated instruction: {what} needs {n} bytes, {self.remaining} left", offset=self._pos
            )
        out = self._data[self._pos : self._pos + n]
        self._pos += n
        return out

    def u8(self, what: str = "u8") -> int:
        return _U8.unpack(self._take(1, what))[0]

    def u16(self, what: str = "u16") -> int:
        return _U16.unpack(self._take(2, what))[0]

    def u64(self, what: str = "u64") -> int:
        return _U64.unpack(self._take(8, what))[0]

    def i64(self, what: str = "i64") -> int:
        return _I64.unpack(self._take(8, what))[0]

    def pubkey(self, what: str = "pubkey") -> Pubkey:
        return Pubkey(self._take(PUBKEY_LEN, what))

    def opt_pubkey(self, what: str = "optional pubkey") -> Optional[Pubkey]:
        pos = self._pos
        tag = self.u8(what)
        if tag == 0:
            return None
        if tag != 1:
            raise InstructionDecodeError(f"{what}: invalid optional tag {tag}", offset=pos)
        return self.pubkey(what)

    def pubkey_list(self, max_count: int, what: str = "pubkey list") -> List[Pubkey]:
        pos = self._pos
        n = self.u8(what)
        if n > max_count:
            raise InstructionDecodeError(f"{what}: count {n} exceeds maximum {max_count}", offset=pos)
        return [self.pubkey(f"{what}[{i}]") for i in range(n)]

    def finish(self) -> None:
        if self.remaining:
            raise InstructionDecodeError(f"{self.remaining} trailing bytes after instruction", offset=self._pos)


class InstructionWriter:
    def __init__(self) -> None:
        self._buf = bytearray()

    def _int(self, st: struct.Struct, v: int, what: str) -> None:
        if isinstance(v, bool) or not isinstance(v, int):
            raise InstructionEncodeError(f"{what}: expected int, got {type(v).__name__}")
        try:
            self._buf += st.pack(v)
        except struct.error as e:
            raise InstructionEncodeError(f"{what}: {v} does not fit: {e}") from e

    def u8(self, v: int, what: str = "u8") -> None:
        self._int(_U8, v, what)

    def u16(self, v: int, what: str = "u16") -> None:
        self._int(_U16, v, what)

    def u64(self, v: int, what: str = "u64") -> None:
        self._int(_U64, v, what)

    def i64(self, v: int, what: str = "i64") -> None:
        self._int(_I64, v, what)

    def pubkey(self, v: Pubkey, what: str = "pubkey") -> None:
        if not isinstance(v, Pubkey):
            raise InstructionEncodeError(f"{what}: expected Pubkey")
        self._buf += v.raw

    def opt_pubkey(self, v: Optional[Pubkey], what: str = "optional pubkey") -> None:
        if v is None:
            self._buf.append(0)
            return
        self._buf.append(1)
        self.pubkey(v, what)

    def pubkey_list(self, items: Sequence[Pubkey], max_count: int, what: str = "pubkey list") -> None:
        if len(items) > max_count:
            raise InstructionEncodeError(f"{what}: {len(items)} entries exceeds maximum {max_count}")
        self.u8(len(items), what)
        for i, k in enumerate(items):
            self.pubkey(k, f"{what}[{i}]")

    def getvalue(self) -> bytes:
        return bytes(self._buf)
