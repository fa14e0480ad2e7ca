# src/packstate/instruction/base.py
from __future__ import annotations

from typing import ClassVar, Dict, Sequence, Tuple, Type

from packstate.instruction.wire import (
    InstructionDecodeError,
    InstructionEncodeError,
    InstructionReader,
    InstructionWriter,
)


class Instruction:
    """One variant of a program's closed instruction union.

    Subclasses are frozen dataclasses with a unique ``TAG`` byte. Payload-less
    variants need not override the read/write hooks.
    """

    TAG: ClassVar[int]

    @classmethod
    def read_payload(cls, r: InstructionReader) -> "Instruction":
        return cls()

    def write_payload(self, w: InstructionWriter) -> None:
        return None

    def pack(self) -> bytes:
        w = InstructionWriter()
        w.u8(int(self.TAG), "tag")
        self.write_payload(w)
        return w.getvalue()


class InstructionSet:
    """Closed set of instruction variants for one program, keyed by tag."""

    def __init__(self, name: str, variants: Sequence[Type[Instruction]]) -> None:
        by_tag: Dict[int, Type[Instruction]] = {}
        for v in variants:
            tag = int(v.TAG)
            if tag < 0 or tag > 0xFF:
                raise ValueError(f"{name}: tag {tag} of {v.__name__} does not fit one byte")
            if tag in by_tag:
                raise ValueError(f"{name}: duplicate tag {tag} ({by_tag[tag].__name__}, {v.__name__})")
            by_tag[tag] = v
        self.name = str(name)
        self._by_tag = by_tag

    @property
    def variants(self) -> Tuple[Type[Instruction], ...]:
        return tuple(self._by_tag[t] for t in sorted(self._by_tag))

    def decode(self, data: bytes) -> Instruction:
        r = InstructionReader(data)
        if r.remaining == 0:
            raise InstructionDecodeError(f"{self.name}: empty instruction data", offset=0)
        tag = r.u8("tag")
        cls = self._by_tag.get(tag)
        if cls is None:
            raise InstructionDecodeError(f"{self.name}: unknown instruction tag {tag}", offset=0)
        ix = cls.read_payload(r)
        r.finish()
        return ix

    def encode(self, ix: Instruction) -> bytes:
        if type(ix) not in self._by_tag.values():
            raise InstructionEncodeError(f"{self.name}: {type(ix).__name__} is not part of this instruction set")
        return ix.pack()
