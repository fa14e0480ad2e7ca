# src/packstate/runtime/processor.py
"""Generic state-transition processor.

A program turns ``(instruction, account snapshots, now)`` into a ``Transition``:
the new record bytes to write, the balance transfers to apply, and the external
invocations the host must make. Handlers stage everything on an
``InstructionContext``; the transition only materializes when the handler
returns, so a raised error leaves no writes and no transfers behind.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Sequence, Tuple, Type

from packstate.codec.record import DecodeMode, Record
from packstate.codec.pubkey import Pubkey
from packstate.instruction.base import Instruction, InstructionSet
from packstate.log import log_event
from packstate.runtime import checks
from packstate.runtime.accounts import AccountCursor, AccountInfo
from packstate.runtime.errors import ValidationCode, ValidationError

log = logging.getLogger("packstate.processor")


@dataclass(frozen=True)
class Transfer:
    source: Pubkey
    destination: Pubkey
    amount: int


@dataclass(frozen=True)
class Invocation:
    """Call the host must make after commit. The target is a non-owning reference."""

    target: Pubkey
    reason: str = ""


@dataclass(frozen=True)
class Transition:
    writes: Tuple[Tuple[Pubkey, bytes], ...] = ()
    transfers: Tuple[Transfer, ...] = ()
    invocations: Tuple[Invocation, ...] = ()

    def write_for(self, key: Pubkey) -> Optional[bytes]:
        for k, data in self.writes:
            if k == key:
                return data
        return None


class InstructionContext:
    def __init__(self, program_id: Pubkey, accounts: Sequence[AccountInfo], now: int) -> None:
        self.program_id = program_id
        self.accounts: Tuple[AccountInfo, ...] = tuple(accounts)
        self.now = int(now)
        self._writes: Dict[Pubkey, bytes] = {}
        self._transfers: List[Transfer] = []
        self._invocations: List[Invocation] = []

    def cursor(self) -> AccountCursor:
        return AccountCursor(self.accounts)

    def load(self, record_cls: Type[Record], account: AccountInfo, *, unchecked: bool = False) -> Any:
        """Decode the latest staged (or original) bytes of ``account``."""
        data = self._writes.get(account.key, account.data)
        mode = DecodeMode.UNCHECKED if unchecked else DecodeMode.STRICT
        return record_cls.decode(data, mode)

    def store(self, account: AccountInfo, record: Record) -> None:
        checks.is_writable(account)
        checks.owned_by(account, self.program_id)
        base = self._writes.get(account.key, account.data)
        buf = bytearray(base)
        record.pack_into(buf)
        self._writes[account.key] = bytes(buf)

    def transfer(self, source: AccountInfo, destination: AccountInfo, amount: int) -> None:
        amount = int(amount)
        if amount < 0:
            raise ValueError(f"transfer amount must be >= 0, got {amount}")
        if amount == 0:
            return
        if not source.is_signer and source.owner != self.program_id:
            raise ValidationError(ValidationCode.UNAUTHORIZED_DEBIT, "debit_requires_signer_or_owner", {"account": source.key.hex()})
        checks.is_writable(source)
        checks.is_writable(destination)
        self._transfers.append(Transfer(source=source.key, destination=destination.key, amount=amount))

    def invoke(self, target: Pubkey, reason: str = "") -> None:
        self._invocations.append(Invocation(target=target, reason=reason))

    def transition(self) -> Transition:
        return Transition(
            writes=tuple(self._writes.items()),
            transfers=tuple(self._transfers),
            invocations=tuple(self._invocations),
        )


def ensure_exhaustive(program_cls: Any) -> None:
    """Every variant of the program's instruction set must have exactly one handler."""
    variants = set(program_cls.INSTRUCTIONS.variants)
    handled = set(program_cls.HANDLERS)
    missing = sorted(v.__name__ for v in variants - handled)
    extra = sorted(v.__name__ for v in handled - variants)
    if missing or extra:
        raise TypeError(f"{program_cls.__name__}: unhandled variants {missing}, unknown handlers {extra}")
    for variant, method in program_cls.HANDLERS.items():
        if not callable(getattr(program_cls, method, None)):
            raise TypeError(f"{program_cls.__name__}: handler {method!r} for {variant.__name__} is not defined")


class Program:
    NAME: ClassVar[str] = ""
    INSTRUCTIONS: ClassVar[InstructionSet]
    HANDLERS: ClassVar[Mapping[Type[Instruction], str]]

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if "INSTRUCTIONS" in cls.__dict__ or "HANDLERS" in cls.__dict__:
            ensure_exhaustive(cls)

    def __init__(self, program_id: Pubkey) -> None:
        self.program_id = program_id

    def decode_instruction(self, data: bytes) -> Instruction:
        return self.INSTRUCTIONS.decode(data)

    def process(self, accounts: Sequence[AccountInfo], data: bytes, now: int) -> Transition:
        return self.apply(self.decode_instruction(data), accounts, now)

    def apply(self, ix: Instruction, accounts: Sequence[AccountInfo], now: int) -> Transition:
        method = self.HANDLERS.get(type(ix))
        if method is None:
            raise TypeError(f"{type(self).__name__} has no handler for {type(ix).__name__}")
        ctx = InstructionContext(self.program_id, accounts, now)
        try:
            getattr(self, method)(ctx, ix)
        except ValidationError as e:
            log_event(
                log,
                "ix_rejected",
                level=logging.DEBUG,
                program=self.NAME,
                ix=type(ix).__name__,
                code=getattr(e.code, "value", str(e.code)),
                reason=e.reason,
            )
            raise
        return ctx.transition()
