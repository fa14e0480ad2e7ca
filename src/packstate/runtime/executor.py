# src/packstate/runtime/executor.py
"""Reference host: route, snapshot, process, commit.

The executor owns the only mutable state (the account store). For one
instruction it opens a write transaction, snapshots the referenced accounts,
runs the program's processor, and commits the returned transition. Decode and
validation failures become a rejected ``ExecResult`` with nothing written.
``IntegrationFault`` is logged and re-raised.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Sequence

from packstate.codec.errors import CodecError
from packstate.codec.pubkey import Pubkey
from packstate.config import RuntimeConfig
from packstate.crypto.sig import verified_signers
from packstate.instruction.wire import InstructionDecodeError
from packstate.log import log_event
from packstate.runtime.account_store import AccountStore
from packstate.runtime.accounts import AccountMeta
from packstate.runtime.errors import IntegrationFault, ValidationError
from packstate.runtime.processor import Program, Transition

log = logging.getLogger("packstate.executor")

Clock = Callable[[], int]


def wall_clock() -> int:
    return int(time.time())


@dataclass(frozen=True)
class ExecResult:
    ok: bool
    code: str = ""
    reason: str = ""
    transition: Optional[Transition] = None
    details: Any = None


class ProgramExecutor:
    def __init__(
        self,
        store: AccountStore,
        programs: Sequence[Program],
        *,
        clock: Clock = wall_clock,
        require_signatures: bool = False,
    ) -> None:
        by_id: Dict[Pubkey, Program] = {}
        for p in programs:
            if p.program_id in by_id:
                raise ValueError(f"duplicate program id {p.program_id.hex()}")
            by_id[p.program_id] = p
        self.store = store
        self.programs: Mapping[Pubkey, Program] = by_id
        self.clock = clock
        self.require_signatures = bool(require_signatures)

    def execute(self, program_id: Pubkey, metas: Sequence[AccountMeta], data: bytes) -> ExecResult:
        """Run one instruction trusting the signer flags in ``metas``."""
        if self.require_signatures:
            log_event(log, "ix_rejected", code="signatures_required", program=program_id.hex())
            return ExecResult(ok=False, code="signatures_required", reason="unsigned execution is disabled")
        return self._run(program_id, metas, data, signers=None)

    def execute_signed(
        self,
        program_id: Pubkey,
        metas: Sequence[AccountMeta],
        data: bytes,
        signatures: Mapping[str, str],
    ) -> ExecResult:
        """Run one instruction deriving signer flags from Ed25519 signatures."""
        signers = verified_signers(program_id=program_id, metas=metas, data=data, signatures=signatures)
        return self._run(program_id, metas, data, signers=signers)

    def _run(self, program_id: Pubkey, metas: Sequence[AccountMeta], data: bytes, *, signers: Any) -> ExecResult:
        program = self.programs.get(program_id)
        if program is None:
            log_event(log, "ix_rejected", code="unknown_program", program=program_id.hex())
            return ExecResult(ok=False, code="unknown_program", reason="no program registered for id")

        try:
            ix = program.decode_instruction(data)
        except InstructionDecodeError as e:
            log_event(log, "ix_rejected", program=program.NAME, code=e.code, reason=str(e))
            return ExecResult(ok=False, code=e.code, reason=str(e), details={"offset": e.offset})

        now = int(self.clock())
        try:
            with self.store.write_tx() as con:
                infos = self.store.load_infos(con, metas, signers=signers)
                transition = program.apply(ix, infos, now)
                self.store.commit(con, program.program_id, transition)
        except ValidationError as e:
            code = str(getattr(e.code, "value", e.code))
            log_event(log, "ix_rejected", program=program.NAME, ix=type(ix).__name__, code=code, reason=e.reason)
            return ExecResult(ok=False, code=code, reason=e.reason, details=e.details)
        except CodecError as e:
            log_event(log, "ix_rejected", program=program.NAME, ix=type(ix).__name__, code=e.code, reason=str(e))
            return ExecResult(ok=False, code=e.code, reason=str(e), details={"field": e.field})
        except IntegrationFault as e:
            log_event(
                log,
                "integration_fault",
                level=logging.ERROR,
                program=program.NAME,
                ix=type(ix).__name__,
                code=e.code,
                reason=str(e),
            )
            raise

        log_event(
            log,
            "ix_applied",
            program=program.NAME,
            ix=type(ix).__name__,
            now=now,
            writes=len(transition.writes),
            transfers=len(transition.transfers),
            invocations=len(transition.invocations),
        )
        return ExecResult(ok=True, transition=transition)


def build_executor(cfg: RuntimeConfig, *, clock: Clock = wall_clock) -> ProgramExecutor:
    """Executor over the configured SQLite store with the shipped programs."""
    from packstate.programs import default_programs

    store = AccountStore(path=cfg.db_path)
    store.init_schema()
    return ProgramExecutor(store, default_programs(cfg), clock=clock, require_signatures=cfg.require_signatures)
