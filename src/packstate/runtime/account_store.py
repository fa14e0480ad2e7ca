# src/packstate/runtime/account_store.py
from __future__ import annotations

import logging
import os
import sqlite3
import time
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence, Set

from packstate.codec.pubkey import Pubkey
from packstate.log import log_event
from packstate.runtime.accounts import AccountInfo, AccountMeta
from packstate.runtime.errors import IntegrationFault
from packstate.runtime.processor import Transition

log = logging.getLogger("packstate.store")

U64_MAX = (1 << 64) - 1


def _now_ms() -> int:
    return int(time.time() * 1000)


def _env_int(name: str, default: int) -> int:
    raw = str(os.environ.get(name, "")).strip()
    if not raw:
        return int(default)
    try:
        return int(raw)
    except ValueError:
        return int(default)


def _sqlite_synchronous_pragma() -> str:
    """PRAGMA synchronous value: FULL in prod, NORMAL otherwise.

    Override with PACKSTATE_SQLITE_SYNCHRONOUS in {OFF,NORMAL,FULL,EXTRA}.
    """
    mode = (os.environ.get("PACKSTATE_MODE") or "prod").strip().lower()
    default = "FULL" if mode == "prod" else "NORMAL"
    raw = (os.environ.get("PACKSTATE_SQLITE_SYNCHRONOUS") or default).strip().upper()
    if raw not in {"OFF", "NORMAL", "FULL", "EXTRA"}:
        raw = default
    return raw


@dataclass(frozen=True)
class StoredAccount:
    key: Pubkey
    owner: Pubkey
    data: bytes
    balance: int


class AccountStore:
    """SQLite-backed account table for the reference host.

    One row per account: owner, u64 balance (stored as TEXT), and the raw record
    buffer. Every instruction commits inside a single ``BEGIN IMMEDIATE``
    transaction; any inconsistency rolls the whole transaction back.
    """

    SCHEMA_VERSION = 1

    def __init__(self, *, path: str) -> None:
        # connections are opened per call; nothing would outlive one
        if str(path).strip() == ":memory:":
            raise ValueError("AccountStore needs a file path, not :memory:")
        self.path = str(path)

    def _connect(self) -> sqlite3.Connection:
        Path(self.path).parent.mkdir(parents=True, exist_ok=True)

        timeout_s = float(_env_int("PACKSTATE_SQLITE_CONNECT_TIMEOUT_MS", 30_000)) / 1000.0
        con = sqlite3.connect(
            self.path,
            timeout=timeout_s,
            isolation_level=None,  # BEGIN/COMMIT are explicit
            check_same_thread=False,
        )
        con.row_factory = sqlite3.Row

        row = con.execute("PRAGMA journal_mode=WAL;").fetchone()
        mode = str(row[0]).strip().lower() if row is not None else ""
        allow_non_wal = (os.environ.get("PACKSTATE_SQLITE_ALLOW_NON_WAL") or "").strip() in {"1", "true", "TRUE"}
        if mode and mode != "wal" and not allow_non_wal:
            con.close()
            raise RuntimeError(f"sqlite journal_mode is '{mode}', expected 'wal'")

        con.execute(f"PRAGMA synchronous={_sqlite_synchronous_pragma()};")
        con.execute("PRAGMA temp_store=MEMORY;")
        busy_ms = max(0, _env_int("PACKSTATE_SQLITE_BUSY_TIMEOUT_MS", int(timeout_s * 1000)))
        con.execute(f"PRAGMA busy_timeout={busy_ms};")
        return con

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        con = self._connect()
        try:
            yield con
        finally:
            con.close()

    @contextmanager
    def write_tx(self) -> Iterator[sqlite3.Connection]:
        with self.connection() as con:
            con.execute("BEGIN IMMEDIATE;")
            try:
                yield con
                con.execute("COMMIT;")
            except BaseException:
                con.execute("ROLLBACK;")
                raise

    def init_schema(self) -> None:
        with self.write_tx() as con:
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS meta (
                  key TEXT PRIMARY KEY,
                  value TEXT NOT NULL
                );
                """
            )
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS accounts (
                  key TEXT PRIMARY KEY,
                  owner TEXT NOT NULL,
                  balance TEXT NOT NULL,
                  data BLOB NOT NULL,
                  updated_ts_ms INTEGER NOT NULL
                );
                """
            )
            con.execute(
                "INSERT OR IGNORE INTO meta(key, value) VALUES('schema_version', ?);",
                (str(self.SCHEMA_VERSION),),
            )

    # ---- reads ----

    @staticmethod
    def _row_to_account(row: sqlite3.Row) -> StoredAccount:
        return StoredAccount(
            key=Pubkey.from_hex(row["key"]),
            owner=Pubkey.from_hex(row["owner"]),
            data=bytes(row["data"]),
            balance=int(row["balance"]),
        )

    def _fetch(self, con: sqlite3.Connection, key: Pubkey) -> Optional[StoredAccount]:
        row = con.execute("SELECT key, owner, balance, data FROM accounts WHERE key=?;", (key.hex(),)).fetchone()
        return None if row is None else self._row_to_account(row)

    def get(self, key: Pubkey) -> Optional[StoredAccount]:
        with self.connection() as con:
            return self._fetch(con, key)

    def balance_of(self, key: Pubkey) -> int:
        acct = self.get(key)
        return 0 if acct is None else acct.balance

    def create_account(self, key: Pubkey, *, owner: Pubkey, space: int = 0, balance: int = 0) -> StoredAccount:
        """Insert a new account with a zero-filled buffer of ``space`` bytes."""
        if space < 0:
            raise ValueError("space must be >= 0")
        if balance < 0 or balance > U64_MAX:
            raise ValueError("balance must fit u64")
        with self.write_tx() as con:
            if self._fetch(con, key) is not None:
                raise ValueError(f"account already exists: {key.hex()}")
            con.execute(
                "INSERT INTO accounts(key, owner, balance, data, updated_ts_ms) VALUES(?,?,?,?,?);",
                (key.hex(), owner.hex(), str(int(balance)), bytes(space), _now_ms()),
            )
        return StoredAccount(key=key, owner=owner, data=bytes(space), balance=int(balance))

    def load_infos(
        self,
        con: sqlite3.Connection,
        metas: Sequence[AccountMeta],
        *,
        signers: Optional[Set[Pubkey]] = None,
    ) -> List[AccountInfo]:
        """Snapshot the referenced accounts.

        Unknown keys load as empty, unowned accounts so the program reports the
        ownership failure itself. When ``signers`` is given, signer flags come
        from it instead of the metas.
        """
        out: List[AccountInfo] = []
        for m in metas:
            acct = self._fetch(con, m.key)
            signed = m.is_signer if signers is None else (m.is_signer and m.key in signers)
            if acct is None:
                out.append(AccountInfo(key=m.key, owner=Pubkey.zero(), is_signer=signed, is_writable=m.is_writable))
                continue
            out.append(
                AccountInfo(
                    key=m.key,
                    owner=acct.owner,
                    data=acct.data,
                    balance=acct.balance,
                    is_signer=signed,
                    is_writable=m.is_writable,
                )
            )
        return out

    # ---- writes ----

    def commit(self, con: sqlite3.Connection, program_id: Pubkey, transition: Transition) -> None:
        """Apply a transition on an open write transaction.

        Raises IntegrationFault on any inconsistency; the caller's ``write_tx``
        then rolls every statement back.
        """
        ts = _now_ms()
        cache: Dict[Pubkey, StoredAccount] = {}

        def load(key: Pubkey) -> StoredAccount:
            if key in cache:
                return cache[key]
            acct = self._fetch(con, key)
            if acct is None:
                raise IntegrationFault("unknown_account", f"account {key.hex()} does not exist", {"account": key.hex()})
            cache[key] = acct
            return acct

        for key, data in transition.writes:
            acct = load(key)
            if acct.owner != program_id:
                raise IntegrationFault(
                    "foreign_write",
                    f"program {program_id.hex()} cannot write account owned by {acct.owner.hex()}",
                    {"account": key.hex()},
                )
            if len(data) != len(acct.data):
                raise IntegrationFault(
                    "size_change",
                    f"write would resize account {key.hex()} from {len(acct.data)} to {len(data)} bytes",
                    {"account": key.hex()},
                )
            cache[key] = StoredAccount(key=key, owner=acct.owner, data=bytes(data), balance=acct.balance)

        for t in transition.transfers:
            src = load(t.source)
            if src.balance < t.amount:
                raise IntegrationFault(
                    "debit_underflow",
                    f"account {t.source.hex()} balance {src.balance} < {t.amount}",
                    {"account": t.source.hex()},
                )
            cache[t.source] = StoredAccount(key=src.key, owner=src.owner, data=src.data, balance=src.balance - t.amount)
            dst = load(t.destination)
            if dst.balance + t.amount > U64_MAX:
                raise IntegrationFault(
                    "credit_overflow",
                    f"account {t.destination.hex()} balance would exceed u64",
                    {"account": t.destination.hex()},
                )
            cache[t.destination] = StoredAccount(key=dst.key, owner=dst.owner, data=dst.data, balance=dst.balance + t.amount)

        for key, acct in cache.items():
            con.execute(
                "UPDATE accounts SET data=?, balance=?, updated_ts_ms=? WHERE key=?;",
                (acct.data, str(acct.balance), ts, key.hex()),
            )

        log_event(
            log,
            "transition_committed",
            level=logging.DEBUG,
            program=program_id.hex(),
            writes=len(transition.writes),
            transfers=len(transition.transfers),
        )
