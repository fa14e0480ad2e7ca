# src/packstate/config.py
from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from packstate.codec.pubkey import Pubkey

Json = Dict[str, Any]


def _as_str(v: Any, default: str) -> str:
    if v is None:
        return str(default)
    s = str(v)
    return s if s.strip() else str(default)


def _as_bool(v: Any, default: bool) -> bool:
    if v is None:
        return bool(default)
    if isinstance(v, bool):
        return v
    s = str(v).strip().lower()
    if s in {"1", "true", "yes", "y", "on"}:
        return True
    if s in {"0", "false", "no", "n", "off"}:
        return False
    return bool(default)


@dataclass(frozen=True)
class RuntimeConfig:
    mode: str  # "dev" | "test" | "prod"

    # SQLite file backing the reference host's account store.
    db_path: str
    log_level: str

    # Hex program ids the host routes instructions to.
    timelock_program_id: str
    token_lock_program_id: str

    # execute_signed only; plain execute trusts the caller's signer flags.
    require_signatures: bool

    def timelock_id(self) -> Pubkey:
        return Pubkey.from_hex(self.timelock_program_id)

    def token_lock_id(self) -> Pubkey:
        return Pubkey.from_hex(self.token_lock_program_id)


_ALLOWED_MODES = {"dev", "test", "prod"}
_ALLOWED_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def validate_runtime_config(cfg: RuntimeConfig) -> None:
    """Fail-fast validation for operator config."""
    mode = str(cfg.mode or "").strip().lower()
    if mode not in _ALLOWED_MODES:
        raise ValueError(f"mode must be one of {sorted(_ALLOWED_MODES)}; got: {cfg.mode!r}")

    if not isinstance(cfg.db_path, str) or not cfg.db_path.strip():
        raise ValueError("db_path must be a non-empty string")
    if cfg.db_path.strip() == ":memory:":
        raise ValueError("db_path must name a file; the account store does not support :memory:")

    if str(cfg.log_level).strip().upper() not in _ALLOWED_LEVELS:
        raise ValueError(f"log_level must be one of {sorted(_ALLOWED_LEVELS)}; got: {cfg.log_level!r}")

    ids = {}
    for name in ("timelock_program_id", "token_lock_program_id"):
        raw = getattr(cfg, name)
        try:
            pk = Pubkey.from_hex(raw)
        except (TypeError, ValueError) as e:
            raise ValueError(f"{name} must be 64 hex characters; got: {raw!r}") from e
        if pk.is_zero():
            raise ValueError(f"{name} must not be the zero key")
        ids[name] = pk

    if ids["timelock_program_id"] == ids["token_lock_program_id"]:
        raise ValueError("program ids must be distinct")

    if mode == "prod" and not cfg.require_signatures:
        raise ValueError("require_signatures cannot be disabled in prod mode")


def default_runtime_config() -> RuntimeConfig:
    return RuntimeConfig(
        mode="prod",
        db_path="./data/packstate.db",
        log_level="INFO",
        timelock_program_id=Pubkey.derive("program:timelock").hex(),
        token_lock_program_id=Pubkey.derive("program:token_lock").hex(),
        require_signatures=True,
    )


def read_runtime_config_file(path: str) -> RuntimeConfig:
    p = Path(path)
    raw = json.loads(p.read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError("runtime config must be a JSON object")

    d = default_runtime_config()

    cfg = RuntimeConfig(
        mode=_as_str(raw.get("mode"), d.mode).strip().lower(),
        db_path=_as_str(raw.get("db_path"), d.db_path),
        log_level=_as_str(raw.get("log_level"), d.log_level).strip().upper(),
        timelock_program_id=_as_str(raw.get("timelock_program_id"), d.timelock_program_id).strip().lower(),
        token_lock_program_id=_as_str(raw.get("token_lock_program_id"), d.token_lock_program_id).strip().lower(),
        require_signatures=_as_bool(raw.get("require_signatures"), d.require_signatures),
    )

    validate_runtime_config(cfg)
    return cfg


def load_runtime_config(*, config_path: Optional[str] = None) -> RuntimeConfig:
    p = config_path or os.environ.get("PACKSTATE_CONFIG_PATH")
    if p:
        return read_runtime_config_file(p)

    cfg = default_runtime_config()
    validate_runtime_config(cfg)
    return cfg

