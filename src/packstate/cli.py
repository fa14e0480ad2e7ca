# src/packstate/cli.py
"""
Operator CLI.

    python -m packstate layout timelock.queue
    python -m packstate decode-record timelock.config <hex> [--unchecked]
    python -m packstate encode-ix timelock '{"type": "execute_actions"}'
    python -m packstate decode-ix timelock 02

Host commands run against the account store named by the runtime config
(--config or PACKSTATE_CONFIG_PATH):

    python -m packstate create-account <key> --owner timelock --record timelock.queue
    python -m packstate exec timelock '{"type": "execute_actions"}' --account <config> --account <queue>:w --account <authority>:s
    python -m packstate show-account <key> --record timelock.queue

Exit status 2 on any decode or validation error; the error code goes to stderr.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Optional, Sequence, Tuple, Type

from packstate.codec.errors import CodecError
from packstate.codec.pubkey import Pubkey
from packstate.codec.record import DecodeMode, Record
from packstate.config import RuntimeConfig, load_runtime_config
from packstate.env import load_dotenv_if_present
from packstate.instruction.base import InstructionSet
from packstate.instruction.wire import InstructionDecodeError, InstructionEncodeError
from packstate.log import configure_logging, log_event
from packstate.programs.timelock.instruction import TIMELOCK_INSTRUCTIONS
from packstate.programs.timelock.state import Action, ActionAccount, Queue, TimelockConfig
from packstate.programs.token_lock.instruction import TOKEN_LOCK_INSTRUCTIONS
from packstate.programs.token_lock.state import LockConfig, TokenLock
from packstate.runtime.account_store import AccountStore
from packstate.runtime.accounts import AccountMeta
from packstate.runtime.executor import ProgramExecutor, build_executor, wall_clock
from packstate.schemas import InstructionSchemaError, instruction_from_json, instruction_to_json

log = logging.getLogger("packstate.cli")

RECORDS: Dict[str, Type[Record]] = {
    "timelock.config": TimelockConfig,
    "timelock.queue": Queue,
    "timelock.action": Action,
    "timelock.action_account": ActionAccount,
    "token_lock.config": LockConfig,
    "token_lock.lock": TokenLock,
}

INSTRUCTION_SETS: Dict[str, InstructionSet] = {
    "timelock": TIMELOCK_INSTRUCTIONS,
    "token_lock": TOKEN_LOCK_INSTRUCTIONS,
}


class CliError(Exception):
    def __init__(self, code: str, msg: str) -> None:
        super().__init__(msg)
        self.code = code


def _parse_hex(s: str) -> bytes:
    s = s.strip()
    if s.startswith("0x"):
        s = s[2:]
    try:
        return bytes.fromhex(s)
    except ValueError as e:
        raise CliError("invalid_hex", str(e)) from e


def _record_cls(name: str) -> Type[Record]:
    cls = RECORDS.get(name)
    if cls is None:
        raise CliError("unknown_record", f"unknown record {name!r}; expected one of {sorted(RECORDS)}")
    return cls


def _instruction_set(program: str) -> InstructionSet:
    iset = INSTRUCTION_SETS.get(program)
    if iset is None:
        raise CliError("unknown_program", f"unknown program {program!r}; expected one of {sorted(INSTRUCTION_SETS)}")
    return iset


def cmd_layout(args: argparse.Namespace) -> Any:
    cls = _record_cls(args.record)
    return {
        "record": args.record,
        "size": cls.LEN,
        "fields": [
            {"name": s.name, "start": s.start, "end": s.end, "kind": s.kind.describe()} for s in cls.LAYOUT.spans
        ],
    }


def cmd_decode_record(args: argparse.Namespace) -> Any:
    cls = _record_cls(args.record)
    mode = DecodeMode.UNCHECKED if args.unchecked else DecodeMode.STRICT
    return cls.decode(_parse_hex(args.hex), mode).to_json()


def cmd_encode_ix(args: argparse.Namespace) -> Any:
    iset = _instruction_set(args.program)
    try:
        obj = json.loads(args.json)
    except json.JSONDecodeError as e:
        raise CliError("invalid_json", str(e)) from e
    ix = instruction_from_json(args.program, obj)
    return iset.encode(ix).hex()


def cmd_decode_ix(args: argparse.Namespace) -> Any:
    iset = _instruction_set(args.program)
    return instruction_to_json(iset.decode(_parse_hex(args.hex)))


def _load_config(path: Optional[str]) -> RuntimeConfig:
    try:
        return load_runtime_config(config_path=path)
    except (OSError, ValueError) as e:
        raise CliError("invalid_config", str(e)) from e


def _parse_key(s: str) -> Pubkey:
    raw = s.strip()
    if raw.startswith("0x"):
        raw = raw[2:]
    try:
        return Pubkey.from_hex(raw)
    except (TypeError, ValueError) as e:
        raise CliError("invalid_key", f"{s!r}: {e}") from e


def _program_ids(cfg: RuntimeConfig) -> Dict[str, Pubkey]:
    return {"timelock": cfg.timelock_id(), "token_lock": cfg.token_lock_id()}


def _parse_account(arg: str) -> AccountMeta:
    """``<hex>[:flags]`` where flags is any of ``s`` (signer) and ``w`` (writable)."""
    key, _, flags = arg.partition(":")
    unknown = set(flags) - {"s", "w"}
    if unknown:
        raise CliError("invalid_account", f"unknown flags {''.join(sorted(unknown))!r} in {arg!r}")
    return AccountMeta(_parse_key(key), is_signer="s" in flags, is_writable="w" in flags)


def _parse_signature(arg: str) -> Tuple[str, str]:
    key, sep, sig = arg.partition("=")
    if not sep or not sig.strip():
        raise CliError("invalid_signature", f"expected <pubkey hex>=<signature>, got {arg!r}")
    return _parse_key(key).hex(), sig.strip()


def _store(cfg: RuntimeConfig) -> AccountStore:
    store = AccountStore(path=cfg.db_path)
    store.init_schema()
    return store


def _executor(args: argparse.Namespace) -> ProgramExecutor:
    now = args.now
    clock = wall_clock if now is None else (lambda: now)
    return build_executor(args.cfg, clock=clock)


def cmd_create_account(args: argparse.Namespace) -> Any:
    ids = _program_ids(args.cfg)
    owner = ids[args.owner] if args.owner in ids else _parse_key(args.owner)
    key = _parse_key(args.key)
    space = _record_cls(args.record).LEN if args.record else args.space
    try:
        acct = _store(args.cfg).create_account(key, owner=owner, space=space, balance=args.balance)
    except ValueError as e:
        raise CliError("invalid_account", str(e)) from e
    return {"key": acct.key.hex(), "owner": acct.owner.hex(), "space": len(acct.data), "balance": acct.balance}


def cmd_exec(args: argparse.Namespace) -> Any:
    iset = _instruction_set(args.program)
    program_id = _program_ids(args.cfg)[args.program]
    try:
        obj = json.loads(args.json)
    except json.JSONDecodeError as e:
        raise CliError("invalid_json", str(e)) from e
    data = iset.encode(instruction_from_json(args.program, obj))
    metas = [_parse_account(a) for a in args.account]
    signatures = dict(_parse_signature(s) for s in args.sig)

    ex = _executor(args)
    if signatures:
        res = ex.execute_signed(program_id, metas, data, signatures)
    else:
        res = ex.execute(program_id, metas, data)
    if not res.ok:
        raise CliError(res.code, res.reason or res.code)

    t = res.transition
    return {
        "ok": True,
        "writes": [k.hex() for k, _ in t.writes],
        "transfers": [
            {"source": x.source.hex(), "destination": x.destination.hex(), "amount": x.amount} for x in t.transfers
        ],
        "invocations": [{"target": i.target.hex(), "reason": i.reason} for i in t.invocations],
    }


def cmd_show_account(args: argparse.Namespace) -> Any:
    acct = _store(args.cfg).get(_parse_key(args.key))
    if acct is None:
        raise CliError("unknown_account", f"no account {args.key}")
    out: Dict[str, Any] = {"key": acct.key.hex(), "owner": acct.owner.hex(), "balance": acct.balance}
    if args.record:
        mode = DecodeMode.UNCHECKED if args.unchecked else DecodeMode.STRICT
        out["record"] = _record_cls(args.record).decode(acct.data, mode).to_json()
    else:
        out["data"] = acct.data.hex()
    return out


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="packstate", description="Record and instruction codec tools")
    ap.add_argument("--log-level", default=None, help="Overrides the config file and PACKSTATE_LOG_LEVEL")
    ap.add_argument("--config", default=None, help="Runtime config JSON for host commands; overrides PACKSTATE_CONFIG_PATH")
    sub = ap.add_subparsers(dest="command", required=True)

    p = sub.add_parser("layout", help="Print a record's byte-range table")
    p.add_argument("record", help=f"One of: {', '.join(sorted(RECORDS))}")
    p.set_defaults(func=cmd_layout)

    p = sub.add_parser("decode-record", help="Decode record bytes (hex) to JSON")
    p.add_argument("record")
    p.add_argument("hex")
    p.add_argument("--unchecked", action="store_true", help="Skip initialization and enum/bool strictness")
    p.set_defaults(func=cmd_decode_record)

    p = sub.add_parser("encode-ix", help="Validate a JSON instruction and print its wire bytes (hex)")
    p.add_argument("program", help=f"One of: {', '.join(sorted(INSTRUCTION_SETS))}")
    p.add_argument("json")
    p.set_defaults(func=cmd_encode_ix)

    p = sub.add_parser("decode-ix", help="Decode instruction wire bytes (hex) to JSON")
    p.add_argument("program")
    p.add_argument("hex")
    p.set_defaults(func=cmd_decode_ix)

    p = sub.add_parser("create-account", help="Create a zero-filled account in the configured store")
    p.add_argument("key", help="Account pubkey (hex)")
    p.add_argument("--owner", required=True, help="Program name (timelock, token_lock) or owner pubkey hex")
    size = p.add_mutually_exclusive_group()
    size.add_argument("--space", type=int, default=0, help="Data size in bytes")
    size.add_argument("--record", default=None, help="Size the account for this record")
    p.add_argument("--balance", type=int, default=0)
    p.set_defaults(func=cmd_create_account, host=True)

    p = sub.add_parser("exec", help="Execute a JSON instruction against the configured store")
    p.add_argument("program", help=f"One of: {', '.join(sorted(INSTRUCTION_SETS))}")
    p.add_argument("json")
    p.add_argument("--account", action="append", default=[], help="<pubkey hex>[:s][w], in instruction order")
    p.add_argument("--sig", action="append", default=[], help="<pubkey hex>=<ed25519 signature hex or b64>")
    p.add_argument("--now", type=int, default=None, help="Clock override (unix seconds)")
    p.set_defaults(func=cmd_exec, host=True)

    p = sub.add_parser("show-account", help="Print an account from the configured store")
    p.add_argument("key")
    p.add_argument("--record", default=None, help="Decode the data as this record")
    p.add_argument("--unchecked", action="store_true")
    p.set_defaults(func=cmd_show_account, host=True)

    return ap


def main(argv: Optional[Sequence[str]] = None) -> int:
    load_dotenv_if_present()
    ap = build_parser()
    args = ap.parse_args(list(argv) if argv is not None else None)

    try:
        args.cfg = _load_config(args.config) if getattr(args, "host", False) else None
        configure_logging(args.log_level or (args.cfg.log_level if args.cfg is not None else None))
        out = args.func(args)
    except (CliError, CodecError, InstructionDecodeError, InstructionEncodeError, InstructionSchemaError) as e:
        code = str(getattr(e, "code", "error"))
        log_event(log, "cli_error", level=logging.DEBUG, command=args.command, code=code, reason=str(e))
        print(f"{code}: {e}", file=sys.stderr)
        return 2

    if isinstance(out, str):
        print(out)
    else:
        print(json.dumps(out, indent=2, sort_keys=True))
    return 0


__all__: List[str] = ["main", "build_parser", "RECORDS", "INSTRUCTION_SETS"]
