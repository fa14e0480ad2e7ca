# src/packstate/schemas.py
"""JSON forms of program instructions.

Operators and tests describe instructions as JSON objects:

    {"type": "queue_actions", "execution_time": 1700000000, "actions": ["<hex>", ...]}

The models below are strict shape checks (unknown keys rejected, integer ranges
enforced) run before anything is encoded to wire bytes. Processors still enforce
semantics.
"""

from __future__ import annotations

from dataclasses import fields as dc_fields
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from packstate.codec.pubkey import Pubkey
from packstate.instruction.base import Instruction
from packstate.programs.timelock import instruction as tl
from packstate.programs.timelock.state import CAP_ACTIONS
from packstate.programs.token_lock import instruction as tk

Json = Dict[str, Any]

_HEX32 = r"^[0-9a-fA-F]{64}$"
_I64 = {"ge": -(1 << 63), "le": (1 << 63) - 1}
_U64 = {"ge": 0, "le": (1 << 64) - 1}
_U16 = {"ge": 0, "le": 0xFFFF}

HexKey = Annotated[str, Field(pattern=_HEX32)]


class _StrictModel(BaseModel):
    """Strict model: reject unknown keys and type coercion."""

    model_config = ConfigDict(extra="forbid", strict=True)


# ---------------------------------------------------------------------------
# timelock
# ---------------------------------------------------------------------------


class TimelockInitializeConfig(_StrictModel):
    type: Literal["initialize_config"]
    voting_delay: int = Field(..., **_I64)
    voting_period: int = Field(..., **_I64)
    quorum_votes: int = Field(..., **_U64)
    timelock_delay: int = Field(..., **_I64)
    guardian: Optional[str] = Field(default=None, pattern=_HEX32)


class TimelockQueueActions(_StrictModel):
    type: Literal["queue_actions"]
    execution_time: int = Field(..., **_I64)
    actions: List[HexKey] = Field(default_factory=list, max_length=CAP_ACTIONS)


class TimelockExecuteActions(_StrictModel):
    type: Literal["execute_actions"]


class TimelockCancelActions(_StrictModel):
    type: Literal["cancel_actions"]


class TimelockSetGuardian(_StrictModel):
    type: Literal["set_guardian"]
    new_guardian: Optional[str] = Field(default=None, pattern=_HEX32)


# ---------------------------------------------------------------------------
# token_lock
# ---------------------------------------------------------------------------


class TokenLockInitializeConfig(_StrictModel):
    type: Literal["initialize_config"]
    min_lock_duration: int = Field(..., **_I64)
    max_lock_duration: int = Field(..., **_I64)
    unlock_fee: int = Field(default=0, **_U16)
    early_unlock_penalty: int = Field(default=0, **_U16)


class TokenLockLockTokens(_StrictModel):
    type: Literal["lock_tokens"]
    amount: int = Field(..., **_U64)
    duration: int = Field(..., **_I64)


class TokenLockUnlockTokens(_StrictModel):
    type: Literal["unlock_tokens"]


Schema = Type[_StrictModel]

# (program, type) -> (schema, instruction variant)
_SCHEMAS: Dict[Tuple[str, str], Tuple[Schema, Type[Instruction]]] = {
    ("timelock", "initialize_config"): (TimelockInitializeConfig, tl.InitializeConfig),
    ("timelock", "queue_actions"): (TimelockQueueActions, tl.QueueActions),
    ("timelock", "execute_actions"): (TimelockExecuteActions, tl.ExecuteActions),
    ("timelock", "cancel_actions"): (TimelockCancelActions, tl.CancelActions),
    ("timelock", "set_guardian"): (TimelockSetGuardian, tl.SetGuardian),
    ("token_lock", "initialize_config"): (TokenLockInitializeConfig, tk.InitializeConfig),
    ("token_lock", "lock_tokens"): (TokenLockLockTokens, tk.LockTokens),
    ("token_lock", "unlock_tokens"): (TokenLockUnlockTokens, tk.UnlockTokens),
}

_TYPE_BY_VARIANT: Dict[Type[Instruction], str] = {variant: t for (_p, t), (_s, variant) in _SCHEMAS.items()}

PROGRAMS = tuple(sorted({p for p, _t in _SCHEMAS}))

_PUBKEY_FIELDS = {"guardian", "new_guardian"}


class InstructionSchemaError(ValueError):
    def __init__(self, code: str, reason: str, details: Optional[Json] = None) -> None:
        super().__init__(f"{code}:{reason}")
        self.code = code
        self.reason = reason
        self.details = details


def validate_instruction(*, program: str, obj: Any) -> Tuple[bool, str, str, Optional[Dict[str, Any]]]:
    """Validate an instruction object against its schema.

    Returns: (ok, code, reason, details)
    """
    if not isinstance(obj, dict):
        return False, "schema:not_object", "instruction_must_be_object", None
    key = (str(program or "").strip().lower(), str(obj.get("type") or "").strip().lower())
    entry = _SCHEMAS.get(key)
    if entry is None:
        return False, "schema:unknown_type", "unknown_instruction_type", {"program": key[0], "type": key[1]}
    try:
        entry[0](**obj)
    except ValidationError as ve:
        return False, "schema:validation_error", "instruction_schema_mismatch", {"errors": ve.errors()}
    return True, "", "", None


def instruction_from_json(program: str, obj: Any) -> Instruction:
    ok, code, reason, details = validate_instruction(program=program, obj=obj)
    if not ok:
        raise InstructionSchemaError(code, reason, details)

    schema, variant = _SCHEMAS[(str(program).strip().lower(), str(obj["type"]).strip().lower())]
    model = schema(**obj)
    kwargs: Json = {}
    for name, value in model.model_dump(exclude={"type"}).items():
        if name in _PUBKEY_FIELDS:
            kwargs[name] = None if value is None else Pubkey.from_hex(value)
        elif name == "actions":
            kwargs[name] = tuple(Pubkey.from_hex(v) for v in value)
        else:
            kwargs[name] = value
    return variant(**kwargs)


def instruction_to_json(ix: Instruction) -> Json:
    t = _TYPE_BY_VARIANT.get(type(ix))
    if t is None:
        raise InstructionSchemaError("schema:unknown_variant", "no_json_form", {"variant": type(ix).__name__})
    out: Json = {"type": t}
    for f in dc_fields(ix):  # type: ignore[arg-type]
        v = getattr(ix, f.name)
        if isinstance(v, Pubkey):
            v = v.hex()
        elif isinstance(v, tuple):
            v = [x.hex() if isinstance(x, Pubkey) else x for x in v]
        out[f.name] = v
    return out
