from __future__ import annotations

import pytest

from packstate.codec.pubkey import Pubkey
from packstate.programs.timelock.instruction import ExecuteActions, InitializeConfig, QueueActions
from packstate.programs.token_lock.instruction import LockTokens
from packstate.schemas import (
    InstructionSchemaError,
    instruction_from_json,
    instruction_to_json,
    validate_instruction,
)


def test_queue_actions_from_json() -> None:
    keys = [Pubkey.derive("a"), Pubkey.derive("b")]
    ix = instruction_from_json("timelock", {"type": "queue_actions", "execution_time": 99, "actions": [k.hex() for k in keys]})
    assert ix == QueueActions(execution_time=99, actions=tuple(keys))
    assert instruction_to_json(ix) == {"type": "queue_actions", "execution_time": 99, "actions": [k.hex() for k in keys]}


def test_optional_pubkey_fields() -> None:
    g = Pubkey.derive("g")
    obj = {"type": "initialize_config", "voting_delay": 1, "voting_period": 2, "quorum_votes": 3, "timelock_delay": 4, "guardian": g.hex()}
    ix = instruction_from_json("timelock", obj)
    assert isinstance(ix, InitializeConfig)
    assert ix.guardian == g
    assert instruction_to_json(ix)["guardian"] == g.hex()


def test_payloadless_and_other_program() -> None:
    assert instruction_from_json("timelock", {"type": "execute_actions"}) == ExecuteActions()
    assert instruction_from_json("token_lock", {"type": "lock_tokens", "amount": 5, "duration": 10}) == LockTokens(5, 10)


@pytest.mark.parametrize(
    "program,obj,code",
    [
        ("timelock", [], "schema:not_object"),
        ("timelock", {"type": "nope"}, "schema:unknown_type"),
        ("vault", {"type": "execute_actions"}, "schema:unknown_type"),
        ("timelock", {"type": "execute_actions", "extra": 1}, "schema:validation_error"),
        ("timelock", {"type": "queue_actions", "execution_time": True, "actions": []}, "schema:validation_error"),
        ("timelock", {"type": "queue_actions", "execution_time": 1, "actions": ["ab" * 32] * 11}, "schema:validation_error"),
        ("timelock", {"type": "queue_actions", "execution_time": 1, "actions": ["xyz"]}, "schema:validation_error"),
        ("token_lock", {"type": "lock_tokens", "amount": -1, "duration": 1}, "schema:validation_error"),
        ("token_lock", {"type": "initialize_config", "min_lock_duration": 1, "max_lock_duration": 2, "unlock_fee": 70000}, "schema:validation_error"),
    ],
)
def test_invalid_instructions(program: str, obj, code: str) -> None:
    ok, got, _reason, _details = validate_instruction(program=program, obj=obj)
    assert not ok
    assert got == code
    with pytest.raises(InstructionSchemaError):
        instruction_from_json(program, obj)


def test_module_is_documented() -> None:
    from packstate import schemas

    assert schemas.__doc__ and schemas.__doc__.startswith("JSON forms of program instructions")
