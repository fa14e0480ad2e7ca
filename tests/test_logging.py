from __future__ import annotations

import json
import logging

import pytest

from packstate.codec.pubkey import Pubkey
from packstate.log import log_event
from packstate.programs.timelock.instruction import ExecuteActions
from packstate.programs.timelock.processor import TimelockProgram
from packstate.runtime.accounts import AccountInfo
from packstate.runtime.errors import ValidationError


def test_log_event_emits_one_json_object(caplog: pytest.LogCaptureFixture) -> None:
    logger = logging.getLogger("packstate.test")
    caplog.set_level(logging.INFO, logger="packstate.test")
    log_event(logger, "thing_happened", count=3, who="alice")

    rec = json.loads(caplog.records[-1].getMessage())
    assert rec["event"] == "thing_happened"
    assert rec["count"] == 3
    assert isinstance(rec["ts_ms"], int)


def test_processor_logs_rejections_at_debug(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger="packstate.processor")
    program = TimelockProgram(Pubkey.derive("program:timelock"))

    with pytest.raises(ValidationError):
        accounts = [AccountInfo(key=Pubkey.derive(k), owner=Pubkey.zero()) for k in ("config", "queue", "caller")]
        program.apply(ExecuteActions(), accounts, 0)

    events = [json.loads(r.getMessage()) for r in caplog.records if r.name == "packstate.processor"]
    assert events[-1]["event"] == "ix_rejected"
    assert events[-1]["code"] == "wrong_owner"
    assert events[-1]["ix"] == "ExecuteActions"
