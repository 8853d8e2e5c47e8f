"""Tests for the module entrypoint's JSON log formatting."""

from __future__ import annotations

import json
import logging

from agent_studio.__main__ import JsonLogFormatter


def test_json_log_formatter_emits_structured_record() -> None:
    record = logging.LogRecord(
        name="agent_studio.stories.workflow",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="Synchronized workflow %s",
        args=("wf-1",),
        exc_info=None,
    )

    record.created = 0.0

    payload = json.loads(JsonLogFormatter().format(record))

    assert payload["level"] == "INFO"
    assert payload["logger"] == "agent_studio.stories.workflow"
    assert payload["message"] == "Synchronized workflow wf-1"
    assert payload["timestamp"] == "1970-01-01T00:00:00+00:00"
    assert "exception" not in payload
