import json
import logging
import sys

from chat_bridge.infrastructure.logging.logger import JsonFormatter, setup_logger


def _record(msg, extra=None, exc_info=None):
    record = logging.LogRecord("chat_bridge", logging.WARNING, __file__, 1, msg, None, exc_info)
    if extra is not None:
        record.extra = extra
    return record


def test_extra_fields_are_flattened_into_one_line():
    line = JsonFormatter().format(_record("talk.created", {"session_id": "t1", "model": "glm-4.5"}))
    data = json.loads(line)
    assert data["event"] == "talk.created"
    assert data["level"] == "WARNING"
    assert (data["session_id"], data["model"]) == ("t1", "glm-4.5")
    assert "\n" not in line


def test_redaction_truncates_content_but_keeps_event_names():
    body = "x" * 200
    data = json.loads(
        JsonFormatter(redact_content=True, max_chars=8).format(
            _record("message.failed.with.a.rather.long.event.name", {"body": body, "session_id": "s" * 20})
        )
    )
    assert data["event"] == "message.failed.with.a.rather.long.event.name"
    assert data["body"] == "xxxxxxxx..."
    assert data["session_id"] == "s" * 20


def test_exception_type_is_recorded():
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = _record("message.failed", exc_info=sys.exc_info())
    assert json.loads(JsonFormatter().format(record))["exc_type"] == "RuntimeError"


def test_setup_logger_does_not_duplicate_handlers(tmp_path):
    first = setup_logger(str(tmp_path))
    count = len(first.handlers)
    second = setup_logger(str(tmp_path))
    assert first is second
    assert len(second.handlers) == count
    assert (tmp_path / "bridge.log").exists()
