from __future__ import annotations

import json
import logging

from portal.core.logging import _ContainerFormatter, _JsonFormatter, setup_logging


def _record(
    level: int = logging.INFO, msg: str = "hello", **extra
) -> logging.LogRecord:
    record = logging.LogRecord(
        name="portal.test",
        level=level,
        pathname="svc.py",
        lineno=42,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_setup_logging_sets_root_level() -> None:
    setup_logging("debug")
    assert logging.getLogger().level == logging.DEBUG

    setup_logging("warning")
    assert logging.getLogger().level == logging.WARNING


def test_setup_logging_defaults_to_info_for_unknown_level() -> None:
    setup_logging("nonexistent")
    assert logging.getLogger().level == logging.INFO


def test_setup_logging_quiets_uvicorn_at_debug() -> None:
    setup_logging("debug")
    assert logging.getLogger("uvicorn").level == logging.WARNING


def test_setup_logging_selects_json_formatter() -> None:
    setup_logging("info", json_format=True)
    handler = logging.getLogger().handlers[0]
    assert isinstance(handler.formatter, _JsonFormatter)
    setup_logging("info")


# ---- container format ----


def test_formatter_excludes_location_for_info() -> None:
    output = _ContainerFormatter().format(_record())
    assert "hello" in output
    assert "[svc.py:" not in output


def test_formatter_includes_location_for_warning() -> None:
    output = _ContainerFormatter().format(_record(logging.WARNING, "rejected"))
    assert "rejected" in output
    assert "[svc.py:42]" in output


# ---- json format ----


def test_json_formatter_produces_valid_json() -> None:
    parsed = json.loads(_JsonFormatter().format(_record()))
    assert parsed["level"] == "INFO"
    assert parsed["logger"] == "portal.test"
    assert parsed["message"] == "hello"
    assert "timestamp" in parsed


def test_json_formatter_lifts_context_fields() -> None:
    record = _record(request_id="req-1", assessment_id="a-1", status_code=409)
    parsed = json.loads(_JsonFormatter().format(record))
    assert parsed["request_id"] == "req-1"
    assert parsed["assessment_id"] == "a-1"
    assert parsed["status_code"] == 409


def test_json_formatter_drops_unlisted_extras() -> None:
    record = _record(answers={0: 1}, token="secret")
    parsed = json.loads(_JsonFormatter().format(record))
    assert "answers" not in parsed
    assert "token" not in parsed
