"""
drvtree: unit tests for per-run logging

File: tests/unit/observability/test_logging.py

Purpose
- Validate JSON-lines log output, the structlog bridge, correlation fields and redaction.

What this test file should cover
- One JSON object per line under ``<log_dir>/<run_id>/drvtree.jsonl``.
- structlog event fields land under ``fields`` without clobbering record attributes.
- Values under secret-looking keys are masked unless redaction is disabled.
- Interactive sessions never write to the terminal.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from pathlib import Path

import pytest
import structlog

from drvtree.observability import (
    REDACTED,
    correlation_scope,
    new_run_id,
    redact_secrets,
    setup_logging,
    shutdown_logging,
)

pytestmark = pytest.mark.unit


@pytest.fixture(autouse=True)
def _reset_logging() -> Iterator[None]:
    yield
    shutdown_logging()
    structlog.reset_defaults()


def _read_events(path: Path) -> list[dict[str, object]]:
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines() if line]


def test_structlog_events_are_written_as_json_lines(tmp_path: Path) -> None:
    session = setup_logging({"log_level": "INFO"}, run_id="run-1", log_dir=tmp_path)
    logger = structlog.get_logger("drvtree.tests")

    logger.info("resolver_completed", name="hello", nodes=3, path=Path("/tmp/a.drv.json"))
    logger.debug("not_written")
    session.close()

    assert session.log_path == tmp_path / "run-1" / "drvtree.jsonl"
    (event,) = _read_events(session.log_path)
    assert event["message"] == "resolver_completed"
    assert event["level"] == "INFO"
    assert event["logger"] == "drvtree.tests"
    assert event["run_id"] == "run-1"
    assert event["fields"] == {"name": "hello", "nodes": 3, "path": "/tmp/a.drv.json"}
    assert event["timestamp"].endswith("Z")


def test_debug_level_is_honoured(tmp_path: Path) -> None:
    session = setup_logging({"log_level": "debug"}, run_id="run-2", log_dir=tmp_path)
    structlog.get_logger("drvtree.tests").debug("resolver_adding_derivation", handle=0)
    session.close()

    assert [e["message"] for e in _read_events(session.log_path)] == [
        "resolver_adding_derivation"
    ]


def test_unknown_level_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="log level"):
        setup_logging({"log_level": "chatty"}, run_id="run-x", log_dir=tmp_path)


def test_correlation_scope_adds_fields_and_restores(tmp_path: Path) -> None:
    session = setup_logging({}, run_id="run-3", log_dir=tmp_path)
    logger = structlog.get_logger("drvtree.tests")

    with correlation_scope(command="plan", root="/work/app.drv.json", extra=None):
        assert structlog.contextvars.get_contextvars() == {
            "command": "plan",
            "root": "/work/app.drv.json",
        }
        logger.info("inside")
    logger.info("outside")
    session.close()

    inside, outside = _read_events(session.log_path)
    assert inside["command"] == "plan"
    assert inside["root"] == "/work/app.drv.json"
    assert "fields" not in inside
    assert "command" not in outside
    assert structlog.contextvars.get_contextvars() == {}


def test_correlation_scope_rejects_blank_values() -> None:
    with pytest.raises(ValueError):
        with correlation_scope(command="  "):
            pass


def test_secret_env_entries_are_redacted_by_default(tmp_path: Path) -> None:
    session = setup_logging({}, run_id="run-4", log_dir=tmp_path)
    structlog.get_logger("drvtree.tests").info(
        "building_derivation", env={"GITHUB_TOKEN": "abc123", "out": "/store/x"}
    )
    session.close()

    (event,) = _read_events(session.log_path)
    assert event["fields"]["env"] == {"GITHUB_TOKEN": REDACTED, "out": "/store/x"}


def test_redaction_can_be_disabled(tmp_path: Path) -> None:
    session = setup_logging({"redact_secrets": False}, run_id="run-5", log_dir=tmp_path)
    structlog.get_logger("drvtree.tests").info("builder_env", api_token="abc123")
    session.close()

    (event,) = _read_events(session.log_path)
    assert event["fields"]["api_token"] == "abc123"


def test_interactive_sessions_never_stream(tmp_path: Path, capsys) -> None:
    session = setup_logging(
        {"log_to_stdout": True}, run_id="run-6", log_dir=tmp_path, interactive=True
    )
    structlog.get_logger("drvtree.tests").info("tui_started")
    session.close()

    captured = capsys.readouterr()
    assert captured.out == ""
    assert captured.err == ""
    assert len(_read_events(session.log_path)) == 1


def test_stream_echo_goes_to_stderr(tmp_path: Path, capsys) -> None:
    session = setup_logging({"log_to_stdout": True}, run_id="run-8", log_dir=tmp_path)
    structlog.get_logger("drvtree.tests").info("plan_computed", nodes=3)
    session.close()

    captured = capsys.readouterr()
    assert captured.out == ""
    (line,) = captured.err.splitlines()
    assert json.loads(line)["message"] == "plan_computed"


def test_new_setup_closes_the_previous_session(tmp_path: Path) -> None:
    first = setup_logging({}, run_id="a", log_dir=tmp_path)
    second = setup_logging({}, run_id="b", log_dir=tmp_path)

    assert first.closed
    assert not second.closed
    shutdown_logging()
    assert second.closed
    assert len(logging.getLogger("drvtree").handlers) == 0


@pytest.mark.parametrize("run_id", ["", "../escape", "a/b"])
def test_run_id_must_be_a_plain_name(tmp_path: Path, run_id: str) -> None:
    with pytest.raises(ValueError):
        setup_logging({}, run_id=run_id, log_dir=tmp_path)


def test_run_ids_are_unique_and_path_safe() -> None:
    first, second = new_run_id(), new_run_id()
    assert first != second
    assert "/" not in first


def test_redact_secrets_masks_nested_keys() -> None:
    redacted = redact_secrets(
        {"headers": {"Authorization": "Bearer abc.def"}, "args": [{"password": "x"}], "n": 1}
    )
    assert redacted == {
        "headers": {"Authorization": REDACTED},
        "args": [{"password": REDACTED}],
        "n": 1,
    }


def test_stdlib_records_keep_standard_attributes(tmp_path: Path) -> None:
    session = setup_logging({}, run_id="run-7", log_dir=tmp_path)
    logging.getLogger("drvtree.plain").info("plain %s", "message", extra={"step": 2})
    session.close()

    (event,) = _read_events(session.log_path)
    assert event["message"] == "plain message"
    assert event["fields"] == {"step": 2}
