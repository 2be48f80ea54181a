"""Per-run JSON-lines logging for drvtree commands.

File: src/drvtree/observability/logging.py

Every CLI invocation writes ``<log_dir>/<run_id>/drvtree.jsonl``. Records go through a
``QueueHandler`` so resolution and rendering never wait on file I/O; a
``QueueListener`` thread writes them to the file and, when ``log_to_stdout`` is set
outside the TUI, echoes them to stderr (stdout carries command output).

Components log with ``structlog``. :func:`configure_structlog` hands those events to the
stdlib ``drvtree`` logger and their key/value pairs come out under ``fields``. Values
stored under secret-looking keys (a ``GITHUB_TOKEN`` in a derivation ``env``, say) are
masked before they reach disk.
"""

from __future__ import annotations

import json
import logging
import logging.handlers
import queue
import sys
import time
import uuid
from collections.abc import Iterator, Mapping, MutableMapping
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Final

import structlog

from drvtree.constants import LOG_FILENAME, LOGGER_NAME

REDACTED: Final[str] = "***REDACTED***"

_FIELDS_ATTR: Final[str] = "structlog_fields"
_CONTEXT_ATTR: Final[str] = "drvtree_context"
_SECRET_KEY_PARTS: Final[tuple[str, ...]] = (
    "token",
    "secret",
    "password",
    "passwd",
    "api_key",
    "apikey",
    "authorization",
    "credential",
    "private_key",
)
# Attributes every LogRecord carries; anything else on a record is a caller field.
_RECORD_ATTRS: Final[frozenset[str]] = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime", _CONTEXT_ATTR}

_session: LogSession | None = None


class LogSession:
    """Sinks of one CLI run. :meth:`close` drains pending records and closes the file."""

    def __init__(
        self,
        *,
        run_id: str,
        log_path: Path,
        queue_handler: logging.Handler,
        listener: logging.handlers.QueueListener,
        sinks: tuple[logging.Handler, ...],
    ) -> None:
        self.run_id = run_id
        self.log_path = log_path
        self._queue_handler = queue_handler
        self._listener = listener
        self._sinks = sinks
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        logging.getLogger(LOGGER_NAME).removeHandler(self._queue_handler)
        # stop() writes out everything still queued before joining the thread
        self._listener.stop()
        for sink in self._sinks:
            sink.close()


class _ContextQueueHandler(logging.handlers.QueueHandler):
    """Snapshot the bound correlation fields in the emitting thread."""

    def prepare(self, record: logging.LogRecord) -> logging.LogRecord:
        setattr(record, _CONTEXT_ATTR, structlog.contextvars.get_contextvars())
        record.message = record.getMessage()
        if record.exc_info:
            record.exc_text = logging.Formatter().formatException(record.exc_info)
        record.msg = record.message
        record.args = None
        record.exc_info = None
        return record


class JsonLineFormatter(logging.Formatter):
    """Compact, key-sorted JSON object per record."""

    def __init__(self, *, run_id: str, redact: bool = True) -> None:
        super().__init__()
        self._run_id = run_id
        self._redact = redact

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=UTC)
        event: dict[str, Any] = {
            "timestamp": created.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "run_id": self._run_id,
        }
        event.update(getattr(record, _CONTEXT_ATTR, None) or {})

        fields = _record_fields(record)
        if fields:
            event["fields"] = redact_secrets(fields) if self._redact else fields
        if record.exc_text:
            event["exception"] = record.exc_text
        return json.dumps(
            event, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str
        )


def new_run_id() -> str:
    """Sortable, path-safe identifier for one CLI invocation."""
    return f"{time.strftime('%Y%m%dT%H%M%SZ', time.gmtime())}-{uuid.uuid4().hex[:8]}"


def setup_logging(
    observability: Mapping[str, object] | None = None,
    *,
    run_id: str,
    log_dir: Path | str | None = None,
    interactive: bool = False,
) -> LogSession:
    """Start logging for one run from an ``[observability]`` config section.

    A session that is still open is closed first. ``log_dir`` overrides the configured
    base directory; ``interactive`` drops the stderr echo so nothing paints over the TUI.
    """

    global _session
    shutdown_logging()

    if not run_id or Path(run_id).name != run_id:
        raise ValueError(f"run_id must be a plain directory name, got {run_id!r}")
    options = dict(observability or {})
    level = logging.getLevelName(str(options.get("log_level", "INFO")).upper())
    if not isinstance(level, int):
        raise ValueError(f"unknown log level {options.get('log_level')!r}")

    base_dir = Path(log_dir if log_dir is not None else str(options.get("log_dir", "logs")))
    run_dir = base_dir / run_id
    run_dir.mkdir(parents=True, exist_ok=True)
    log_path = run_dir / LOG_FILENAME

    formatter = JsonLineFormatter(run_id=run_id, redact=bool(options.get("redact_secrets", True)))
    sinks: list[logging.Handler] = [logging.FileHandler(log_path, encoding="utf-8")]
    if options.get("log_to_stdout") and not interactive:
        sinks.append(logging.StreamHandler(sys.stderr))
    for sink in sinks:
        sink.setFormatter(formatter)

    records: queue.SimpleQueue[logging.LogRecord] = queue.SimpleQueue()
    queue_handler = _ContextQueueHandler(records)
    logger = logging.getLogger(LOGGER_NAME)
    for stale in list(logger.handlers):
        logger.removeHandler(stale)
        stale.close()
    logger.setLevel(level)
    logger.propagate = False
    logger.addHandler(queue_handler)

    listener = logging.handlers.QueueListener(records, *sinks)
    listener.start()
    configure_structlog()

    _session = LogSession(
        run_id=run_id,
        log_path=log_path,
        queue_handler=queue_handler,
        listener=listener,
        sinks=tuple(sinks),
    )
    return _session


def shutdown_logging() -> None:
    """Close the current run's session, if one is open."""
    global _session
    if _session is not None:
        _session.close()
        _session = None


def configure_structlog() -> None:
    """Send ``structlog`` events to the stdlib ``drvtree`` logger tree."""
    structlog.configure(
        processors=[structlog.stdlib.filter_by_level, _into_record],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


@contextmanager
def correlation_scope(**fields: str | None) -> Iterator[None]:
    """Attach fields such as ``command`` and ``root`` to every record logged in the block.

    ``None`` values are skipped; blank strings are rejected.
    """

    bound: dict[str, str] = {}
    for key, value in fields.items():
        if value is None:
            continue
        if not value.strip():
            raise ValueError(f"correlation field {key!r} must not be blank")
        bound[key] = value.strip()
    with structlog.contextvars.bound_contextvars(**bound):
        yield


def redact_secrets(value: Any) -> Any:
    """Mask values stored under secret-looking keys, at any depth."""
    if isinstance(value, Mapping):
        return {
            key: REDACTED if looks_secret(str(key)) else redact_secrets(item)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [redact_secrets(item) for item in value]
    return value


def looks_secret(key: str) -> bool:
    lowered = key.lower()
    return any(part in lowered for part in _SECRET_KEY_PARTS)


def _into_record(
    _logger: Any, _method_name: str, event_dict: MutableMapping[str, Any]
) -> dict[str, Any]:
    # keys like ``name`` would clash with LogRecord attributes, so fields ride in one extra
    fields = dict(event_dict)
    kwargs: dict[str, Any] = {
        key: fields.pop(key) for key in ("exc_info", "stack_info") if key in fields
    }
    kwargs["msg"] = str(fields.pop("event", ""))
    kwargs["extra"] = {_FIELDS_ATTR: fields}
    return kwargs


def _record_fields(record: logging.LogRecord) -> dict[str, Any]:
    fields = {
        key: value
        for key, value in vars(record).items()
        if key not in _RECORD_ATTRS and not key.startswith("_")
    }
    fields.update(fields.pop(_FIELDS_ATTR, None) or {})
    return fields


__all__ = [
    "REDACTED",
    "JsonLineFormatter",
    "LogSession",
    "configure_structlog",
    "correlation_scope",
    "looks_secret",
    "new_run_id",
    "redact_secrets",
    "setup_logging",
    "shutdown_logging",
]
