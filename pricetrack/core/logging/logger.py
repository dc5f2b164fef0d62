"""Structured JSON logging on loguru.

Every record carries a ``trace_id`` (one per :func:`log_context`, or one per
task when no context is active) and the ``metric_kind``/``error_code`` fields
the stores attach, so a degraded write can be followed across the series
store, the pending queue and the object store adapter.
"""

from __future__ import annotations

import json
import os
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime
from pathlib import Path
from typing import IO, Any, Iterator
from uuid import uuid4

from loguru import logger

from pricetrack.core.logging.config import LogConfig

_TRACE_ID_VAR: ContextVar[str | None] = ContextVar("pricetrack_trace_id", default=None)
_CONTEXT_VAR: ContextVar[dict[str, Any]] = ContextVar("pricetrack_log_context", default={})

# Top-level fields of every JSON line; everything else lands under "context".
_PROMOTED_KEYS = ("metric_kind", "error_code")
_RESERVED_KEYS = frozenset({"trace_id", *_PROMOTED_KEYS})


def _active_trace_id() -> str:
    trace_id = _TRACE_ID_VAR.get()
    if trace_id is None:
        trace_id = uuid4().hex
        _TRACE_ID_VAR.set(trace_id)
    return trace_id


def _patch_record(record: dict[str, Any]) -> None:
    extra = record["extra"]
    if extra.get("trace_id"):
        _TRACE_ID_VAR.set(extra["trace_id"])
    else:
        extra["trace_id"] = _active_trace_id()

    for key, value in _CONTEXT_VAR.get().items():
        if key == "trace_id":
            continue
        if extra.get(key) is None:
            extra[key] = value

    for key in _PROMOTED_KEYS:
        extra.setdefault(key, None)


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def _format_payload(record: dict[str, Any]) -> dict[str, Any]:
    extra = record["extra"]
    payload: dict[str, Any] = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name,
        "message": record["message"],
        "trace_id": extra.get("trace_id"),
    }
    for key in _PROMOTED_KEYS:
        payload[key] = extra.get(key)

    context = {key: value for key, value in extra.items() if key not in _RESERVED_KEYS}
    if context:
        payload["context"] = context
    exception = record["exception"]
    if exception is not None:
        payload["exception"] = f"{exception.type.__name__}: {exception.value}" if exception.type else str(exception)
    return payload


def _render(message: Any) -> str:
    return json.dumps(_format_payload(message.record), default=_json_default, ensure_ascii=False) + "\n"


class _JsonSink:
    """Write one JSON line per record to a stream or append it to a file.

    Without a stream or path the sink writes to whatever ``sys.stderr`` is at
    emit time, so redirected stderr (CLI runners, pytest capture) is honoured.
    """

    def __init__(self, stream: IO[str] | None = None, path: str | None = None) -> None:
        self._stream = stream
        self._path = Path(path).expanduser() if path else None
        if self._path is not None:
            self._path.parent.mkdir(parents=True, exist_ok=True)

    def __call__(self, message: Any) -> None:
        line = _render(message)
        if self._path is not None:
            with open(self._path, "a", encoding="utf-8") as file:
                file.write(line)
            return
        stream = self._stream if self._stream is not None else sys.stderr
        stream.write(line)
        stream.flush()


def _configure_from_config(config: LogConfig) -> None:
    level = config.level.upper()
    handlers: list[dict[str, Any]] = []
    if config.console_output:
        handlers.append({"sink": _JsonSink(stream=config.console_stream), "level": level})
    if config.file_output and config.file_path:
        handlers.append({"sink": _JsonSink(path=config.file_path), "level": level})
    logger.configure(handlers=handlers, patcher=_patch_record, extra=dict(config.extra))


def configure_logging(level: str = "WARNING", **kwargs: Any) -> None:
    """Replace all sinks with JSON sinks at ``level``.

    Keyword arguments are :class:`LogConfig` fields (``console_output``,
    ``file_output``, ``file_path``...).
    """
    _configure_from_config(LogConfig(level=level, **kwargs))


class StructuredLogger:
    """Configured loguru logger plus the trace-aware context helper."""

    def __init__(self, config: LogConfig | None = None) -> None:
        self.config = config or LogConfig()
        _configure_from_config(self.config)
        self.logger = logger

    def configure(self, **kwargs: Any) -> None:
        self.config = self.config.model_copy(update=kwargs)
        _configure_from_config(self.config)

    @contextmanager
    def context(self, *, trace_id: str | None = None, **extra: Any) -> Iterator[str]:
        with log_context(trace_id=trace_id, **extra) as active_trace:
            yield active_trace


def get_logger(name: str | None = None) -> Any:
    """Shared loguru logger, bound to ``logger_name`` when ``name`` is given."""
    if name:
        return logger.bind(logger_name=name)
    return logger


@contextmanager
def log_context(*, trace_id: str | None = None, **extra: Any) -> Iterator[str]:
    """Attach a trace id and extra fields to every record logged inside the block."""
    context_token = _CONTEXT_VAR.set({**_CONTEXT_VAR.get(), **extra})
    active_trace = trace_id or uuid4().hex
    trace_token = _TRACE_ID_VAR.set(active_trace)
    try:
        yield active_trace
    finally:
        _TRACE_ID_VAR.reset(trace_token)
        _CONTEXT_VAR.reset(context_token)


configure_logging(level=os.getenv("PRICETRACK_LOGGING_LEVEL", "WARNING"))


__all__ = [
    "StructuredLogger",
    "configure_logging",
    "get_logger",
    "log_context",
    "logger",
]
