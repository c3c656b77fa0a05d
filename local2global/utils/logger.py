"""Scoped structured logger.

Wraps a stdlib logger. Events are short dotted names (``term.created``)
with a context dict; `scoped`/`scope` push a context layer that is merged
into every event emitted while it is active, so correlation ids and
operation names propagate without threading them through every call.
"""
from __future__ import annotations

import logging
import traceback
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional, TypeVar

from local2global.config.env import LoggingConfig, get_logging_config

SOURCE = "local2global"

T = TypeVar("T")


class ScopedLogger:
    def __init__(self, name: str = SOURCE, config: Optional[LoggingConfig] = None) -> None:
        self._log = logging.getLogger(name)
        self._config = config or get_logging_config()
        self._stack: List[Dict[str, Any]] = []
        if self._log.level == logging.NOTSET:
            self._log.setLevel(logging.DEBUG if self._config.debug else logging.INFO)

    @contextmanager
    def scope(self, context: Dict[str, Any]) -> Iterator["ScopedLogger"]:
        self._stack.append(dict(context))
        try:
            yield self
        finally:
            self._stack.pop()

    def scoped(self, context: Dict[str, Any], fn: Callable[["ScopedLogger"], T]) -> T:
        with self.scope(context):
            return fn(self)

    def current_context(self) -> Dict[str, Any]:
        merged: Dict[str, Any] = {}
        for layer in self._stack:
            merged.update(layer)
        return merged

    def info(self, event: str, context: Optional[Dict[str, Any]] = None) -> None:
        self._emit(logging.INFO, event, context)

    def warning(self, event: str, context: Optional[Dict[str, Any]] = None) -> None:
        self._emit(logging.WARNING, event, context)

    def error(self, event: str, context: Optional[Dict[str, Any]] = None) -> None:
        self._emit(logging.ERROR, event, context)

    def _emit(self, level: int, event: str, context: Optional[Dict[str, Any]]) -> None:
        # muting never silences errors
        if not self._config.enabled and level < logging.ERROR:
            return
        ctx = self._prepare(context or {})
        self._log.log(level, "%s %s", event, ctx, extra={"event": event, "context": ctx})

    def _prepare(self, context: Dict[str, Any]) -> Dict[str, Any]:
        ctx = self.current_context()
        ctx.update(context)
        ctx["source"] = SOURCE
        exc = ctx.get("exception")
        if isinstance(exc, BaseException):
            ctx["exception"] = {"class": type(exc).__name__, "message": str(exc)}
            if self._config.debug:
                ctx["trace"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        return ctx


class RecordingHandler(logging.Handler):
    """Keeps emitted records in memory; used by tests and the CLI summary."""

    def __init__(self) -> None:
        super().__init__()
        self.records: List[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)

    def events(self) -> List[str]:
        return [getattr(r, "event", r.getMessage()) for r in self.records]

    def contexts(self, event: Optional[str] = None) -> List[Dict[str, Any]]:
        return [
            getattr(r, "context", {})
            for r in self.records
            if event is None or getattr(r, "event", None) == event
        ]
