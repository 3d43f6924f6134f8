"""Structured logging and metric hooks.

Every log line is a single JSON object. Identifiers bound with
`RequestContext` (request, view, session, project) are attached to each
line automatically, so one preview session can be followed from the HTTP
request through the controller stages down to the engine.
"""

import copy
import json
import logging
import sys
import time
import uuid
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable

request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)
view_id_var: ContextVar[str | None] = ContextVar("view_id", default=None)
session_id_var: ContextVar[str | None] = ContextVar("session_id", default=None)
project_id_var: ContextVar[str | None] = ContextVar("project_id", default=None)

# Output key -> variable, in output order
CONTEXT_VARS: dict[str, ContextVar[str | None]] = {
    "request_id": request_id_var,
    "view_id": view_id_var,
    "session_id": session_id_var,
    "project_id": project_id_var,
}


class LogLevel(str, Enum):
    """Log levels matching Python's logging module."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class LogContext:
    """Identifiers attached to every log entry."""

    request_id: str | None = None
    view_id: str | None = None
    session_id: str | None = None
    project_id: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def current(cls) -> "LogContext":
        return cls(**{name: var.get() for name, var in CONTEXT_VARS.items()})

    def to_dict(self) -> dict[str, Any]:
        """Set identifiers plus extra fields."""
        result = {name: getattr(self, name) for name in CONTEXT_VARS if getattr(self, name)}
        result.update(self.extra)
        return result


@dataclass
class LogRecordEntry:
    """A structured application log entry."""

    level: LogLevel
    message: str
    timestamp: str
    logger: str
    context: dict[str, Any] = field(default_factory=dict)
    error: dict[str, Any] | None = None
    duration_ms: float | None = None

    @classmethod
    def from_record(cls, record: logging.LogRecord) -> "LogRecordEntry":
        """Build an entry from a stdlib record and the current context."""
        context = LogContext.current().to_dict()
        record_context = getattr(record, "context", None)
        if isinstance(record_context, dict):
            context.update(record_context)

        error = None
        if record.exc_info and record.exc_info[0] is not None:
            error = {"type": record.exc_info[0].__name__, "message": str(record.exc_info[1])}

        return cls(
            level=LogLevel(record.levelname),
            message=record.getMessage(),
            timestamp=datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            logger=record.name,
            context=context,
            error=error,
            duration_ms=getattr(record, "duration_ms", None),
        )

    def to_json(self) -> str:
        data: dict[str, Any] = {
            "level": self.level.value,
            "message": self.message,
            "timestamp": self.timestamp,
            "logger": self.logger,
        }
        optional = {"context": self.context, "error": self.error, "duration_ms": self.duration_ms}
        data.update({key: value for key, value in optional.items() if value not in (None, {})})
        return json.dumps(data, default=str)


class StructuredFormatter(logging.Formatter):
    """Formats log records as JSON lines."""

    def format(self, record: logging.LogRecord) -> str:
        return LogRecordEntry.from_record(record).to_json()


def _ensure_handler(name: str, level: LogLevel) -> None:
    # One JSON handler on the top-level logger; module loggers propagate to it
    top = logging.getLogger(name.split(".")[0])
    if not top.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(StructuredFormatter())
        top.addHandler(handler)
        top.setLevel(level.value)


class StructuredLogger:
    """Wrapper around Python logging with structured output.

    Example:
        logger = get_logger(__name__)
        log = logger.bind(session_id=session.id)
        log.info("Stage complete", context={"stage": "mount"}, duration_ms=12.5)
        log.error("Install failed", error=exc)
    """

    def __init__(
        self,
        name: str,
        level: LogLevel = LogLevel.INFO,
        bound: dict[str, Any] | None = None,
    ) -> None:
        """Initialize structured logger.

        Args:
            name: Logger name (typically module name)
            level: Level for the top-level handler when one is installed
            bound: Context fields added to every entry
        """
        self.logger = logging.getLogger(name)
        self._bound = dict(bound or {})
        _ensure_handler(name, level)

    def bind(self, **context: Any) -> "StructuredLogger":
        """Return a logger that adds these fields to every entry."""
        child = copy.copy(self)
        child._bound = {**self._bound, **context}
        return child

    def log(
        self,
        level: LogLevel,
        message: str,
        context: dict[str, Any] | None = None,
        error: BaseException | None = None,
        duration_ms: float | None = None,
    ) -> None:
        extra: dict[str, Any] = {"context": {**self._bound, **(context or {})}}
        if duration_ms is not None:
            extra["duration_ms"] = duration_ms
        exc_info = (type(error), error, error.__traceback__) if error is not None else None
        self.logger.log(logging.getLevelName(level.value), message, exc_info=exc_info, extra=extra)

    def debug(self, message: str, context: dict[str, Any] | None = None, **kwargs: Any) -> None:
        self.log(LogLevel.DEBUG, message, context, **kwargs)

    def info(self, message: str, context: dict[str, Any] | None = None, **kwargs: Any) -> None:
        self.log(LogLevel.INFO, message, context, **kwargs)

    def warning(self, message: str, context: dict[str, Any] | None = None, **kwargs: Any) -> None:
        self.log(LogLevel.WARNING, message, context, **kwargs)

    def error(self, message: str, context: dict[str, Any] | None = None, **kwargs: Any) -> None:
        self.log(LogLevel.ERROR, message, context, **kwargs)


class RequestContext:
    """Binds identifiers to the logging context for a block.

    An inner context inherits the enclosing request id.

    Example:
        async with RequestContext(view_id=view.id, project_id=view.project_id):
            await view.controller.start(files)
    """

    def __init__(
        self,
        request_id: str | None = None,
        view_id: str | None = None,
        session_id: str | None = None,
        project_id: str | None = None,
    ) -> None:
        self.request_id = request_id or request_id_var.get() or uuid.uuid4().hex
        self.values = {
            "request_id": self.request_id,
            "view_id": view_id,
            "session_id": session_id,
            "project_id": project_id,
        }
        self._tokens: list[tuple[ContextVar[str | None], Any]] = []

    def __enter__(self) -> "RequestContext":
        for name, value in self.values.items():
            if value:
                var = CONTEXT_VARS[name]
                self._tokens.append((var, var.set(value)))
        return self

    def __exit__(self, *args: Any) -> None:
        while self._tokens:
            var, token = self._tokens.pop()
            var.reset(token)

    async def __aenter__(self) -> "RequestContext":
        return self.__enter__()

    async def __aexit__(self, *args: Any) -> None:
        self.__exit__(*args)


class Timer:
    """Times a block, optionally reporting it as a timer metric.

    The metric is emitted only when the block completes without raising.

    Example:
        with Timer(f"preview.stage.{stage}") as timer:
            await handle.mount(tree)
        logger.info("Mounted", duration_ms=timer.duration_ms)
    """

    def __init__(self, metric: str | None = None, labels: dict[str, Any] | None = None) -> None:
        self.metric = metric
        self.labels = labels
        self.start_time = 0.0
        self.end_time: float | None = None

    @property
    def duration_ms(self) -> float:
        """Elapsed milliseconds (so far, while still running)."""
        end = self.end_time if self.end_time is not None else time.perf_counter()
        return (end - self.start_time) * 1000

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        self.end_time = None
        return self

    def __exit__(self, exc_type: Any, *args: Any) -> None:
        self.end_time = time.perf_counter()
        if self.metric and exc_type is None:
            emit_timer(self.metric, self.duration_ms, self.labels)


# Metric sink: (name, value, labels)
MetricCallback = Callable[[str, float, dict[str, Any]], None]

_metric_callbacks: list[MetricCallback] = []


def register_metric_callback(callback: MetricCallback) -> None:
    """Register a sink that receives every emitted metric."""
    _metric_callbacks.append(callback)


def unregister_metric_callback(callback: MetricCallback) -> None:
    if callback in _metric_callbacks:
        _metric_callbacks.remove(callback)


def emit_metric(name: str, value: float, labels: dict[str, Any] | None = None) -> None:
    """Send a metric to all registered sinks.

    The current view id, if any, is added as a label. A failing sink is
    logged and does not affect the caller or the other sinks.
    """
    labels = dict(labels or {})
    view_id = view_id_var.get()
    if view_id:
        labels.setdefault("view_id", view_id)

    for callback in list(_metric_callbacks):
        try:
            callback(name, value, labels)
        except Exception:
            logging.getLogger(__name__).debug("Metric callback failed: %s", name, exc_info=True)


def emit_counter(name: str, labels: dict[str, Any] | None = None) -> None:
    """Emit a counter metric (increment by 1)."""
    emit_metric(name, 1.0, labels)


def emit_timer(name: str, duration_ms: float, labels: dict[str, Any] | None = None) -> None:
    emit_metric(name, duration_ms, labels)


def configure_logging(
    level: LogLevel | str = LogLevel.INFO,
    format: str = "json",
    stream: Any = None,
) -> None:
    """Configure the package logger.

    Args:
        level: Minimum log level
        format: "json" for structured lines, anything else for plain text
        stream: Output stream (stdout when omitted)
    """
    package_logger = logging.getLogger("preview_core")
    package_logger.setLevel(LogLevel(level).value)
    package_logger.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stdout)
    if format == "json":
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s"))
    package_logger.addHandler(handler)


def get_logger(name: str) -> StructuredLogger:
    """Get a structured logger for a module."""
    return StructuredLogger(name)
