"""
Observability for blockgraph.

Provides structured logging and metrics for graph evaluation and
execution.

Design Philosophy:
- Plain `logging` loggers per module for human-readable output
- Structured (JSON) event records for machine consumption
- Metrics owned by the runtime and passed explicitly, no global instance
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Protocol

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# LogRecord attribute holding a JSONLogger record's fields
STRUCTURED_ATTR = "structured"


# =============================================================================
# Log Levels
# =============================================================================


class LogLevel(Enum):
    """Standard log levels."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


# =============================================================================
# Logging setup
# =============================================================================


class JSONFormatter(logging.Formatter):
    """
    Formats every log record as a single JSON object.

    Records emitted by JSONLogger carry their fields in `record.structured`;
    those fields are merged in as-is instead of re-encoding the message.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        structured = getattr(record, STRUCTURED_ATTR, None)
        if isinstance(structured, dict):
            payload.update(structured)
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(level: str | int = "INFO", *, json_format: bool = False) -> None:
    """
    Configure root logging for the CLI.

    Args:
        level: Log level name or number
        json_format: Emit one JSON object per record instead of text
    """
    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter() if json_format else logging.Formatter(LOG_FORMAT))
    logging.basicConfig(
        level=level.upper() if isinstance(level, str) else level,
        handlers=[handler],
        force=True,
    )


# =============================================================================
# Structured Logger Protocol
# =============================================================================


class StructuredLogger(Protocol):
    """
    Protocol for structured logging implementations.

    Structured loggers emit logs as key-value pairs rather than
    plain strings, enabling better searchability and analysis.
    """

    def debug(self, message: str, **context: Any) -> None:
        """Log debug message."""
        ...

    def info(self, message: str, **context: Any) -> None:
        """Log info message."""
        ...

    def warning(self, message: str, **context: Any) -> None:
        """Log warning message."""
        ...

    def error(self, message: str, **context: Any) -> None:
        """Log error message."""
        ...


# =============================================================================
# JSON Logger Implementation
# =============================================================================


@dataclass
class JSONLogger:
    """
    Structured logger that outputs JSON-formatted logs.

    Each log entry includes:
    - timestamp (ISO 8601)
    - level
    - message
    - context fields
    - optional run_id for correlation

    Example output:
        {"timestamp": "2026-01-02T10:30:00Z", "level": "info",
         "message": "Graph evaluated", "run_id": "abc-123",
         "components": 3}
    """

    name: str = "blockgraph.events"
    run_id: str | None = None
    extra_context: dict[str, Any] = field(default_factory=dict)
    _python_logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._python_logger = logging.getLogger(self.name)

    def _log(self, level: LogLevel, message: str, context: dict[str, Any]) -> None:
        record = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": level.value,
            "message": message,
            **self.extra_context,
            **context,
        }

        if self.run_id:
            record["run_id"] = self.run_id

        json_str = json.dumps(record, default=str)

        log_method = getattr(self._python_logger, level.value)
        log_method(json_str, extra={STRUCTURED_ATTR: record})

    def debug(self, message: str, **context: Any) -> None:
        self._log(LogLevel.DEBUG, message, context)

    def info(self, message: str, **context: Any) -> None:
        self._log(LogLevel.INFO, message, context)

    def warning(self, message: str, **context: Any) -> None:
        self._log(LogLevel.WARNING, message, context)

    def error(self, message: str, **context: Any) -> None:
        self._log(LogLevel.ERROR, message, context)

    def with_context(self, **extra: Any) -> JSONLogger:
        """Create a new logger with additional context."""
        return JSONLogger(
            name=self.name,
            run_id=self.run_id,
            extra_context={**self.extra_context, **extra},
        )


# =============================================================================
# Graph Logger
# =============================================================================


@dataclass
class GraphLogger:
    """
    Specialized logger for graph construction and execution events.

    Example:
        events = GraphLogger(run_id="abc-123")
        events.evaluation_started(filename="demo.hcl", block_count=3)
        events.block_decoded(kind="component1", label="a", attributes=["enabled"])
        events.task_failed(component="component2.c", task="reader", error="...", error_type="...")
    """

    run_id: str
    inner: StructuredLogger = field(default_factory=JSONLogger)

    def __post_init__(self) -> None:
        if isinstance(self.inner, JSONLogger):
            self.inner = JSONLogger(name=self.inner.name, run_id=self.run_id)

    # Construction phase
    def evaluation_started(self, filename: str, block_count: int) -> None:
        self.inner.debug("Evaluation started", filename=filename, block_count=block_count)

    def block_decoded(self, kind: str, label: str, attributes: list[str]) -> None:
        self.inner.debug("Block decoded", kind=kind, label=label, attributes=attributes)

    def exports_bound(self, kind: str, label: str, names: list[str]) -> None:
        self.inner.debug("Exports bound", kind=kind, label=label, names=names)

    def evaluation_completed(
        self,
        component_count: int,
        export_count: int,
        duration_ms: float,
    ) -> None:
        self.inner.info(
            "Evaluation completed",
            component_count=component_count,
            export_count=export_count,
            duration_ms=round(duration_ms, 2),
        )

    def evaluation_failed(self, error: str, error_type: str) -> None:
        self.inner.error("Evaluation failed", error=error, error_type=error_type)

    # Execution phase
    def component_started(self, component: str, task_count: int) -> None:
        self.inner.debug("Component started", component=component, task_count=task_count)

    def task_failed(self, component: str, task: str, error: str, error_type: str) -> None:
        self.inner.error(
            "Task failed",
            component=component,
            task=task,
            error=error,
            error_type=error_type,
        )

    def shutdown_started(self, task_count: int) -> None:
        self.inner.debug("Shutdown started", task_count=task_count)

    def shutdown_completed(self, failure_count: int, duration_ms: float) -> None:
        self.inner.info(
            "Shutdown completed",
            failure_count=failure_count,
            duration_ms=round(duration_ms, 2),
        )


# =============================================================================
# Metrics
# =============================================================================


@dataclass
class RuntimeMetrics:
    """
    Graph construction and execution counters.

    Tasks run on one event loop, so plain integer counters are safe.
    """

    # Construction
    blocks_decoded: int = 0
    exports_bound: int = 0

    # Execution
    components_started: int = 0
    tasks_started: int = 0
    tasks_failed: int = 0
    tasks_cancelled: int = 0
    messages_sent: int = 0
    messages_received: int = 0
    function_calls: int = 0

    def record_block(self, export_count: int) -> None:
        self.blocks_decoded += 1
        self.exports_bound += export_count

    def get_stats(self) -> dict[str, Any]:
        """Get summary statistics."""
        return {
            "construction": {
                "blocks_decoded": self.blocks_decoded,
                "exports_bound": self.exports_bound,
            },
            "tasks": {
                "started": self.tasks_started,
                "failed": self.tasks_failed,
                "cancelled": self.tasks_cancelled,
            },
            "components_started": self.components_started,
            "messages": {
                "sent": self.messages_sent,
                "received": self.messages_received,
            },
            "function_calls": self.function_calls,
        }

    def reset(self) -> None:
        """Reset all metrics."""
        self.blocks_decoded = 0
        self.exports_bound = 0
        self.components_started = 0
        self.tasks_started = 0
        self.tasks_failed = 0
        self.tasks_cancelled = 0
        self.messages_sent = 0
        self.messages_received = 0
        self.function_calls = 0
