"""
Logging setup with run context propagation.

A ContextVar carries the current run_id (and node_id while a node executes)
into every log record, so concurrent requests and nested node processing
stay correlated without passing ids around.
"""
import json
import logging
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any

run_context: ContextVar[dict[str, Any] | None] = ContextVar("run_context", default=None)


class StructuredFormatter(logging.Formatter):
    """JSON formatter: one object per line with the run context merged in."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(run_context.get() or {})
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry)


class HumanReadableFormatter(logging.Formatter):
    """Colorized single-line format for development."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        context = run_context.get() or {}
        prefix_parts = []
        if context.get("run_id"):
            prefix_parts.append(f"run:{context['run_id'][:8]}")
        if context.get("node_id"):
            prefix_parts.append(f"node:{context['node_id']}")
        prefix = f"[{' | '.join(prefix_parts)}] " if prefix_parts else ""

        color = self.COLORS.get(record.levelname, "")
        line = f"{color}[{record.levelname:<8}]{self.RESET} {record.name}: {prefix}{record.getMessage()}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def configure_logging(level: str = "INFO", format: str = "human") -> None:
    """Install the formatter on the root logger. Call once at startup."""
    formatter = StructuredFormatter() if format == "json" else HumanReadableFormatter()
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level.upper())


@contextmanager
def bind_context(**kwargs: Any):
    """Add keys to the run context for the duration of the block."""
    token = run_context.set({**(run_context.get() or {}), **kwargs})
    try:
        yield
    finally:
        run_context.reset(token)


def get_run_context() -> dict[str, Any]:
    return dict(run_context.get() or {})
