"""JSON logging for the voice backend.

Every record is emitted as a single JSON line on stdout. Request, session,
turn and connection identifiers travel in context variables so that
provider and store code never has to pass them around explicitly.
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any

request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)
session_id_var: ContextVar[str | None] = ContextVar("session_id", default=None)
turn_id_var: ContextVar[str | None] = ContextVar("turn_id", default=None)
connection_id_var: ContextVar[str | None] = ContextVar("connection_id", default=None)

CONTEXT_VARS: dict[str, ContextVar[str | None]] = {
    "request_id": request_id_var,
    "session_id": session_id_var,
    "turn_id": turn_id_var,
    "connection_id": connection_id_var,
}

# Attributes copied from ``extra={...}`` onto the JSON line
RECORD_FIELDS: tuple[str, ...] = (
    *CONTEXT_VARS,
    "provider",
    "model",
    "model_id",
    "method",
    "path",
    "status_code",
    "value",
    "temperature",
    "text_length",
    "transcript_length",
    "api_key_present",
    "voice_id",
    "stage",
    "state",
    "duration_ms",
    "latency_ms",
    "timeout_seconds",
    "interval_seconds",
    "error_code",
    "error",
    "tokens_in",
    "tokens_out",
    "audio_bytes",
    "audio_format",
    "chunk_count",
    "turn_count",
    "evicted",
    "remaining",
    "status",
    "reason",
    "metadata",
)

NOISY_LOGGERS = ("asyncio", "uvicorn.access", "httpx", "httpcore", "multipart")


class StructuredFormatter(logging.Formatter):
    """Render a LogRecord as one JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.now(UTC).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "service": getattr(record, "service", record.name.partition(".")[0]),
            "message": record.getMessage(),
        }

        for key, var in CONTEXT_VARS.items():
            value = var.get()
            if value:
                payload[key] = value

        # Explicit extras win over context
        for key in RECORD_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                payload[key] = value

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


class NamespaceFilter(logging.Filter):
    """Pass INFO and above; pass DEBUG only for the listed top-level namespaces."""

    def __init__(self, debug_namespaces: list[str]):
        super().__init__()
        self.debug_namespaces = frozenset(debug_namespaces)

    def filter(self, record: logging.LogRecord) -> bool:
        if record.levelno >= logging.INFO:
            return True
        return record.name.partition(".")[0] in self.debug_namespaces


def setup_logging(log_level: str = "INFO", debug_namespaces: list[str] | None = None) -> None:
    """Install the JSON handler on the root logger.

    Args:
        log_level: Level for everything outside ``debug_namespaces``
        debug_namespaces: Top-level logger names (e.g. ``voice``, ``providers``)
            that also emit DEBUG records
    """
    namespaces = list(debug_namespaces or [])

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter())
    handler.addFilter(NamespaceFilter(namespaces))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    # DEBUG is gated by NamespaceFilter, everything else by log_level
    root.setLevel(logging.DEBUG if namespaces else log_level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger("logging").info(
        "Logging configured",
        extra={
            "service": "logging",
            "metadata": {"log_level": log_level, "debug_namespaces": namespaces},
        },
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def set_request_context(
    request_id: str | None = None,
    session_id: str | None = None,
    turn_id: str | None = None,
    connection_id: str | None = None,
) -> None:
    """Bind tracing identifiers for the current task; None leaves a value as is."""
    values = {
        "request_id": request_id,
        "session_id": session_id,
        "turn_id": turn_id,
        "connection_id": connection_id,
    }
    for key, value in values.items():
        if value is not None:
            CONTEXT_VARS[key].set(value)


def clear_request_context() -> None:
    for var in CONTEXT_VARS.values():
        var.set(None)


__all__ = [
    "CONTEXT_VARS",
    "NamespaceFilter",
    "StructuredFormatter",
    "clear_request_context",
    "connection_id_var",
    "get_logger",
    "request_id_var",
    "session_id_var",
    "set_request_context",
    "setup_logging",
    "turn_id_var",
]
