"""
Structured logging configuration for the BSR Estimator.

Costing passes log through ``bsr-engine`` with ``item_id``; the HTTP
middleware binds the current ``request_id`` so every line emitted while a
request is served (route, costing pass, LLM call) can be correlated.
"""
import json
import logging
import sys
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from typing import Optional

# Attributes passed via ``extra=`` that are copied into JSON log lines
EXTRA_FIELDS = (
    "item_id",
    "request_id",
    "duration_ms",
    "http_method",
    "http_path",
    "http_status",
)

NOISY_LOGGERS = ("uvicorn.access", "httpcore", "httpx", "LiteLLM")

_request_id: ContextVar[Optional[str]] = ContextVar("bsr_request_id", default=None)


def bind_request_id(request_id: str) -> Token:
    return _request_id.set(request_id)


def reset_request_id(token: Token) -> None:
    _request_id.reset(token)


def current_request_id() -> Optional[str]:
    return _request_id.get()


class RequestContextFilter(logging.Filter):
    """Stamps the bound request_id on records that don't carry one already."""
    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            request_id = current_request_id()
            if request_id is not None:
                record.request_id = request_id
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per log record."""
    def format(self, record):
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        for field in EXTRA_FIELDS:
            if hasattr(record, field):
                log_entry[field] = getattr(record, field)
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """Plain text for local runs; appends [item N] / [req …] when known."""
    def __init__(self):
        super().__init__("%(asctime)s [%(name)s] %(levelname)s: %(message)s")

    def format(self, record):
        line = super().format(record)
        tags = []
        if getattr(record, "item_id", None) is not None:
            tags.append(f"item {record.item_id}")
        if getattr(record, "request_id", None) is not None:
            tags.append(f"req {str(record.request_id)[:8]}")
        return f"{line} [{', '.join(tags)}]" if tags else line


def setup_logging(level: str = "INFO", json_output: bool = True):
    """Configure root logging: JSON lines in production, plain text for local runs."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if json_output else ConsoleFormatter())
    handler.addFilter(RequestContextFilter())
    root.handlers = [handler]

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
