"""
Structured logging: JSON for cloud aggregators, readable format for dev.
Configured once from settings (LOG_LEVEL, LOG_JSON) via configure_logging.
Every record carries the current request id (set by RequestIdMiddleware).
"""

import json
import logging
import sys
from contextvars import ContextVar
from typing import Any

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")

_LEVEL = logging.INFO
_JSON = False
_RESERVED = frozenset(
    (
        "name", "msg", "args", "created", "filename", "funcName", "levelname", "levelno",
        "lineno", "module", "msecs", "pathname", "process", "processName", "relativeCreated",
        "stack_info", "exc_info", "exc_text", "message", "taskName", "thread", "threadName",
    )
)


def configure_logging(level: str = "INFO", json_output: bool = False) -> None:
    """Apply level and format to every logger handed out by get_logger, including existing ones."""
    global _LEVEL, _JSON
    _LEVEL = getattr(logging, level.upper(), logging.INFO)
    _JSON = json_output
    for logger in list(logging.Logger.manager.loggerDict.values()):
        if isinstance(logger, logging.Logger) and getattr(logger, "_gateway_configured", False):
            _apply(logger)


def get_logger(name: str) -> logging.Logger:
    """
    Return a logger with app-level config applied.
    Use logger.info("event", extra={"key": "value"}) for structured fields.
    """
    logger = logging.getLogger(name)
    if getattr(logger, "_gateway_configured", False):
        return logger
    logger.addFilter(_RequestIdFilter())
    logger.propagate = False
    logger._gateway_configured = True  # type: ignore[attr-defined]
    _apply(logger)
    return logger


def _apply(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(_LEVEL)
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(_LEVEL)
    if _JSON:
        handler.setFormatter(_JsonFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(request_id)s | %(message)s")
        )
    logger.addHandler(handler)


class _RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get()
        return True


class _JsonFormatter(logging.Formatter):
    """Format log records as single-line JSON for CloudWatch, Datadog, etc."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)
        # Merge extra dict into top level for structured search
        for key, value in record.__dict__.items():
            if key not in _RESERVED:
                log_obj[key] = value
        return json.dumps(log_obj, default=str)
