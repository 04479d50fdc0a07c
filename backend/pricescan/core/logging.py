"""
Structured logging with request ids.

Usage:
    from pricescan.core.logging import get_logger

    logger = get_logger(__name__)
    logger.info("Search finished", extra={"query": q, "providers": 1})
"""

import logging
import re
import uuid
from contextvars import ContextVar
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger

from pricescan.core.config import settings

_request_id_ctx: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def get_request_id() -> Optional[str]:
    return _request_id_ctx.get()


def generate_request_id() -> str:
    return f"req-{uuid.uuid4().hex[:16]}"


class request_id_context:
    """Context manager that binds a request id to everything logged inside it."""

    def __init__(self, request_id: Optional[str] = None):
        self.request_id = request_id or generate_request_id()
        self.token = None

    def __enter__(self):
        self.token = _request_id_ctx.set(self.request_id)
        return self.request_id

    def __exit__(self, exc_type, exc_val, exc_tb):
        _request_id_ctx.reset(self.token)


def redact_key(s: str) -> str:
    """
    Redact 'api_key=...' in URLs or text so we never leak the SerpAPI key in logs/responses.
    """
    if not s:
        return s
    return re.sub(r"(api_key=)([^&\s]+)", r"\1REDACTED", s)


class RequestIDFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id() or "none"
        return True


class SensitiveDataFilter(logging.Filter):
    """Redacts api keys from log messages and extra fields."""

    SENSITIVE_KEYS = {"api_key", "serpapi_api_key", "password", "token", "secret", "authorization"}

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = redact_key(record.msg)
        if record.args:
            record.args = self._redact(record.args)

        for key in list(record.__dict__.keys()):
            if key.lower() in self.SENSITIVE_KEYS:
                setattr(record, key, "[REDACTED]")
        return True

    def _redact(self, data: Any) -> Any:
        if isinstance(data, dict):
            return {
                k: "[REDACTED]" if str(k).lower() in self.SENSITIVE_KEYS else self._redact(v)
                for k, v in data.items()
            }
        if isinstance(data, tuple):
            return tuple(self._redact(item) for item in data)
        if isinstance(data, list):
            return [self._redact(item) for item in data]
        if isinstance(data, str):
            return redact_key(data)
        return data


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = self.formatTime(record, self.datefmt)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["request_id"] = getattr(record, "request_id", "none")
        log_record["environment"] = settings.ENVIRONMENT
        log_record["service"] = "pricescan"

        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)


def setup_logging() -> None:
    """
    Configure the root logger once at app creation.

    LOG_FORMAT=json forces JSON output; by default JSON is used only when
    ENVIRONMENT=production and plain text everywhere else.
    """
    log_level = settings.LOG_LEVEL.upper()
    log_format = settings.LOG_FORMAT or ("json" if settings.ENVIRONMENT == "production" else "text")

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()

    if log_format == "json":
        formatter = CustomJsonFormatter(
            "%(timestamp)s %(level)s %(logger)s %(request_id)s %(message)s",
            rename_fields={"timestamp": "@timestamp"},
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(request_id)s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    handler.setFormatter(formatter)
    handler.addFilter(RequestIDFilter())
    handler.addFilter(SensitiveDataFilter())

    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    # httpx logs every request URL at INFO, key included
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
