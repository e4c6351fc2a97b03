"""
Centralized structured logging for the booking core.
Uses Python's standard logging with JSON formatting for production.

Records carry the request id of the operation context that produced them.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, TextIO

from shared.config.settings import settings


# Context keys lifted out of "data" so log queries can filter on them
PROMOTED_FIELDS = ("kind", "entity", "entity_id", "rule", "operation", "user_id")


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    One object per line. Error kind, entity, rule and acting user are
    top-level keys; every other keyword passed to the logger lands in "data".
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = getattr(record, "request_id", None)
        if request_id and request_id != "-":
            log_data["request_id"] = request_id

        data = dict(getattr(record, "extra_data", None) or {})
        for key in PROMOTED_FIELDS:
            if data.get(key) is not None:
                log_data[key] = data.pop(key)
        if data:
            log_data["data"] = data

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if self.include_source:
            log_data["source"] = {
                "file": record.filename,
                "line": record.lineno,
                "function": record.funcName,
            }

        return json.dumps(log_data, default=str)

    def __init__(self, include_source: bool = False):
        super().__init__()
        self.include_source = include_source


class DevelopmentFormatter(logging.Formatter):
    """Human-readable formatter for development."""

    COLORS = {
        "DEBUG": "\033[36m",     # Cyan
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"
    DIM = "\033[2m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")

        parts = [f"{color}[{timestamp}] {record.levelname:8}{self.RESET}"]
        request_id = getattr(record, "request_id", None)
        if request_id and request_id != "-":
            parts.append(f"{self.DIM}[{request_id[:8]}]{self.RESET}")
        parts.append(f"{record.name}: {record.getMessage()}")
        message = " ".join(parts)

        data = getattr(record, "extra_data", None)
        if data:
            ordered = sorted(data.items(), key=lambda kv: (kv[0] not in PROMOTED_FIELDS, kv[0]))
            message += " (" + " | ".join(f"{k}={v}" for k, v in ordered) + ")"

        if record.exc_info:
            message += f"\n{self.formatException(record.exc_info)}"

        return message


class StructuredLogger(logging.Logger):
    """
    Logger whose level methods accept arbitrary keyword context.

        logger.warning("Uniqueness conflict", entity="staff", rule="email")

    Keywords other than the stdlib ones (exc_info, stack_info, stacklevel,
    extra) end up on the record as `extra_data`.
    """

    _STDLIB_KWARGS = frozenset({"exc_info", "stack_info", "stacklevel", "extra"})

    def _log(self, level: int, msg: Any, args: Any, **kwargs: Any) -> None:  # type: ignore[override]
        std = {k: kwargs.pop(k) for k in list(kwargs) if k in self._STDLIB_KWARGS}
        extra = dict(std.pop("extra", None) or {})
        extra["extra_data"] = kwargs or None
        std["stacklevel"] = std.get("stacklevel", 1) + 1
        super()._log(level, msg, args, extra=extra, **std)


# Set custom logger class
logging.setLoggerClass(StructuredLogger)


class CorrelationIdFilter(logging.Filter):
    """Stamp each record with the request id of the current operation context."""

    def filter(self, record: logging.LogRecord) -> bool:
        # Import here to avoid circular imports
        from shared.infrastructure.context import request_id_var

        record.request_id = request_id_var.get() or "-"
        return True


def setup_logging(level: str | None = None, stream: TextIO | None = None) -> None:
    """
    Configure logging for the application.
    Call this once at startup (the CLI does it in its callback).

    Production emits JSON lines; anything else gets the colored
    development format. `level` overrides LOG_LEVEL / DEBUG.
    """
    level_name = (level or settings.log_level or ("DEBUG" if settings.debug else "INFO")).upper()
    log_level = logging.getLevelName(level_name)
    if not isinstance(log_level, int):
        raise ValueError(f"Unknown log level: {level_name}")

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setLevel(log_level)
    handler.addFilter(CorrelationIdFilter())

    if settings.environment == "production":
        formatter = StructuredFormatter(include_source=settings.debug)
    else:
        formatter = DevelopmentFormatter()

    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(log_level)
    root.handlers.clear()
    root.addHandler(handler)

    # Reduce noise from third-party libraries
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.pool").setLevel(logging.WARNING)


def get_logger(name: str) -> StructuredLogger:
    """
    Get a logger instance with the given name.

    Usage:
        from shared.config.logging import get_logger
        logger = get_logger(__name__)

        logger.info("User created", user_id=user.id, email=mask_email(user.email))
        logger.error("Failed to persist staff", business_id=business_id, exc_info=True)
    """
    return logging.getLogger(name)  # type: ignore


def mask_email(email: str | None) -> str:
    """
    Mask an email address for logging: "user@example.com" -> "us***@example.com".
    The domain stays readable since it's what matters when debugging tenant issues.
    """
    if not email:
        return "<no-email>"
    local, at, domain = email.partition("@")
    if not at:
        return "***@invalid"
    keep = 1 if len(local) <= 2 else 2
    return f"{local[:keep]}***@{domain}"
