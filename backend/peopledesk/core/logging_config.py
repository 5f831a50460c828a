"""
Centralized logging configuration for PeopleDesk.
Provides JSON-formatted logs for production and human-readable logs for development.
"""

import json
import logging
import sys
import traceback
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from peopledesk.core.config import settings

_RESERVED_RECORD_ATTRS = {
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "pathname", "process", "processName", "relativeCreated",
    "stack_info", "exc_info", "exc_text", "thread", "threadName",
    "message", "taskName",
}


# Context keys promoted to top-level fields in JSON output and shown inline in
# development output.
CONTEXT_KEYS = ("request_id", "identity_id", "collection", "step")


def _context_of(record: logging.LogRecord) -> dict[str, Any]:
    return {key: getattr(record, key) for key in CONTEXT_KEYS if getattr(record, key, None) is not None}


class JSONFormatter(logging.Formatter):
    """One JSON object per line for log aggregators."""

    def __init__(self, service_name: str = "peopledesk"):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service_name,
            "environment": settings.ENVIRONMENT,
            **_context_of(record),
        }

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": traceback.format_exception(*record.exc_info),
            }

        extra_fields = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_RECORD_ATTRS and key not in CONTEXT_KEYS
        }
        if extra_fields:
            log_data["extra"] = extra_fields

        return json.dumps(log_data, default=str)


class ColoredFormatter(logging.Formatter):
    """Development console output; bound context is appended as key=value pairs."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        timestamp = datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S")
        context = " ".join(f"{key}={value}" for key, value in _context_of(record).items())

        message = f"{color}{timestamp} | {record.levelname:8} | {record.name} | {record.getMessage()}"
        if context:
            message += f" [{context}]"
        message += self.RESET

        if record.exc_info:
            message += f"\n{color}{traceback.format_exception(*record.exc_info)[-1].strip()}{self.RESET}"

        return message


class ContextLogger:
    """
    Logger wrapper that stamps bound context onto every record.

    Stores, workflows and views bind the identity they act for once and log
    through the child, so every line can be traced back to a user.
    """

    def __init__(self, logger: logging.Logger, context: Optional[dict[str, Any]] = None):
        self._logger = logger
        self._context: dict[str, Any] = dict(context or {})

    @property
    def context(self) -> dict[str, Any]:
        return dict(self._context)

    def bind(self, **kwargs) -> "ContextLogger":
        return ContextLogger(self._logger, {**self._context, **kwargs})

    def _log_with_context(self, level: int, msg: str, *args, **kwargs) -> None:
        extra = {**self._context, **kwargs.pop("extra", {})}
        self._logger.log(level, msg, *args, extra=extra, **kwargs)

    def debug(self, msg: str, *args, **kwargs) -> None:
        self._log_with_context(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs) -> None:
        self._log_with_context(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs) -> None:
        self._log_with_context(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs) -> None:
        self._log_with_context(logging.ERROR, msg, *args, **kwargs)


def setup_logging(
    service_name: str = "peopledesk",
    log_level: Optional[str] = None,
    json_logs: Optional[bool] = None,
) -> None:
    """
    Configure application logging.

    Args:
        service_name: Name of the service for log identification
        log_level: Override log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: Override JSON logging (True for production, False for development)
    """
    level = log_level or ("DEBUG" if settings.DEBUG else "INFO")
    use_json = json_logs if json_logs is not None else (settings.ENVIRONMENT.lower() == "production")

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(getattr(logging, level))
    if use_json:
        console_handler.setFormatter(JSONFormatter(service_name))
    else:
        console_handler.setFormatter(ColoredFormatter())
    root_logger.addHandler(console_handler)

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    logging.getLogger("peopledesk.logging").info(
        f"Logging configured: level={level}, format={'JSON' if use_json else 'colored'}, "
        f"environment={settings.ENVIRONMENT}"
    )


def get_logger(name: str) -> ContextLogger:
    """
    Get a context-aware logger for a module.

    Usage:
        log = get_logger("peopledesk.controllers").bind(identity_id="e-42", collection="leave_requests")
        log.info("Re-querying after change event")
    """
    return ContextLogger(logging.getLogger(name))


def generate_request_id() -> str:
    """Generate a short request ID for tracing."""
    return str(uuid.uuid4())[:8]


class RequestLoggingMiddleware:
    """
    ASGI middleware that logs each HTTP request with timing and a request ID.
    """

    def __init__(self, app):
        self.app = app
        self.logger = logging.getLogger("peopledesk.http")

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = generate_request_id()
        start_time = datetime.now(timezone.utc)
        scope.setdefault("state", {})["request_id"] = request_id
        response_status = 0

        async def send_wrapper(message):
            nonlocal response_status
            if message["type"] == "http.response.start":
                response_status = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception:
            response_status = 500
            raise
        finally:
            duration_ms = (datetime.now(timezone.utc) - start_time).total_seconds() * 1000
            method = scope.get("method", "UNKNOWN")
            path = scope.get("path", "/")

            if path != "/health":
                log_level = logging.WARNING if response_status >= 400 else logging.INFO
                self.logger.log(
                    log_level,
                    f"{method} {path} {response_status} {duration_ms:.1f}ms",
                    extra={
                        "request_id": request_id,
                        "method": method,
                        "path": path,
                        "status": response_status,
                        "duration_ms": duration_ms,
                    },
                )
