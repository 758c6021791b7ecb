"""
Structured Logging Middleware

JSON-formatted request logging for the panel. Every request gets an ID that
is attached to all log records emitted while it is handled, including those
of event listeners and plugins.
"""

import json
import logging
import time
import uuid
from collections.abc import Callable
from contextvars import ContextVar
from datetime import datetime, timezone

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

# Context variable for request ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

_EXTRA_FIELDS = ("method", "path", "status_code", "duration_ms", "client_ip", "event_name", "plugin")


class RequestIdFilter(logging.Filter):
    """Logging filter to add request ID to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get("")
        return True


class StructuredFormatter(logging.Formatter):
    """JSON formatter: one object per log line."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", ""),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key in _EXTRA_FIELDS:
            if hasattr(record, key):
                log_data[key] = getattr(record, key)

        return json.dumps(log_data, default=str)


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware for structured request/response logging.

    - Unique request ID (taken from X-Request-ID when the client sends one)
    - Request timing
    - Client IP tracking
    """

    def __init__(self, app: ASGIApp, logger_name: str = "hostpanel.access"):
        super().__init__(app)
        self.logger = logging.getLogger(logger_name)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        token = request_id_var.set(request_id)
        start_time = time.perf_counter()

        client_ip = request.headers.get("X-Forwarded-For", request.client.host if request.client else "unknown")
        if client_ip and "," in client_ip:
            client_ip = client_ip.split(",")[0].strip()

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            self._log_request(request, 500, duration_ms, client_ip, error=str(e))
            request_id_var.reset(token)
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000
        response.headers["X-Request-ID"] = request_id
        self._log_request(request, response.status_code, duration_ms, client_ip)
        request_id_var.reset(token)
        return response

    def _log_request(
        self,
        request: Request,
        status_code: int,
        duration_ms: float,
        client_ip: str,
        error: str | None = None,
    ) -> None:
        if request.url.path in ("/health", "/favicon.ico"):
            return

        if status_code >= 500:
            log_level = logging.ERROR
        elif status_code >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        extra = {
            "method": request.method,
            "path": request.url.path,
            "status_code": status_code,
            "duration_ms": round(duration_ms, 2),
            "client_ip": client_ip,
        }

        message = f"{request.method} {request.url.path} - {status_code} ({duration_ms:.2f}ms)"
        if error:
            message += f" - Error: {error}"

        self.logger.log(log_level, message, extra=extra)


def setup_structured_logging(log_level: str = "INFO", json_format: bool = True, log_file: str | None = None) -> None:
    """
    Configure the root logger for the panel.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        json_format: Use JSON formatter (True for production)
        log_file: Optional file path for log output
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper()))
    root_logger.handlers.clear()

    handler = logging.FileHandler(log_file) if log_file else logging.StreamHandler()
    if json_format:
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] %(message)s"))
    handler.addFilter(RequestIdFilter())
    root_logger.addHandler(handler)

    loggers_config = {
        "hostpanel": log_level,
        "hostpanel.access": log_level,
        "uvicorn": "WARNING",
        "uvicorn.access": "WARNING",
    }
    for logger_name, level in loggers_config.items():
        logging.getLogger(logger_name).setLevel(getattr(logging, level.upper()))


def get_request_id() -> str:
    """Get the current request ID from context."""
    return request_id_var.get("")
