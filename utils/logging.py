"""
Structured logging for the job tracker Lambdas.

Each line is one JSON object so CloudWatch Logs Insights can filter on fields
directly. Fields bound with `bind_request_context` (request id, principal) are
stamped on every record emitted while the invocation runs.
"""

import json
import logging
import os
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

# Attributes present on every LogRecord; anything else arrived through `extra=`.
_STANDARD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime"}

# Request headers that must never reach the logs.
_SENSITIVE_HEADERS = frozenset({"authorization", "cookie", "x-api-key"})

_request_context: ContextVar[Dict[str, Any]] = ContextVar(
    "request_context", default={}
)


def bind_request_context(**fields: Any) -> None:
    """Add fields to every record logged for the rest of this invocation."""
    _request_context.set({**_request_context.get(), **fields})


def clear_request_context() -> None:
    _request_context.set({})


class RequestContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _request_context.get().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


class StructuredFormatter(logging.Formatter):
    """Render a record, its extras and any traceback as a JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        entry.update(
            (key, value)
            for key, value in record.__dict__.items()
            if key not in _STANDARD_ATTRS
        )
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def setup_logger(
    name: str, level: Optional[str] = None, structured: bool = True
) -> logging.Logger:
    """
    Return a stdout logger, configuring it on first use.

    Args:
        name: Logger name (typically __name__)
        level: Log level; falls back to LOG_LEVEL, then INFO
        structured: JSON lines when True, plain text otherwise
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    level_name = (level or os.environ.get("LOG_LEVEL") or "INFO").upper()
    logger.setLevel(getattr(logging, level_name, logging.INFO))

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestContextFilter())
    handler.setFormatter(
        StructuredFormatter()
        if structured
        else logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    )
    logger.addHandler(handler)
    logger.propagate = False
    return logger


def safe_headers(headers: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Copy request headers with credentials masked."""
    return {
        key: ("***" if str(key).lower() in _SENSITIVE_HEADERS else value)
        for key, value in (headers or {}).items()
    }


def log_lambda_event(
    logger: logging.Logger, event: Dict[str, Any], context: Any
) -> None:
    """Log the route and caller metadata of an API event. Bodies are never logged."""
    request_context = event.get("requestContext") or {}
    http = request_context.get("http") or {}
    method = http.get("method") or event.get("httpMethod")
    path = event.get("rawPath") or event.get("path")

    logger.info(
        "Request received",
        extra={
            "route": f"{method} {path}",
            "stage": request_context.get("stage"),
            "source_ip": http.get("sourceIp")
            or (request_context.get("identity") or {}).get("sourceIp"),
            "headers": safe_headers(event.get("headers")),
        },
    )


def log_lambda_response(
    logger: logging.Logger,
    response: Dict[str, Any],
    execution_time_ms: Optional[float] = None,
) -> None:
    logger.info(
        "Request completed",
        extra={
            "status_code": response.get("statusCode"),
            "duration_ms": round(execution_time_ms or 0.0, 2),
            "response_bytes": len(response.get("body") or ""),
        },
    )


def log_error(
    logger: logging.Logger, error: Exception, context: Optional[Dict[str, Any]] = None
) -> None:
    """
    Log an unexpected exception with its traceback.

    Args:
        logger: Logger instance
        error: The exception being handled
        context: Extra fields to attach to the record
    """
    logger.error(
        "Unhandled %s: %s",
        type(error).__name__,
        error,
        extra={"error_type": type(error).__name__, **(context or {})},
        exc_info=error,
    )
