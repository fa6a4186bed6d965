"""Logging configuration for the BasketRec API.

Strategy and tracker logs carry their context in ``extra``; the JSON
formatter below flattens that context into one object per line. The request
middleware adds one summary line per HTTP request.
"""

import json
import logging
import sys
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

REQUEST_ID_HEADER = "X-Request-ID"

# Attributes every LogRecord has; anything else came in through ``extra``
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "taskName"}

# Third-party loggers that are too chatty at INFO
_QUIET_LOGGERS = ("uvicorn", "uvicorn.access")


class JSONFormatter(logging.Formatter):
    """Renders a record and its ``extra`` context as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
        }
        payload.update(
            (key, value) for key, value in vars(record).items() if key not in _RECORD_ATTRS
        )

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        # Enums and datetimes in extras are rendered with str()
        return json.dumps(payload, default=str)


def setup_logging(log_level: str = "INFO") -> None:
    """Send all logs to stdout as JSON lines.

    Args:
        log_level: Root level name, e.g. "DEBUG" or "INFO".
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(log_level.upper())

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs one line per request and echoes the request id.

    The id is taken from the ``X-Request-ID`` header when the caller sends
    one, otherwise a new UUID is assigned.
    """

    async def dispatch(self, request: Request, call_next: Any) -> Response:
        logger = logging.getLogger("basketrec.api.requests")
        context = {
            "request_id": request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4()),
            "method": request.method,
            "path": request.url.path,
        }
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            context["duration_ms"] = round((time.perf_counter() - started) * 1000, 2)
            logger.exception(f"{request.method} {request.url.path} crashed: {e}", extra=context)
            raise

        context["status_code"] = response.status_code
        context["duration_ms"] = round((time.perf_counter() - started) * 1000, 2)
        level = logging.ERROR if response.status_code >= 500 else logging.INFO
        logger.log(level, f"{request.method} {request.url.path} -> {response.status_code}", extra=context)

        response.headers[REQUEST_ID_HEADER] = context["request_id"]
        return response
