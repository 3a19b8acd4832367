"""Structured request logging.

Every request produces one JSON object on stdout. Conversion endpoints
report what they created through response headers, which are copied into
the log line so uploads can be audited without logging document content.
"""

import json
import logging
import sys
import time
from typing import Any, Awaitable, Callable, Dict

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logging.basicConfig(
    level=logging.INFO,
    format="%(message)s",
    stream=sys.stdout,
)

logger = logging.getLogger(__name__)

# Response header -> log field
CONTEXT_HEADERS: Dict[str, str] = {
    "X-Content-ID": "content_id",
    "X-Content-Type": "content_type",
}


def configure_logging(level: str) -> None:
    """Apply the configured log level to the root logger."""
    logging.getLogger().setLevel(level)


def _level_for(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs method, path, status, latency, client IP and request id per request.

    Expects RequestIDMiddleware to run first; requests without an id are
    logged with request_id "unknown". File contents, extracted text and
    request/response bodies are never logged.
    """

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        started = time.perf_counter()
        entry: Dict[str, Any] = {
            "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            "request_id": getattr(request.state, "request_id", "unknown"),
            "method": request.method,
            "path": request.url.path,
            "client_ip": request.client.host if request.client else "unknown",
        }

        try:
            response = await call_next(request)
        except Exception as e:
            entry.update(
                status_code=500,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
                error_type=type(e).__name__,
                error=str(e),
            )
            logger.error(json.dumps(entry), exc_info=True)
            raise

        entry["status_code"] = response.status_code
        entry["duration_ms"] = round((time.perf_counter() - started) * 1000, 2)
        entry.update({
            field: response.headers[header]
            for header, field in CONTEXT_HEADERS.items()
            if header in response.headers
        })

        logger.log(_level_for(response.status_code), json.dumps(entry))
        return response
