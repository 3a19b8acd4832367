"""Request ID middleware.

The dashboard may send its own X-Request-ID so a failed upload can be traced
from the browser console to the service logs. Unusable values are replaced
with a fresh UUID.
"""

import re
import uuid
from collections.abc import Awaitable, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"
MAX_REQUEST_ID_LENGTH = 128

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._:-]")


def clean_request_id(raw: str) -> str:
    """Keep a caller supplied id if it survives trimming, else mint one."""
    candidate = _UNSAFE_CHARS.sub("", raw.strip())[:MAX_REQUEST_ID_LENGTH]
    return candidate or str(uuid.uuid4())


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Stores the id on request.state.request_id and echoes it in the response."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        request_id = clean_request_id(request.headers.get(REQUEST_ID_HEADER, ""))
        request.state.request_id = request_id
        response: Response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
