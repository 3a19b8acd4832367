"""Per-client rate limits for the content endpoints, backed by slowapi.

Extraction is CPU heavy, so uploads and imports get a much lower limit than
text classification or record reads.
"""

import json
from typing import Any, FrozenSet

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.middleware.base import BaseHTTPMiddleware

from app.config import get_settings

DEFAULT_RETRY_AFTER = 60

RATE_LIMITS = {
    "upload": "10/minute",     # POST /api/contents/upload and /import
    "classify": "60/minute",   # POST /api/contents/classify
    "contents": "100/minute",  # GET/PATCH/DELETE /api/contents[/{id}]
}


def trusted_proxy_ips() -> FrozenSet[str]:
    """Parse TRUSTED_PROXIES into a set of addresses."""
    raw = get_settings().trusted_proxies
    return frozenset(ip.strip() for ip in raw.split(",") if ip.strip())


def get_client_ip(request: Request) -> str:
    """
    Rate limit key: the peer address, or the first X-Forwarded-For hop when
    the peer is a trusted proxy. Untrusted peers cannot pick their own key.
    """
    peer: str = get_remote_address(request)
    if peer not in trusted_proxy_ips():
        return peer

    forwarded_for = request.headers.get("X-Forwarded-For", "")
    first_hop = forwarded_for.split(",")[0].strip()
    return first_hop or peer


# In-memory storage, so limits are per process
limiter = Limiter(key_func=get_client_ip)


def get_limiter() -> Limiter:
    """Return the limiter shared by the route decorators and the app state."""
    return limiter


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """Turn slowapi's exception into a 429 JSON body with Retry-After."""
    retry_after = getattr(exc, "retry_after", DEFAULT_RETRY_AFTER)
    body = {
        "detail": "Rate limit exceeded",
        "message": f"Too many requests. Please retry after {retry_after} seconds.",
        "retry_after": retry_after,
    }
    headers = {"Retry-After": str(retry_after), "X-RateLimit-Remaining": "0"}
    limit_text = getattr(exc, "detail", None)
    if limit_text:
        headers["X-RateLimit-Limit"] = str(limit_text)

    return Response(
        content=json.dumps(body),
        status_code=429,
        media_type="application/json",
        headers=headers,
    )


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Adds X-RateLimit-Limit and X-RateLimit-Remaining to responses of
    rate-limited routes.

    slowapi records the limit it checked in request.state.view_rate_limit;
    the remaining count is read back from the limiter's window.
    """

    async def dispatch(self, request: Request, call_next: Any) -> Response:
        response: Response = await call_next(request)

        checked = getattr(request.state, "view_rate_limit", None)
        if checked is not None:
            item, keys = checked
            window = limiter.limiter.get_window_stats(item, *keys)
            response.headers["X-RateLimit-Limit"] = str(item.amount)
            response.headers["X-RateLimit-Remaining"] = str(window[1])

        return response
