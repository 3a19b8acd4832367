"""Tests for rate limiting middleware."""

import json
from unittest.mock import MagicMock, patch

import pytest
from fastapi import Request
from fastapi.testclient import TestClient

from app.config import get_settings
from app.main import app
from app.middleware.rate_limit import (
    get_client_ip,
    get_limiter,
    rate_limit_exceeded_handler,
    RATE_LIMITS,
)


@pytest.fixture
def client() -> TestClient:
    """Create FastAPI test client."""
    return TestClient(app)


def _request(headers: dict) -> MagicMock:
    mock_request = MagicMock(spec=Request)
    mock_request.headers = headers
    return mock_request


# Client IP Detection Tests


@patch("app.middleware.rate_limit.get_remote_address", return_value="192.168.1.100")
def test_get_client_ip_direct(_mock_remote: MagicMock) -> None:
    """Without trusted proxies the direct address is used."""
    assert get_client_ip(_request({})) == "192.168.1.100"


@patch("app.middleware.rate_limit.get_remote_address", return_value="203.0.113.9")
def test_forwarded_for_ignored_from_untrusted_peer(_mock_remote: MagicMock) -> None:
    """A client cannot spoof its address through X-Forwarded-For."""
    assert get_client_ip(_request({"X-Forwarded-For": "10.0.0.1"})) == "203.0.113.9"


@patch("app.middleware.rate_limit.get_remote_address", return_value="10.0.0.2")
def test_forwarded_for_from_trusted_proxy(_mock_remote: MagicMock, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TRUSTED_PROXIES", "10.0.0.2, 10.0.0.3")
    get_settings.cache_clear()

    ip = get_client_ip(_request({"X-Forwarded-For": "  198.51.100.7 , 10.0.0.2"}))

    assert ip == "198.51.100.7"


@patch("app.middleware.rate_limit.get_remote_address", return_value="10.0.0.2")
def test_trusted_proxy_without_header(_mock_remote: MagicMock, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TRUSTED_PROXIES", "10.0.0.2")
    get_settings.cache_clear()

    assert get_client_ip(_request({})) == "10.0.0.2"


# Rate Limit Configuration Tests


def test_rate_limits_configuration() -> None:
    """Test rate limit configurations are properly set."""
    assert RATE_LIMITS["upload"] == "10/minute"
    assert RATE_LIMITS["classify"] == "60/minute"
    assert RATE_LIMITS["contents"] == "100/minute"


def test_limiter_attached_to_app() -> None:
    assert app.state.limiter is get_limiter()


# Rate Limit Exceeded Handler Tests


def test_rate_limit_exceeded_handler() -> None:
    """Test rate limit exceeded handler returns proper response."""
    mock_exc = MagicMock()
    mock_exc.retry_after = 45
    mock_exc.detail = "10 per 1 minute"

    response = rate_limit_exceeded_handler(MagicMock(spec=Request), mock_exc)

    assert response.status_code == 429
    assert response.headers["Retry-After"] == "45"
    assert response.headers["X-RateLimit-Remaining"] == "0"
    assert response.headers["X-RateLimit-Limit"] == "10 per 1 minute"

    body = json.loads(response.body.decode())
    assert body["detail"] == "Rate limit exceeded"
    assert body["retry_after"] == 45
    assert "45 seconds" in body["message"]


def test_rate_limit_exceeded_handler_default_retry() -> None:
    """Test rate limit exceeded handler with default retry time."""
    mock_exc = MagicMock(spec=[])
    mock_exc.detail = "10 per 1 minute"

    response = rate_limit_exceeded_handler(MagicMock(spec=Request), mock_exc)

    assert response.status_code == 429
    assert response.headers["Retry-After"] == "60"


# Integration Tests with FastAPI


def test_classify_rate_limited(client: TestClient) -> None:
    """The classify endpoint allows 60 requests a minute."""
    for _ in range(60):
        assert client.post("/api/contents/classify", json={"text": "hi"}).status_code == 200

    response = client.post("/api/contents/classify", json={"text": "hi"})

    assert response.status_code == 429
    assert response.json()["detail"] == "Rate limit exceeded"


def test_health_endpoint_no_rate_limit(client: TestClient) -> None:
    """Test that health endpoint is not rate limited."""
    with patch("app.main.get_firestore_client"):
        for _ in range(30):
            response = client.get("/health")
            assert response.status_code in [200, 503]


def test_rate_limit_headers_on_limited_route(client: TestClient) -> None:
    """Limited routes report the limit and the requests left in the window."""
    first = client.post("/api/contents/classify", json={"text": "hi"})
    second = client.post("/api/contents/classify", json={"text": "hi"})

    assert first.headers["X-RateLimit-Limit"] == "60"
    assert first.headers["X-RateLimit-Remaining"] == "59"
    assert second.headers["X-RateLimit-Remaining"] == "58"


def test_no_rate_limit_headers_on_unlimited_route(client: TestClient) -> None:
    response = client.get("/version")
    assert "X-RateLimit-Remaining" not in response.headers
