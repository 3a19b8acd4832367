"""Tests for retry logic with exponential backoff."""

from unittest.mock import MagicMock, patch

import pytest
from google.api_core import exceptions as gexc

from app.utils.retry import (
    MAX_RETRIES,
    RETRYABLE_STATUS_CODES,
    _backoff_delay,
    is_transient,
    retry_with_backoff,
)


class CodedError(Exception):
    """Error that only carries a status code."""

    def __init__(self, message: str, code: int):
        super().__init__(message)
        self.code = code


# Tests for is_transient


@pytest.mark.parametrize("exception", [
    gexc.ServiceUnavailable("down"),
    gexc.DeadlineExceeded("slow"),
    gexc.InternalServerError("oops"),
    gexc.TooManyRequests("quota"),
    gexc.Aborted("contention"),
    ConnectionError("reset"),
    TimeoutError("timed out"),
])
def test_transient_exceptions(exception):
    assert is_transient(exception)


@pytest.mark.parametrize("exception", [
    gexc.NotFound("missing"),
    gexc.PermissionDenied("rules"),
    gexc.InvalidArgument("bad field"),
    ValueError("bad input"),
])
def test_non_transient_exceptions(exception):
    assert not is_transient(exception)


@pytest.mark.parametrize("code", sorted(RETRYABLE_STATUS_CODES))
def test_retryable_status_codes(code):
    assert is_transient(CodedError("error", code))


def test_non_retryable_status_code():
    assert not is_transient(CodedError("error", 404))


def test_backoff_delay_grows_exponentially():
    with patch("app.utils.retry.random.random", return_value=0.0):
        assert _backoff_delay(0, 0.5, 0.5) == 0.5
        assert _backoff_delay(1, 0.5, 0.5) == 1.0
        assert _backoff_delay(3, 0.5, 0.5) == 4.0


# Sync wrapper


@patch("app.utils.retry.time.sleep")
def test_sync_succeeds_after_transient_failures(mock_sleep):
    func = MagicMock(side_effect=[gexc.ServiceUnavailable("down"), gexc.Aborted("busy"), "doc-1"])
    func.__name__ = "insert"

    result = retry_with_backoff()(func)()

    assert result == "doc-1"
    assert func.call_count == 3
    assert mock_sleep.call_count == 2


@patch("app.utils.retry.time.sleep")
def test_sync_non_transient_raises_immediately(mock_sleep):
    func = MagicMock(side_effect=gexc.PermissionDenied("rules"))
    func.__name__ = "insert"

    with pytest.raises(gexc.PermissionDenied):
        retry_with_backoff()(func)()

    assert func.call_count == 1
    mock_sleep.assert_not_called()


@patch("app.utils.retry.time.sleep")
def test_sync_gives_up_after_max_retries(mock_sleep):
    func = MagicMock(side_effect=gexc.ServiceUnavailable("down"))
    func.__name__ = "insert"

    with pytest.raises(gexc.ServiceUnavailable):
        retry_with_backoff()(func)()

    assert func.call_count == MAX_RETRIES + 1
    assert mock_sleep.call_count == MAX_RETRIES


# Async wrapper


@pytest.mark.asyncio
async def test_async_retries_transient_errors():
    calls = {"count": 0}

    @retry_with_backoff(max_retries=2, base_delay=0.0, max_jitter=0.0)
    async def flaky():
        calls["count"] += 1
        if calls["count"] < 3:
            raise gexc.DeadlineExceeded("slow")
        return "ok"

    assert await flaky() == "ok"
    assert calls["count"] == 3


@pytest.mark.asyncio
async def test_async_gives_up():
    calls = {"count": 0}

    @retry_with_backoff(max_retries=1, base_delay=0.0, max_jitter=0.0)
    async def always_down():
        calls["count"] += 1
        raise gexc.ServiceUnavailable("down")

    with pytest.raises(gexc.ServiceUnavailable):
        await always_down()
    assert calls["count"] == 2


def test_wraps_preserves_name():
    @retry_with_backoff()
    def write_record():
        return None

    assert write_record.__name__ == "write_record"
