"""Shared fixtures: settings come from a fixed test environment."""

from typing import Iterator

import pytest

from app.config import get_settings
from app.middleware.rate_limit import get_limiter


@pytest.fixture(autouse=True)
def test_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Point settings at a dummy Firebase project and reset cached state."""
    monkeypatch.setenv("FIREBASE_PROJECT_ID", "easymind-test")
    monkeypatch.delenv("FIREBASE_SERVICE_ACCOUNT_JSON", raising=False)
    monkeypatch.delenv("FIREBASE_STORAGE_BUCKET", raising=False)
    monkeypatch.delenv("TRUSTED_PROXIES", raising=False)
    get_settings.cache_clear()
    get_limiter().reset()
    yield
    get_settings.cache_clear()
