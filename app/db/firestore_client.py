"""
Firebase app and Firestore client initialization module.

This module provides a thread-safe singleton Firebase app and Firestore client.
Credentials come from FIREBASE_SERVICE_ACCOUNT_JSON (inline JSON or a path to
the key file); when it is unset the SDK falls back to application default
credentials, which is what Cloud Run and the emulator setups use.
"""

import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict

import firebase_admin
from firebase_admin import credentials, firestore
from google.cloud.firestore import Client

from app.config import get_settings

logger = logging.getLogger(__name__)

_app: firebase_admin.App | None = None
_client: Client | None = None
_lock = threading.Lock()


def _load_credentials(raw: str | None) -> credentials.Base:
    """Build credentials from inline JSON, a key file path, or ADC."""
    if not raw or not raw.strip():
        return credentials.ApplicationDefault()
    raw = raw.strip()
    if raw.startswith("{"):
        info: Dict[str, Any] = json.loads(raw)
        return credentials.Certificate(info)
    path = Path(raw)
    if not path.exists():
        raise FileNotFoundError(f"Service account file not found: {raw}")
    return credentials.Certificate(str(path))


def get_firebase_app() -> firebase_admin.App:
    """
    Return the shared Firebase app, initializing it once in a thread-safe way.

    Returns:
        firebase_admin.App: Initialized default app

    Raises:
        ValueError: If the credentials cannot be loaded or the app cannot start
    """
    global _app
    if _app is not None:
        return _app
    with _lock:
        if _app is not None:
            return _app
        settings = get_settings()
        options: Dict[str, Any] = {"projectId": settings.firebase_project_id}
        if settings.firebase_storage_bucket:
            options["storageBucket"] = settings.firebase_storage_bucket
        try:
            cred = _load_credentials(settings.firebase_service_account_json)
            _app = firebase_admin.initialize_app(cred, options)
        except Exception as e:
            raise ValueError(f"Failed to initialize Firebase app: {str(e)}") from e
        logger.info(f"Firebase app initialized for project: {settings.firebase_project_id}")
        return _app


def get_firestore_client() -> Client:
    """
    Return the shared Firestore client (singleton).

    Returns:
        Client: Firestore client bound to the default Firebase app

    Raises:
        ValueError: If the Firebase app cannot be initialized
    """
    global _client
    if _client is not None:
        return _client
    app = get_firebase_app()
    with _lock:
        if _client is None:
            _client = firestore.client(app)
        return _client
