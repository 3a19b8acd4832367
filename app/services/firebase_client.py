"""
Firebase Storage client for documents teachers uploaded from the dashboard.

The dashboard stores the original file in Firebase Storage and passes its
gs:// URL to the import endpoint; this module downloads it with the shared
Firebase app credentials.
"""

import logging
import re
from typing import Any, Optional, Tuple

from firebase_admin import storage

from app.db.firestore_client import get_firebase_app

logger = logging.getLogger(__name__)


class ObjectTooLargeError(ValueError):
    """The Storage object is bigger than the caller allows."""


def parse_gs_url(url: str) -> Tuple[str, str]:
    """Parse gs://bucket/path into (bucket, path). Path is without leading slash."""
    m = re.match(r"gs://([^/]+)/(.+)", url.strip())
    if not m:
        raise ValueError(f"Invalid gs:// URL: {url}")
    return m.group(1), m.group(2).lstrip("/")


def _get_blob(storage_url: str) -> Optional[Any]:
    # get_blob loads metadata (size included) and returns None for missing objects
    bucket_name, path = parse_gs_url(storage_url)
    bucket = storage.bucket(bucket_name, app=get_firebase_app())
    return bucket.get_blob(path)


def download_as_bytes(storage_url: str, max_bytes: Optional[int] = None) -> bytes:
    """
    Download the object at a gs:// URL into memory.

    Args:
        storage_url: gs://bucket/path of the object
        max_bytes: Refuse objects larger than this many bytes

    Raises:
        ValueError: If the URL is not a gs:// URL
        FileNotFoundError: If the object does not exist
        ObjectTooLargeError: If the object exceeds max_bytes
    """
    blob = _get_blob(storage_url)
    if blob is None:
        raise FileNotFoundError(f"Storage object not found: {storage_url}")
    if max_bytes is not None and blob.size is not None and blob.size > max_bytes:
        raise ObjectTooLargeError(f"{storage_url} is {blob.size} bytes, limit is {max_bytes}")

    data: bytes = blob.download_as_bytes()
    if max_bytes is not None and len(data) > max_bytes:
        raise ObjectTooLargeError(f"{storage_url} is {len(data)} bytes, limit is {max_bytes}")
    logger.info(f"Downloaded {storage_url} ({len(data)} bytes)")
    return data
