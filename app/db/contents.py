"""Database functions for managing content records.

This module provides insert, get, update, delete, query and real-time
subscription over the contents collection in Firestore. The Firestore SDK
is synchronous, so the async functions run it in a worker thread.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from google.api_core import exceptions as gexc
from google.cloud import firestore
from google.cloud.firestore_v1 import SERVER_TIMESTAMP
from google.cloud.firestore_v1.base_query import FieldFilter
from google.cloud.firestore_v1.watch import Watch

from app.config import get_settings
from app.models.content import ContentChange, ContentFilters
from app.utils.retry import retry_with_backoff

logger = logging.getLogger(__name__)

ASSESSMENT_TYPES: List[str] = ["assessment", "interactive-assessment"]

# Firestore caps 'in' filters at 30 values
LESSON_TYPES: List[str] = [
    "material",
    "uploaded-material",
    "interactive-lesson",
    "game-activity",
    "lesson",
    "game",
    "activity",
    "interactive-colors",
    "interactive-alphabet",
    "interactive-shapes",
    "interactive-numbers",
    "interactive-animals",
    "interactive-emotions",
    "interactive-daily_routines",
    "interactive-vocational",
]

REQUIRED_FIELDS = ("type", "title", "createdBy")


def _collection(client: firestore.Client) -> firestore.CollectionReference:
    return client.collection(get_settings().contents_collection)


def to_json_safe(value: Any) -> Any:
    """Convert a stored record into JSON-serialisable data.

    Timestamps become ISO strings and unresolved server timestamp sentinels
    become None.
    """
    if value is SERVER_TIMESTAMP:
        return None
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: to_json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json_safe(v) for v in value]
    return value


@retry_with_backoff()
def _insert(collection_ref: firestore.CollectionReference, record: Dict[str, Any]) -> str:
    _, doc_ref = collection_ref.add(record)
    return str(doc_ref.id)


async def create_content(client: firestore.Client, record: Dict[str, Any]) -> str:
    """Insert a new content record.

    Args:
        client: Firestore client instance
        record: Content record, typically from build_content_record()

    Returns:
        str: Document id of the created record

    Raises:
        ValueError: If required fields (type, title, createdBy) are missing
        RuntimeError: If the insert fails after retries
    """
    missing = [f for f in REQUIRED_FIELDS if not record.get(f)]
    if missing:
        raise ValueError(f"Missing required content fields: {', '.join(missing)}")

    to_store = dict(record)
    to_store.setdefault("createdAt", SERVER_TIMESTAMP)

    try:
        content_id = await asyncio.to_thread(_insert, _collection(client), to_store)
    except Exception as e:
        raise RuntimeError(f"Failed to insert content: {str(e)}") from e

    logger.info(f"Created content {content_id} ({record['type']}) for {record['createdBy']}")
    return content_id


async def get_content(client: firestore.Client, content_id: str) -> Optional[Dict[str, Any]]:
    """Retrieve a content record by id.

    Returns:
        Record with its ``id`` added, or None if it does not exist

    Raises:
        RuntimeError: If the read fails
    """
    try:
        snapshot = await asyncio.to_thread(
            lambda: _collection(client).document(content_id).get()
        )
    except Exception as e:
        raise RuntimeError(f"Failed to retrieve content: {str(e)}") from e

    if not snapshot.exists:
        return None
    data = snapshot.to_dict() or {}
    data["id"] = snapshot.id
    return data


async def update_content(
    client: firestore.Client,
    content_id: str,
    updates: Dict[str, Any],
) -> None:
    """Apply a partial update to a content record and stamp updatedAt.

    Raises:
        ValueError: If updates is empty
        LookupError: If the record does not exist
        RuntimeError: If the update fails
    """
    if not updates:
        raise ValueError("No fields to update")

    payload = {**updates, "updatedAt": SERVER_TIMESTAMP}
    try:
        await asyncio.to_thread(
            lambda: _collection(client).document(content_id).update(payload)
        )
    except gexc.NotFound as e:
        raise LookupError(f"Content {content_id} not found") from e
    except Exception as e:
        raise RuntimeError(f"Failed to update content: {str(e)}") from e


async def delete_content(client: firestore.Client, content_id: str) -> bool:
    """Delete a content record. Returns False if it did not exist."""
    doc_ref = _collection(client).document(content_id)
    try:
        snapshot = await asyncio.to_thread(doc_ref.get)
        if not snapshot.exists:
            return False
        await asyncio.to_thread(doc_ref.delete)
    except Exception as e:
        raise RuntimeError(f"Failed to delete content: {str(e)}") from e
    return True


def build_query(client: firestore.Client, filters: ContentFilters) -> firestore.Query:
    """Translate ContentFilters into a Firestore query ordered newest first."""
    query: Any = _collection(client)
    if filters.created_by:
        query = query.where(filter=FieldFilter("createdBy", "==", filters.created_by))
    if filters.assessments is True:
        query = query.where(filter=FieldFilter("type", "in", ASSESSMENT_TYPES))
    elif filters.assessments is False:
        query = query.where(filter=FieldFilter("type", "in", LESSON_TYPES))
    if filters.since is not None:
        query = query.where(filter=FieldFilter("createdAt", ">=", filters.since))
    if filters.until is not None:
        query = query.where(filter=FieldFilter("createdAt", "<", filters.until))
    query = query.order_by("createdAt", direction=firestore.Query.DESCENDING)
    if filters.limit is not None:
        query = query.limit(filters.limit)
    return query


async def list_contents(
    client: firestore.Client,
    filters: Optional[ContentFilters] = None,
) -> List[Dict[str, Any]]:
    """Query content records, newest first.

    Args:
        client: Firestore client instance
        filters: Owner, type group and createdAt range filters

    Returns:
        List of records, each with its ``id`` added

    Raises:
        RuntimeError: If the query fails
    """
    query = build_query(client, filters or ContentFilters())
    try:
        snapshots = await asyncio.to_thread(lambda: list(query.stream()))
    except Exception as e:
        raise RuntimeError(f"Failed to list contents: {str(e)}") from e

    results: List[Dict[str, Any]] = []
    for snapshot in snapshots:
        data = snapshot.to_dict() or {}
        data["id"] = snapshot.id
        results.append(data)
    return results


def subscribe_contents(
    client: firestore.Client,
    filters: Optional[ContentFilters],
    callback: Callable[[ContentChange], None],
) -> Watch:
    """Stream change events for records matching the filters.

    The callback runs on the SDK's listener thread once per changed
    document. Call ``unsubscribe()`` on the returned watch to stop.
    """
    query = build_query(client, filters or ContentFilters())

    def on_snapshot(_docs: Any, changes: List[Any], _read_time: Any) -> None:
        for change in changes:
            document = change.document
            event = ContentChange(
                kind=change.type.name.lower(),
                id=document.id,
                data=document.to_dict() or {},
            )
            try:
                callback(event)
            except Exception:
                logger.error(f"Content change callback failed for {document.id}", exc_info=True)

    return query.on_snapshot(on_snapshot)
