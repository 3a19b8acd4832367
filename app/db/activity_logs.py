"""Database functions for teacher activity logs.

Every content created or removed through the service leaves a short
human-readable entry in the logs collection, which the admin dashboard
shows as its activity feed.
"""

import asyncio

from google.cloud import firestore
from google.cloud.firestore_v1 import SERVER_TIMESTAMP

from app.config import get_settings


def _collection(client: firestore.Client) -> firestore.CollectionReference:
    return client.collection(get_settings().logs_collection)


async def add_activity_log(
    client: firestore.Client,
    teacher_name: str,
    description: str,
) -> str:
    """Record a teacher activity.

    Args:
        client: Firestore client instance
        teacher_name: Display name of the acting teacher
        description: What happened, e.g. "Uploaded lesson: Shapes"

    Returns:
        str: Document id of the log entry

    Raises:
        RuntimeError: If the insert fails
    """
    entry = {
        "teacherName": teacher_name or "Unknown teacher",
        "activityDescription": description,
        "createdAt": SERVER_TIMESTAMP,
    }
    try:
        _, doc_ref = await asyncio.to_thread(lambda: _collection(client).add(entry))
    except Exception as e:
        raise RuntimeError(f"Failed to add activity log: {str(e)}") from e
    return str(doc_ref.id)
