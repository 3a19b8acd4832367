"""Tests for teacher activity log functions."""

from unittest.mock import MagicMock

import pytest
from google.cloud.firestore_v1 import SERVER_TIMESTAMP

from app.db.activity_logs import add_activity_log


@pytest.fixture
def mock_client():
    client = MagicMock()
    doc_ref = MagicMock()
    doc_ref.id = "log-1"
    client.collection.return_value.add.return_value = (None, doc_ref)
    return client


@pytest.mark.asyncio
async def test_add_activity_log(mock_client):
    log_id = await add_activity_log(mock_client, "Ms. Reyes", "Uploaded lesson: Shapes")

    assert log_id == "log-1"
    mock_client.collection.assert_called_with("logs")
    entry = mock_client.collection.return_value.add.call_args.args[0]
    assert entry == {
        "teacherName": "Ms. Reyes",
        "activityDescription": "Uploaded lesson: Shapes",
        "createdAt": SERVER_TIMESTAMP,
    }


@pytest.mark.asyncio
async def test_add_activity_log_without_name(mock_client):
    await add_activity_log(mock_client, "", "Deleted quiz: Colors")

    entry = mock_client.collection.return_value.add.call_args.args[0]
    assert entry["teacherName"] == "Unknown teacher"


@pytest.mark.asyncio
async def test_add_activity_log_failure(mock_client):
    mock_client.collection.return_value.add.side_effect = Exception("offline")

    with pytest.raises(RuntimeError) as exc_info:
        await add_activity_log(mock_client, "Ms. Reyes", "Uploaded lesson: Shapes")
    assert "offline" in str(exc_info.value)
