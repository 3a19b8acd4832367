"""Tests for content record database functions."""

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest
from google.api_core import exceptions as gexc
from google.cloud.firestore_v1 import SERVER_TIMESTAMP

from app.db.contents import (
    ASSESSMENT_TYPES,
    LESSON_TYPES,
    build_query,
    create_content,
    delete_content,
    get_content,
    list_contents,
    subscribe_contents,
    to_json_safe,
    update_content,
)
from app.models.content import ContentChange, ContentFilters


@pytest.fixture
def mock_client():
    """Firestore client whose contents collection is a MagicMock."""
    client = MagicMock()
    collection = MagicMock()
    client.collection.return_value = collection
    return client


def _snapshot(doc_id: str, data, exists: bool = True):
    snapshot = MagicMock()
    snapshot.id = doc_id
    snapshot.exists = exists
    snapshot.to_dict.return_value = data
    return snapshot


def _filters_applied(query_mock):
    """Return (field, op, value) of every FieldFilter passed to where()."""
    applied = []
    current = query_mock
    while True:
        calls = current.where.call_args_list
        if not calls:
            return applied
        field_filter = calls[0].kwargs["filter"]
        applied.append((field_filter.field_path, field_filter.op_string, field_filter.value))
        current = current.where.return_value


class TestCreateContent:

    @pytest.mark.asyncio
    async def test_inserts_record(self, mock_client):
        doc_ref = MagicMock()
        doc_ref.id = "content-1"
        mock_client.collection.return_value.add.return_value = (None, doc_ref)

        content_id = await create_content(
            mock_client, {"type": "lesson", "title": "Shapes", "createdBy": "t1"}
        )

        assert content_id == "content-1"
        mock_client.collection.assert_called_with("contents")
        stored = mock_client.collection.return_value.add.call_args.args[0]
        assert stored["title"] == "Shapes"
        assert stored["createdAt"] is SERVER_TIMESTAMP

    @pytest.mark.asyncio
    async def test_missing_required_fields(self, mock_client):
        with pytest.raises(ValueError) as exc_info:
            await create_content(mock_client, {"type": "lesson"})

        assert "title" in str(exc_info.value)
        assert "createdBy" in str(exc_info.value)
        mock_client.collection.return_value.add.assert_not_called()

    @pytest.mark.asyncio
    @patch("app.utils.retry.time.sleep")
    async def test_transient_error_retried(self, _sleep, mock_client):
        doc_ref = MagicMock()
        doc_ref.id = "content-2"
        mock_client.collection.return_value.add.side_effect = [
            gexc.ServiceUnavailable("down"),
            (None, doc_ref),
        ]

        content_id = await create_content(
            mock_client, {"type": "game", "title": "Match", "createdBy": "t1"}
        )

        assert content_id == "content-2"
        assert mock_client.collection.return_value.add.call_count == 2

    @pytest.mark.asyncio
    async def test_permanent_error_wrapped(self, mock_client):
        mock_client.collection.return_value.add.side_effect = gexc.PermissionDenied("rules")

        with pytest.raises(RuntimeError) as exc_info:
            await create_content(mock_client, {"type": "game", "title": "Match", "createdBy": "t1"})

        assert "Failed to insert content" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_uses_configured_collection(self, mock_client, monkeypatch):
        from app.config import get_settings

        monkeypatch.setenv("CONTENTS_COLLECTION", "staging_contents")
        get_settings.cache_clear()
        doc_ref = MagicMock()
        doc_ref.id = "x"
        mock_client.collection.return_value.add.return_value = (None, doc_ref)

        await create_content(mock_client, {"type": "lesson", "title": "T", "createdBy": "t1"})

        mock_client.collection.assert_called_with("staging_contents")


class TestGetContent:

    @pytest.mark.asyncio
    async def test_found(self, mock_client):
        mock_client.collection.return_value.document.return_value.get.return_value = _snapshot(
            "c1", {"title": "Shapes"}
        )

        record = await get_content(mock_client, "c1")

        assert record == {"title": "Shapes", "id": "c1"}
        mock_client.collection.return_value.document.assert_called_with("c1")

    @pytest.mark.asyncio
    async def test_missing_returns_none(self, mock_client):
        mock_client.collection.return_value.document.return_value.get.return_value = _snapshot(
            "c1", None, exists=False
        )

        assert await get_content(mock_client, "c1") is None

    @pytest.mark.asyncio
    async def test_read_failure(self, mock_client):
        mock_client.collection.return_value.document.return_value.get.side_effect = Exception("boom")

        with pytest.raises(RuntimeError):
            await get_content(mock_client, "c1")


class TestUpdateContent:

    @pytest.mark.asyncio
    async def test_stamps_updated_at(self, mock_client):
        await update_content(mock_client, "c1", {"title": "New"})

        payload = mock_client.collection.return_value.document.return_value.update.call_args.args[0]
        assert payload["title"] == "New"
        assert payload["updatedAt"] is SERVER_TIMESTAMP

    @pytest.mark.asyncio
    async def test_empty_updates(self, mock_client):
        with pytest.raises(ValueError):
            await update_content(mock_client, "c1", {})

    @pytest.mark.asyncio
    async def test_not_found(self, mock_client):
        mock_client.collection.return_value.document.return_value.update.side_effect = gexc.NotFound("gone")

        with pytest.raises(LookupError):
            await update_content(mock_client, "c1", {"title": "New"})

    @pytest.mark.asyncio
    async def test_other_failure(self, mock_client):
        mock_client.collection.return_value.document.return_value.update.side_effect = Exception("boom")

        with pytest.raises(RuntimeError):
            await update_content(mock_client, "c1", {"title": "New"})


class TestDeleteContent:

    @pytest.mark.asyncio
    async def test_deletes_existing(self, mock_client):
        doc_ref = mock_client.collection.return_value.document.return_value
        doc_ref.get.return_value = _snapshot("c1", {})

        assert await delete_content(mock_client, "c1") is True
        doc_ref.delete.assert_called_once()

    @pytest.mark.asyncio
    async def test_missing_returns_false(self, mock_client):
        doc_ref = mock_client.collection.return_value.document.return_value
        doc_ref.get.return_value = _snapshot("c1", None, exists=False)

        assert await delete_content(mock_client, "c1") is False
        doc_ref.delete.assert_not_called()


class TestBuildQuery:

    def test_owner_assessments_and_range(self, mock_client):
        since = datetime(2024, 5, 1, tzinfo=timezone.utc)
        until = datetime(2024, 5, 2, tzinfo=timezone.utc)
        filters = ContentFilters(
            created_by="t1", assessments=True, since=since, until=until, limit=20
        )

        build_query(mock_client, filters)

        collection = mock_client.collection.return_value
        assert _filters_applied(collection) == [
            ("createdBy", "==", "t1"),
            ("type", "in", ASSESSMENT_TYPES),
            ("createdAt", ">=", since),
            ("createdAt", "<", until),
        ]

    def test_lesson_group(self, mock_client):
        build_query(mock_client, ContentFilters(assessments=False))

        collection = mock_client.collection.return_value
        assert _filters_applied(collection) == [("type", "in", LESSON_TYPES)]

    def test_no_filters_orders_newest_first(self, mock_client):
        from google.cloud import firestore

        query = build_query(mock_client, ContentFilters())

        collection = mock_client.collection.return_value
        collection.where.assert_not_called()
        collection.order_by.assert_called_once_with("createdAt", direction=firestore.Query.DESCENDING)
        collection.order_by.return_value.limit.assert_not_called()
        assert query is collection.order_by.return_value

    def test_limit_applied(self, mock_client):
        build_query(mock_client, ContentFilters(limit=5))

        collection = mock_client.collection.return_value
        collection.order_by.return_value.limit.assert_called_once_with(5)

    def test_lesson_types_fit_in_filter(self):
        assert len(LESSON_TYPES) <= 30
        assert not set(LESSON_TYPES) & set(ASSESSMENT_TYPES)


class TestListContents:

    @pytest.mark.asyncio
    async def test_returns_records_with_ids(self, mock_client):
        query = mock_client.collection.return_value.order_by.return_value
        query.stream.return_value = iter([
            _snapshot("c2", {"title": "Newer"}),
            _snapshot("c1", {"title": "Older"}),
        ])

        results = await list_contents(mock_client)

        assert results == [{"title": "Newer", "id": "c2"}, {"title": "Older", "id": "c1"}]

    @pytest.mark.asyncio
    async def test_query_failure(self, mock_client):
        query = mock_client.collection.return_value.order_by.return_value
        query.stream.side_effect = gexc.FailedPrecondition("index required")

        with pytest.raises(RuntimeError) as exc_info:
            await list_contents(mock_client)
        assert "index required" in str(exc_info.value)


class TestSubscribeContents:

    def _change(self, kind: str, doc_id: str, data):
        change = MagicMock()
        change.type.name = kind
        change.document.id = doc_id
        change.document.to_dict.return_value = data
        return change

    def test_forwards_changes(self, mock_client):
        received = []
        query = mock_client.collection.return_value.order_by.return_value

        watch = subscribe_contents(mock_client, None, received.append)

        assert watch is query.on_snapshot.return_value
        on_snapshot = query.on_snapshot.call_args.args[0]
        on_snapshot([], [
            self._change("ADDED", "c1", {"title": "A"}),
            self._change("REMOVED", "c2", None),
        ], None)

        assert received == [
            ContentChange(kind="added", id="c1", data={"title": "A"}),
            ContentChange(kind="removed", id="c2", data={}),
        ]

    def test_callback_errors_do_not_stop_stream(self, mock_client):
        seen = []

        def callback(change):
            seen.append(change.id)
            raise ValueError("consumer bug")

        query = mock_client.collection.return_value.order_by.return_value
        subscribe_contents(mock_client, None, callback)
        on_snapshot = query.on_snapshot.call_args.args[0]

        on_snapshot([], [
            self._change("MODIFIED", "c1", {}),
            self._change("MODIFIED", "c2", {}),
        ], None)

        assert seen == ["c1", "c2"]


def test_to_json_safe():
    created = datetime(2024, 5, 1, 8, 30, tzinfo=timezone.utc)
    record = {
        "createdAt": created,
        "updatedAt": SERVER_TIMESTAMP,
        "questions": [{"options": ("a", "b")}],
        "title": "Shapes",
    }

    assert to_json_safe(record) == {
        "createdAt": "2024-05-01T08:30:00+00:00",
        "updatedAt": None,
        "questions": [{"options": ["a", "b"]}],
        "title": "Shapes",
    }
