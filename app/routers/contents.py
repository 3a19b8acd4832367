"""
Content API endpoints.

Provides endpoints for classifying text, converting uploaded documents into
content records, and browsing/editing the contents collection.
"""

import asyncio
import hashlib
import json
import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, Optional, Tuple

from fastapi import APIRouter, File, Form, HTTPException, Query, Request, Response, UploadFile, status

from app.config import get_settings
from app.db.activity_logs import add_activity_log
from app.db.contents import (
    create_content,
    delete_content,
    get_content,
    list_contents,
    to_json_safe,
    update_content,
)
from app.db.firestore_client import get_firestore_client
from app.middleware.rate_limit import RATE_LIMITS, get_limiter
from app.models.content import ClassifyRequest, ContentFilters, ContentUpdate, ImportRequest
from app.models.extraction import RawDocument
from app.services.content_classifier import classify
from app.services.content_pipeline import convert_document
from app.services.file_validator import resolve_mime_type, sanitize_filename, validate_upload
from app.services.firebase_client import ObjectTooLargeError, download_as_bytes, parse_gs_url
from app.services.text_extractor import (
    SUPPORTED_MIME_TYPES,
    DocumentExtractionError,
    UnsupportedDocumentError,
    mime_type_for,
)
from app.utils.normalizers import normalize_category

router = APIRouter(prefix="/api/contents", tags=["contents"])
limiter = get_limiter()
logger = logging.getLogger(__name__)

TIME_RANGES: Dict[str, Optional[timedelta]] = {
    "all_time": None,
    "1_day": timedelta(days=1),
    "7_days": timedelta(days=7),
    "30_days": timedelta(days=30),
}


def _json_response(body: Any, status_code: int = 200, headers: Optional[Dict[str, str]] = None) -> Response:
    return Response(
        content=json.dumps(to_json_safe(body)),
        media_type="application/json",
        status_code=status_code,
        headers=headers,
    )


def resolve_time_window(
    time_range: str,
    date_filter: Optional[str],
    now: Optional[datetime] = None,
) -> Tuple[Optional[datetime], Optional[datetime]]:
    """Turn the dashboard's time range and date filters into createdAt bounds.

    A date filter narrows to that calendar day (UTC). Both filters may be
    combined; the later lower bound wins.

    Raises:
        ValueError: For an unknown time range or a malformed date
    """
    if time_range not in TIME_RANGES:
        raise ValueError(f"Invalid time_range '{time_range}'. Must be one of: {', '.join(TIME_RANGES)}")

    now = now or datetime.now(timezone.utc)
    since: Optional[datetime] = None
    until: Optional[datetime] = None

    window = TIME_RANGES[time_range]
    if window is not None:
        since = now - window

    if date_filter:
        day = date.fromisoformat(date_filter)
        day_start = datetime.combine(day, time.min, tzinfo=timezone.utc)
        since = max(since, day_start) if since else day_start
        until = day_start + timedelta(days=1)

    return since, until


async def _convert_and_store(
    document: RawDocument,
    category: str,
    teacher_id: str,
    teacher_name: Optional[str],
) -> Response:
    """Shared tail of the upload and import endpoints."""
    try:
        classified, record = await asyncio.to_thread(
            convert_document, document, category, teacher_id
        )
    except UnsupportedDocumentError as e:
        raise HTTPException(status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE, detail=str(e))
    except DocumentExtractionError as e:
        logger.warning(f"Unreadable document {document.file_name}: {e.reason}")
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Unsupported or unreadable document: {document.file_name}"
        )

    client = get_firestore_client()
    try:
        content_id = await create_content(client, record)
    except RuntimeError as e:
        logger.error(f"Failed to store content for {document.file_name}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save content"
        )

    try:
        await add_activity_log(
            client,
            teacher_name or teacher_id,
            f"Uploaded {classified.content_type}: {record['title']}",
        )
    except RuntimeError:
        # Content is already stored; a failed log write does not fail the upload
        logger.warning(f"Activity log not written for content {content_id}", exc_info=True)

    return _json_response(
        {"id": content_id, **record},
        status_code=status.HTTP_201_CREATED,
        headers={"X-Content-ID": content_id, "X-Content-Type": classified.content_type},
    )


@router.post("/classify", status_code=status.HTTP_200_OK)
@limiter.limit(RATE_LIMITS["classify"])  # type: ignore[untyped-decorator]
async def classify_text(request: Request, body: ClassifyRequest) -> Response:
    """
    Classify already extracted text without storing anything.

    Returns:
        200: ClassifiedContent (camelCase fields)
    """
    result = classify(body.text, body.file_name)
    return _json_response(
        result.model_dump(by_alias=True),
        headers={"X-Content-Type": result.content_type},
    )


@router.post("/upload", status_code=status.HTTP_201_CREATED)
@limiter.limit(RATE_LIMITS["upload"])  # type: ignore[untyped-decorator]
async def upload_content(
    request: Request,
    file: UploadFile = File(..., description="PDF, Word or text document"),
    category: str = Form(..., description="Learning category, e.g. NUMBER_SKILLS"),
    teacher_id: str = Form(..., description="Uid of the uploading teacher"),
    teacher_name: Optional[str] = Form(None, description="Name recorded in the activity log"),
) -> Response:
    """
    Convert an uploaded document into a draft content record.

    This endpoint:
    1. Validates the upload (size, type, filename)
    2. Extracts text and classifies it as lesson, assessment, game or activity
    3. Builds the student app record for the chosen category
    4. Stores it in the contents collection and logs the activity

    Returns:
        201: Stored record with its id in the X-Content-ID header
        400: Empty file or unsupported file type
        413: File too large
        422: Document could not be read
        500: Store error
    """
    if not teacher_id.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="teacher_id is required")

    document = await validate_upload(file)
    return await _convert_and_store(
        document, normalize_category(category), teacher_id.strip(), teacher_name
    )


@router.post("/import", status_code=status.HTTP_201_CREATED)
@limiter.limit(RATE_LIMITS["upload"])  # type: ignore[untyped-decorator]
async def import_content(request: Request, body: ImportRequest) -> Response:
    """
    Convert a document the dashboard already put in Firebase Storage.

    Returns:
        201: Stored record with its id in the X-Content-ID header
        400: Invalid URL or unsupported type
        404: Storage object not found
        413: Object larger than MAX_UPLOAD_MB
        422: Document could not be read
    """
    try:
        _, path = parse_gs_url(body.storage_url)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    file_name = sanitize_filename(path.rsplit("/", 1)[-1])
    settings = get_settings()
    try:
        content = await asyncio.to_thread(
            download_as_bytes, body.storage_url, settings.max_upload_bytes
        )
    except FileNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ObjectTooLargeError:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File too large. Maximum size is {settings.max_upload_mb}MB"
        )
    except Exception as e:
        logger.error(f"Download from storage failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Could not download document from storage"
        )

    if not content:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="File is empty")

    mime_type = body.mime_type or mime_type_for(file_name) or resolve_mime_type(content, file_name)
    if mime_type not in SUPPORTED_MIME_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid file type {mime_type}"
        )

    document = RawDocument(
        file_name=file_name,
        mime_type=mime_type,
        content=content,
        file_hash=hashlib.sha256(content).hexdigest(),
    )
    return await _convert_and_store(document, body.category, body.teacher_id, body.teacher_name)


@router.get("", status_code=status.HTTP_200_OK)
@limiter.limit(RATE_LIMITS["contents"])  # type: ignore[untyped-decorator]
async def list_teacher_contents(
    request: Request,
    teacher_id: str,
    assessments: Optional[bool] = None,
    time_range: str = "all_time",
    date_filter: Optional[str] = Query(None, alias="date"),
    limit: int = 100,
) -> Response:
    """
    List a teacher's contents, newest first.

    Args:
        teacher_id: Owning teacher uid
        assessments: True for quizzes only, False for lessons/games/activities only
        time_range: all_time, 1_day, 7_days or 30_days
        date: Restrict to one calendar day (YYYY-MM-DD)
        limit: Maximum number of records (1-500)
    """
    if limit < 1 or limit > 500:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Limit must be between 1 and 500"
        )
    try:
        since, until = resolve_time_window(time_range, date_filter)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    filters = ContentFilters(
        created_by=teacher_id,
        assessments=assessments,
        since=since,
        until=until,
        limit=limit,
    )
    try:
        results = await list_contents(get_firestore_client(), filters)
    except RuntimeError as e:
        logger.error(f"Listing contents failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to list contents"
        )

    return _json_response({"data": results, "count": len(results)})


@router.get("/{content_id}", status_code=status.HTTP_200_OK)
@limiter.limit(RATE_LIMITS["contents"])  # type: ignore[untyped-decorator]
async def get_content_by_id(request: Request, content_id: str) -> Response:
    """Retrieve one content record. 404 if it does not exist."""
    try:
        record = await get_content(get_firestore_client(), content_id)
    except RuntimeError as e:
        logger.error(f"Reading content {content_id} failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve content"
        )
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Content not found")
    return _json_response(record)


@router.patch("/{content_id}", status_code=status.HTTP_200_OK)
@limiter.limit(RATE_LIMITS["contents"])  # type: ignore[untyped-decorator]
async def patch_content(request: Request, content_id: str, body: ContentUpdate) -> Response:
    """Update the editable fields of a content record."""
    updates = body.to_record()
    if not updates:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")

    client = get_firestore_client()
    try:
        await update_content(client, content_id, updates)
        record = await get_content(client, content_id)
    except LookupError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Content not found")
    except RuntimeError as e:
        logger.error(f"Updating content {content_id} failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update content"
        )
    return _json_response(record or {"id": content_id, **updates})


@router.delete("/{content_id}", status_code=status.HTTP_200_OK)
@limiter.limit(RATE_LIMITS["contents"])  # type: ignore[untyped-decorator]
async def remove_content(
    request: Request,
    content_id: str,
    teacher_name: Optional[str] = None,
) -> Dict[str, Any]:
    """Delete a content record and log the removal."""
    client = get_firestore_client()
    try:
        record = await get_content(client, content_id)
        if record is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Content not found")
        await delete_content(client, content_id)
    except RuntimeError as e:
        logger.error(f"Deleting content {content_id} failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete content"
        )

    kind = "quiz" if record.get("type") in ("assessment", "interactive-assessment") else "lesson/material"
    try:
        await add_activity_log(
            client,
            teacher_name or str(record.get("createdBy", "")),
            f"Deleted {kind}: {record.get('title', content_id)}",
        )
    except RuntimeError:
        logger.warning(f"Activity log not written for deleted content {content_id}", exc_info=True)

    return {"id": content_id, "deleted": True}
