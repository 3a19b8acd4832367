"""
File validation service for learning material uploads.

Uploads are checked before any extraction work starts: size and emptiness
first, then the sniffed MIME type. Names are reduced to a safe basename and
the SHA-256 of the bytes is kept for de-duplication.
"""

import hashlib
import re
from pathlib import Path

import magic
from fastapi import HTTPException, UploadFile

from app.config import get_settings
from app.models.extraction import RawDocument
from app.services.text_extractor import DOCX_MIME, SUPPORTED_MIME_TYPES, TXT_MIME

DEFAULT_FILENAME = "upload"
MAX_FILENAME_LENGTH = 255

# libmagic reports DOCX as a generic zip archive on some platforms
_ZIP_MIME_TYPES = ("application/zip", "application/x-zip-compressed")


def resolve_mime_type(content: bytes, filename: str) -> str:
    """Sniff the MIME type of content, reconciling zip/DOCX and text variants."""
    mime_type = magic.from_buffer(content, mime=True)
    if mime_type in _ZIP_MIME_TYPES and filename.lower().endswith(".docx"):
        return DOCX_MIME
    if mime_type.startswith("text/") and filename.lower().endswith(".txt"):
        return TXT_MIME
    return mime_type


async def validate_upload(file: UploadFile) -> RawDocument:
    """
    Validate an uploaded document and return it as a RawDocument.

    Args:
        file: FastAPI UploadFile instance from multipart/form-data

    Returns:
        RawDocument with content, sniffed MIME type, sanitized name and SHA-256

    Raises:
        HTTPException: 400 for validation errors, 413 for file too large

    Security checks:
        - File not empty
        - File size <= MAX_UPLOAD_MB
        - Sniffed MIME type is PDF, DOCX, DOC or plain text
        - Filename sanitized (no path traversal)
    """
    content = await file.read()

    if len(content) == 0:
        raise HTTPException(status_code=400, detail="File is empty")

    settings = get_settings()
    if len(content) > settings.max_upload_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size is {settings.max_upload_mb}MB"
        )

    original_filename = file.filename or DEFAULT_FILENAME
    mime_type = resolve_mime_type(content, original_filename)
    if mime_type not in SUPPORTED_MIME_TYPES:
        raise HTTPException(
            status_code=400,
            detail=(
                f"Invalid file type {mime_type}. "
                "Upload a PDF, Word document or plain text file"
            )
        )

    return RawDocument(
        file_name=sanitize_filename(original_filename),
        mime_type=mime_type,
        content=content,
        file_hash=hashlib.sha256(content).hexdigest(),
    )


def sanitize_filename(filename: str) -> str:
    """
    Reduce an uploaded or Storage object name to a safe basename.

    Path components, ".." and NUL bytes are dropped and every other character
    outside [A-Za-z0-9._-] becomes "_". Long names are cut while keeping
    the extension.
    """
    # Windows separators count as path separators too
    filename = Path(filename.replace("\\", "/")).name

    filename = filename.replace("..", "").replace("/", "").replace("\0", "")

    # Anything else becomes an underscore
    filename = re.sub(r"[^a-zA-Z0-9._-]", "_", filename)

    stem, dot, ext = filename.rpartition(".")
    if not dot:
        stem, ext = filename, ""
    if not stem.strip("._"):
        stem = DEFAULT_FILENAME

    suffix = f".{ext}" if ext else ""
    if len(stem) + len(suffix) > MAX_FILENAME_LENGTH:
        stem = stem[:MAX_FILENAME_LENGTH - len(suffix)]

    return stem + suffix
