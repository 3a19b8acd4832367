"""
Document text extraction for the content classifier.

Turns uploaded file bytes into plain text plus per-page segments:

- PDF: OpenDataLoader element dump, grouped by page
- DOCX: python-docx paragraphs and table rows in body order
- TXT: UTF-8 decode

Extraction failures are reported as DocumentExtractionError so callers can
tell the teacher the document is unreadable; classification never runs on a
failed extraction.
"""

import io
import json
import logging
import os
import re
import tempfile
from typing import Any, Callable, Dict, List, Optional

from docx import Document
from docx.oxml.table import CT_Tbl
from docx.oxml.text.paragraph import CT_P
from docx.table import Table
from docx.text.paragraph import Paragraph
from opendataloader_pdf import convert

from app.models.extraction import ExtractedText

logger = logging.getLogger(__name__)

PDF_MIME = "application/pdf"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
DOC_MIME = "application/msword"
TXT_MIME = "text/plain"

SUPPORTED_MIME_TYPES: tuple[str, ...] = (PDF_MIME, DOCX_MIME, DOC_MIME, TXT_MIME)

EXTENSION_MIME_TYPES: Dict[str, str] = {
    ".pdf": PDF_MIME,
    ".docx": DOCX_MIME,
    ".doc": DOC_MIME,
    ".txt": TXT_MIME,
}

MAX_STRUCTURAL_HEADINGS = 10


class UnsupportedDocumentError(ValueError):
    """Raised when no extractor handles the document's MIME type."""

    def __init__(self, mime_type: str):
        self.mime_type = mime_type
        super().__init__(
            f"Unsupported file type: {mime_type}. "
            f"Supported types: {', '.join(SUPPORTED_MIME_TYPES)}"
        )


class DocumentExtractionError(ValueError):
    """Raised when a parser cannot read the document."""

    def __init__(self, file_name: str, reason: str):
        self.file_name = file_name
        self.reason = reason
        super().__init__(f"Could not read {file_name}: {reason}")


def mime_type_for(file_name: str) -> Optional[str]:
    """Guess a supported MIME type from the file extension."""
    _, ext = os.path.splitext(file_name.lower())
    return EXTENSION_MIME_TYPES.get(ext)


# ---------------------------------------------------------------------------
# PDF
# ---------------------------------------------------------------------------

def _element_text(elem: Dict[str, Any]) -> str:
    text = elem.get("text") or elem.get("content") or ""
    return str(text).strip()


def extract_pdf_text(content: bytes, file_name: str) -> ExtractedText:
    """Extract per-page text from a PDF using OpenDataLoader.

    OpenDataLoader works on files, so the bytes are written to a temporary
    directory together with its JSON/markdown output.

    Raises:
        DocumentExtractionError: If OpenDataLoader cannot parse the file
    """
    with tempfile.TemporaryDirectory(prefix="easymind_pdf_") as temp_dir:
        input_path = os.path.join(temp_dir, "document.pdf")
        output_dir = os.path.join(temp_dir, "out")
        os.makedirs(output_dir)
        with open(input_path, "wb") as f:
            f.write(content)

        try:
            convert(
                input_path=input_path,
                output_dir=output_dir,
                format="json,markdown",
                quiet=True
            )

            json_path = os.path.join(output_dir, "document.json")
            with open(json_path, "r", encoding="utf-8") as f:
                json_data = json.load(f)

            markdown = ""
            markdown_path = os.path.join(output_dir, "document.md")
            if os.path.exists(markdown_path):
                with open(markdown_path, "r", encoding="utf-8") as f:
                    markdown = f.read()
        except Exception as e:
            raise DocumentExtractionError(file_name, str(e)) from e

    # Group element text by page number, keeping page order
    page_lines: Dict[int, List[str]] = {}
    for elem in json_data.get("elements", []):
        text = _element_text(elem)
        if not text:
            continue
        try:
            page = int(elem.get("page", 1))
        except (TypeError, ValueError):
            page = 1
        page_lines.setdefault(page, []).append(text)

    if page_lines:
        last_page = max(page_lines)
        pages = ["\n".join(page_lines.get(n, [])) for n in range(1, last_page + 1)]
    elif markdown.strip():
        pages = [markdown.strip()]
    else:
        pages = []

    full_text = "\n".join(pages)
    logger.info(f"Extracted PDF {file_name}: {len(pages)} pages, {len(full_text)} chars")
    return ExtractedText(full_text=full_text, pages=pages)


# ---------------------------------------------------------------------------
# DOCX
# ---------------------------------------------------------------------------

def _heading_level(paragraph: Paragraph) -> Optional[int]:
    """Return the heading level for heading/title styled paragraphs, else None."""
    style_name = paragraph.style.name.lower() if paragraph.style is not None else ""
    if style_name.startswith("heading"):
        match = re.search(r"\d+", style_name)
        return int(match.group()) if match else 1
    if style_name == "title":
        return 1
    if style_name == "subtitle":
        return 2
    return None


def extract_docx_text(content: bytes, file_name: str) -> ExtractedText:
    """Extract paragraphs and table rows from a DOCX in body order.

    Raises:
        DocumentExtractionError: If python-docx cannot open the file
    """
    try:
        doc = Document(io.BytesIO(content))
    except Exception as e:
        raise DocumentExtractionError(file_name, str(e)) from e

    lines: List[str] = []
    headings: List[str] = []

    for element in doc.element.body:
        if isinstance(element, CT_P):
            para = Paragraph(element, doc)
            text = para.text.strip()
            if not text:
                continue
            lines.append(text)
            if _heading_level(para) is not None and len(headings) < MAX_STRUCTURAL_HEADINGS:
                headings.append(text)
        elif isinstance(element, CT_Tbl):
            table = Table(element, doc)
            for row in table.rows:
                cells = [re.sub(r"\s+", " ", cell.text).strip() for cell in row.cells]
                row_text = " ".join(c for c in cells if c)
                if row_text:
                    lines.append(row_text)

    full_text = "\n".join(lines)
    logger.info(
        f"Extracted DOCX {file_name}: {len(lines)} lines, "
        f"{len(headings)} headings, {len(full_text)} chars"
    )
    return ExtractedText(full_text=full_text, pages=[full_text] if full_text else [], headings=headings)


# ---------------------------------------------------------------------------
# TXT
# ---------------------------------------------------------------------------

def extract_plain_text(content: bytes, file_name: str) -> ExtractedText:
    """Decode a text file as UTF-8, replacing undecodable bytes."""
    text = content.decode("utf-8", errors="replace").replace("\r\n", "\n")
    if text.startswith("\ufeff"):
        text = text[1:]
    return ExtractedText(full_text=text, pages=[text] if text else [])


# ---------------------------------------------------------------------------
# Dispatcher
# ---------------------------------------------------------------------------

_EXTRACTORS: Dict[str, Callable[[bytes, str], ExtractedText]] = {
    PDF_MIME: extract_pdf_text,
    DOCX_MIME: extract_docx_text,
    DOC_MIME: extract_docx_text,
    TXT_MIME: extract_plain_text,
}


def extract_text(content: bytes, file_name: str, mime_type: str) -> ExtractedText:
    """Extract text from a document using the extractor for its MIME type.

    Args:
        content: Raw file bytes
        file_name: File name, used in log and error messages
        mime_type: MIME type of the content

    Returns:
        ExtractedText with full text and per-page segments (possibly empty)

    Raises:
        UnsupportedDocumentError: If the MIME type has no extractor
        DocumentExtractionError: If the extractor cannot parse the document
    """
    extractor = _EXTRACTORS.get(mime_type)
    if extractor is None:
        raise UnsupportedDocumentError(mime_type)
    return extractor(content, file_name)
