"""
Upload-to-record pipeline shared by the API, the CLI and batch processing.

extract text -> classify -> build the contents record. Persisting the record
is left to the caller so the CLI can run without a document store.
"""

import logging
from typing import Any, Dict, Tuple

from app.models.classification import ClassifiedContent
from app.models.extraction import ExtractedText, RawDocument
from app.services.content_classifier import classify
from app.services.content_converter import build_content_record
from app.services.text_extractor import extract_text

logger = logging.getLogger(__name__)


def analyze_document(document: RawDocument) -> Tuple[ExtractedText, ClassifiedContent]:
    """Extract and classify a document.

    Raises:
        UnsupportedDocumentError: If the MIME type has no extractor
        DocumentExtractionError: If the document cannot be read
    """
    extracted = extract_text(document.content, document.file_name, document.mime_type)
    if extracted.is_empty:
        logger.warning(f"No text extracted from {document.file_name}; classifying as empty")
    classified = classify(extracted.full_text, document.file_name)
    logger.info(
        f"Classified {document.file_name} as {classified.content_type}: "
        f"{len(classified.headings)} headings, {len(classified.questions)} questions"
    )
    return extracted, classified


def convert_document(
    document: RawDocument,
    category: str,
    teacher_id: str,
) -> Tuple[ClassifiedContent, Dict[str, Any]]:
    """Run the full pipeline and return the classification and the record to store."""
    extracted, classified = analyze_document(document)
    record = build_content_record(
        classified,
        extracted,
        file_name=document.file_name,
        category=category,
        teacher_id=teacher_id,
    )
    return classified, record
