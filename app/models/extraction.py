"""Pydantic models for document text extraction.

An uploaded file is validated into a RawDocument, then handed to one of the
text extractors which returns an ExtractedText for the classifier.
"""

from typing import List

from pydantic import BaseModel, ConfigDict, Field


class RawDocument(BaseModel):
    """A validated upload. Lives only for the duration of one request."""
    model_config = ConfigDict(frozen=True)

    file_name: str = Field(description="Sanitized file name including extension")
    mime_type: str = Field(description="Sniffed MIME type of the content")
    content: bytes = Field(repr=False, description="Raw file bytes")
    file_hash: str = Field(default="", description="SHA-256 of the content")

    @property
    def size_bytes(self) -> int:
        return len(self.content)


class ExtractedText(BaseModel):
    """Plain text pulled out of a document.

    ``pages`` holds the per-page text in order; formats without pages
    (DOCX, TXT) report a single page. ``headings`` carries structural
    headings when the format marks them explicitly (DOCX heading styles).
    """
    full_text: str = Field(default="", description="All text, pages joined with newlines")
    pages: List[str] = Field(default_factory=list, description="Per-page text in order")
    headings: List[str] = Field(
        default_factory=list,
        max_length=10,
        description="Headings declared by the document format"
    )

    @property
    def page_count(self) -> int:
        return len(self.pages)

    @property
    def is_empty(self) -> bool:
        return not self.full_text.strip()
