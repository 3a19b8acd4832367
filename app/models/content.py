"""Pydantic models for content records and the contents API."""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from app.models.classification import Question
from app.utils.normalizers import normalize_category


class ContentTemplate(BaseModel):
    """Presentation template the student app renders a content record with."""
    type: str = Field(description="Template content type, e.g. 'lesson' or 'interactive-assessment'")
    template: str = Field(description="Template identifier, e.g. 'mobile-lesson-template'")
    components: List[str] = Field(description="Component slots the template expects")
    student_app_format: str = Field(description="Display format hint for the student app")


class ContentFilters(BaseModel):
    """Query filters for the contents collection.

    ``assessments`` selects quiz types when True, lesson-like types when
    False, and every type when None. Results are always newest first.
    """
    created_by: Optional[str] = Field(default=None, description="Owning teacher uid")
    assessments: Optional[bool] = Field(default=None, description="Quiz types vs lesson-like types")
    since: Optional[datetime] = Field(default=None, description="Inclusive lower bound on createdAt")
    until: Optional[datetime] = Field(default=None, description="Exclusive upper bound on createdAt")
    limit: Optional[int] = Field(default=None, ge=1, le=500, description="Maximum records returned")


ChangeKind = Literal["added", "modified", "removed"]


class ContentChange(BaseModel):
    """A real-time change event from a contents subscription."""
    kind: ChangeKind
    id: str
    data: Dict[str, Any] = Field(default_factory=dict)


class ClassifyRequest(BaseModel):
    """Request body for classifying already extracted text."""
    text: str = Field(default="", description="Extracted document text (may be empty)")
    file_name: str = Field(default="", description="Original file name")


class ImportRequest(BaseModel):
    """Request body for converting a document already in Firebase Storage."""
    storage_url: str = Field(..., description="gs://bucket/path of the uploaded document")
    category: str = Field(..., description="Teacher-chosen learning category")
    teacher_id: str = Field(..., min_length=1, description="Owning teacher uid")
    teacher_name: Optional[str] = Field(default=None, description="Name recorded in the activity log")
    mime_type: Optional[str] = Field(
        default=None,
        description="MIME type; inferred from the file extension when omitted"
    )

    @field_validator("storage_url")
    @classmethod
    def validate_storage_url(cls, v: str) -> str:
        if not v.strip().startswith("gs://"):
            raise ValueError("storage_url must start with gs://")
        return v.strip()

    @field_validator("category")
    @classmethod
    def validate_category(cls, v: str) -> str:
        return normalize_category(v)


class ContentUpdate(BaseModel):
    """Editable fields of a content record. Unset or null fields are left untouched."""
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    category: Optional[str] = None
    difficulty: Optional[Literal["beginner", "intermediate", "advanced"]] = None
    headings: Optional[List[str]] = None
    questions: Optional[List[Question]] = None
    status: Optional[Literal["active", "draft", "archived"]] = None

    @field_validator("category")
    @classmethod
    def validate_category(cls, v: Optional[str]) -> Optional[str]:
        return normalize_category(v) if v is not None else None

    def to_record(self) -> Dict[str, Any]:
        """Return the fields that were set to a value, in store (camelCase) form.

        An explicit null never reaches the store; records keep their required fields.
        """
        record: Dict[str, Any] = {}
        for name, value in self.model_dump(exclude_unset=True, exclude_none=True).items():
            if name == "questions" and self.questions is not None:
                record["questions"] = [q.model_dump(by_alias=True) for q in self.questions]
            else:
                record[name] = value
        return record
