"""Pydantic models for document classification results.

Used by the content classifier to report what kind of learning content an
uploaded document most likely is, together with the headings, questions and
interactive element descriptors that pre-populate the teacher's draft.

Field names are snake_case in Python and camelCase on the wire so the
student app can read records without translation.
"""

from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

ContentType = Literal["lesson", "assessment", "game", "activity"]


class CamelModel(BaseModel):
    """Base model that serialises field names as camelCase."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class Question(CamelModel):
    """A multiple choice question drafted from document text."""
    question_text: str = Field(description="The question line as it appeared in the document")
    options: List[str] = Field(min_length=1, description="Answer options in document order")
    correct_answer: str = Field(description="Answer marked correct (defaults to the first option)")
    explanation: str = Field(default="", description="Feedback shown after answering")


class InteractiveElement(CamelModel):
    """Renderer hint pairing an interaction type with the UI element it drives."""
    type: str = Field(description="Interaction type, e.g. 'multiple-choice'")
    element: str = Field(description="UI element, e.g. 'question-options'")


class ClassifiedContent(CamelModel):
    """Result of classifying extracted document text.

    Created once per uploaded document and never mutated afterwards; later
    edits go through the contents API.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    content_type: ContentType = Field(description="Coarse content category (first matching rule wins)")
    headings: List[str] = Field(
        default_factory=list,
        max_length=10,
        description="Heading candidates in document order"
    )
    questions: List[Question] = Field(
        default_factory=list,
        description="Drafted questions; only populated for assessments"
    )
    interactive_elements: List[InteractiveElement] = Field(
        default_factory=list,
        description="Fixed, type-dependent renderer descriptors"
    )
