"""Ordered heuristic classifier for uploaded learning material.

Decides what kind of learning content a document most likely is and drafts
headings and questions for the teacher to review:

1. Assessment indicators (question marks, question phrases, quiz file names)
2. Game keywords
3. Activity keywords
4. Lesson (default)

The first matching rule wins. Output is a starting point for a human editor,
not a final answer, so precision is traded for predictability.
"""

import re
from typing import List, Optional

from app.models.classification import (
    ClassifiedContent,
    ContentType,
    InteractiveElement,
    Question,
)


# ---------------------------------------------------------------------------
# Content type rules
# ---------------------------------------------------------------------------

_QUESTION_PHRASES = (
    "what is",
    "how many",
    "which of the following",
    "choose the correct",
    "select the best",
    "true or false",
    "multiple choice",
)

_ASSESSMENT_FILENAME_WORDS = ("quiz", "test", "exam")
_GAME_TEXT_WORDS = ("game", "play")
_ACTIVITY_TEXT_WORDS = ("activity", "exercise")


def contains_questions(text: str) -> bool:
    """Return True if the text has a '?' or a question-indicative phrase."""
    lowered = text.lower()
    return "?" in lowered or any(phrase in lowered for phrase in _QUESTION_PHRASES)


def determine_content_type(full_text: str, file_name: str) -> ContentType:
    """Apply the ordered rules and return the first matching content type."""
    text = full_text.lower()
    name = file_name.lower()

    if contains_questions(text) or any(w in name for w in _ASSESSMENT_FILENAME_WORDS):
        return "assessment"
    if any(w in text for w in _GAME_TEXT_WORDS) or "game" in name:
        return "game"
    if any(w in text for w in _ACTIVITY_TEXT_WORDS) or "activity" in name:
        return "activity"
    return "lesson"


# ---------------------------------------------------------------------------
# Headings
# ---------------------------------------------------------------------------

MAX_HEADINGS = 10
MAX_HEADING_LENGTH = 100

_NUMBERED_LINE = re.compile(r"^\d+\.")


def extract_headings(full_text: str) -> List[str]:
    """Collect all-caps or numbered short lines, first MAX_HEADINGS in order."""
    headings: List[str] = []
    for line in full_text.split("\n"):
        trimmed = line.strip()
        if not 0 < len(trimmed) < MAX_HEADING_LENGTH:
            continue
        if trimmed == trimmed.upper() or _NUMBERED_LINE.match(trimmed):
            headings.append(trimmed)
            if len(headings) == MAX_HEADINGS:
                break
    return headings


# ---------------------------------------------------------------------------
# Questions
# ---------------------------------------------------------------------------

_QUESTION_START = re.compile(r"^(what|how|which|where|when|why|who)", re.IGNORECASE)
_OPTION_LINE = re.compile(r"^[a-dA-D][.)]|^[1-4][.)]")
_OPTION_PREFIX = re.compile(r"^[a-dA-D1-4][.)]\s*")

# Placeholders offered when no question could be parsed, so every assessment
# draft has something to edit.
_TEMPLATE_QUESTIONS = (
    {
        "question_text": "What is the capital of the Philippines?",
        "options": ["Cebu", "Manila", "Davao", "Quezon City"],
        "correct_answer": "Manila",
        "explanation": "Manila is the capital of the Philippines",
    },
    {
        "question_text": "How many days are in a week?",
        "options": ["5", "6", "7", "8"],
        "correct_answer": "7",
        "explanation": "There are 7 days in a week",
    },
)


def template_questions() -> List[Question]:
    """Return fresh copies of the generic placeholder questions."""
    return [Question(**q) for q in _TEMPLATE_QUESTIONS]


def _drafted_question(question_text: str, options: List[str]) -> Question:
    # No answer key is parsed; the first option is marked correct.
    return Question(
        question_text=question_text,
        options=list(options),
        correct_answer=options[0],
        explanation=f"Answer: {options[0]}",
    )


def extract_questions(full_text: str) -> List[Question]:
    """Group question lines with the lettered/numbered option lines after them.

    A question is only kept once it has at least one option. Falls back to
    template_questions() when nothing could be extracted.
    """
    questions: List[Question] = []
    current_question: Optional[str] = None
    options: List[str] = []

    for raw_line in full_text.split("\n"):
        line = raw_line.strip()
        if not line:
            continue

        if "?" in line or _QUESTION_START.match(line):
            if current_question is not None and options:
                questions.append(_drafted_question(current_question, options))
            current_question = line
            options = []
        elif current_question is not None and _OPTION_LINE.match(line):
            option = _OPTION_PREFIX.sub("", line, count=1).strip()
            if option:
                options.append(option)

    if current_question is not None and options:
        questions.append(_drafted_question(current_question, options))

    return questions or template_questions()


# ---------------------------------------------------------------------------
# Interactive elements
# ---------------------------------------------------------------------------

INTERACTIVE_ELEMENTS: dict[str, tuple[tuple[str, str], ...]] = {
    "assessment": (
        ("multiple-choice", "question-options"),
        ("timer", "countdown-timer"),
        ("score-tracker", "progress-bar"),
        ("feedback", "immediate-feedback"),
    ),
    "game": (
        ("drag-and-drop", "game-pieces"),
        ("tap-to-match", "matching-items"),
        ("score-system", "points-display"),
        ("level-progression", "stage-unlock"),
    ),
    "activity": (
        ("step-by-step", "activity-guide"),
        ("interactive-demo", "hands-on-practice"),
        ("progress-tracking", "completion-indicator"),
    ),
    "lesson": (
        ("tap-to-reveal", "content-blocks"),
        ("swipe-navigation", "page-transitions"),
        ("audio-playback", "text-to-speech"),
    ),
}


def interactive_elements_for(content_type: ContentType) -> List[InteractiveElement]:
    """Return the fixed renderer descriptors for a content type."""
    return [
        InteractiveElement(type=kind, element=element)
        for kind, element in INTERACTIVE_ELEMENTS[content_type]
    ]


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------

def classify(full_text: str, file_name: str) -> ClassifiedContent:
    """Classify extracted document text and draft its headings and questions.

    Pure and total: any string (including empty or whitespace-only text) is
    valid input, and identical inputs always give identical output.

    Args:
        full_text: Text extracted from the document, possibly empty.
        file_name: Original file name; only used for keyword hints.

    Returns:
        ClassifiedContent with content type, headings, questions (assessments
        only) and interactive element descriptors.
    """
    full_text = full_text or ""
    file_name = file_name or ""

    content_type = determine_content_type(full_text, file_name)
    questions = extract_questions(full_text) if content_type == "assessment" else []

    return ClassifiedContent(
        content_type=content_type,
        headings=extract_headings(full_text),
        questions=questions,
        interactive_elements=interactive_elements_for(content_type),
    )
