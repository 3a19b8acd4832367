"""
Conversion of classified documents into student app content records.

Maps a classified document plus the teacher's category onto one of the fixed
presentation templates and assembles the record stored in the contents
collection. Everything here is deterministic apart from the createdAt
sentinel, which the store resolves to its own server time.
"""

from typing import Any, Dict, List, Optional

from google.cloud.firestore_v1 import SERVER_TIMESTAMP

from app.models.classification import ClassifiedContent
from app.models.content import ContentTemplate
from app.models.extraction import ExtractedText
from app.utils.normalizers import (
    CATEGORIES,
    DEFAULT_CATEGORY,
    category_tag,
    normalize_category,
    title_from_filename,
)

EXTRACTED_TEXT_PREVIEW_CHARS = 1000


CONTENT_TEMPLATES: Dict[str, ContentTemplate] = {
    "INTERACTIVE_LESSON": ContentTemplate(
        type="interactive-lesson",
        template="lesson-template",
        components=["title", "content", "images", "interactions", "quiz"],
        student_app_format="game-like",
    ),
    "GAME_ACTIVITY": ContentTemplate(
        type="game-activity",
        template="game-template",
        components=["instructions", "gameElements", "scoring", "feedback"],
        student_app_format="interactive-game",
    ),
    "INTERACTIVE_ASSESSMENT": ContentTemplate(
        type="interactive-assessment",
        template="assessment-template",
        components=["questions", "options", "feedback", "progress"],
        student_app_format="quiz-format",
    ),
    "MOBILE_LESSON": ContentTemplate(
        type="lesson",
        template="mobile-lesson-template",
        components=["slides", "interactions", "progress", "rewards"],
        student_app_format="mobile-native",
    ),
    "MOBILE_GAME": ContentTemplate(
        type="game",
        template="mobile-game-template",
        components=["levels", "challenges", "scoring", "achievements"],
        student_app_format="mobile-native",
    ),
    "MOBILE_ACTIVITY": ContentTemplate(
        type="activity",
        template="mobile-activity-template",
        components=["tasks", "interactions", "feedback", "completion"],
        student_app_format="mobile-native",
    ),
}

# Every category currently shares the same type -> template mapping; the
# table is kept per category so one can diverge without touching callers.
_TYPE_TEMPLATES: Dict[str, str] = {
    "lesson": "MOBILE_LESSON",
    "game": "MOBILE_GAME",
    "activity": "MOBILE_ACTIVITY",
    "assessment": "INTERACTIVE_ASSESSMENT",
}

CATEGORY_TEMPLATE_MAP: Dict[str, Dict[str, str]] = {
    category: dict(_TYPE_TEMPLATES) for category in CATEGORIES
}

ESTIMATED_MINUTES: Dict[str, int] = {
    "assessment": 10,
    "game": 15,
    "activity": 20,
    "lesson": 25,
}


def select_template(category: str, content_type: str) -> ContentTemplate:
    """Pick the presentation template for a category and content type.

    Unknown categories use FUNCTIONAL_ACADEMICS; unknown content types use
    the category's lesson template.
    """
    templates = CATEGORY_TEMPLATE_MAP.get(category) or CATEGORY_TEMPLATE_MAP[DEFAULT_CATEGORY]
    key = templates.get(content_type) or templates["lesson"]
    return CONTENT_TEMPLATES[key]


def estimated_time(content_type: str) -> int:
    """Estimated completion time in minutes for a content type."""
    return ESTIMATED_MINUTES.get(content_type, 15)


def _page_heading(page_text: str, headings: List[str]) -> Optional[str]:
    lines = {line.strip().lstrip("#").strip() for line in page_text.splitlines()}
    return next((h for h in headings if h.strip() in lines), None)


def build_sections(extracted: ExtractedText, headings: List[str]) -> List[Dict[str, Any]]:
    """One section per extracted page, titled by the first heading printed on it."""
    sections: List[Dict[str, Any]] = []
    for index, page_text in enumerate(extracted.pages):
        heading = _page_heading(page_text, headings) or f"Page {index + 1}"
        sections.append({
            "sectionNumber": index + 1,
            "heading": heading,
            "content": page_text,
        })
    return sections


def _create_lesson(title: str, sections: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {
        "title": title,
        "introduction": "Welcome to this mobile lesson!",
        "slides": sections,
        "interactions": [
            {"type": "tap-to-learn", "element": "content-blocks",
             "feedback": "Great job! Keep learning!", "hapticFeedback": True},
            {"type": "swipe-navigation", "element": "slide-transitions",
             "feedback": "Swipe to continue!", "smoothAnimation": True},
            {"type": "drag-and-drop", "element": "matching-items",
             "feedback": "Perfect match!", "visualEffects": True},
        ],
        "progressTracking": {
            "slidesCompleted": 0,
            "totalSlides": len(sections) or 1,
            "timeSpent": 0,
            "achievements": [],
            "streakCount": 0,
        },
        "gamification": {
            "pointsPerSlide": 10,
            "bonusPoints": 5,
            "achievements": ["First Slide", "Halfway There", "Lesson Complete"],
        },
    }


def _create_game(title: str, sections: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {
        "title": title,
        "instructions": "Complete the activities to earn points!",
        "gameElements": [
            {
                "type": "matching-game",
                "data": sections,
                "scoring": {
                    "pointsPerMatch": 10,
                    "timeBonus": 5,
                    "perfectBonus": 20,
                    "streakMultiplier": 1.5,
                },
            }
        ],
        "levels": [
            {"level": 1, "difficulty": "easy", "targetScore": 50},
            {"level": 2, "difficulty": "medium", "targetScore": 100},
            {"level": 3, "difficulty": "hard", "targetScore": 150},
        ],
        "rewards": {"stars": 0, "badges": [], "achievements": [], "unlockables": []},
    }


def _create_activity(title: str, sections: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {
        "title": title,
        "tasks": sections,
        "interactions": [
            {"type": "task-completion", "element": "activity-items",
             "feedback": "Task completed!", "progressUpdate": True},
        ],
        "completion": {
            "tasksCompleted": 0,
            "totalTasks": len(sections) or 1,
            "completionRate": 0,
            "timeSpent": 0,
        },
    }


def build_components(
    template: ContentTemplate,
    title: str,
    sections: List[Dict[str, Any]],
) -> Dict[str, Any]:
    """Build the template-specific payload. Assessment templates have none;
    their questions live at the top level of the record."""
    if template.template == "mobile-lesson-template":
        return {"lesson": _create_lesson(title, sections)}
    if template.template == "mobile-game-template":
        return {"game": _create_game(title, sections)}
    if template.template == "mobile-activity-template":
        return {"activity": _create_activity(title, sections)}
    return {}


def build_content_record(
    classified: ClassifiedContent,
    extracted: ExtractedText,
    *,
    file_name: str,
    category: str,
    teacher_id: str,
) -> Dict[str, Any]:
    """Assemble the contents record for a classified upload.

    Args:
        classified: Classifier output for the document
        extracted: Text the classification was run on
        file_name: Original (sanitized) file name
        category: Teacher-chosen category, normalized before use
        teacher_id: Owning teacher uid, stored as createdBy

    Returns:
        Dict ready to insert into the contents collection
    """
    category = normalize_category(category)
    content_type = classified.content_type
    template = select_template(category, content_type)
    title = title_from_filename(file_name)

    # Headings declared by the document format beat the text heuristic
    headings = list(extracted.headings) or list(classified.headings)
    sections = build_sections(extracted, headings)

    return {
        "type": content_type,
        "template": template.template,
        "title": title,
        "category": category,
        "originalFile": file_name,
        "description": f"Interactive {content_type} converted from {file_name}",
        "difficulty": "beginner",
        "learningStyles": ["visual", "kinesthetic"],
        "estimatedTime": estimated_time(content_type),
        "tags": [category_tag(category), "auto-converted", content_type],
        "headings": headings,
        "questions": [q.model_dump(by_alias=True) for q in classified.questions],
        "interactiveElements": [e.model_dump(by_alias=True) for e in classified.interactive_elements],
        "components": build_components(template, title, sections),
        "studentAppData": {
            "displayType": template.student_app_format,
            "uiTheme": "game-like",
            "animations": True,
            "soundEffects": True,
            "progressTracking": True,
            "immediateSync": True,
        },
        "metadata": {
            "fileName": file_name,
            "detectedType": content_type,
            "conversionTemplate": template.template,
            "templateComponents": len(template.components),
            "extractedText": extracted.full_text[:EXTRACTED_TEXT_PREVIEW_CHARS],
            "pageCount": extracted.page_count,
            "totalTextLength": len(extracted.full_text),
            "autoGenerated": True,
        },
        "createdBy": teacher_id,
        "createdAt": SERVER_TIMESTAMP,
        "status": "active",
        "studentAppReady": True,
        "autoConverted": True,
        "syncStatus": "pending",
    }
