"""Normalize learning categories, tags and titles for content records."""

import re
from pathlib import PurePath

DEFAULT_CATEGORY = "FUNCTIONAL_ACADEMICS"

CATEGORIES: tuple[str, ...] = (
    "NUMBER_SKILLS",
    "SELF_HELP",
    "PRE-VOCATIONAL_SKILLS",
    "SOCIAL_SKILLS",
    "FUNCTIONAL_ACADEMICS",
    "COMMUNICATION_SKILLS",
)

CATEGORY_MAPPINGS: dict[str, str] = {
    "number skills": "NUMBER_SKILLS",
    "numbers": "NUMBER_SKILLS",
    "math": "NUMBER_SKILLS",
    "maths": "NUMBER_SKILLS",
    "mathematics": "NUMBER_SKILLS",
    "self help": "SELF_HELP",
    "self-help": "SELF_HELP",
    "daily living": "SELF_HELP",
    "pre vocational skills": "PRE-VOCATIONAL_SKILLS",
    "pre-vocational skills": "PRE-VOCATIONAL_SKILLS",
    "prevocational skills": "PRE-VOCATIONAL_SKILLS",
    "vocational": "PRE-VOCATIONAL_SKILLS",
    "social skills": "SOCIAL_SKILLS",
    "social": "SOCIAL_SKILLS",
    "functional academics": "FUNCTIONAL_ACADEMICS",
    "academics": "FUNCTIONAL_ACADEMICS",
    "communication skills": "COMMUNICATION_SKILLS",
    "communication": "COMMUNICATION_SKILLS",
    "language": "COMMUNICATION_SKILLS",
}


def normalize_category(category: str) -> str:
    """Map a teacher-entered category onto one of CATEGORIES.

    Accepts the canonical constants in any case and with spaces instead of
    underscores, plus a few aliases. Unknown values fall back to
    DEFAULT_CATEGORY.
    """
    if not category or not category.strip():
        return DEFAULT_CATEGORY
    candidate = re.sub(r"\s+", "_", category.strip().upper())
    if candidate in CATEGORIES:
        return candidate
    key = re.sub(r"[_\s]+", " ", category.strip().lower())
    return CATEGORY_MAPPINGS.get(key, DEFAULT_CATEGORY)


def category_tag(category: str) -> str:
    """Tag form of a category: 'NUMBER_SKILLS' -> 'number-skills'."""
    return category.lower().replace("_", "-")


def title_from_filename(file_name: str) -> str:
    """Strip directories and the final extension: 'docs/Shapes.pdf' -> 'Shapes'."""
    name = PurePath(file_name.replace("\\", "/")).name
    stem = name.rsplit(".", 1)[0] if "." in name.lstrip(".") else name
    return stem.strip() or "Untitled"
