"""Tests for category, tag and title normalisation."""

import pytest

from app.utils.normalizers import (
    DEFAULT_CATEGORY,
    category_tag,
    normalize_category,
    title_from_filename,
)


@pytest.mark.parametrize("raw,expected", [
    ("NUMBER_SKILLS", "NUMBER_SKILLS"),
    ("number skills", "NUMBER_SKILLS"),
    ("  Self Help ", "SELF_HELP"),
    ("pre-vocational skills", "PRE-VOCATIONAL_SKILLS"),
    ("Math", "NUMBER_SKILLS"),
    ("language", "COMMUNICATION_SKILLS"),
    ("social_skills", "SOCIAL_SKILLS"),
    ("astronomy", DEFAULT_CATEGORY),
    ("", DEFAULT_CATEGORY),
    ("   ", DEFAULT_CATEGORY),
])
def test_normalize_category(raw: str, expected: str) -> None:
    assert normalize_category(raw) == expected


def test_category_tag() -> None:
    assert category_tag("NUMBER_SKILLS") == "number-skills"
    assert category_tag("PRE-VOCATIONAL_SKILLS") == "pre-vocational-skills"


@pytest.mark.parametrize("file_name,expected", [
    ("Shapes.pdf", "Shapes"),
    ("docs/Week 1/Colors.docx", "Colors"),
    ("C:\\Users\\teacher\\Numbers.txt", "Numbers"),
    ("report.final.pdf", "report.final"),
    ("README", "README"),
    (".pdf", ".pdf"),
    ("", "Untitled"),
])
def test_title_from_filename(file_name: str, expected: str) -> None:
    assert title_from_filename(file_name) == expected
