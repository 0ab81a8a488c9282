"""
Keyword heuristics used to fill in missing task metadata.

Titles and course names coming from the coursework provider are free text, so
everything here is a best-effort guess. Stored values always win over these.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

LOAD_ORDER = ("light", "medium", "heavy")


@dataclass(frozen=True)
class SubjectPattern:
    default_load: str
    default_minutes: int
    keywords: Tuple[str, ...]


SUBJECT_PATTERNS: Dict[str, SubjectPattern] = {
    "Math": SubjectPattern(
        "heavy", 30,
        ("algebra", "geometry", "calculate", "solve", "equation", "problem", "worksheet"),
    ),
    "Reading": SubjectPattern(
        "light", 30,
        ("read", "chapter", "pages", "story", "book", "novel", "article"),
    ),
    "Writing": SubjectPattern(
        "heavy", 35,
        ("essay", "write", "paragraph", "composition", "paper", "report"),
    ),
    "Science": SubjectPattern(
        "medium", 40,
        ("experiment", "lab", "hypothesis", "research", "observe"),
    ),
    "Art": SubjectPattern(
        "light", 50,
        ("draw", "paint", "sketch", "create", "design"),
    ),
}

# student -> subject -> load
DEFAULT_LOAD_OVERRIDES: Dict[str, Dict[str, str]] = {
    "Abigail": {"Reading": "heavy"},
    "Khalil": {"Reading": "heavy"},
}

HEAVY_TITLE_TERMS = ("test", "exam", "essay", "project")
LIGHT_TITLE_TERMS = ("review", "practice", "quick")

# (keyword, minutes), first match wins
DURATION_KEYWORDS: Tuple[Tuple[str, int], ...] = (
    ("syllabus", 10),
    ("recipe", 8),
    ("review", 5),
    ("check", 5),
    ("worksheet", 60),
    ("assignment", 90),
    ("project", 120),
    ("homework", 60),
)


def estimate_minutes(title: str) -> int:
    """Guess how long a task takes from its title alone."""
    t = title.lower()
    for keyword, minutes in DURATION_KEYWORDS:
        if keyword not in t:
            continue
        # only short titles are quick reviews, "Review chapters 3-5 and answer ..." is not
        if keyword == "review" and len(title) >= 40:
            continue
        return minutes
    return 15 if len(title) < 30 else 45


def infer_subject(title: str, course: Optional[str] = None) -> str:
    title_l = title.lower()
    course_l = (course or "").lower()

    for subject in SUBJECT_PATTERNS:
        if subject.lower() in course_l:
            return subject

    for subject, pattern in SUBJECT_PATTERNS.items():
        if any(k in title_l for k in pattern.keywords):
            return subject

    if "english" in course_l or "language arts" in course_l:
        return "Writing" if ("write" in title_l or "essay" in title_l) else "Reading"
    if any(k in course_l for k in ("algebra", "geometry", "math")):
        return "Math"
    if any(k in course_l for k in ("science", "biology", "chemistry")):
        return "Science"

    return "General"


def heavier(load: str) -> str:
    i = LOAD_ORDER.index(load)
    return LOAD_ORDER[min(i + 1, len(LOAD_ORDER) - 1)]


def lighter(load: str) -> str:
    i = LOAD_ORDER.index(load)
    return LOAD_ORDER[max(i - 1, 0)]
