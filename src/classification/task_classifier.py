from __future__ import annotations

import logging
from datetime import date
from typing import Dict, Iterable, List, Optional

from classification.heuristics import (
    DEFAULT_LOAD_OVERRIDES,
    HEAVY_TITLE_TERMS,
    LIGHT_TITLE_TERMS,
    SUBJECT_PATTERNS,
    estimate_minutes,
    heavier,
    infer_subject,
    lighter,
)
from family_scheduler.models import ClassifiedTask, TaskRecord

logger = logging.getLogger(__name__)

CATEGORIES = {"academic", "quick_review", "administrative"}
URGENCIES = ("overdue", "critical", "high", "medium", "low")
LOAD_ALIASES = {
    "light": "light",
    "low": "light",
    "medium": "medium",
    "moderate": "medium",
    "heavy": "heavy",
    "high": "heavy",
}

# completion state -> minimum urgency it escalates to
ESCALATION = {"stuck": "critical", "in_progress": "high"}


def _more_urgent(a: str, b: str) -> str:
    return a if URGENCIES.index(a) <= URGENCIES.index(b) else b


class TaskClassifier:
    """Turns raw task records into fully specified ClassifiedTasks."""

    def __init__(self, load_overrides: Optional[Dict[str, Dict[str, str]]] = None):
        self.load_overrides = (
            DEFAULT_LOAD_OVERRIDES if load_overrides is None else load_overrides
        )

    def classify(
        self,
        records: Iterable[TaskRecord],
        student: str = "",
        today: Optional[date] = None,
    ) -> List[ClassifiedTask]:
        today = today or date.today()
        return [self.classify_one(r, student=student, today=today) for r in records]

    def classify_one(
        self,
        record: TaskRecord,
        student: str = "",
        today: Optional[date] = None,
    ) -> ClassifiedTask:
        today = today or date.today()

        category = record.category if record.category in CATEGORIES else "academic"
        subject = record.subject or infer_subject(record.title, record.course)
        minutes = (
            record.duration
            if record.duration is not None and record.duration > 0
            else estimate_minutes(record.title)
        )
        if record.scheduled_parts:
            minutes = max(minutes - record.scheduled_minutes, 1)
        urgency = self.urgency(record, today)
        load = self.cognitive_load(record, category, subject, urgency, student)

        logger.debug(
            f"Classified {record.id} '{record.title}': {category}, {minutes} min, "
            f"{load} load, {urgency}"
        )

        return ClassifiedTask(
            id=record.id,
            title=record.title,
            category=category,
            estimated_minutes=minutes,
            cognitive_load=load,
            subject=subject,
            course=record.course or "",
            urgency=urgency,
            due_date=record.due_date,
            completion_state=record.completion_state,
            priority=record.priority,
            progress=record.progress or 0,
            parts_done=record.scheduled_parts,
        )

    def urgency(self, record: TaskRecord, today: date) -> str:
        stored = record.urgency if record.urgency in URGENCIES else None

        if record.due_date is None:
            bucket = stored or "medium"
        else:
            days_until_due = (record.due_date - today).days
            if days_until_due < 0:
                bucket = "overdue"
            elif days_until_due <= 1:
                bucket = "critical"
            elif days_until_due <= 3:
                bucket = "high"
            elif stored:
                bucket = stored
            else:
                bucket = "medium" if days_until_due <= 7 else "low"

        floor = ESCALATION.get(record.completion_state)
        if floor:
            bucket = _more_urgent(bucket, floor)
        return bucket

    def cognitive_load(
        self,
        record: TaskRecord,
        category: str,
        subject: str,
        urgency: str,
        student: str = "",
    ) -> str:
        if category == "administrative":
            return "light"

        stored = LOAD_ALIASES.get((record.cognitive_load or "").strip().lower())
        if stored:
            return stored

        pattern = SUBJECT_PATTERNS.get(subject)
        load = pattern.default_load if pattern else "medium"
        load = self.load_overrides.get(student, {}).get(subject, load)

        title = record.title.lower()
        if any(term in title for term in HEAVY_TITLE_TERMS):
            return "heavy"
        if any(term in title for term in LIGHT_TITLE_TERMS):
            load = lighter(load)
        if urgency == "overdue":
            load = heavier(load)
        return load
