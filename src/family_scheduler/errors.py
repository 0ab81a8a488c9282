from __future__ import annotations

from typing import Optional


class SchedulerError(Exception):
    """Base class for block scheduler errors."""


class FetchFailure(SchedulerError):
    """An upstream input could not be retrieved; analysis is aborted."""

    def __init__(self, source: str, student: Optional[str] = None, reason: str = ""):
        self.source = source
        self.student = student
        self.reason = reason
        msg = f"Failed to fetch {source}"
        if student:
            msg += f" for {student}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class TemplateError(FetchFailure):
    """The weekly block template is missing or malformed."""

    def __init__(self, reason: str, student: Optional[str] = None):
        super().__init__("weekly template", student=student, reason=reason)


class PlacementInfeasible(SchedulerError):
    """
    A task (or split part) fits nowhere.

    Never raised by the engine: the task is reported in
    ``SchedulingDecision.unscheduled_tasks`` instead.
    """


class PersistenceFailure(SchedulerError):
    """Writing one task's schedule back to the store failed."""

    def __init__(self, task_id: str, message: str):
        self.task_id = task_id
        self.message = message
        super().__init__(f"{task_id}: {message}")


class InvalidIdentifier(PersistenceFailure):
    """The task id cannot be used as a record key for write-back."""

    def __init__(self, task_id: str):
        super().__init__(task_id, f"Invalid task identifier: {task_id!r}")
