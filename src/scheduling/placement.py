from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional, Sequence, Tuple

from family_scheduler.config import SchedulerSettings
from family_scheduler.models import BlockSlot, ClassifiedTask, TaskAssignment
from scheduling.preferences import PREFERENCES, Preference, choose_block
from scheduling.splitter import SplitResult, Splitter

logger = logging.getLogger(__name__)

# stuck > critical/overdue > in_progress > high > medium > low
URGENCY_RANK = {"overdue": 1, "critical": 1, "high": 3, "medium": 4, "low": 5}
STUCK_RANK = 0
IN_PROGRESS_RANK = 2

SHARED_BLOCK_NAMESPACE = uuid.uuid5(uuid.NAMESPACE_URL, "family-scheduler/shared-block")


def priority_rank(task: ClassifiedTask) -> int:
    if task.completion_state == "stuck":
        return STUCK_RANK
    rank = URGENCY_RANK.get(task.urgency, 6)
    if task.completion_state == "in_progress":
        rank = min(rank, IN_PROGRESS_RANK)
    return rank


def priority_key(task: ClassifiedTask) -> Tuple[int, int, date, str]:
    """Total order: rank, due date ascending (undated last), id."""
    return (
        priority_rank(task),
        0 if task.due_date is not None else 1,
        task.due_date or date.max,
        task.id,
    )


def shared_block_id(block: BlockSlot) -> str:
    """Stable id grouping everything placed in one block during an analysis."""
    return str(uuid.uuid5(SHARED_BLOCK_NAMESPACE, f"{block.date.isoformat()}:{block.block_number}"))


def load_label(total: float) -> str:
    if total >= 1.5:
        return "heavy"
    if total >= 1:
        return "medium"
    return "light"


def add_to_block(
    task: ClassifiedTask,
    block: BlockSlot,
    settings: SchedulerSettings,
) -> TaskAssignment:
    overflow = max(task.estimated_minutes - max(block.remaining_minutes, 0), 0)
    assignment = TaskAssignment(
        task=task,
        position=len(block.assignments) + 1,
        allocated_minutes=task.estimated_minutes,
        shared_block_id=shared_block_id(block),
        overflow_minutes=overflow,
    )
    block.assignments.append(assignment)
    block.used_minutes += task.estimated_minutes
    block.load_total += settings.load_weight(task.cognitive_load)
    block.load_label = load_label(block.load_total)
    return assignment


@dataclass
class PlacementResult:
    placed: List[TaskAssignment] = field(default_factory=list)
    unscheduled: List[ClassifiedTask] = field(default_factory=list)
    splits: List[SplitResult] = field(default_factory=list)

    @property
    def partial_splits(self) -> List[SplitResult]:
        return [s for s in self.splits if not s.complete]


class PlacementEngine:
    """Assigns academic tasks to open blocks in strict priority order."""

    def __init__(
        self,
        settings: Optional[SchedulerSettings] = None,
        splitter: Optional[Splitter] = None,
        preferences: Sequence[Preference] = PREFERENCES,
    ):
        self.settings = settings or SchedulerSettings()
        self.splitter = splitter or Splitter(self.settings)
        self.preferences = preferences

    def sort(self, tasks: Sequence[ClassifiedTask]) -> List[ClassifiedTask]:
        return sorted(tasks, key=priority_key)

    def place(self, task: ClassifiedTask, blocks: Sequence[BlockSlot]) -> Optional[TaskAssignment]:
        block, reason = choose_block(task, blocks, self.settings, self.preferences)
        if block is None:
            return None

        assignment = add_to_block(task, block, self.settings)
        logger.debug(
            f"Placed '{task.title}' in block {block.block_number} on {block.date} "
            f"({reason}, load {block.load_total})"
        )
        if assignment.overflow_minutes:
            logger.debug(
                f"'{task.title}' overflows block {block.block_number} on {block.date} "
                f"by {assignment.overflow_minutes} min"
            )
        return assignment

    def run(self, tasks: Sequence[ClassifiedTask], blocks: Sequence[BlockSlot]) -> PlacementResult:
        result = PlacementResult()

        for task in self.sort(tasks):
            if self.splitter.needs_split(task):
                split = self.splitter.split_and_place(task, blocks, self.place)
                result.splits.append(split)
                result.placed.extend(split.assignments)
                if not split.complete:
                    result.unscheduled.append(task)
                continue

            assignment = self.place(task, blocks)
            if assignment is None:
                logger.warning(f"No block available for '{task.title}' ({task.id})")
                result.unscheduled.append(task)
            else:
                result.placed.append(assignment)

        return result
