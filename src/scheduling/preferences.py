"""
Block preference rules for placing a single task.

Hard constraints (capacity and cognitive-load ceiling) decide which blocks are
eligible at all. Among eligible blocks, soft preferences are evaluated in a
fixed precedence; the first block (in slot order) that satisfies the
highest-ranked preference wins, so ties are always broken by slot order.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from family_scheduler.config import SchedulerSettings
from family_scheduler.models import BlockSlot, ClassifiedTask

Predicate = Callable[[ClassifiedTask, BlockSlot, SchedulerSettings], bool]


@dataclass(frozen=True)
class Preference:
    name: str
    predicate: Predicate

    def __call__(self, task: ClassifiedTask, block: BlockSlot, settings: SchedulerSettings) -> bool:
        return self.predicate(task, block, settings)


def has_capacity(task: ClassifiedTask, block: BlockSlot, settings: SchedulerSettings) -> bool:
    """Remaining capacity covers the task, or at least enough of it to get started."""
    needed = min(task.estimated_minutes, settings.min_placeable_minutes)
    return block.remaining_minutes >= needed


def within_load_ceiling(task: ClassifiedTask, block: BlockSlot, settings: SchedulerSettings) -> bool:
    return block.load_total + settings.load_weight(task.cognitive_load) <= settings.load_ceiling


def preferred_block_number(task: ClassifiedTask, settings: SchedulerSettings) -> Optional[int]:
    course = task.course.lower()
    for subject, block_number in settings.preferred_blocks.items():
        if task.subject == subject or subject.lower() in course:
            return block_number
    return None


def subject_affinity(task: ClassifiedTask, block: BlockSlot, settings: SchedulerSettings) -> bool:
    return preferred_block_number(task, settings) == block.block_number


def avoids_clustering(task: ClassifiedTask, block: BlockSlot, settings: SchedulerSettings) -> bool:
    """No back-to-back same subject, and no heavy task right after another heavy one."""
    last = block.last_task
    if last is None:
        return True
    if last.subject == task.subject:
        return False
    if task.cognitive_load == "heavy" and last.cognitive_load == "heavy":
        return False
    return True


def any_block(task: ClassifiedTask, block: BlockSlot, settings: SchedulerSettings) -> bool:
    return True


HARD_CONSTRAINTS: Tuple[Preference, ...] = (
    Preference("capacity", has_capacity),
    Preference("load_ceiling", within_load_ceiling),
)

PREFERENCES: Tuple[Preference, ...] = (
    Preference("subject_affinity", subject_affinity),
    Preference("anti_clustering", avoids_clustering),
    Preference("fallback", any_block),
)


def eligible_blocks(
    task: ClassifiedTask,
    blocks: Sequence[BlockSlot],
    settings: SchedulerSettings,
) -> List[BlockSlot]:
    return [b for b in blocks if all(rule(task, b, settings) for rule in HARD_CONSTRAINTS)]


def choose_block(
    task: ClassifiedTask,
    blocks: Sequence[BlockSlot],
    settings: SchedulerSettings,
    preferences: Sequence[Preference] = PREFERENCES,
) -> Tuple[Optional[BlockSlot], Optional[str]]:
    """Return the chosen block and the name of the preference that selected it."""
    candidates = eligible_blocks(task, blocks, settings)
    if not candidates:
        return None, None

    for pref in preferences:
        for block in candidates:
            if pref(task, block, settings):
                return block, pref.name
    return None, None
