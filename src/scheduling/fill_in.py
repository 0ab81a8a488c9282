from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional, Sequence

from family_scheduler.config import SchedulerSettings
from family_scheduler.models import BlockSlot, ClassifiedTask, TaskAssignment
from scheduling.placement import add_to_block
from scheduling.preferences import within_load_ceiling

logger = logging.getLogger(__name__)


class FillInPass:
    """Drops quick-review tasks into whatever room is left after academic placement."""

    def __init__(self, settings: Optional[SchedulerSettings] = None):
        self.settings = settings or SchedulerSettings()

    def sort(self, tasks: Sequence[ClassifiedTask]) -> List[ClassifiedTask]:
        return sorted(
            tasks,
            key=lambda t: (
                t.due_date is None,
                t.due_date or date.max,
                t.estimated_minutes,
                t.id,
            ),
        )

    def fits(self, task: ClassifiedTask, block: BlockSlot) -> bool:
        needed = task.estimated_minutes + self.settings.fill_in_buffer_minutes
        return block.remaining_minutes >= needed and within_load_ceiling(task, block, self.settings)

    def run(self, tasks: Sequence[ClassifiedTask], blocks: Sequence[BlockSlot]) -> List[ClassifiedTask]:
        """Place what fits; return the tasks that found no room."""
        leftover: List[ClassifiedTask] = []
        for task in self.sort(tasks):
            block = next((b for b in blocks if self.fits(task, b)), None)
            if block is None:
                leftover.append(task)
                continue
            assignment: TaskAssignment = add_to_block(task, block, self.settings)
            logger.debug(
                f"Filled '{task.title}' into block {block.block_number} on {block.date} "
                f"(position {assignment.position})"
            )
        return leftover
