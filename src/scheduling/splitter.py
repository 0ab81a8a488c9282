from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from family_scheduler.config import SchedulerSettings
from family_scheduler.models import BlockSlot, ClassifiedTask, TaskAssignment, TaskPartRef

logger = logging.getLogger(__name__)

PlaceFn = Callable[[ClassifiedTask, Sequence[BlockSlot]], Optional[TaskAssignment]]


@dataclass
class SplitResult:
    parent: ClassifiedTask
    total_parts: int
    assignments: List[TaskAssignment] = field(default_factory=list)

    @property
    def placed_parts(self) -> int:
        return len(self.assignments)

    @property
    def complete(self) -> bool:
        return self.placed_parts == self.total_parts

    @property
    def placed_minutes(self) -> int:
        return sum(a.allocated_minutes for a in self.assignments)


class Splitter:
    """Breaks tasks longer than one block into block-sized parts."""

    def __init__(self, settings: Optional[SchedulerSettings] = None):
        self.settings = settings or SchedulerSettings()

    def needs_split(self, task: ClassifiedTask) -> bool:
        # the rest of a partially stored split always continues as parts
        return task.parts_done > 0 or task.estimated_minutes > self.settings.max_block_minutes

    def make_parts(self, task: ClassifiedTask) -> List[ClassifiedTask]:
        """
        Block-sized parts of what is left of the task. Numbering continues
        after the parts already stored, so part ids never collide with them.
        """
        max_block = self.settings.max_block_minutes
        total_parts = task.parts_done + math.ceil(task.estimated_minutes / max_block)
        remaining = task.estimated_minutes
        parts = []
        for n in range(task.parts_done + 1, total_parts + 1):
            minutes = min(remaining, max_block)
            remaining -= minutes
            parts.append(
                task.model_copy(
                    update={
                        "id": f"{task.id}:{n}/{total_parts}",
                        "title": f"{task.title} (Part {n}/{total_parts})",
                        "estimated_minutes": minutes,
                        "part": TaskPartRef(
                            base_id=task.id,
                            part_number=n,
                            total_parts=total_parts,
                        ),
                    }
                )
            )
        return parts

    def split_and_place(
        self,
        task: ClassifiedTask,
        blocks: Sequence[BlockSlot],
        place: PlaceFn,
    ) -> SplitResult:
        """
        Place parts in order until one fails. Whatever is left after the first
        failure is dropped, not retried.
        """
        parts = self.make_parts(task)
        result = SplitResult(parent=task, total_parts=len(parts))

        for part in parts:
            assignment = place(part, blocks)
            if assignment is None:
                logger.info(
                    f"Could not place part {part.part.part_number}/{part.part.total_parts} "
                    f"of '{task.title}', stopping split"
                )
                break
            result.assignments.append(assignment)

        logger.debug(
            f"Split '{task.title}' ({task.estimated_minutes} min): "
            f"{result.placed_parts}/{result.total_parts} parts placed"
        )
        return result
