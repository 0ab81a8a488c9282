from __future__ import annotations

from collections import defaultdict
from datetime import date
from typing import Dict, List, Optional, Sequence

from family_scheduler.config import SchedulerSettings
from family_scheduler.models import BlockSlot, ClassifiedTask
from scheduling.splitter import SplitResult

HEAVY_DAY_THRESHOLD = 1.5


class WarningGenerator:
    """Advisory notes about a finished plan. Purely informational."""

    def __init__(self, settings: Optional[SchedulerSettings] = None):
        self.settings = settings or SchedulerSettings()

    def heavy_days(self, blocks: Sequence[BlockSlot]) -> int:
        loads: Dict[date, List[float]] = defaultdict(list)
        for block in blocks:
            if block.is_occupied:
                loads[block.date].append(block.load_total)
        return sum(1 for day_loads in loads.values()
                   if sum(day_loads) / len(day_loads) >= HEAVY_DAY_THRESHOLD)

    def generate(
        self,
        blocks: Sequence[BlockSlot],
        unscheduled: Sequence[ClassifiedTask],
        partial_splits: Sequence[SplitResult] = (),
    ) -> List[str]:
        warnings: List[str] = []
        occupied = [b for b in blocks if b.is_occupied]

        overdue = sum(1 for t in unscheduled if t.urgency == "overdue")
        if overdue:
            warnings.append(f"{overdue} overdue assignment(s) could not be scheduled")

        heavy = self.heavy_days(occupied)
        if heavy:
            warnings.append(
                f"High cognitive load on {heavy} day(s) - consider redistributing"
            )

        tight = sum(1 for b in occupied if b.remaining_minutes < self.settings.min_buffer_minutes)
        if tight:
            warnings.append(
                f"{tight} block(s) left with less than {self.settings.min_buffer_minutes} "
                f"minutes of buffer"
            )

        overflowing = sum(1 for b in occupied for a in b.assignments if a.overflow_minutes > 0)
        if overflowing:
            warnings.append(
                f"{overflowing} task(s) run past their block and need to be continued later"
            )

        for split in partial_splits:
            warnings.append(
                f"'{split.parent.title}' only partially scheduled "
                f"({split.placed_parts}/{split.total_parts} parts, "
                f"{split.parent.estimated_minutes - split.placed_minutes} min left)"
            )

        return warnings
