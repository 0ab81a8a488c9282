from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Collection, List, Optional, Tuple

from family_scheduler.config import SchedulerSettings
from family_scheduler.models import WEEKDAYS, BlockSlot, WeeklyTemplate

logger = logging.getLogger(__name__)


class AvailabilityProvider:
    """
    Expands a student's weekly block template into the open (date, block) slots
    of a scheduling horizon.
    """

    def __init__(self, settings: Optional[SchedulerSettings] = None):
        self.settings = settings or SchedulerSettings()

    def effective_start(self, now: datetime, start_date: Optional[date] = None) -> date:
        """
        Explicit start dates are used as given ("what-if" runs). Otherwise start
        today, or tomorrow once the evening cutoff has passed.
        """
        if start_date is not None:
            return start_date
        if now.hour >= self.settings.cutoff_hour:
            return now.date() + timedelta(days=1)
        return now.date()

    def open_blocks(
        self,
        template: WeeklyTemplate,
        horizon_days: int,
        now: datetime,
        start_date: Optional[date] = None,
        blocked_dates: Collection[date] = (),
        occupied: Collection[Tuple[date, int]] = (),
    ) -> List[BlockSlot]:
        start = self.effective_start(now, start_date)
        blocked = set(blocked_dates)
        taken = set(occupied)
        slots: List[BlockSlot] = []

        for offset in range(horizon_days):
            day = start + timedelta(days=offset)
            weekday = WEEKDAYS[day.weekday()]

            if day.weekday() >= 5:
                continue
            if day in blocked:
                logger.debug(f"Skipping {day}: all-day event")
                continue

            for block in template.assignment_blocks_for(weekday):
                if (day, block.block_number) in taken:
                    continue
                # blocks of today that already started are gone
                if (
                    day == now.date()
                    and block.start_time is not None
                    and block.start_time < now.time()
                ):
                    continue

                slots.append(
                    BlockSlot(
                        date=day,
                        block_number=block.block_number,
                        weekday=weekday,
                        start_time=block.start_time,
                        total_minutes=block.duration_min or self.settings.block_minutes,
                        buffer_minutes=self.settings.buffer_minutes,
                    )
                )

        logger.info(
            f"{len(slots)} open blocks from {start} over {horizon_days} days "
            f"({len(blocked)} blocked dates, {len(taken)} occupied blocks)"
        )
        return slots
