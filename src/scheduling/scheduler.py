from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import List, Optional

from classification.task_classifier import TaskClassifier
from family_scheduler.config import SchedulerSettings
from family_scheduler.models import ClassifiedTask, SchedulingDecision, SchedulingSnapshot
from scheduling.availability import AvailabilityProvider
from scheduling.diagnostics import WarningGenerator
from scheduling.fill_in import FillInPass
from scheduling.metrics import (
    ANALYSES_TOTAL,
    ANALYSIS_LATENCY_SECONDS,
    TASK_SPLITS_TOTAL,
    TASKS_PLACED_TOTAL,
    TASKS_UNSCHEDULED_TOTAL,
)
from scheduling.placement import PlacementEngine

logger = logging.getLogger(__name__)


class Scheduler:
    """
    Turns one SchedulingSnapshot into a SchedulingDecision.

    Pure and synchronous: no I/O happens here, and nothing survives between
    calls, so the same snapshot always yields the same placement.
    """

    def __init__(
        self,
        settings: Optional[SchedulerSettings] = None,
        classifier: Optional[TaskClassifier] = None,
    ):
        self.settings = settings or SchedulerSettings()
        self.classifier = classifier or TaskClassifier()
        self.availability = AvailabilityProvider(self.settings)
        self.placement = PlacementEngine(self.settings)
        self.fill_in = FillInPass(self.settings)
        self.diagnostics = WarningGenerator(self.settings)

    def in_window(self, task: ClassifiedTask, start: date, horizon_days: int) -> bool:
        if task.completion_state == "completed":
            return False
        if task.due_date is None:
            return True
        window_start = start - timedelta(days=self.settings.window_lookback_days)
        window_end = start + timedelta(days=horizon_days + self.settings.window_lookahead_days)
        return window_start <= task.due_date <= window_end

    def schedule(self, snapshot: SchedulingSnapshot) -> SchedulingDecision:
        try:
            with ANALYSIS_LATENCY_SECONDS.time():
                decision = self._schedule(snapshot)
        except Exception:
            ANALYSES_TOTAL.labels(status="error").inc()
            raise
        ANALYSES_TOTAL.labels(status="ok").inc()
        return decision

    def _schedule(self, snapshot: SchedulingSnapshot) -> SchedulingDecision:
        start = self.availability.effective_start(snapshot.now, snapshot.start_date)
        logger.info(
            f"Analyzing {len(snapshot.tasks)} tasks for {snapshot.student} "
            f"from {start} ({snapshot.horizon_days} days)"
        )

        classified = self.classifier.classify(
            snapshot.tasks, student=snapshot.student, today=snapshot.now.date()
        )
        tasks = [t for t in classified if self.in_window(t, start, snapshot.horizon_days)]

        academic = [t for t in tasks if t.category == "academic"]
        quick_review = [t for t in tasks if t.category == "quick_review"]
        administrative = [t for t in tasks if t.category == "administrative"]
        logger.info(
            f"Task breakdown: {len(academic)} academic, {len(quick_review)} quick review, "
            f"{len(administrative)} administrative"
        )

        blocks = self.availability.open_blocks(
            snapshot.template,
            snapshot.horizon_days,
            snapshot.now,
            start_date=start,
            blocked_dates=snapshot.blocked_dates,
            occupied=snapshot.occupied,
        )

        placement = self.placement.run(academic, blocks)
        leftover_quick = self.fill_in.run(quick_review, blocks)

        unscheduled: List[ClassifiedTask] = placement.unscheduled + leftover_quick
        warnings = self.diagnostics.generate(blocks, unscheduled, placement.partial_splits)
        occupied = [b for b in blocks if b.is_occupied]

        for block in occupied:
            for a in block.assignments:
                TASKS_PLACED_TOTAL.labels(category=a.task.category).inc()
        TASKS_UNSCHEDULED_TOTAL.inc(len(unscheduled))
        for split in placement.splits:
            TASK_SPLITS_TOTAL.labels(outcome="complete" if split.complete else "partial").inc()

        logger.info(
            f"Scheduled {sum(len(b.assignments) for b in occupied)} assignments in "
            f"{len(occupied)} blocks for {snapshot.student}; {len(unscheduled)} unscheduled"
        )
        for w in warnings:
            logger.warning(f"{snapshot.student}: {w}")

        return SchedulingDecision(
            student=snapshot.student,
            start_date=start,
            occupied_blocks=occupied,
            administrative_tasks=administrative,
            unscheduled_tasks=unscheduled,
            warnings=warnings,
        )
