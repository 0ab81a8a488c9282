import asyncio
import logging
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Protocol, Set, Tuple

from family_scheduler.config import SchedulerSettings
from family_scheduler.errors import FetchFailure
from family_scheduler.models import (
    SchedulingDecision,
    SchedulingSnapshot,
    TaskRecord,
    WeeklyTemplate,
)
from scheduling.executor import ExecutionResult, ScheduleExecutor, TaskWriter
from scheduling.scheduler import Scheduler

logger = logging.getLogger(__name__)


class TaskSource(TaskWriter, Protocol):
    async def fetch_unscheduled_tasks(self, student: str) -> List[TaskRecord]: ...

    async def fetch_occupied_blocks(
        self, student: str, start: date, end: date
    ) -> Set[Tuple[date, int]]: ...

    async def fetch_blocked_dates(self, student: str, start: date, end: date) -> Set[date]: ...


class TemplateSource(Protocol):
    def load(self, student: str) -> WeeklyTemplate: ...


class SchedulingService:
    """Central entry point: gathers inputs, runs the analysis, writes results back."""

    def __init__(
        self,
        tasks: TaskSource,
        templates: TemplateSource,
        settings: Optional[SchedulerSettings] = None,
    ):
        self.tasks = tasks
        self.templates = templates
        self.settings = settings or SchedulerSettings()
        self.scheduler = Scheduler(self.settings)
        self.executor = ScheduleExecutor(tasks)

    async def build_snapshot(
        self,
        student: str,
        horizon_days: Optional[int] = None,
        start_date: Optional[date] = None,
        now: Optional[datetime] = None,
    ) -> SchedulingSnapshot:
        """
        Fetch every input concurrently. All reads must succeed before anything
        is placed; the first failure aborts with FetchFailure.
        """
        now = now or datetime.now()
        horizon_days = horizon_days or self.settings.horizon_days
        start = self.scheduler.availability.effective_start(now, start_date)
        end = start + timedelta(days=horizon_days)

        sources = ("tasks", "occupied blocks", "all-day events", "weekly template")
        results = await asyncio.gather(
            self.tasks.fetch_unscheduled_tasks(student),
            self.tasks.fetch_occupied_blocks(student, start, end),
            self.tasks.fetch_blocked_dates(student, start, end),
            asyncio.to_thread(self.templates.load, student),
            return_exceptions=True,
        )
        for source, outcome in zip(sources, results):
            if isinstance(outcome, FetchFailure):
                raise outcome
            if isinstance(outcome, Exception):
                raise FetchFailure(source, student=student, reason=str(outcome)) from outcome

        tasks, occupied, blocked, template = results
        return SchedulingSnapshot(
            student=student,
            tasks=tasks,
            template=template,
            blocked_dates=blocked,
            occupied=occupied,
            now=now,
            start_date=start,
            horizon_days=horizon_days,
        )

    async def analyze(
        self,
        student: str,
        horizon_days: Optional[int] = None,
        start_date: Optional[date] = None,
        now: Optional[datetime] = None,
    ) -> SchedulingDecision:
        snapshot = await self.build_snapshot(student, horizon_days, start_date, now)
        return self.scheduler.schedule(snapshot)

    async def execute(self, decision: SchedulingDecision) -> ExecutionResult:
        return await self.executor.execute(decision)

    async def analyze_and_execute(
        self,
        student: str,
        horizon_days: Optional[int] = None,
        start_date: Optional[date] = None,
        now: Optional[datetime] = None,
    ) -> Tuple[SchedulingDecision, ExecutionResult]:
        decision = await self.analyze(student, horizon_days, start_date, now)
        result = await self.execute(decision)
        return decision, result

    async def auto_schedule(
        self,
        students: Iterable[str],
        now: Optional[datetime] = None,
    ) -> Dict[str, Optional[ExecutionResult]]:
        """
        Unattended run over several students. A student whose inputs cannot be
        fetched is skipped (mapped to None); the others still run.
        """
        outcome: Dict[str, Optional[ExecutionResult]] = {}
        for student in students:
            try:
                _, result = await self.analyze_and_execute(student, now=now)
            except FetchFailure as e:
                logger.error(f"Auto-schedule skipped {student}: {e}")
                outcome[student] = None
                continue
            outcome[student] = result
        return outcome
