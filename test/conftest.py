from datetime import date, datetime, time

import pytest

from family_scheduler.config import SchedulerSettings
from family_scheduler.models import (
    BlockSlot,
    ClassifiedTask,
    TaskRecord,
    TemplateBlock,
    WeeklyTemplate,
)

# Monday morning, before any block has started
MONDAY = date(2026, 10, 19)
NOW = datetime(2026, 10, 19, 7, 30)


class FakeTaskStore:
    """
    In-memory stand-in for PostgresTaskStore. Keeps one row per task id and
    one row per (parent id, part number), and derives its reads from them.
    """

    def __init__(self, tasks=None, occupied=None, blocked=None):
        self.tasks = list(tasks or [])
        self.occupied = set(occupied or ())
        self.blocked = set(blocked or ())
        self.rows = {}
        self.parts = {}
        self.split_done = set()
        self.updates = []
        self.missing_ids = set()
        self.failing_ids = set()
        self.fail_fetch = None

    async def fetch_unscheduled_tasks(self, student):
        if self.fail_fetch == "tasks":
            raise ConnectionError("connection refused")
        pending = []
        for task in self.tasks:
            if task.id in self.rows or task.id in self.split_done:
                continue
            stored = [(n, minutes) for (pid, n), (minutes, _) in self.parts.items() if pid == task.id]
            if stored:
                task = task.model_copy(update={
                    "scheduled_parts": max(n for n, _ in stored),
                    "scheduled_minutes": sum(m for _, m in stored),
                })
            pending.append(task)
        return pending

    async def fetch_occupied_blocks(self, student, start, end):
        if self.fail_fetch == "occupied":
            raise ConnectionError("connection refused")
        taken = set(self.occupied)
        taken |= {(u.scheduled_date, u.scheduled_block) for u in self.rows.values()}
        taken |= {(u.scheduled_date, u.scheduled_block) for _, u in self.parts.values()}
        return {k for k in taken if start <= k[0] <= end}

    async def fetch_blocked_dates(self, student, start, end):
        if self.fail_fetch == "events":
            raise ConnectionError("connection refused")
        return {d for d in self.blocked if start <= d <= end}

    def _check(self, task_id):
        if task_id in self.failing_ids:
            raise RuntimeError("deadlock detected")
        return task_id not in self.missing_ids

    async def update_schedule(self, task_id, update):
        if not self._check(task_id):
            return False
        self.rows[task_id] = update
        self.updates.append((task_id, update))
        return True

    async def save_part_schedule(self, part, allocated_minutes, update):
        if not self._check(part.base_id):
            return False
        self.parts[(part.base_id, part.part_number)] = (allocated_minutes, update)
        self.updates.append((part.base_id, update))
        return True

    async def mark_split_scheduled(self, task_id):
        if not self._check(task_id):
            return False
        self.split_done.add(task_id)
        return True


class FakeTemplateStore:
    def __init__(self, template=None, error=None):
        self.template = template
        self.error = error

    def load(self, student):
        if self.error is not None:
            raise self.error
        return self.template


def weekday_template(*blocks):
    """Same assignment blocks on every weekday. blocks: (number, "HH:MM", "HH:MM")."""
    day = [
        TemplateBlock(block_number=n, start_time=s, end_time=e, is_assignment_block=True)
        for n, s, e in blocks
    ]
    return WeeklyTemplate(
        days={d: list(day) for d in ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday")}
    )


@pytest.fixture
def settings():
    return SchedulerSettings()


@pytest.fixture
def make_task():
    counter = {"n": 0}

    def _make(**kwargs) -> ClassifiedTask:
        counter["n"] += 1
        data = {
            "id": f"t{counter['n']:02d}",
            "title": f"Task {counter['n']}",
            "estimated_minutes": 30,
        }
        data.update(kwargs)
        return ClassifiedTask(**data)

    return _make


@pytest.fixture
def make_record():
    counter = {"n": 0}

    def _make(**kwargs) -> TaskRecord:
        counter["n"] += 1
        data = {
            "id": f"00000000-0000-4000-8000-{counter['n']:012d}",
            "title": f"Lesson {counter['n']}",
        }
        data.update(kwargs)
        return TaskRecord(**data)

    return _make


@pytest.fixture
def make_block():
    def _make(block_number=2, day=MONDAY, total=45, buffer=5) -> BlockSlot:
        return BlockSlot(
            date=day,
            block_number=block_number,
            weekday=day.strftime("%A"),
            start_time=time(9, 0),
            total_minutes=total,
            buffer_minutes=buffer,
        )

    return _make


@pytest.fixture
def template():
    return weekday_template((2, "09:00", "09:45"), (3, "10:00", "10:45"), (6, "13:00", "13:45"))


@pytest.fixture
def fake_store_factory():
    def _make(**kwargs):
        return FakeTaskStore(**kwargs)
    return _make
