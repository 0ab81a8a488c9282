import asyncio
import uuid
from datetime import date, datetime

import pytest

from family_scheduler.models import TaskPartRef
from scheduling.executor import ScheduleUpdate
from storage import db
from storage.task_store import PostgresTaskStore, task_from_record

TASK_ID = "3f2504e0-4f89-41d3-9a0c-0305e82c3301"


def _row(**overrides):
    row = {
        "id": uuid.UUID(TASK_ID),
        "title": "Lesson 45 practice",
        "task_type": None,
        "actual_estimated_minutes": 25,
        "cognitive_load": None,
        "subject": None,
        "course_name": "Saxon Math 7/6",
        "urgency": None,
        "due_date": datetime(2026, 10, 21, 23, 59),
        "priority": None,
        "completion_status": None,
        "progress_percentage": None,
        "scheduled_parts": None,
        "scheduled_minutes": None,
    }
    row.update(overrides)
    return row


@pytest.fixture
def fake_db(monkeypatch):
    calls = {"fetch": [], "execute": []}
    rows = {"fetch": []}

    async def fake_fetch(query, *args):
        calls["fetch"].append((query, args))
        return rows["fetch"]

    async def fake_execute(query, *args):
        calls["execute"].append((query, args))
        verb = "INSERT 0" if "INSERT" in query else "UPDATE"
        return f"{verb} 1" if args[0] == uuid.UUID(TASK_ID) else f"{verb} 0"

    monkeypatch.setattr(db, "fetch", fake_fetch)
    monkeypatch.setattr(db, "execute", fake_execute)
    return calls, rows


def test_task_from_record_fills_defaults():
    task = task_from_record(_row())
    assert task.id == TASK_ID
    assert task.due_date == date(2026, 10, 21)
    assert task.priority == "medium"
    assert task.completion_state == "not_started"
    assert task.course == "Saxon Math 7/6"


def test_fetch_unscheduled_tasks(fake_db):
    calls, rows = fake_db
    rows["fetch"] = [_row()]

    tasks = asyncio.run(PostgresTaskStore().fetch_unscheduled_tasks("Khalil"))

    assert [t.id for t in tasks] == [TASK_ID]
    _, args = calls["fetch"][0]
    assert args[0] == "Khalil"
    assert "stuck" in args[1]


def test_fetch_occupied_and_blocked(fake_db):
    calls, rows = fake_db
    store = PostgresTaskStore()

    rows["fetch"] = [{"scheduled_date": date(2026, 10, 20), "scheduled_block": 3}]
    occupied = asyncio.run(store.fetch_occupied_blocks("Abigail", date(2026, 10, 19), date(2026, 10, 26)))
    rows["fetch"] = [{"event_date": date(2026, 10, 23)}]
    blocked = asyncio.run(store.fetch_blocked_dates("Abigail", date(2026, 10, 19), date(2026, 10, 26)))

    assert occupied == {(date(2026, 10, 20), 3)}
    assert blocked == {date(2026, 10, 23)}


def test_update_schedule(fake_db):
    calls, _ = fake_db
    update = ScheduleUpdate(
        scheduled_block=2,
        scheduled_date=date(2026, 10, 20),
        scheduled_weekday="Tuesday",
        shared_block_id=str(uuid.uuid4()),
        position=1,
        buffer_minutes=5,
    )
    store = PostgresTaskStore()

    assert asyncio.run(store.update_schedule(TASK_ID, update))
    assert not asyncio.run(store.update_schedule(str(uuid.uuid4()), update))
    _, args = calls["execute"][0]
    assert args[1:5] == (2, date(2026, 10, 20), "Tuesday", uuid.UUID(update.shared_block_id))


def test_pool_must_be_initialized(monkeypatch):
    monkeypatch.setattr(db, "_pool", None)
    with pytest.raises(RuntimeError):
        db.get_pool()


def test_partly_split_task_comes_back_with_its_stored_parts():
    task = task_from_record(_row(actual_estimated_minutes=135, scheduled_parts=2, scheduled_minutes=90))
    assert (task.scheduled_parts, task.scheduled_minutes) == (2, 90)


def _update():
    return ScheduleUpdate(
        scheduled_block=3,
        scheduled_date=date(2026, 10, 21),
        scheduled_weekday="Wednesday",
        shared_block_id=str(uuid.uuid4()),
        position=2,
        buffer_minutes=0,
    )


def test_save_part_schedule_writes_a_part_row(fake_db):
    calls, _ = fake_db
    store = PostgresTaskStore()
    part = TaskPartRef(base_id=TASK_ID, part_number=2, total_parts=3)

    assert asyncio.run(store.save_part_schedule(part, 45, _update()))
    missing = TaskPartRef(base_id=str(uuid.uuid4()), part_number=1, total_parts=2)
    assert not asyncio.run(store.save_part_schedule(missing, 45, _update()))

    query, args = calls["execute"][0]
    assert "INSERT INTO assignment_parts" in query
    assert "UPDATE assignments" not in query
    assert args[:6] == (uuid.UUID(TASK_ID), 2, 3, 45, 3, date(2026, 10, 21))


def test_mark_split_scheduled(fake_db):
    calls, _ = fake_db
    assert asyncio.run(PostgresTaskStore().mark_split_scheduled(TASK_ID))
    query, args = calls["execute"][0]
    assert "split_scheduled = TRUE" in query
    assert args == (uuid.UUID(TASK_ID),)


def test_occupied_blocks_include_stored_parts(fake_db):
    calls, rows = fake_db
    rows["fetch"] = []
    asyncio.run(PostgresTaskStore().fetch_occupied_blocks("Abigail", date(2026, 10, 19), date(2026, 10, 26)))
    query, _ = calls["fetch"][0]
    assert "assignment_parts" in query
