"""
Task store backed by the PostgreSQL ``assignments``, ``assignment_parts`` and
``all_day_events`` tables.

Reads feed a SchedulingSnapshot; the writes are the schedule executor's
per-task field update and the per-part rows of split tasks.
"""

import logging
import uuid
from datetime import date
from typing import List, Set, Tuple

from family_scheduler.models import TaskPartRef, TaskRecord
from scheduling.executor import ScheduleUpdate
from storage import db

logger = logging.getLogger(__name__)

SCHEDULABLE_STATES = ["not_started", "in_progress", "stuck"]


def task_from_record(record) -> TaskRecord:
    """Create a TaskRecord from an ``assignments`` row."""
    return TaskRecord(
        id=str(record["id"]),
        title=record["title"],
        category=record["task_type"],
        duration=record["actual_estimated_minutes"],
        cognitive_load=record["cognitive_load"],
        subject=record["subject"],
        course=record["course_name"],
        urgency=record["urgency"],
        due_date=record["due_date"],
        priority=record["priority"] or "medium",
        completion_state=record["completion_status"] or "not_started",
        progress=record["progress_percentage"],
        scheduled_parts=record["scheduled_parts"] or 0,
        scheduled_minutes=record["scheduled_minutes"] or 0,
    )


class PostgresTaskStore:

    async def fetch_unscheduled_tasks(self, student: str) -> List[TaskRecord]:
        """
        Open, schedulable tasks with no block yet, earliest due first. A
        partially split task comes back with the parts it already has.
        """
        query = """
            SELECT a.id, a.title, a.task_type, a.actual_estimated_minutes, a.cognitive_load,
                   a.subject, a.course_name, a.urgency, a.due_date, a.priority,
                   a.completion_status, a.progress_percentage,
                   p.scheduled_parts, p.scheduled_minutes
            FROM assignments a
            LEFT JOIN (
                SELECT parent_id,
                       MAX(part_number) AS scheduled_parts,
                       SUM(allocated_minutes) AS scheduled_minutes
                FROM assignment_parts
                GROUP BY parent_id
            ) p ON p.parent_id = a.id
            WHERE a.student_name = $1
              AND a.scheduled_block IS NULL
              AND NOT a.split_scheduled
              AND a.eligible_for_scheduling
              AND a.completion_status = ANY($2::text[])
            ORDER BY a.due_date ASC NULLS LAST, a.id
        """
        records = await db.fetch(query, student, SCHEDULABLE_STATES)
        tasks = [task_from_record(r) for r in records]
        logger.info(f"Fetched {len(tasks)} unscheduled tasks for {student}")
        return tasks

    async def fetch_occupied_blocks(
        self, student: str, start: date, end: date
    ) -> Set[Tuple[date, int]]:
        """(date, block) pairs already taken by scheduled tasks or stored split parts."""
        query = """
            SELECT scheduled_date, scheduled_block
            FROM assignments
            WHERE student_name = $1
              AND scheduled_block IS NOT NULL
              AND scheduled_date BETWEEN $2 AND $3
            UNION
            SELECT p.scheduled_date, p.scheduled_block
            FROM assignment_parts p
            JOIN assignments a ON a.id = p.parent_id
            WHERE a.student_name = $1
              AND p.scheduled_date BETWEEN $2 AND $3
        """
        records = await db.fetch(query, student, start, end)
        return {(r["scheduled_date"], r["scheduled_block"]) for r in records}

    async def fetch_blocked_dates(self, student: str, start: date, end: date) -> Set[date]:
        """Dates fully blocked by an all-day event."""
        query = """
            SELECT DISTINCT event_date
            FROM all_day_events
            WHERE student_name = $1
              AND event_date BETWEEN $2 AND $3
        """
        records = await db.fetch(query, student, start, end)
        return {r["event_date"] for r in records}

    async def update_schedule(self, task_id: str, update: ScheduleUpdate) -> bool:
        query = """
            UPDATE assignments
            SET scheduled_block = $2,
                scheduled_date = $3,
                scheduled_day = $4,
                shared_block_id = $5,
                block_position = $6,
                buffer_time_minutes = $7,
                updated_at = NOW()
            WHERE id = $1
        """
        result = await db.execute(
            query,
            uuid.UUID(task_id),
            update.scheduled_block,
            update.scheduled_date,
            update.scheduled_weekday,
            uuid.UUID(update.shared_block_id),
            update.position,
            update.buffer_minutes,
        )
        return result == "UPDATE 1"

    async def save_part_schedule(
        self, part: TaskPartRef, allocated_minutes: int, update: ScheduleUpdate
    ) -> bool:
        # selecting from the parent turns a missing parent into "INSERT 0 0"
        query = """
            INSERT INTO assignment_parts (
                parent_id, part_number, total_parts, allocated_minutes,
                scheduled_block, scheduled_date, scheduled_day,
                shared_block_id, block_position, buffer_time_minutes
            )
            SELECT id, $2, $3, $4, $5, $6, $7, $8, $9, $10
            FROM assignments
            WHERE id = $1
            ON CONFLICT (parent_id, part_number) DO UPDATE
            SET total_parts = EXCLUDED.total_parts,
                allocated_minutes = EXCLUDED.allocated_minutes,
                scheduled_block = EXCLUDED.scheduled_block,
                scheduled_date = EXCLUDED.scheduled_date,
                scheduled_day = EXCLUDED.scheduled_day,
                shared_block_id = EXCLUDED.shared_block_id,
                block_position = EXCLUDED.block_position,
                buffer_time_minutes = EXCLUDED.buffer_time_minutes,
                updated_at = NOW()
        """
        result = await db.execute(
            query,
            uuid.UUID(part.base_id),
            part.part_number,
            part.total_parts,
            allocated_minutes,
            update.scheduled_block,
            update.scheduled_date,
            update.scheduled_weekday,
            uuid.UUID(update.shared_block_id),
            update.position,
            update.buffer_minutes,
        )
        return result == "INSERT 0 1"

    async def mark_split_scheduled(self, task_id: str) -> bool:
        query = """
            UPDATE assignments
            SET split_scheduled = TRUE,
                updated_at = NOW()
            WHERE id = $1
        """
        result = await db.execute(query, uuid.UUID(task_id))
        return result == "UPDATE 1"
