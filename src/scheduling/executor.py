"""
Write-back of a SchedulingDecision to the task store.

Each assignment becomes one independent write. A whole task updates its own
record; each part of a split task is stored as its own part row keyed by
(parent id, part number), and the parent is only marked scheduled once its
last part is stored. A failed write is recorded and the remaining writes
still go out; nothing is retried here. Shared-block ids are generated fresh
on every execution, so running the same decision twice rewrites the same
rows with new ids.
"""

import asyncio
import logging
import re
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field, asdict
from datetime import date
from typing import List, Optional, Protocol, Tuple

from family_scheduler.errors import InvalidIdentifier, PersistenceFailure
from family_scheduler.models import SchedulingDecision, TaskPartRef
from scheduling.metrics import SCHEDULE_WRITES_TOTAL

logger = logging.getLogger(__name__)

UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


@dataclass
class ScheduleUpdate:
    """Fields written onto a task record (or one of its part rows)."""
    scheduled_block: int
    scheduled_date: date
    scheduled_weekday: str
    shared_block_id: str
    position: int
    buffer_minutes: int

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass
class PlannedWrite:
    task_id: str
    title: str
    update: ScheduleUpdate
    allocated_minutes: int = 0
    part: Optional[TaskPartRef] = None

    @property
    def completes_split(self) -> bool:
        return self.part is not None and self.part.part_number == self.part.total_parts


@dataclass
class ExecutionResult:
    success_count: int = 0
    total_count: int = 0
    errors: List[PersistenceFailure] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.success_count > 0

    @property
    def failed_task_ids(self) -> List[str]:
        return [e.task_id for e in self.errors]

    @property
    def error_messages(self) -> List[str]:
        return [str(e) for e in self.errors]


class TaskWriter(Protocol):
    async def update_schedule(self, task_id: str, update: ScheduleUpdate) -> bool:
        """Apply the update; return False when no record matched."""
        ...

    async def save_part_schedule(
        self, part: TaskPartRef, allocated_minutes: int, update: ScheduleUpdate
    ) -> bool:
        """Insert or replace the part row; return False when the parent is missing."""
        ...

    async def mark_split_scheduled(self, task_id: str) -> bool:
        """Flag a split parent whose every part is stored."""
        ...


def is_valid_task_id(task_id: str) -> bool:
    return bool(UUID_RE.match(task_id))


class ScheduleExecutor:

    def __init__(self, writer: TaskWriter):
        self.writer = writer

    def plan(self, decision: SchedulingDecision) -> List[PlannedWrite]:
        writes: List[PlannedWrite] = []
        for block in decision.occupied_blocks:
            if not block.assignments:
                continue
            group_id = str(uuid.uuid4())
            buffer_share = max(block.remaining_minutes, 0) // len(block.assignments)
            for a in block.assignments:
                writes.append(
                    PlannedWrite(
                        task_id=a.task.record_id,
                        title=a.task.title,
                        update=ScheduleUpdate(
                            scheduled_block=block.block_number,
                            scheduled_date=block.date,
                            scheduled_weekday=block.weekday,
                            shared_block_id=group_id,
                            position=a.position,
                            buffer_minutes=buffer_share,
                        ),
                        allocated_minutes=a.allocated_minutes,
                        part=a.task.part,
                    )
                )
        return writes

    async def execute(self, decision: SchedulingDecision) -> ExecutionResult:
        writes = self.plan(decision)
        logger.info(
            f"Executing schedule for {decision.student}: {len(writes)} writes "
            f"across {len(decision.occupied_blocks)} blocks"
        )

        # parts of one split task hit the same record, keep those in part order
        by_record: "OrderedDict[str, List[PlannedWrite]]" = OrderedDict()
        for w in writes:
            by_record.setdefault(w.task_id, []).append(w)
        for chain in by_record.values():
            chain.sort(key=lambda w: w.part.part_number if w.part else 0)

        chains = await asyncio.gather(*(self._write_chain(ws) for ws in by_record.values()))

        result = ExecutionResult(total_count=len(writes))
        for succeeded, errors in chains:
            result.success_count += succeeded
            result.errors.extend(errors)

        logger.info(
            f"Schedule execution for {decision.student} complete: "
            f"{result.success_count}/{result.total_count} succeeded"
        )
        return result

    async def _write_chain(
        self, writes: List[PlannedWrite]
    ) -> Tuple[int, List[PersistenceFailure]]:
        errors: List[PersistenceFailure] = []
        for w in writes:
            error = await self._write(w)
            if error is not None:
                errors.append(error)
        succeeded = len(writes) - len(errors)

        last = writes[-1]
        if last.completes_split and not errors:
            error = await self._finish_split(last)
            if error is not None:
                errors.append(error)
        return succeeded, errors

    async def _write(self, write: PlannedWrite) -> Optional[PersistenceFailure]:
        if not is_valid_task_id(write.task_id):
            error: PersistenceFailure = InvalidIdentifier(write.task_id)
        else:
            try:
                if write.part is None:
                    updated = await self.writer.update_schedule(write.task_id, write.update)
                else:
                    updated = await self.writer.save_part_schedule(
                        write.part, write.allocated_minutes, write.update
                    )
            except Exception as e:
                error = PersistenceFailure(write.task_id, f"Database error: {e}")
            else:
                if updated:
                    SCHEDULE_WRITES_TOTAL.labels(status="ok").inc()
                    return None
                error = PersistenceFailure(write.task_id, "Task not found in database")

        SCHEDULE_WRITES_TOTAL.labels(status="error").inc()
        logger.warning(f"Failed to schedule '{write.title}': {error}")
        return error

    async def _finish_split(self, write: PlannedWrite) -> Optional[PersistenceFailure]:
        try:
            marked = await self.writer.mark_split_scheduled(write.task_id)
        except Exception as e:
            error = PersistenceFailure(write.task_id, f"Database error: {e}")
        else:
            if marked:
                logger.debug(f"All {write.part.total_parts} parts of {write.task_id} stored")
                return None
            error = PersistenceFailure(write.task_id, "Task not found in database")

        SCHEDULE_WRITES_TOTAL.labels(status="error").inc()
        logger.warning(f"Failed to close split of '{write.title}': {error}")
        return error
