from __future__ import annotations

import datetime as dt
from datetime import date, datetime, time
from typing import Dict, List, Literal, Optional, Set, Tuple

from pydantic import BaseModel, Field, field_validator


TaskCategory = Literal["academic", "quick_review", "administrative"]
CognitiveLoad = Literal["light", "medium", "heavy"]
Urgency = Literal["overdue", "critical", "high", "medium", "low"]
CompletionState = Literal["not_started", "in_progress", "stuck", "completed"]

WEEKDAYS = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)


class TaskRecord(BaseModel):
    """
    Raw task row as stored upstream. Everything except id/title may be missing;
    the classifier fills the gaps.
    """
    id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    category: Optional[str] = None
    duration: Optional[int] = None
    cognitive_load: Optional[str] = None
    subject: Optional[str] = None
    course: Optional[str] = None
    urgency: Optional[str] = None
    due_date: Optional[date] = None
    priority: str = "medium"
    completion_state: CompletionState = "not_started"
    progress: Optional[int] = Field(None, ge=0, le=100)

    # parts of a partially split task already stored by an earlier execution
    scheduled_parts: int = Field(0, ge=0)
    scheduled_minutes: int = Field(0, ge=0)

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        v2 = v.strip()
        if not v2:
            raise ValueError("title must not be blank")
        return v2

    @field_validator("due_date", mode="before")
    @classmethod
    def due_date_from_datetime(cls, v):
        # timestamps from the store only matter to the day
        if isinstance(v, datetime):
            return v.date()
        if isinstance(v, str) and "T" in v:
            return datetime.fromisoformat(v.replace("Z", "+00:00")).date()
        return v


class TaskPartRef(BaseModel):
    """Structural identifier of one part of a split task."""
    base_id: str
    part_number: int = Field(..., ge=1)
    total_parts: int = Field(..., ge=1)


class ClassifiedTask(BaseModel):
    id: str
    title: str
    category: TaskCategory = "academic"
    estimated_minutes: int = Field(..., gt=0)
    cognitive_load: CognitiveLoad = "medium"
    subject: str = "General"
    course: str = ""
    urgency: Urgency = "medium"
    due_date: Optional[date] = None
    completion_state: CompletionState = "not_started"
    priority: str = "medium"
    progress: int = 0

    # parts stored before this analysis; estimated_minutes is what is left
    parts_done: int = Field(0, ge=0)

    # set only on split parts
    part: Optional[TaskPartRef] = None

    @property
    def record_id(self) -> str:
        """Id of the task record this task (or part) writes back to."""
        return self.part.base_id if self.part is not None else self.id

    @property
    def is_split_part(self) -> bool:
        return self.part is not None


class TemplateBlock(BaseModel):
    """One entry of a student's fixed weekly schedule."""
    block_number: Optional[int] = Field(None, ge=1)
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    is_assignment_block: bool = False
    subject: str = ""

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def parse_clock(cls, v):
        # accepts "13:20" as well as "1:20 PM"
        if isinstance(v, str):
            s = v.strip().upper()
            fmt = "%I:%M %p" if s.endswith(("AM", "PM")) else "%H:%M"
            return datetime.strptime(s, fmt).time()
        return v

    @property
    def duration_min(self) -> Optional[int]:
        if self.start_time is None or self.end_time is None:
            return None
        start = self.start_time.hour * 60 + self.start_time.minute
        end = self.end_time.hour * 60 + self.end_time.minute
        return end - start if end > start else None


class WeeklyTemplate(BaseModel):
    """Weekday name -> ordered blocks of that day."""
    days: Dict[str, List[TemplateBlock]] = Field(default_factory=dict)

    def blocks_for(self, weekday: str) -> List[TemplateBlock]:
        return self.days.get(weekday, [])

    def assignment_blocks_for(self, weekday: str) -> List[TemplateBlock]:
        return [
            b for b in self.blocks_for(weekday)
            if b.is_assignment_block and b.block_number is not None
        ]


class TaskAssignment(BaseModel):
    task: ClassifiedTask
    position: int = Field(..., ge=1)
    allocated_minutes: int = Field(..., ge=0)
    shared_block_id: str
    # minutes the task runs past the block's remaining capacity
    overflow_minutes: int = 0


class BlockSlot(BaseModel):
    date: dt.date
    block_number: int
    weekday: str
    start_time: Optional[time] = None
    total_minutes: int = Field(..., gt=0)
    buffer_minutes: int = Field(5, ge=0)
    used_minutes: int = 0
    load_total: float = 0.0
    load_label: CognitiveLoad = "light"
    assignments: List[TaskAssignment] = Field(default_factory=list)

    @property
    def key(self) -> Tuple[date, int]:
        return (self.date, self.block_number)

    @property
    def remaining_minutes(self) -> int:
        return self.total_minutes - self.used_minutes - self.buffer_minutes

    @property
    def last_task(self) -> Optional[ClassifiedTask]:
        return self.assignments[-1].task if self.assignments else None

    @property
    def is_occupied(self) -> bool:
        return bool(self.assignments)


class SchedulingSnapshot(BaseModel):
    """
    Everything one analysis call reads. Built by the caller once all upstream
    fetches have completed; the engine never reaches outside of it.
    """
    student: str
    tasks: List[TaskRecord] = Field(default_factory=list)
    template: WeeklyTemplate = Field(default_factory=WeeklyTemplate)
    blocked_dates: Set[date] = Field(default_factory=set)
    occupied: Set[Tuple[date, int]] = Field(default_factory=set)
    now: datetime = Field(default_factory=datetime.now)
    start_date: Optional[date] = None
    horizon_days: int = Field(7, ge=1)


class SchedulingDecision(BaseModel):
    student: str
    start_date: date
    occupied_blocks: List[BlockSlot] = Field(default_factory=list)
    administrative_tasks: List[ClassifiedTask] = Field(default_factory=list)
    unscheduled_tasks: List[ClassifiedTask] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

    @property
    def assignments(self) -> List[TaskAssignment]:
        return [a for block in self.occupied_blocks for a in block.assignments]

    def placement_map(self) -> Dict[str, Tuple[date, int]]:
        """Task (or part) id -> (date, block number)."""
        return {
            a.task.id: block.key
            for block in self.occupied_blocks
            for a in block.assignments
        }
