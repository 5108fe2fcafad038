from typing import Literal

from pydantic import BaseModel, Field

from routine.core.config import SchedulerMode


class AllocationCreate(BaseModel):
    teacher_id: str = Field(min_length=1)
    course_id: str = Field(min_length=1)
    room_id: str = Field(min_length=1)
    day_id: str = Field(min_length=1)
    slot_id: str = Field(min_length=1)


class AllocationOut(BaseModel):
    id: str
    teacher_id: str
    course_id: str
    room_id: str
    day_id: str
    slot_id: str
    source: str
    teacher_name: str
    course_code: str
    course_name: str
    room_number: str
    day_name: str
    start_time: str
    end_time: str


class AllocationDeleted(BaseModel):
    course_id: str
    new_availability: int


class RoutineCell(BaseModel):
    course_code: str
    room_number: str
    teacher_name: str


class TeacherWorkload(BaseModel):
    daily_hours: dict[str, float]
    weekly_hours: float
    daily_limit: float
    weekly_limit: float


class TeacherSchedule(BaseModel):
    teacher_id: str
    teacher_name: str
    allocations: list[AllocationOut]
    workload: TeacherWorkload


class RegenerateRequest(BaseModel):
    mode: SchedulerMode | None = None
    include_manual: bool = False


class UnplaceableCourse(BaseModel):
    id: str
    code: str
    name: str
    missing_sessions: int


class RegenerateResponse(BaseModel):
    status: Literal["ok", "failed"]
    mode: SchedulerMode
    placed: int
    steps: int
    unplaceable: list[UnplaceableCourse] = Field(default_factory=list)
