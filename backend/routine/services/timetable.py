from __future__ import annotations

from collections import defaultdict

from sqlalchemy.orm import Session

from routine.core.exceptions import NotFoundError
from routine.models.allocation import Allocation
from routine.models.course import Course
from routine.models.teacher import Teacher
from routine.schemas.allocation import AllocationOut, RoutineCell, TeacherSchedule, TeacherWorkload
from routine.services.catalog import list_days, list_time_slots
from routine.services.ledger import fetch_allocations
from routine.services.workload import WorkloadLimits, workload_limits


def _cell(row: AllocationOut) -> RoutineCell:
    return RoutineCell(course_code=row.course_code, room_number=row.room_number, teacher_name=row.teacher_name)


def compile_routine_cells(db: Session) -> dict[str, dict[str, list[RoutineCell]]]:
    """Every (day, slot) cell with all of its allocations, in room-number order."""
    grid: dict[str, dict[str, list[RoutineCell]]] = {
        day.name: {slot.label: [] for slot in list_time_slots(db)} for day in list_days(db)
    }
    for row in fetch_allocations(db):
        grid[row.day_name][f"{row.start_time} - {row.end_time}"].append(_cell(row))
    return grid


def compile_routine(db: Session) -> dict[str, dict[str, RoutineCell | None]]:
    """Project the ledger onto a day x slot grid; free cells are explicitly None."""
    return {
        day_name: {label: (cells[0] if cells else None) for label, cells in slots.items()}
        for day_name, slots in compile_routine_cells(db).items()
    }


def teacher_schedule(db: Session, teacher_id: str, limits: WorkloadLimits | None = None) -> TeacherSchedule:
    teacher = db.get(Teacher, teacher_id)
    if teacher is None:
        raise NotFoundError("Teacher", teacher_id)
    limits = limits or workload_limits()

    rows = fetch_allocations(db, Allocation.teacher_id == teacher_id)
    credit_hours = {course_id: db.get(Course, course_id).credit_hours for course_id in {row.course_id for row in rows}}
    daily: dict[str, float] = defaultdict(float)
    for row in rows:
        daily[row.day_name] += credit_hours[row.course_id]

    return TeacherSchedule(
        teacher_id=teacher.id,
        teacher_name=teacher.name,
        allocations=rows,
        workload=TeacherWorkload(
            daily_hours=dict(daily),
            weekly_hours=sum(daily.values()),
            daily_limit=limits.daily,
            weekly_limit=limits.weekly,
        ),
    )
