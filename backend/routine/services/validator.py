"""Conflict and workload rules for a single candidate allocation.

Rules 2-6 are evaluated against a :class:`LedgerSnapshot`, an in-memory index of
committed (or, for the auto-scheduler, tentatively placed) allocations. The
ledger builds one from the database inside its mutation lock; the scheduler
keeps one up to date while it searches.
"""
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.orm import Session

from routine.core.exceptions import CapacityExhaustedError, ValidationError
from routine.models.allocation import Allocation
from routine.models.course import Course
from routine.models.day import Day
from routine.models.room import Room
from routine.models.teacher import Teacher
from routine.models.time_slot import TimeSlot
from routine.services.workload import WorkloadLimits, exceeds_limit, format_hours, workload_limits


@dataclass(frozen=True)
class Candidate:
    teacher_id: str
    course_id: str
    room_id: str
    day_id: str
    slot_id: str


@dataclass(frozen=True)
class ResolvedCandidate:
    teacher: Teacher
    course: Course
    room: Room
    day: Day
    slot: TimeSlot


@dataclass
class LedgerSnapshot:
    credit_hours: dict[str, float] = field(default_factory=dict)
    course_codes: dict[str, str] = field(default_factory=dict)
    remaining_capacity: dict[str, int] = field(default_factory=dict)
    rooms_busy: set[tuple[str, str, str]] = field(default_factory=set)
    teachers_busy: set[tuple[str, str, str]] = field(default_factory=set)
    teacher_day_hours: dict[tuple[str, str], float] = field(default_factory=lambda: defaultdict(float))
    teacher_week_hours: dict[str, float] = field(default_factory=lambda: defaultdict(float))

    @classmethod
    def load(cls, db: Session) -> "LedgerSnapshot":
        snapshot = cls()
        for course in db.execute(select(Course)).scalars():
            snapshot.credit_hours[course.id] = float(course.credit_hours)
            snapshot.course_codes[course.id] = course.code
            snapshot.remaining_capacity[course.id] = course.remaining_capacity
        for allocation in db.execute(select(Allocation)).scalars():
            snapshot._occupy(candidate_of(allocation))
        return snapshot

    def copy(self) -> "LedgerSnapshot":
        clone = LedgerSnapshot(
            credit_hours=dict(self.credit_hours),
            course_codes=dict(self.course_codes),
            remaining_capacity=dict(self.remaining_capacity),
            rooms_busy=set(self.rooms_busy),
            teachers_busy=set(self.teachers_busy),
        )
        clone.teacher_day_hours.update(self.teacher_day_hours)
        clone.teacher_week_hours.update(self.teacher_week_hours)
        return clone

    def room_is_free(self, room_id: str, day_id: str, slot_id: str) -> bool:
        return (room_id, day_id, slot_id) not in self.rooms_busy

    def teacher_is_free(self, teacher_id: str, day_id: str, slot_id: str) -> bool:
        return (teacher_id, day_id, slot_id) not in self.teachers_busy

    def place(self, candidate: Candidate) -> None:
        """Record a placement and consume one unit of the course's capacity."""
        self._occupy(candidate)
        self.remaining_capacity[candidate.course_id] -= 1

    def release(self, candidate: Candidate, *, restore_capacity: bool = True) -> None:
        hours = self.credit_hours[candidate.course_id]
        self.rooms_busy.discard((candidate.room_id, candidate.day_id, candidate.slot_id))
        self.teachers_busy.discard((candidate.teacher_id, candidate.day_id, candidate.slot_id))
        self.teacher_day_hours[(candidate.teacher_id, candidate.day_id)] -= hours
        self.teacher_week_hours[candidate.teacher_id] -= hours
        if restore_capacity:
            self.remaining_capacity[candidate.course_id] += 1

    def _occupy(self, candidate: Candidate) -> None:
        hours = self.credit_hours[candidate.course_id]
        self.rooms_busy.add((candidate.room_id, candidate.day_id, candidate.slot_id))
        self.teachers_busy.add((candidate.teacher_id, candidate.day_id, candidate.slot_id))
        self.teacher_day_hours[(candidate.teacher_id, candidate.day_id)] += hours
        self.teacher_week_hours[candidate.teacher_id] += hours


def candidate_of(allocation: Allocation) -> Candidate:
    return Candidate(
        teacher_id=allocation.teacher_id,
        course_id=allocation.course_id,
        room_id=allocation.room_id,
        day_id=allocation.day_id,
        slot_id=allocation.slot_id,
    )


def first_violation(
    snapshot: LedgerSnapshot,
    candidate: Candidate,
    limits: WorkloadLimits,
) -> ValidationError | None:
    """Return the first rule (2-6) the candidate breaks, or None if it is placeable."""
    if not snapshot.room_is_free(candidate.room_id, candidate.day_id, candidate.slot_id):
        return ValidationError(
            "RoomConflict",
            "Selected room is not available for this time slot",
            details={"room_id": candidate.room_id, "day_id": candidate.day_id, "slot_id": candidate.slot_id},
        )

    if not snapshot.teacher_is_free(candidate.teacher_id, candidate.day_id, candidate.slot_id):
        return ValidationError(
            "TeacherConflict",
            "Teacher already has a class in this time slot",
            details={
                "teacher_id": candidate.teacher_id,
                "day_id": candidate.day_id,
                "slot_id": candidate.slot_id,
            },
        )

    if snapshot.remaining_capacity.get(candidate.course_id, 0) <= 0:
        return CapacityExhaustedError(
            snapshot.course_codes.get(candidate.course_id, candidate.course_id),
            candidate.course_id,
        )

    attempted = snapshot.credit_hours[candidate.course_id]
    current_day = snapshot.teacher_day_hours.get((candidate.teacher_id, candidate.day_id), 0.0)
    if exceeds_limit(current_day, attempted, limits.daily):
        return ValidationError(
            "DailyWorkloadExceeded",
            (
                f"Teacher already carries {format_hours(current_day)} on this day; adding "
                f"{format_hours(attempted)} would exceed the daily limit of {format_hours(limits.daily)}"
            ),
            details={"current": current_day, "attempted": attempted, "limit": limits.daily},
        )

    current_week = snapshot.teacher_week_hours.get(candidate.teacher_id, 0.0)
    if exceeds_limit(current_week, attempted, limits.weekly):
        return ValidationError(
            "WeeklyWorkloadExceeded",
            (
                f"Teacher already carries {format_hours(current_week)} this week; adding "
                f"{format_hours(attempted)} would exceed the weekly limit of {format_hours(limits.weekly)}"
            ),
            details={"current": current_week, "attempted": attempted, "limit": limits.weekly},
        )

    return None


def check_candidate(snapshot: LedgerSnapshot, candidate: Candidate, limits: WorkloadLimits) -> None:
    violation = first_violation(snapshot, candidate, limits)
    if violation is not None:
        raise violation


def resolve_references(db: Session, candidate: Candidate) -> ResolvedCandidate:
    lookups = (
        ("teacher_id", Teacher, candidate.teacher_id),
        ("course_id", Course, candidate.course_id),
        ("room_id", Room, candidate.room_id),
        ("day_id", Day, candidate.day_id),
        ("slot_id", TimeSlot, candidate.slot_id),
    )
    resolved = []
    for field_name, model, value in lookups:
        instance = db.get(model, value)
        if instance is None:
            raise ValidationError(
                "InvalidReference",
                f"Unknown {field_name.removesuffix('_id')} id {value}",
                details={"field": field_name, "value": value},
            )
        resolved.append(instance)
    return ResolvedCandidate(*resolved)


def validate_candidate(
    db: Session,
    candidate: Candidate,
    *,
    snapshot: LedgerSnapshot | None = None,
    limits: WorkloadLimits | None = None,
) -> ResolvedCandidate:
    """Run every rule in order and return the resolved entities.

    Raises :class:`ValidationError` for the first failing rule. Passing does not
    persist anything.
    """
    resolved = resolve_references(db, candidate)
    snapshot = snapshot if snapshot is not None else LedgerSnapshot.load(db)
    check_candidate(snapshot, candidate, limits or workload_limits())
    return resolved
