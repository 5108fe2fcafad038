"""The allocation ledger: the only writer of allocations and course capacity."""
from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
import logging
from threading import Lock

from sqlalchemy import Select, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from routine.core.config import Settings, get_settings
from routine.core.exceptions import AppError, CapacityExhaustedError, ConflictError, NotFoundError
from routine.models.allocation import Allocation, AllocationSource
from routine.models.course import Course
from routine.models.day import Day
from routine.models.room import Room
from routine.models.teacher import Teacher
from routine.models.time_slot import TimeSlot
from routine.schemas.allocation import AllocationDeleted, AllocationOut
from routine.services.validator import Candidate, LedgerSnapshot, validate_candidate
from routine.services.workload import workload_limits

logger = logging.getLogger(__name__)

_mutation_lock = Lock()


@contextmanager
def ledger_mutation(timeout_seconds: float | None = None) -> Iterator[None]:
    """Serialize ledger mutations within this process.

    Waiting is bounded; a caller that cannot get in reports ``LedgerBusy``
    instead of blocking indefinitely.
    """
    timeout = get_settings().ledger_lock_timeout_seconds if timeout_seconds is None else timeout_seconds
    if not _mutation_lock.acquire(timeout=timeout):
        raise ConflictError(
            "The allocation ledger is busy with another change. Try again shortly.",
            code="LedgerBusy",
        )
    try:
        yield
    finally:
        _mutation_lock.release()


def allocation_rows_query() -> Select:
    return (
        select(
            Allocation,
            Teacher.name,
            Course.code,
            Course.name,
            Room.number,
            Day.name,
            TimeSlot.start_time,
            TimeSlot.end_time,
        )
        .join(Teacher, Allocation.teacher_id == Teacher.id)
        .join(Course, Allocation.course_id == Course.id)
        .join(Room, Allocation.room_id == Room.id)
        .join(Day, Allocation.day_id == Day.id)
        .join(TimeSlot, Allocation.slot_id == TimeSlot.id)
        .order_by(Day.ordinal, TimeSlot.ordinal, Room.number)
    )


def _to_out(row) -> AllocationOut:
    allocation, teacher_name, course_code, course_name, room_number, day_name, start_time, end_time = row
    return AllocationOut(
        id=allocation.id,
        teacher_id=allocation.teacher_id,
        course_id=allocation.course_id,
        room_id=allocation.room_id,
        day_id=allocation.day_id,
        slot_id=allocation.slot_id,
        source=allocation.source.value,
        teacher_name=teacher_name,
        course_code=course_code,
        course_name=course_name,
        room_number=room_number,
        day_name=day_name,
        start_time=start_time,
        end_time=end_time,
    )


def fetch_allocations(db: Session, *where) -> list[AllocationOut]:
    query = allocation_rows_query()
    if where:
        query = query.where(*where)
    return [_to_out(row) for row in db.execute(query).all()]


def consume_capacity(db: Session, course: Course) -> None:
    # Compare-and-swap on the counter so a stale read can never drive it negative.
    result = db.execute(
        update(Course)
        .where(Course.id == course.id, Course.remaining_capacity > 0)
        .values(remaining_capacity=Course.remaining_capacity - 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise CapacityExhaustedError(course.code, course.id)


def restore_capacity(db: Session, course_id: str) -> None:
    db.execute(
        update(Course)
        .where(Course.id == course_id)
        .values(remaining_capacity=Course.remaining_capacity + 1)
        .execution_options(synchronize_session=False)
    )


class AllocationLedger:
    def __init__(self, db: Session, settings: Settings | None = None) -> None:
        self.db = db
        self.settings = settings or get_settings()
        self.limits = workload_limits(self.settings)

    def create(self, candidate: Candidate, *, source: AllocationSource = AllocationSource.manual) -> AllocationOut:
        with ledger_mutation(self.settings.ledger_lock_timeout_seconds):
            try:
                snapshot = LedgerSnapshot.load(self.db)
                resolved = validate_candidate(self.db, candidate, snapshot=snapshot, limits=self.limits)
                allocation = Allocation(
                    teacher_id=candidate.teacher_id,
                    course_id=candidate.course_id,
                    room_id=candidate.room_id,
                    day_id=candidate.day_id,
                    slot_id=candidate.slot_id,
                    source=source,
                )
                self.db.add(allocation)
                consume_capacity(self.db, resolved.course)
                self.db.commit()
            except AppError as exc:
                self.db.rollback()
                logger.debug("Allocation rejected (%s): %s", exc.code, exc.message)
                raise
            except IntegrityError as exc:
                self.db.rollback()
                logger.info("Allocation lost a commit race for room %s / teacher %s", candidate.room_id, candidate.teacher_id)
                raise ConflictError(
                    "This time slot was allocated for the selected room or teacher by a concurrent request",
                    details={"room_id": candidate.room_id, "teacher_id": candidate.teacher_id},
                ) from exc

        logger.info(
            "Allocated course %s to teacher %s in room %s (%s, %s)",
            resolved.course.code,
            resolved.teacher.name,
            resolved.room.number,
            resolved.day.name,
            resolved.slot.label,
        )
        return self.get(allocation.id)

    def delete(self, allocation_id: str) -> AllocationDeleted:
        with ledger_mutation(self.settings.ledger_lock_timeout_seconds):
            allocation = self.db.get(Allocation, allocation_id)
            if allocation is None:
                raise NotFoundError("Allocation", allocation_id)
            course_id = allocation.course_id
            try:
                self.db.delete(allocation)
                self.db.flush()
                restore_capacity(self.db, course_id)
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise

        course = self.db.get(Course, course_id)
        self.db.refresh(course)
        logger.info("Deleted allocation %s; course %s now has %d open session(s)", allocation_id, course.code, course.remaining_capacity)
        return AllocationDeleted(course_id=course_id, new_availability=course.remaining_capacity)

    def get(self, allocation_id: str) -> AllocationOut:
        rows = fetch_allocations(self.db, Allocation.id == allocation_id)
        if not rows:
            raise NotFoundError("Allocation", allocation_id)
        return rows[0]

    def list(self) -> list[AllocationOut]:
        return fetch_allocations(self.db)

    def apply_batch(
        self,
        *,
        remove: list[Allocation],
        add: list[Candidate],
        source: AllocationSource = AllocationSource.generated,
    ) -> int:
        """Swap a set of allocations in one transaction.

        The caller must already hold :func:`ledger_mutation` and must have
        validated ``add`` against the ledger minus ``remove``.
        """
        released_course_ids = [allocation.course_id for allocation in remove]
        try:
            for allocation in remove:
                self.db.delete(allocation)
            # Deletes must hit the database before the inserts that may reuse their cells.
            self.db.flush()
            for course_id in released_course_ids:
                restore_capacity(self.db, course_id)
            for candidate in add:
                self.db.add(
                    Allocation(
                        teacher_id=candidate.teacher_id,
                        course_id=candidate.course_id,
                        room_id=candidate.room_id,
                        day_id=candidate.day_id,
                        slot_id=candidate.slot_id,
                        source=source,
                    )
                )
                consume_capacity(self.db, self.db.get(Course, candidate.course_id))
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise ConflictError("The ledger changed while the batch was being written") from exc
        except Exception:
            self.db.rollback()
            raise

        logger.info("Applied allocation batch: %d removed, %d added", len(remove), len(add))
        return len(add)
