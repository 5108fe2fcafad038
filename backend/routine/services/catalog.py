from __future__ import annotations

import logging

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from routine.core.exceptions import ConflictError, NotFoundError, ValidationError
from routine.models.allocation import Allocation
from routine.models.course import Course, capacity_for_credit_hours
from routine.models.day import Day
from routine.models.room import Room
from routine.models.teacher import Teacher
from routine.models.time_slot import TimeSlot
from routine.schemas.catalog import CourseCreate, RoomCreate, TeacherCreate
from routine.services.ledger import ledger_mutation

logger = logging.getLogger(__name__)


def _commit_unique(db: Session, instance, message: str, field: str):
    db.add(instance)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError(message, details={"field": field}, code="DuplicateEntity") from exc
    db.refresh(instance)
    return instance


def _ensure_unreferenced(db: Session, column, entity_id: str, resource_type: str) -> None:
    count = db.execute(select(func.count()).select_from(Allocation).where(column == entity_id)).scalar_one()
    if count:
        raise ConflictError(
            f"{resource_type} is referenced by {count} allocation(s); delete those allocations first",
            details={"resource_type": resource_type, "resource_id": entity_id, "allocations": count},
            code="ReferenceInUse",
        )


def list_teachers(db: Session) -> list[Teacher]:
    return list(db.execute(select(Teacher).order_by(Teacher.name)).scalars())


def create_teacher(db: Session, payload: TeacherCreate) -> Teacher:
    existing = db.execute(select(Teacher).where(Teacher.email == payload.email)).scalar_one_or_none()
    if existing:
        raise ConflictError("A teacher with this email already exists", details={"field": "email"}, code="DuplicateEntity")
    teacher = _commit_unique(db, Teacher(**payload.model_dump()), "A teacher with this email already exists", "email")
    logger.info("Created teacher %s <%s>", teacher.name, teacher.email)
    return teacher


def delete_teacher(db: Session, teacher_id: str) -> None:
    with ledger_mutation():
        teacher = db.get(Teacher, teacher_id)
        if teacher is None:
            raise NotFoundError("Teacher", teacher_id)
        _ensure_unreferenced(db, Allocation.teacher_id, teacher_id, "Teacher")
        # Courses pre-bound to this teacher fall back to "any teacher".
        db.execute(
            update(Course)
            .where(Course.teacher_id == teacher_id)
            .values(teacher_id=None)
            .execution_options(synchronize_session=False)
        )
        db.delete(teacher)
        db.commit()
    logger.info("Deleted teacher %s", teacher_id)


def list_courses(db: Session) -> list[Course]:
    return list(db.execute(select(Course).order_by(Course.code)).scalars())


def create_course(db: Session, payload: CourseCreate) -> Course:
    try:
        capacity = capacity_for_credit_hours(payload.credit_hours)
    except ValueError:
        raise ValidationError(
            "InvalidCreditHours",
            "Credit hours must be 1.5 or 3",
            details={"credit_hours": payload.credit_hours},
        ) from None

    if payload.teacher_id is not None and db.get(Teacher, payload.teacher_id) is None:
        raise ValidationError(
            "InvalidReference",
            f"Unknown teacher id {payload.teacher_id}",
            details={"field": "teacher_id", "value": payload.teacher_id},
        )

    existing = db.execute(select(Course).where(Course.code == payload.code)).scalar_one_or_none()
    if existing:
        raise ConflictError("A course with this code already exists", details={"field": "code"}, code="DuplicateEntity")

    course = Course(**payload.model_dump(), remaining_capacity=capacity)
    course = _commit_unique(db, course, "A course with this code already exists", "code")
    logger.info("Created course %s (%gh, %d session(s))", course.code, course.credit_hours, capacity)
    return course


def delete_course(db: Session, course_id: str) -> None:
    with ledger_mutation():
        course = db.get(Course, course_id)
        if course is None:
            raise NotFoundError("Course", course_id)
        _ensure_unreferenced(db, Allocation.course_id, course_id, "Course")
        db.delete(course)
        db.commit()
    logger.info("Deleted course %s", course_id)


def list_rooms(db: Session) -> list[Room]:
    return list(db.execute(select(Room).order_by(Room.number)).scalars())


def create_room(db: Session, payload: RoomCreate) -> Room:
    existing = db.execute(select(Room).where(Room.number == payload.number)).scalar_one_or_none()
    if existing:
        raise ConflictError("Room number already exists", details={"field": "number"}, code="DuplicateEntity")
    room = _commit_unique(db, Room(**payload.model_dump()), "Room number already exists", "number")
    logger.info("Created room %s (capacity %d%s)", room.number, room.capacity, ", lab" if room.is_lab else "")
    return room


def delete_room(db: Session, room_id: str) -> None:
    with ledger_mutation():
        room = db.get(Room, room_id)
        if room is None:
            raise NotFoundError("Room", room_id)
        _ensure_unreferenced(db, Allocation.room_id, room_id, "Room")
        db.delete(room)
        db.commit()
    logger.info("Deleted room %s", room_id)


def list_days(db: Session) -> list[Day]:
    return list(db.execute(select(Day).order_by(Day.ordinal)).scalars())


def list_time_slots(db: Session) -> list[TimeSlot]:
    return list(db.execute(select(TimeSlot).order_by(TimeSlot.ordinal)).scalars())
