import random

import pytest

from routine.core.exceptions import AppError, CapacityExhaustedError, NotFoundError, ValidationError
from routine.models import AllocationSource
from routine.services.ledger import AllocationLedger
from routine.services.validator import Candidate


def cell(teacher, course, room, day, slot) -> Candidate:
    return Candidate(teacher_id=teacher.id, course_id=course.id, room_id=room.id, day_id=day.id, slot_id=slot.id)


def test_create_returns_joined_allocation_and_consumes_capacity(db, make_teacher, make_course, make_room, days, slots):
    teacher = make_teacher(name="Alice Rahman")
    course = make_course(code="CSE101", credit_hours=3)
    room = make_room(number="101")

    allocation = AllocationLedger(db).create(cell(teacher, course, room, days[0], slots[0]))

    assert allocation.teacher_name == "Alice Rahman"
    assert allocation.course_code == "CSE101"
    assert allocation.room_number == "101"
    assert allocation.day_name == "Monday"
    assert (allocation.start_time, allocation.end_time) == ("08:00", "09:15")
    assert allocation.source == AllocationSource.manual.value
    db.refresh(course)
    assert course.remaining_capacity == 1


def test_create_then_delete_restores_capacity(db, make_teacher, make_course, make_room, days, slots):
    teacher = make_teacher()
    course = make_course(credit_hours=1.5)
    room = make_room()
    ledger = AllocationLedger(db)

    allocation = ledger.create(cell(teacher, course, room, days[2], slots[1]))
    db.refresh(course)
    assert course.remaining_capacity == 0

    deleted = ledger.delete(allocation.id)
    assert deleted.course_id == course.id
    assert deleted.new_availability == 1
    assert ledger.list() == []


def test_three_credit_course_accepts_exactly_two_sessions(db, make_teacher, make_course, make_room, days, slots):
    teacher = make_teacher()
    course = make_course(credit_hours=3)
    room = make_room()
    ledger = AllocationLedger(db)

    ledger.create(cell(teacher, course, room, days[0], slots[0]))
    ledger.create(cell(teacher, course, room, days[1], slots[0]))

    with pytest.raises(CapacityExhaustedError) as excinfo:
        ledger.create(cell(teacher, course, room, days[2], slots[0]))
    assert excinfo.value.reason == "CourseExhausted"
    assert len(ledger.list()) == 2


def test_room_and_teacher_conflicts(db, make_teacher, make_course, make_room, days, slots):
    first, second = make_teacher(), make_teacher()
    course_a, course_b = make_course(), make_course()
    room_a, room_b = make_room(), make_room()
    ledger = AllocationLedger(db)

    ledger.create(cell(first, course_a, room_a, days[0], slots[0]))

    with pytest.raises(ValidationError) as room_error:
        ledger.create(cell(second, course_b, room_a, days[0], slots[0]))
    assert room_error.value.reason == "RoomConflict"

    with pytest.raises(ValidationError) as teacher_error:
        ledger.create(cell(first, course_b, room_b, days[0], slots[0]))
    assert teacher_error.value.reason == "TeacherConflict"

    db.refresh(course_b)
    assert course_b.remaining_capacity == 2


def test_daily_workload_ceiling(db, make_teacher, make_course, make_room, days, slots):
    teacher = make_teacher()
    room = make_room()
    ledger = AllocationLedger(db)
    first, second, third = make_course(credit_hours=1.5), make_course(credit_hours=1.5), make_course(credit_hours=1.5)

    ledger.create(cell(teacher, first, room, days[0], slots[0]))
    ledger.create(cell(teacher, second, room, days[0], slots[1]))

    with pytest.raises(ValidationError) as excinfo:
        ledger.create(cell(teacher, third, room, days[0], slots[2]))
    assert excinfo.value.reason == "DailyWorkloadExceeded"
    assert excinfo.value.details["current"] == 3.0
    assert excinfo.value.details["attempted"] == 1.5

    # Another day is fine.
    ledger.create(cell(teacher, third, room, days[1], slots[2]))


def test_weekly_workload_ceiling(db, make_teacher, make_course, make_room, days, slots):
    teacher = make_teacher()
    room = make_room()
    ledger = AllocationLedger(db)
    courses = [make_course(credit_hours=3) for _ in range(3)]

    # Four 3h sessions, one per day: 12h.
    placements = [(courses[0], 0), (courses[0], 1), (courses[1], 2), (courses[1], 3)]
    for course, day_index in placements:
        ledger.create(cell(teacher, course, room, days[day_index], slots[0]))

    with pytest.raises(ValidationError) as excinfo:
        ledger.create(cell(teacher, courses[2], room, days[4], slots[0]))
    assert excinfo.value.reason == "WeeklyWorkloadExceeded"
    assert excinfo.value.details == {"current": 12.0, "attempted": 3.0, "limit": 13.0}


def test_unknown_reference_and_missing_allocation(db, make_teacher, make_course, make_room, days, slots):
    ledger = AllocationLedger(db)
    teacher, course, room = make_teacher(), make_course(), make_room()

    with pytest.raises(ValidationError) as excinfo:
        ledger.create(
            Candidate(teacher_id=teacher.id, course_id=course.id, room_id="ghost", day_id=days[0].id, slot_id=slots[0].id)
        )
    assert excinfo.value.reason == "InvalidReference"

    with pytest.raises(NotFoundError):
        ledger.delete("ghost")


def test_list_is_ordered_by_day_then_slot(db, make_teacher, make_course, make_room, days, slots):
    teacher = make_teacher()
    room = make_room()
    ledger = AllocationLedger(db)
    friday_course, monday_late, monday_early = make_course(credit_hours=1.5), make_course(credit_hours=1.5), make_course(credit_hours=1.5)

    ledger.create(cell(teacher, friday_course, room, days[4], slots[0]))
    ledger.create(cell(teacher, monday_late, room, days[0], slots[3]))
    ledger.create(cell(teacher, monday_early, room, days[0], slots[0]))

    listed = [(row.day_name, row.start_time) for row in ledger.list()]
    assert listed == [("Monday", "08:00"), ("Monday", "11:45"), ("Friday", "08:00")]


def test_random_create_delete_sequences_keep_invariants(
    db, make_teacher, make_course, make_room, days, slots, check_invariants
):
    rng = random.Random(20240917)
    teachers = [make_teacher() for _ in range(3)]
    courses = [make_course(credit_hours=rng.choice([1.5, 3])) for _ in range(6)]
    rooms = [make_room() for _ in range(2)]
    ledger = AllocationLedger(db)
    live: list[str] = []
    accepted = rejected = 0

    for _ in range(250):
        if live and rng.random() < 0.3:
            allocation_id = live.pop(rng.randrange(len(live)))
            ledger.delete(allocation_id)
        else:
            candidate = Candidate(
                teacher_id=rng.choice(teachers).id,
                course_id=rng.choice(courses).id,
                room_id=rng.choice(rooms).id if rng.random() > 0.05 else "ghost-room",
                day_id=rng.choice(days).id,
                slot_id=rng.choice(slots).id,
            )
            try:
                live.append(ledger.create(candidate).id)
                accepted += 1
            except AppError:
                rejected += 1
        check_invariants(db)

    assert accepted > 0
    assert rejected > 0
