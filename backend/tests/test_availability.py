import pytest

from routine.core.exceptions import ValidationError
from routine.services.availability import available_rooms
from routine.services.ledger import AllocationLedger
from routine.services.validator import Candidate


def test_all_rooms_are_free_on_an_empty_ledger(db, make_room, days, slots):
    make_room(number="305")
    make_room(number="101")
    make_room(number="204")

    rooms = available_rooms(db, days[0].id, slots[0].id)
    assert [room.number for room in rooms] == ["101", "204", "305"]


def test_allocated_room_is_excluded_only_at_its_exact_cell(db, make_teacher, make_course, make_room, days, slots):
    teacher = make_teacher()
    course = make_course()
    busy = make_room(number="101")
    make_room(number="102")

    AllocationLedger(db).create(
        Candidate(teacher_id=teacher.id, course_id=course.id, room_id=busy.id, day_id=days[0].id, slot_id=slots[0].id)
    )

    assert [room.number for room in available_rooms(db, days[0].id, slots[0].id)] == ["102"]
    assert [room.number for room in available_rooms(db, days[0].id, slots[1].id)] == ["101", "102"]
    assert [room.number for room in available_rooms(db, days[1].id, slots[0].id)] == ["101", "102"]


def test_unknown_day_or_slot_is_an_invalid_reference(db, days, slots):
    with pytest.raises(ValidationError) as excinfo:
        available_rooms(db, "no-such-day", slots[0].id)
    assert excinfo.value.reason == "InvalidReference"
    assert excinfo.value.details["field"] == "day_id"

    with pytest.raises(ValidationError) as excinfo:
        available_rooms(db, days[0].id, "no-such-slot")
    assert excinfo.value.details["field"] == "slot_id"


def test_room_availability_endpoint(client):
    day = client.get("/api/days").json()[0]
    slot = client.get("/api/time-slots").json()[0]
    client.post("/api/rooms", json={"number": "101", "capacity": 40})

    response = client.get("/api/room-availability", params={"day_id": day["id"], "slot_id": slot["id"]})
    assert response.status_code == 200
    assert [room["number"] for room in response.json()] == ["101"]

    missing = client.get("/api/room-availability", params={"day_id": "x", "slot_id": slot["id"]})
    assert missing.status_code == 422
    assert missing.json()["code"] == "InvalidReference"
