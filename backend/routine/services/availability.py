from sqlalchemy import select
from sqlalchemy.orm import Session

from routine.core.exceptions import ValidationError
from routine.models.allocation import Allocation
from routine.models.day import Day
from routine.models.room import Room
from routine.models.time_slot import TimeSlot


def available_rooms(db: Session, day_id: str, slot_id: str) -> list[Room]:
    """Rooms with no allocation at exactly (day, slot), ordered by room number."""
    if db.get(Day, day_id) is None:
        raise ValidationError("InvalidReference", f"Unknown day id {day_id}", details={"field": "day_id", "value": day_id})
    if db.get(TimeSlot, slot_id) is None:
        raise ValidationError(
            "InvalidReference", f"Unknown slot id {slot_id}", details={"field": "slot_id", "value": slot_id}
        )

    busy = select(Allocation.room_id).where(Allocation.day_id == day_id, Allocation.slot_id == slot_id)
    return list(db.execute(select(Room).where(Room.id.not_in(busy)).order_by(Room.number)).scalars())
