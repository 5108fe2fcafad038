import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, Enum as SAEnum, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from routine.db.base import Base


class AllocationSource(str, Enum):
    manual = "manual"
    generated = "generated"


class Allocation(Base):
    __tablename__ = "allocations"
    __table_args__ = (
        UniqueConstraint("room_id", "day_id", "slot_id", name="uq_allocations_room_day_slot"),
        UniqueConstraint("teacher_id", "day_id", "slot_id", name="uq_allocations_teacher_day_slot"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    teacher_id: Mapped[str] = mapped_column(String(36), ForeignKey("teachers.id"), nullable=False, index=True)
    course_id: Mapped[str] = mapped_column(String(36), ForeignKey("courses.id"), nullable=False, index=True)
    room_id: Mapped[str] = mapped_column(String(36), ForeignKey("rooms.id"), nullable=False)
    day_id: Mapped[str] = mapped_column(String(36), ForeignKey("days.id"), nullable=False)
    slot_id: Mapped[str] = mapped_column(String(36), ForeignKey("time_slots.id"), nullable=False)
    source: Mapped[AllocationSource] = mapped_column(
        SAEnum(AllocationSource, name="allocation_source"),
        nullable=False,
        default=AllocationSource.manual,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
