import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from routine.db.base import Base

# Weekly sessions a course needs, keyed by credit hours.
CAPACITY_BY_CREDIT_HOURS: dict[float, int] = {1.5: 1, 3.0: 2}


def capacity_for_credit_hours(credit_hours: float) -> int:
    try:
        return CAPACITY_BY_CREDIT_HOURS[float(credit_hours)]
    except KeyError:
        raise ValueError(f"Unsupported credit hours: {credit_hours}") from None


class Course(Base):
    __tablename__ = "courses"
    __table_args__ = (CheckConstraint("remaining_capacity >= 0", name="ck_courses_remaining_capacity"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    code: Mapped[str] = mapped_column(String(50), unique=True, index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    credit_hours: Mapped[float] = mapped_column(Float, nullable=False)
    remaining_capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    teacher_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("teachers.id"), nullable=True)
    enrollment: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    @property
    def capacity(self) -> int:
        return capacity_for_credit_hours(self.credit_hours)
