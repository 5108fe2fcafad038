from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from routine.db.base import Base
from routine.db.session import SessionLocal, engine
from routine.models.day import Day
from routine.models.time_slot import TimeSlot

import routine.models  # noqa: F401

logger = logging.getLogger(__name__)

DEFAULT_DAYS: tuple[str, ...] = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday")
DEFAULT_TIME_SLOTS: tuple[tuple[str, str], ...] = (
    ("08:00", "09:15"),
    ("09:15", "10:30"),
    ("10:30", "11:45"),
    ("11:45", "13:00"),
)


def seed_reference_data(db: Session) -> None:
    """Insert the default week and periods if they are missing. Idempotent."""
    existing_days = set(db.execute(select(Day.name)).scalars())
    for ordinal, name in enumerate(DEFAULT_DAYS, start=1):
        if name not in existing_days:
            db.add(Day(name=name, ordinal=ordinal))

    existing_slots = set(db.execute(select(TimeSlot.ordinal)).scalars())
    for ordinal, (start_time, end_time) in enumerate(DEFAULT_TIME_SLOTS, start=1):
        if ordinal not in existing_slots:
            db.add(TimeSlot(start_time=start_time, end_time=end_time, ordinal=ordinal))

    if db.new:
        logger.info("Seeding %d reference row(s) for days and time slots", len(db.new))
    db.commit()


def initialize_database() -> None:
    Base.metadata.create_all(bind=engine)
    with SessionLocal() as db:
        seed_reference_data(db)
