import os

# Keep the app from touching a real database file while tests import it.
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite://")
os.environ["BOOTSTRAP_ON_STARTUP"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from routine.api.deps import get_db
from routine.db.base import Base
from routine.db.bootstrap import seed_reference_data
from routine.main import app
from routine.models import Allocation, Course
from routine.schemas.catalog import CourseCreate, RoomCreate, TeacherCreate
from routine.services import catalog
from routine.services.workload import WorkloadLimits

import routine.models  # noqa: F401


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def bare_db(session_factory):
    """A session on an empty schema: no days or time slots."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def db(bare_db):
    seed_reference_data(bare_db)
    return bare_db


@pytest.fixture()
def client(session_factory):
    with session_factory() as seed_session:
        seed_reference_data(seed_session)

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture()
def make_teacher(bare_db):
    counter = {"n": 0}

    def _make(name=None, email=None):
        counter["n"] += 1
        name = name or f"Teacher {counter['n']:02d}"
        email = email or f"teacher{counter['n']}@example.com"
        return catalog.create_teacher(bare_db, TeacherCreate(name=name, email=email))

    return _make


@pytest.fixture()
def make_course(bare_db):
    counter = {"n": 0}

    def _make(code=None, credit_hours=3, teacher=None, enrollment=None, name=None):
        counter["n"] += 1
        code = code or f"CSE{100 + counter['n']}"
        payload = CourseCreate(
            code=code,
            name=name or f"Course {code}",
            credit_hours=credit_hours,
            teacher_id=teacher.id if teacher is not None else None,
            enrollment=enrollment,
        )
        return catalog.create_course(bare_db, payload)

    return _make


@pytest.fixture()
def make_room(bare_db):
    counter = {"n": 0}

    def _make(number=None, capacity=40, is_lab=False):
        counter["n"] += 1
        number = number or f"{100 + counter['n']}"
        return catalog.create_room(bare_db, RoomCreate(number=number, capacity=capacity, is_lab=is_lab))

    return _make


@pytest.fixture()
def days(db):
    return catalog.list_days(db)


@pytest.fixture()
def slots(db):
    return catalog.list_time_slots(db)


def assert_ledger_invariants(db, limits: WorkloadLimits = WorkloadLimits(daily=4.0, weekly=13.0)) -> None:
    db.expire_all()
    allocations = list(db.execute(select(Allocation)).scalars())

    room_cells = [(a.room_id, a.day_id, a.slot_id) for a in allocations]
    assert len(room_cells) == len(set(room_cells)), "room double-booked"

    teacher_cells = [(a.teacher_id, a.day_id, a.slot_id) for a in allocations]
    assert len(teacher_cells) == len(set(teacher_cells)), "teacher double-booked"

    courses = {course.id: course for course in db.execute(select(Course)).scalars()}
    for course in courses.values():
        used = db.execute(
            select(func.count()).select_from(Allocation).where(Allocation.course_id == course.id)
        ).scalar_one()
        assert course.remaining_capacity >= 0
        assert course.remaining_capacity == course.capacity - used, course.code

    daily: dict[tuple[str, str], float] = {}
    weekly: dict[str, float] = {}
    for allocation in allocations:
        hours = courses[allocation.course_id].credit_hours
        key = (allocation.teacher_id, allocation.day_id)
        daily[key] = daily.get(key, 0.0) + hours
        weekly[allocation.teacher_id] = weekly.get(allocation.teacher_id, 0.0) + hours
    assert all(total <= limits.daily for total in daily.values())
    assert all(total <= limits.weekly for total in weekly.values())


@pytest.fixture()
def check_invariants():
    return assert_ledger_invariants
