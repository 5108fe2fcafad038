from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

from routine.core.config import get_settings

MIGRATIONS_DIR = Path(__file__).resolve().parents[2] / "database" / "migrations"


def alembic_config() -> Config:
    config = Config()
    config.set_main_option("script_location", str(MIGRATIONS_DIR))
    return config


def test_migrations_create_and_drop_the_schema(tmp_path, monkeypatch):
    url = f"sqlite:///{tmp_path / 'routine.db'}"
    monkeypatch.setenv("DATABASE_URL", url)
    get_settings.cache_clear()
    engine = create_engine(url)
    try:
        command.upgrade(alembic_config(), "head")

        inspector = inspect(engine)
        assert {"teachers", "courses", "rooms", "days", "time_slots", "allocations"} <= set(inspector.get_table_names())
        uniques = {constraint["name"] for constraint in inspector.get_unique_constraints("allocations")}
        assert {"uq_allocations_room_day_slot", "uq_allocations_teacher_day_slot"} <= uniques

        command.downgrade(alembic_config(), "base")
        assert set(inspect(engine).get_table_names()) <= {"alembic_version"}
    finally:
        engine.dispose()
        get_settings.cache_clear()
