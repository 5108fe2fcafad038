from functools import lru_cache
import json
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


BACKEND_DIR = Path(__file__).resolve().parents[2]
BACKEND_ENV_FILE = BACKEND_DIR / ".env"

SchedulerMode = Literal["fill", "rebuild"]


class Settings(BaseSettings):
    # Resolve to backend/.env so `uvicorn --app-dir backend` works from any cwd.
    model_config = SettingsConfigDict(env_file=str(BACKEND_ENV_FILE), env_file_encoding="utf-8")

    project_name: str = "Routine Allocator API"
    api_prefix: str = "/api"
    environment: str = "development"
    log_level: str | None = None

    database_url: str = "sqlite:///./routine.db"
    bootstrap_on_startup: bool = True

    max_request_size_bytes: int = 1_000_000

    daily_workload_limit: float = Field(default=4.0, gt=0)
    weekly_workload_limit: float = Field(default=13.0, gt=0)
    ledger_lock_timeout_seconds: float = Field(default=10.0, gt=0)

    scheduler_mode: SchedulerMode = "fill"
    scheduler_max_steps: int = Field(default=200_000, ge=1)
    scheduler_time_limit_seconds: float = Field(default=20.0, gt=0)

    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

    @field_validator("cors_origins", mode="before")
    @classmethod
    def split_cors_origins(cls, value: str | list[str]) -> list[str]:
        if isinstance(value, str):
            stripped = value.strip()
            if stripped.startswith("["):
                try:
                    parsed = json.loads(stripped)
                    if isinstance(parsed, list):
                        return [str(item).strip() for item in parsed if str(item).strip()]
                except json.JSONDecodeError:
                    pass
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @field_validator("environment")
    @classmethod
    def normalize_environment(cls, value: str) -> str:
        return (value or "development").strip().lower()

    @field_validator("scheduler_mode", mode="before")
    @classmethod
    def normalize_scheduler_mode(cls, value: str) -> str:
        return (value or "fill").strip().lower()


@lru_cache
def get_settings() -> Settings:
    return Settings()
