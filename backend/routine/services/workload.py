from __future__ import annotations

from dataclasses import dataclass

from routine.core.config import Settings, get_settings

# Credit hours are multiples of 0.5, so sums are exact in binary floating point.
# The tolerance only guards against values that arrive from external input.
_TOLERANCE = 1e-9


@dataclass(frozen=True)
class WorkloadLimits:
    daily: float
    weekly: float


def workload_limits(settings: Settings | None = None) -> WorkloadLimits:
    settings = settings or get_settings()
    return WorkloadLimits(daily=settings.daily_workload_limit, weekly=settings.weekly_workload_limit)


def exceeds_limit(current: float, attempted: float, limit: float) -> bool:
    return current + attempted > limit + _TOLERANCE


def format_hours(value: float) -> str:
    return f"{value:g}h"
