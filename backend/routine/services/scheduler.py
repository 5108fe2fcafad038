"""Backtracking auto-scheduler behind "regenerate".

Each course owes a number of weekly sessions. Sessions are placed onto
(day, slot, room, teacher) options; at every step the course with the fewest
legal options left is expanded first, and options are tried in day, slot and
room-capacity order. Placements are checked with the same rules the ledger
applies to manual entries, against the partial assignment built so far.

The step and wall-clock budget covers the whole search, including the greedy
fallback pass. Nothing is written unless every session is placed.
"""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
import logging
from time import perf_counter
from typing import Literal

from sqlalchemy import select
from sqlalchemy.orm import Session

from routine.core.config import SchedulerMode, Settings, get_settings
from routine.core.exceptions import SearchBudgetExceededError
from routine.models.allocation import Allocation, AllocationSource
from routine.models.course import Course
from routine.models.teacher import Teacher
from routine.schemas.allocation import UnplaceableCourse
from routine.services.catalog import list_days, list_rooms, list_time_slots
from routine.services.ledger import AllocationLedger, ledger_mutation
from routine.services.validator import Candidate, LedgerSnapshot, candidate_of, first_violation
from routine.services.workload import WorkloadLimits, workload_limits

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OptionSpace:
    """A course's (day, slot, room, teacher) options in search order, built on access."""

    course_id: str
    cells: tuple[tuple[str, str], ...]
    room_ids: tuple[str, ...]
    teacher_ids: tuple[str, ...]

    def __len__(self) -> int:
        return len(self.cells) * len(self.room_ids) * len(self.teacher_ids)

    def __getitem__(self, index: int) -> Candidate:
        rest, teacher = divmod(index, len(self.teacher_ids))
        cell, room = divmod(rest, len(self.room_ids))
        day_id, slot_id = self.cells[cell]
        return Candidate(
            teacher_id=self.teacher_ids[teacher],
            course_id=self.course_id,
            room_id=self.room_ids[room],
            day_id=day_id,
            slot_id=slot_id,
        )


@dataclass(frozen=True)
class CourseDemand:
    course_id: str
    course_code: str
    course_name: str
    sessions: int
    options: OptionSpace


@dataclass
class RegenerationResult:
    status: Literal["ok", "failed"]
    mode: SchedulerMode
    placements: list[Candidate] = field(default_factory=list)
    unplaceable: list[UnplaceableCourse] = field(default_factory=list)
    steps: int = 0
    elapsed_seconds: float = 0.0


class SearchBudget:
    def __init__(self, *, max_steps: int, time_limit_seconds: float) -> None:
        self.max_steps = max_steps
        self.deadline = perf_counter() + time_limit_seconds
        self.steps = 0
        self.exhausted = False

    def spend(self) -> bool:
        self.steps += 1
        if self.steps > self.max_steps or perf_counter() >= self.deadline:
            self.exhausted = True
        return not self.exhausted

    def out_of_time(self) -> bool:
        """Deadline check that does not count as a step."""
        if perf_counter() < self.deadline:
            return False
        self.exhausted = True
        return True


class _BudgetExhausted(Exception):
    pass


# Options scanned between two clock reads while computing legal placements.
_DEADLINE_CHECK_INTERVAL = 256


@dataclass
class _Frame:
    course_id: str
    candidates: list[int]
    position: int = 0
    placed_index: int | None = None
    previous_floor: int = -1


class _Search:
    def __init__(
        self,
        demands: list[CourseDemand],
        snapshot: LedgerSnapshot,
        limits: WorkloadLimits,
        *,
        cell_count: int,
        budget: SearchBudget | None = None,
    ) -> None:
        self.demands = {demand.course_id: demand for demand in demands}
        self.order = [demand.course_id for demand in demands]
        self.snapshot = snapshot.copy()
        self.limits = limits
        self.cell_count = cell_count
        self.budget = budget
        self.need = {demand.course_id: demand.sessions for demand in demands}
        # Sessions of one course are interchangeable; placing them in increasing
        # option order stops the search from revisiting permutations.
        self.floor = {demand.course_id: -1 for demand in demands}
        self.placements: list[Candidate] = []
        self.best: list[Candidate] = []

    def _check_deadline(self) -> None:
        if self.budget is not None and self.budget.out_of_time():
            raise _BudgetExhausted

    def _legal(self, course_id: str) -> list[int]:
        options = self.demands[course_id].options
        legal: list[int] = []
        for scanned, index in enumerate(range(self.floor[course_id] + 1, len(options))):
            if scanned % _DEADLINE_CHECK_INTERVAL == 0:
                self._check_deadline()
            if first_violation(self.snapshot, options[index], self.limits) is None:
                legal.append(index)
        return legal

    def _pending(self) -> list[str]:
        return [course_id for course_id in self.order if self.need[course_id] > 0]

    def _open_frame(self) -> _Frame | None:
        pending = self._pending()
        if not pending:
            return None

        free_cells = self.cell_count - len(self.snapshot.rooms_busy)
        if sum(self.need[course_id] for course_id in pending) > free_cells:
            return _Frame(course_id=pending[0], candidates=[])

        chosen: _Frame | None = None
        for course_id in pending:
            legal = self._legal(course_id)
            if len(legal) < self.need[course_id]:
                return _Frame(course_id=course_id, candidates=[])
            if chosen is None or len(legal) < len(chosen.candidates):
                chosen = _Frame(course_id=course_id, candidates=legal)
        return chosen

    def _place(self, frame: _Frame, index: int) -> None:
        option = self.demands[frame.course_id].options[index]
        self.snapshot.place(option)
        self.need[frame.course_id] -= 1
        frame.previous_floor = self.floor[frame.course_id]
        self.floor[frame.course_id] = index
        frame.placed_index = index
        self.placements.append(option)

    def _unplace(self, frame: _Frame) -> None:
        option = self.demands[frame.course_id].options[frame.placed_index]
        self.snapshot.release(option)
        self.need[frame.course_id] += 1
        self.floor[frame.course_id] = frame.previous_floor
        frame.placed_index = None
        self.placements.pop()

    def _advance(self, frame: _Frame) -> bool:
        options = self.demands[frame.course_id].options
        while frame.position < len(frame.candidates):
            index = frame.candidates[frame.position]
            frame.position += 1
            if self.budget is not None and not self.budget.spend():
                raise _BudgetExhausted
            if first_violation(self.snapshot, options[index], self.limits) is not None:
                continue
            self._place(frame, index)
            return True
        return False

    def run(self) -> bool:
        """Depth-first search with backtracking. True when every session is placed."""
        stack: list[_Frame] = []
        try:
            frame = self._open_frame()
            while frame is not None:
                if self._advance(frame):
                    stack.append(frame)
                    if len(self.placements) > len(self.best):
                        self.best = list(self.placements)
                    frame = self._open_frame()
                    continue
                if not stack:
                    return False
                frame = stack.pop()
                self._unplace(frame)
        except _BudgetExhausted:
            return False
        return True

    def greedy(self) -> list[Candidate]:
        """Single most-constrained-first pass without backtracking, skipping stuck courses.

        Stops at the budget deadline and returns whatever was placed by then.
        """
        stuck: set[str] = set()
        try:
            while True:
                pending = [course_id for course_id in self._pending() if course_id not in stuck]
                if not pending:
                    break
                course_id, legal = min(
                    ((course_id, self._legal(course_id)) for course_id in pending),
                    key=lambda item: len(item[1]),
                )
                if not legal:
                    stuck.add(course_id)
                    continue
                self._place(_Frame(course_id=course_id, candidates=legal), legal[0])
        except _BudgetExhausted:
            pass
        return list(self.placements)


class AutoScheduler:
    def __init__(
        self,
        db: Session,
        *,
        settings: Settings | None = None,
        mode: SchedulerMode | None = None,
        include_manual: bool = False,
    ) -> None:
        self.db = db
        self.settings = settings or get_settings()
        self.mode: SchedulerMode = mode or self.settings.scheduler_mode
        self.include_manual = include_manual
        self.limits = workload_limits(self.settings)

    def regenerate(self) -> RegenerationResult:
        started = perf_counter()
        with ledger_mutation(self.settings.ledger_lock_timeout_seconds):
            budget = SearchBudget(
                max_steps=self.settings.scheduler_max_steps,
                time_limit_seconds=self.settings.scheduler_time_limit_seconds,
            )
            released = self._released_allocations()
            snapshot = LedgerSnapshot.load(self.db)
            for allocation in released:
                snapshot.release(candidate_of(allocation))

            demands, cell_count = self._build_demands(snapshot)
            total = sum(demand.sessions for demand in demands)
            logger.info(
                "Regenerating routine (mode=%s): %d session(s) across %d course(s), %d allocation(s) released",
                self.mode,
                total,
                len(demands),
                len(released),
            )

            search = _Search(demands, snapshot, self.limits, cell_count=cell_count, budget=budget)
            placements: list[Candidate] | None = search.placements if search.run() else None
            fallback: list[Candidate] = []
            if placements is None and not budget.out_of_time():
                # After a step cut-off this may still complete the routine; after an exhaustive
                # search it only sizes the unplaceable set. Either way it shares the deadline.
                fallback = _Search(demands, snapshot, self.limits, cell_count=cell_count, budget=budget).greedy()
                if len(fallback) == total:
                    placements = fallback

            if placements is not None:
                if released or placements:
                    AllocationLedger(self.db, self.settings).apply_batch(remove=released, add=placements)
                elapsed = perf_counter() - started
                logger.info("Routine regenerated: %d session(s) placed in %d step(s), %.3fs", total, budget.steps, elapsed)
                return RegenerationResult(
                    status="ok",
                    mode=self.mode,
                    placements=placements,
                    steps=budget.steps,
                    elapsed_seconds=elapsed,
                )

            partial = search.best if len(search.best) >= len(fallback) else fallback
            unplaceable = self._unplaceable(demands, partial)

        elapsed = perf_counter() - started
        if budget.exhausted:
            logger.warning(
                "Regeneration gave up after %d step(s) (%.3fs); %d course(s) unplaced",
                budget.steps,
                elapsed,
                len(unplaceable),
            )
            raise SearchBudgetExceededError(
                "Search budget exhausted before a complete routine was found",
                unplaceable=[item.model_dump() for item in unplaceable],
                details={"steps": budget.steps, "elapsed_seconds": round(elapsed, 3)},
            )

        logger.info("Regeneration failed: %d course(s) cannot be placed", len(unplaceable))
        return RegenerationResult(
            status="failed",
            mode=self.mode,
            unplaceable=unplaceable,
            steps=budget.steps,
            elapsed_seconds=elapsed,
        )

    def _released_allocations(self) -> list[Allocation]:
        if self.mode == "fill":
            return []
        query = select(Allocation)
        if not self.include_manual:
            query = query.where(Allocation.source == AllocationSource.generated)
        return list(self.db.execute(query).scalars())

    def _build_demands(self, snapshot: LedgerSnapshot) -> tuple[list[CourseDemand], int]:
        days = list_days(self.db)
        slots = list_time_slots(self.db)
        rooms = sorted(list_rooms(self.db), key=lambda room: (room.capacity, room.number))
        teacher_ids = tuple(teacher.id for teacher in self.db.execute(select(Teacher).order_by(Teacher.name)).scalars())
        cells = tuple((day.id, slot.id) for day in days for slot in slots)

        demands: list[CourseDemand] = []
        for course in self.db.execute(select(Course).order_by(Course.code)).scalars():
            sessions = snapshot.remaining_capacity.get(course.id, 0)
            if sessions <= 0:
                continue
            options = OptionSpace(
                course_id=course.id,
                cells=cells,
                room_ids=tuple(room.id for room in rooms if room.capacity >= (course.enrollment or 0)),
                teacher_ids=(course.teacher_id,) if course.teacher_id else teacher_ids,
            )
            demands.append(
                CourseDemand(
                    course_id=course.id,
                    course_code=course.code,
                    course_name=course.name,
                    sessions=sessions,
                    options=options,
                )
            )
        return demands, len(days) * len(slots) * len(rooms)

    @staticmethod
    def _unplaceable(demands: list[CourseDemand], partial: list[Candidate]) -> list[UnplaceableCourse]:
        placed = Counter(candidate.course_id for candidate in partial)
        missing: list[UnplaceableCourse] = []
        for demand in demands:
            shortfall = demand.sessions - placed[demand.course_id]
            if shortfall > 0:
                missing.append(
                    UnplaceableCourse(
                        id=demand.course_id,
                        code=demand.course_code,
                        name=demand.course_name,
                        missing_sessions=shortfall,
                    )
                )
        return missing
