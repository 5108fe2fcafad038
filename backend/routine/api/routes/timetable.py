from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from routine.api.deps import get_app_settings, get_db
from routine.core.config import Settings
from routine.schemas.allocation import RegenerateRequest, RegenerateResponse, RoutineCell
from routine.services.scheduler import AutoScheduler
from routine.services.timetable import compile_routine, compile_routine_cells

router = APIRouter()


@router.get("", response_model=dict[str, dict[str, RoutineCell | None]])
def get_routine(db: Session = Depends(get_db)) -> dict[str, dict[str, RoutineCell | None]]:
    return compile_routine(db)


@router.get("/cells", response_model=dict[str, dict[str, list[RoutineCell]]])
def get_routine_cells(db: Session = Depends(get_db)) -> dict[str, dict[str, list[RoutineCell]]]:
    return compile_routine_cells(db)


@router.post("/regenerate", response_model=RegenerateResponse)
def regenerate_routine(
    payload: RegenerateRequest | None = Body(default=None),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> RegenerateResponse:
    payload = payload or RegenerateRequest()
    result = AutoScheduler(db, settings=settings, mode=payload.mode, include_manual=payload.include_manual).regenerate()
    return RegenerateResponse(
        status=result.status,
        mode=result.mode,
        placed=len(result.placements),
        steps=result.steps,
        unplaceable=result.unplaceable,
    )
