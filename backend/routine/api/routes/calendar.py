from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from routine.api.deps import get_db
from routine.schemas.catalog import DayOut, TimeSlotOut
from routine.services import catalog

router = APIRouter()


@router.get("/days", response_model=list[DayOut])
def list_days(db: Session = Depends(get_db)) -> list[DayOut]:
    return catalog.list_days(db)


@router.get("/time-slots", response_model=list[TimeSlotOut])
def list_time_slots(db: Session = Depends(get_db)) -> list[TimeSlotOut]:
    return catalog.list_time_slots(db)
