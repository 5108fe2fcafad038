from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from routine.api.deps import get_app_settings, get_db
from routine.core.config import Settings
from routine.schemas.allocation import AllocationCreate, AllocationDeleted, AllocationOut
from routine.services.ledger import AllocationLedger
from routine.services.validator import Candidate

router = APIRouter()


@router.get("", response_model=list[AllocationOut])
def list_allocations(db: Session = Depends(get_db)) -> list[AllocationOut]:
    return AllocationLedger(db).list()


@router.post("", response_model=AllocationOut, status_code=status.HTTP_201_CREATED)
def create_allocation(
    payload: AllocationCreate,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> AllocationOut:
    return AllocationLedger(db, settings).create(Candidate(**payload.model_dump()))


@router.delete("/{allocation_id}", response_model=AllocationDeleted)
def delete_allocation(
    allocation_id: str,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> AllocationDeleted:
    return AllocationLedger(db, settings).delete(allocation_id)
