from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from routine.api.deps import get_db
from routine.schemas.catalog import RoomCreate, RoomOut
from routine.services import catalog
from routine.services.availability import available_rooms

router = APIRouter()
availability_router = APIRouter()


@router.get("", response_model=list[RoomOut])
def list_rooms(db: Session = Depends(get_db)) -> list[RoomOut]:
    return catalog.list_rooms(db)


@router.post("", response_model=RoomOut, status_code=status.HTTP_201_CREATED)
def create_room(payload: RoomCreate, db: Session = Depends(get_db)) -> RoomOut:
    return catalog.create_room(db, payload)


@router.delete("/{room_id}")
def delete_room(room_id: str, db: Session = Depends(get_db)) -> dict:
    catalog.delete_room(db, room_id)
    return {"success": True}


@availability_router.get("/room-availability", response_model=list[RoomOut])
def get_available_rooms(
    day_id: str = Query(min_length=1),
    slot_id: str = Query(min_length=1),
    db: Session = Depends(get_db),
) -> list[RoomOut]:
    return available_rooms(db, day_id, slot_id)
