from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from routine.api.deps import get_app_settings, get_db
from routine.core.config import Settings
from routine.schemas.allocation import TeacherSchedule
from routine.schemas.catalog import TeacherCreate, TeacherOut
from routine.services import catalog
from routine.services.timetable import teacher_schedule
from routine.services.workload import workload_limits

router = APIRouter()


@router.get("", response_model=list[TeacherOut])
def list_teachers(db: Session = Depends(get_db)) -> list[TeacherOut]:
    return catalog.list_teachers(db)


@router.post("", response_model=TeacherOut, status_code=status.HTTP_201_CREATED)
def create_teacher(payload: TeacherCreate, db: Session = Depends(get_db)) -> TeacherOut:
    return catalog.create_teacher(db, payload)


@router.delete("/{teacher_id}")
def delete_teacher(teacher_id: str, db: Session = Depends(get_db)) -> dict:
    catalog.delete_teacher(db, teacher_id)
    return {"success": True}


@router.get("/{teacher_id}/schedule", response_model=TeacherSchedule)
def get_teacher_schedule(
    teacher_id: str,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> TeacherSchedule:
    return teacher_schedule(db, teacher_id, workload_limits(settings))
