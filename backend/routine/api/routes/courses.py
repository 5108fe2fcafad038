from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from routine.api.deps import get_db
from routine.schemas.catalog import CourseCreate, CourseOut
from routine.services import catalog

router = APIRouter()


@router.get("", response_model=list[CourseOut])
def list_courses(db: Session = Depends(get_db)) -> list[CourseOut]:
    return catalog.list_courses(db)


@router.post("", response_model=CourseOut, status_code=status.HTTP_201_CREATED)
def create_course(payload: CourseCreate, db: Session = Depends(get_db)) -> CourseOut:
    return catalog.create_course(db, payload)


@router.delete("/{course_id}")
def delete_course(course_id: str, db: Session = Depends(get_db)) -> dict:
    catalog.delete_course(db, course_id)
    return {"success": True}
