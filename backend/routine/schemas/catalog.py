from pydantic import BaseModel, EmailStr, Field, field_validator


class TeacherBase(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    email: EmailStr

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        name = value.strip()
        if not name:
            raise ValueError("Name cannot be blank")
        return name


class TeacherCreate(TeacherBase):
    pass


class TeacherOut(TeacherBase):
    id: str

    model_config = {"from_attributes": True}


class CourseBase(BaseModel):
    code: str = Field(min_length=1, max_length=50)
    name: str = Field(min_length=1, max_length=200)
    credit_hours: float
    teacher_id: str | None = None
    enrollment: int | None = Field(default=None, ge=0, le=5000)

    @field_validator("code")
    @classmethod
    def normalize_code(cls, value: str) -> str:
        code = value.strip().upper()
        if not code:
            raise ValueError("Course code cannot be blank")
        return code


class CourseCreate(CourseBase):
    pass


class CourseOut(CourseBase):
    id: str
    remaining_capacity: int
    capacity: int

    model_config = {"from_attributes": True}


class RoomBase(BaseModel):
    number: str = Field(min_length=1, max_length=50)
    capacity: int = Field(ge=1, le=1000)
    is_lab: bool = False


class RoomCreate(RoomBase):
    pass


class RoomOut(RoomBase):
    id: str

    model_config = {"from_attributes": True}


class DayOut(BaseModel):
    id: str
    name: str
    ordinal: int

    model_config = {"from_attributes": True}


class TimeSlotOut(BaseModel):
    id: str
    start_time: str
    end_time: str
    ordinal: int
    label: str

    model_config = {"from_attributes": True}
