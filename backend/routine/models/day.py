import uuid

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from routine.db.base import Base


class Day(Base):
    __tablename__ = "days"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    ordinal: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)
