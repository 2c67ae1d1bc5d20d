from pydantic import BaseModel
from typing import Optional
from enum import Enum

from db.errors import InvalidKindError

class LogKind(str, Enum):
    LECTURE = "Lecture"
    LAB = "Lab"
    DISCUSSION = "Discussion"
    HOMEWORK = "Homework"
    MIDTERM = "Midterm"
    QUIZ = "Quiz"
    OTHER = "Other"

    @classmethod
    def parse(cls, value) -> "LogKind":
        """Coerce a stored or submitted kind, rejecting anything outside the set."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidKindError(f"Unknown log item kind: {value!r}") from None

class LogItemBase(BaseModel):
    course_id: int
    kind: LogKind
    title: str
    description: Optional[str] = None
    link: Optional[str] = None
    date: Optional[str] = None  # ISO date

class LogItemCreate(LogItemBase):
    pass

class LogItem(LogItemBase):
    id: int

    class Config:
        from_attributes = True
