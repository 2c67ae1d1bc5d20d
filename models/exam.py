from pydantic import BaseModel
from typing import Optional

class ExamBase(BaseModel):
    course_id: int
    title: str
    date: Optional[str] = None

class ExamCreate(ExamBase):
    pass

class Exam(ExamBase):
    id: int

    class Config:
        from_attributes = True
