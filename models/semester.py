from pydantic import BaseModel
from typing import Optional

class SemesterBase(BaseModel):
    name: str

class SemesterCreate(SemesterBase):
    pass

class Semester(SemesterBase):
    id: int
    created_at: Optional[str] = None

    class Config:
        from_attributes = True
