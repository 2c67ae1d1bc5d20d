from pydantic import BaseModel
from typing import Optional

class CourseBase(BaseModel):
    semester_id: int
    code: str
    title: str

class CourseCreate(CourseBase):
    pass

class CourseVisibility(BaseModel):
    """Settings read by the public course pages."""
    is_published: bool = False
    public_slug: Optional[str] = None
    show_lecture_links: bool = False

class Course(CourseBase):
    id: int
    is_published: bool = False
    public_slug: Optional[str] = None
    show_lecture_links: bool = False

    class Config:
        from_attributes = True
