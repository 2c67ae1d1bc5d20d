from fastapi import APIRouter, Depends, HTTPException
from db.database import get_db
from db import records
from db.errors import ForeignKeyViolation, UniqueConstraintViolation
from models.course import Course, CourseVisibility
from models.log_item import LogItem, LogItemCreate
from models.exam import Exam, ExamCreate
from models.category import Category, CategoryCreate

router = APIRouter()

def _require_course(conn, course_id: int) -> Course:
    course = records.get_course(conn, course_id)
    if not course:
        raise HTTPException(status_code=404, detail="Course not found")
    return course

@router.get("/{course_id}", response_model=Course)
async def get_course(course_id: int, conn = Depends(get_db)):
    return _require_course(conn, course_id)

@router.put("/{course_id}/visibility", response_model=Course)
async def update_visibility(course_id: int, settings: CourseVisibility, conn = Depends(get_db)):
    """Publish or unpublish a course and set its public slug."""
    try:
        course = records.update_course_visibility(
            conn,
            course_id,
            settings.is_published,
            settings.public_slug,
            settings.show_lecture_links,
        )
    except UniqueConstraintViolation:
        raise HTTPException(status_code=400, detail="Public slug is already in use")
    if not course:
        raise HTTPException(status_code=404, detail="Course not found")
    return course

@router.get("/public/{slug}", response_model=Course)
async def get_public_course(slug: str, conn = Depends(get_db)):
    course = records.get_published_course(conn, slug)
    if not course:
        raise HTTPException(status_code=404, detail="Course not found")
    return course

@router.get("/{course_id}/logs", response_model=list[LogItem])
async def list_log_items(course_id: int, conn = Depends(get_db)):
    _require_course(conn, course_id)
    return records.list_log_items(conn, course_id)

@router.post("/{course_id}/logs", response_model=LogItem, status_code=201)
async def create_log_item(course_id: int, item: LogItemCreate, conn = Depends(get_db)):
    if not item.title.strip():
        raise HTTPException(status_code=400, detail="Title is required")
    try:
        return records.create_log_item(
            conn, course_id, item.kind, item.title.strip(), item.description, item.link, item.date
        )
    except ForeignKeyViolation:
        raise HTTPException(status_code=404, detail="Course not found")

@router.delete("/{course_id}/logs/{item_id}", status_code=204)
async def delete_log_item(course_id: int, item_id: int, conn = Depends(get_db)):
    item = records.get_log_item(conn, item_id)
    if not item or item.course_id != course_id:
        raise HTTPException(status_code=404, detail="Log item not found")
    records.delete_log_item(conn, item_id)

@router.get("/{course_id}/exams", response_model=list[Exam])
async def list_exams(course_id: int, conn = Depends(get_db)):
    _require_course(conn, course_id)
    return records.list_exams(conn, course_id)

@router.post("/{course_id}/exams", response_model=Exam, status_code=201)
async def create_exam(course_id: int, exam: ExamCreate, conn = Depends(get_db)):
    if not exam.title.strip():
        raise HTTPException(status_code=400, detail="Title is required")
    try:
        return records.create_exam(conn, course_id, exam.title.strip(), exam.date)
    except ForeignKeyViolation:
        raise HTTPException(status_code=404, detail="Course not found")

@router.get("/{course_id}/categories", response_model=list[Category])
async def list_categories(course_id: int, conn = Depends(get_db)):
    _require_course(conn, course_id)
    return records.list_categories(conn, course_id)

@router.post("/{course_id}/categories", response_model=Category, status_code=201)
async def create_category(course_id: int, category: CategoryCreate, conn = Depends(get_db)):
    if not category.name.strip():
        raise HTTPException(status_code=400, detail="Name is required")
    try:
        return records.create_category(conn, course_id, category.name.strip())
    except ForeignKeyViolation:
        raise HTTPException(status_code=404, detail="Course not found")
