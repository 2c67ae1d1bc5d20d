from fastapi import APIRouter, Depends, HTTPException
from db.database import get_db
from db import records
from db.errors import ForeignKeyViolation
from models.semester import Semester, SemesterCreate
from models.course import Course, CourseCreate

router = APIRouter()

@router.get("/", response_model=list[Semester])
async def list_semesters(conn = Depends(get_db)):
    """List semesters, newest first."""
    return records.list_semesters(conn)

@router.post("/", response_model=Semester, status_code=201)
async def create_semester(semester: SemesterCreate, conn = Depends(get_db)):
    name = semester.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Name is required")
    return records.create_semester(conn, name)

@router.get("/{semester_id}", response_model=Semester)
async def get_semester(semester_id: int, conn = Depends(get_db)):
    semester = records.get_semester(conn, semester_id)
    if not semester:
        raise HTTPException(status_code=404, detail="Semester not found")
    return semester

@router.get("/{semester_id}/courses", response_model=list[Course])
async def list_courses(semester_id: int, conn = Depends(get_db)):
    if not records.get_semester(conn, semester_id):
        raise HTTPException(status_code=404, detail="Semester not found")
    return records.list_courses(conn, semester_id)

@router.post("/{semester_id}/courses", response_model=Course, status_code=201)
async def create_course(semester_id: int, course: CourseCreate, conn = Depends(get_db)):
    """Create a course; the semester in the path wins over the body."""
    if not course.code.strip() or not course.title.strip():
        raise HTTPException(status_code=400, detail="Code and title are required")
    try:
        return records.create_course(conn, semester_id, course.code.strip(), course.title.strip())
    except ForeignKeyViolation:
        raise HTTPException(status_code=404, detail="Semester not found")
