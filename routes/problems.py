from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from typing import Optional
from db.database import get_db
from db import records
from db.errors import ForeignKeyViolation
from models.problem import FromExam, FromLogItem, Problem, ProblemCreate

router = APIRouter()

class ProblemUpdate(BaseModel):
    notes: Optional[str] = None
    solution_link: Optional[str] = None
    is_incorrect: bool = False

class CategoryNames(BaseModel):
    names: list[str]

def _course_for_source(conn, source) -> Optional[int]:
    if isinstance(source, FromLogItem):
        item = records.get_log_item(conn, source.log_item_id)
        return item.course_id if item else None
    if isinstance(source, FromExam):
        exam = records.get_exam(conn, source.exam_id)
        return exam.course_id if exam else None
    return None

@router.post("/", response_model=Problem, status_code=201)
async def create_problem(problem: ProblemCreate, conn = Depends(get_db)):
    """Create a problem and attach categories by name within the source's course."""
    if not problem.description.strip():
        raise HTTPException(status_code=400, detail="Description is required")
    course_id = _course_for_source(conn, problem.source)
    if problem.category_names and course_id is None:
        raise HTTPException(status_code=400, detail="Categories need a log item or exam source")
    try:
        created = records.create_problem(
            conn,
            problem.description.strip(),
            source=problem.source,
            notes=problem.notes,
            image_url=problem.image_url,
            solution_link=problem.solution_link,
            is_incorrect=problem.is_incorrect,
        )
    except ForeignKeyViolation:
        raise HTTPException(status_code=404, detail="Problem source not found")
    if problem.category_names:
        records.set_problem_categories_by_name(conn, created.id, course_id, problem.category_names)
        created = records.get_problem(conn, created.id)
    return created

@router.get("/{problem_id}", response_model=Problem)
async def get_problem(problem_id: int, conn = Depends(get_db)):
    problem = records.get_problem(conn, problem_id)
    if not problem:
        raise HTTPException(status_code=404, detail="Problem not found")
    return problem

@router.put("/{problem_id}", response_model=Problem)
async def update_problem(problem_id: int, update: ProblemUpdate, conn = Depends(get_db)):
    problem = records.update_problem(
        conn, problem_id, update.notes, update.solution_link, update.is_incorrect
    )
    if not problem:
        raise HTTPException(status_code=404, detail="Problem not found")
    return problem

@router.put("/{problem_id}/categories", response_model=list[int])
async def set_categories(problem_id: int, body: CategoryNames, conn = Depends(get_db)):
    problem = records.get_problem(conn, problem_id)
    if not problem:
        raise HTTPException(status_code=404, detail="Problem not found")
    course_id = _course_for_source(conn, problem.source)
    if course_id is None:
        raise HTTPException(status_code=400, detail="Categories need a log item or exam source")
    category_ids = records.set_problem_categories_by_name(conn, problem_id, course_id, body.names)
    return sorted(category_ids)

@router.get("/log/{item_id}", response_model=list[Problem])
async def problems_for_log_item(item_id: int, conn = Depends(get_db)):
    return records.list_problems_for_log_item(conn, item_id)

@router.get("/exam/{exam_id}", response_model=list[Problem])
async def problems_for_exam(exam_id: int, conn = Depends(get_db)):
    return records.list_problems_for_exam(conn, exam_id)
