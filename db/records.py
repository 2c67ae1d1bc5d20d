"""Plain CRUD over the study log tables.

Every function takes an open connection (see `db.database.get_conn`) and
commits its own writes. Constraint failures surface as
UniqueConstraintViolation / ForeignKeyViolation.
"""
from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from typing import Iterable, List, Optional, Set

from models.category import Category
from models.course import Course
from models.exam import Exam
from models.log_item import LogItem, LogKind
from models.problem import Problem, Unattached, source_from_columns, source_to_columns
from models.semester import Semester
from .errors import wrap_integrity_error


@contextmanager
def _writing(conn: sqlite3.Connection):
    try:
        yield conn.cursor()
        conn.commit()
    except sqlite3.IntegrityError as exc:
        conn.rollback()
        error = wrap_integrity_error(exc)
        if error is exc:
            raise
        raise error from exc
    except Exception:
        conn.rollback()
        raise


# Semesters and courses

def create_semester(conn, name: str) -> Semester:
    with _writing(conn) as cursor:
        cursor.execute("INSERT INTO semesters (name) VALUES (?)", (name,))
        semester_id = cursor.lastrowid
    return get_semester(conn, semester_id)


def get_semester(conn, semester_id: int) -> Optional[Semester]:
    row = conn.execute("SELECT * FROM semesters WHERE id = ?", (semester_id,)).fetchone()
    return Semester(**dict(row)) if row else None


def list_semesters(conn) -> List[Semester]:
    cursor = conn.execute("SELECT * FROM semesters ORDER BY created_at DESC, id DESC")
    return [Semester(**dict(row)) for row in cursor.fetchall()]


def create_course(conn, semester_id: int, code: str, title: str) -> Course:
    with _writing(conn) as cursor:
        cursor.execute(
            "INSERT INTO courses (semester_id, code, title) VALUES (?, ?, ?)",
            (semester_id, code, title),
        )
        course_id = cursor.lastrowid
    return get_course(conn, course_id)


def get_course(conn, course_id: int) -> Optional[Course]:
    row = conn.execute("SELECT * FROM courses WHERE id = ?", (course_id,)).fetchone()
    return Course(**dict(row)) if row else None


def list_courses(conn, semester_id: int) -> List[Course]:
    cursor = conn.execute("SELECT * FROM courses WHERE semester_id = ? ORDER BY code", (semester_id,))
    return [Course(**dict(row)) for row in cursor.fetchall()]


def get_published_course(conn, slug: str) -> Optional[Course]:
    row = conn.execute(
        "SELECT * FROM courses WHERE public_slug = ? AND is_published = 1", (slug,)
    ).fetchone()
    return Course(**dict(row)) if row else None


def update_course_visibility(
    conn,
    course_id: int,
    is_published: bool,
    public_slug: Optional[str],
    show_lecture_links: bool,
) -> Optional[Course]:
    """Set publishing flags; a blank slug is stored as NULL."""
    slug = public_slug.strip() if public_slug else None
    slug = slug or None
    with _writing(conn) as cursor:
        cursor.execute(
            """
            UPDATE courses SET is_published = ?, public_slug = ?, show_lecture_links = ?
            WHERE id = ?
            """,
            (int(is_published), slug, int(show_lecture_links), course_id),
        )
        if cursor.rowcount == 0:
            return None
    return get_course(conn, course_id)


# Log items and exams

def _log_item_from_row(row) -> LogItem:
    data = dict(row)
    data["kind"] = LogKind.parse(data["kind"])
    return LogItem(**data)


def create_log_item(
    conn,
    course_id: int,
    kind,
    title: str,
    description: Optional[str] = None,
    link: Optional[str] = None,
    date: Optional[str] = None,
) -> LogItem:
    kind = LogKind.parse(kind)
    with _writing(conn) as cursor:
        cursor.execute(
            """
            INSERT INTO log_items (course_id, kind, title, description, link, date)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (course_id, kind.value, title, description, link, date),
        )
        item_id = cursor.lastrowid
    return get_log_item(conn, item_id)


def get_log_item(conn, item_id: int) -> Optional[LogItem]:
    row = conn.execute("SELECT * FROM log_items WHERE id = ?", (item_id,)).fetchone()
    return _log_item_from_row(row) if row else None


def list_log_items(conn, course_id: int) -> List[LogItem]:
    cursor = conn.execute(
        "SELECT * FROM log_items WHERE course_id = ? ORDER BY date DESC, id DESC", (course_id,)
    )
    return [_log_item_from_row(row) for row in cursor.fetchall()]


def delete_log_item(conn, item_id: int) -> bool:
    """Delete a log item together with its problems and their category links."""
    with _writing(conn) as cursor:
        cursor.execute(
            """
            DELETE FROM problem_categories
            WHERE problem_id IN (SELECT id FROM problems WHERE log_item_id = ?)
            """,
            (item_id,),
        )
        cursor.execute("DELETE FROM problems WHERE log_item_id = ?", (item_id,))
        cursor.execute("DELETE FROM log_items WHERE id = ?", (item_id,))
        deleted = cursor.rowcount > 0
    return deleted


def create_exam(conn, course_id: int, title: str, date: Optional[str] = None) -> Exam:
    with _writing(conn) as cursor:
        cursor.execute(
            "INSERT INTO exams (course_id, title, date) VALUES (?, ?, ?)",
            (course_id, title, date),
        )
        exam_id = cursor.lastrowid
    return get_exam(conn, exam_id)


def get_exam(conn, exam_id: int) -> Optional[Exam]:
    row = conn.execute("SELECT * FROM exams WHERE id = ?", (exam_id,)).fetchone()
    return Exam(**dict(row)) if row else None


def list_exams(conn, course_id: int) -> List[Exam]:
    cursor = conn.execute("SELECT * FROM exams WHERE course_id = ? ORDER BY id DESC", (course_id,))
    return [Exam(**dict(row)) for row in cursor.fetchall()]


# Categories

def create_category(conn, course_id: int, name: str) -> Category:
    with _writing(conn) as cursor:
        cursor.execute("INSERT INTO categories (course_id, name) VALUES (?, ?)", (course_id, name))
        category_id = cursor.lastrowid
    return get_category(conn, category_id)


def get_category(conn, category_id: int) -> Optional[Category]:
    row = conn.execute("SELECT * FROM categories WHERE id = ?", (category_id,)).fetchone()
    return Category(**dict(row)) if row else None


def list_categories(conn, course_id: int) -> List[Category]:
    cursor = conn.execute("SELECT * FROM categories WHERE course_id = ? ORDER BY name", (course_id,))
    return [Category(**dict(row)) for row in cursor.fetchall()]


def parse_category_names(raw: Iterable[str]) -> List[str]:
    seen = set()
    names: List[str] = []
    for part in raw:
        name = part.strip()
        if not name or name in seen:
            continue
        seen.add(name)
        names.append(name)
    return names


def _category_ids_for_names(cursor, course_id: int, names: List[str]) -> List[int]:
    ids = []
    for name in names:
        cursor.execute("SELECT id FROM categories WHERE course_id = ? AND name = ?", (course_id, name))
        row = cursor.fetchone()
        if row:
            ids.append(row[0])
            continue
        cursor.execute("INSERT INTO categories (course_id, name) VALUES (?, ?)", (course_id, name))
        ids.append(cursor.lastrowid)
    return ids


# Problems

def _problem_from_row(conn, row) -> Problem:
    data = dict(row)
    source = source_from_columns(data.pop("log_item_id"), data.pop("exam_id"))
    data["is_incorrect"] = bool(data["is_incorrect"])
    return Problem(**data, source=source, category_ids=get_problem_categories(conn, data["id"]))


def create_problem(
    conn,
    description: str,
    source=None,
    notes: Optional[str] = None,
    image_url: Optional[str] = None,
    solution_link: Optional[str] = None,
    is_incorrect: bool = False,
) -> Problem:
    log_item_id, exam_id = source_to_columns(source or Unattached())
    with _writing(conn) as cursor:
        cursor.execute(
            """
            INSERT INTO problems (log_item_id, exam_id, description, notes, image_url, solution_link, is_incorrect)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (log_item_id, exam_id, description, notes, image_url, solution_link, int(is_incorrect)),
        )
        problem_id = cursor.lastrowid
    return get_problem(conn, problem_id)


def get_problem(conn, problem_id: int) -> Optional[Problem]:
    row = conn.execute("SELECT * FROM problems WHERE id = ?", (problem_id,)).fetchone()
    return _problem_from_row(conn, row) if row else None


def list_problems_for_log_item(conn, item_id: int) -> List[Problem]:
    cursor = conn.execute("SELECT * FROM problems WHERE log_item_id = ? ORDER BY id", (item_id,))
    return [_problem_from_row(conn, row) for row in cursor.fetchall()]


def list_problems_for_exam(conn, exam_id: int) -> List[Problem]:
    cursor = conn.execute("SELECT * FROM problems WHERE exam_id = ? ORDER BY id", (exam_id,))
    return [_problem_from_row(conn, row) for row in cursor.fetchall()]


def update_problem(
    conn,
    problem_id: int,
    notes: Optional[str],
    solution_link: Optional[str],
    is_incorrect: bool,
) -> Optional[Problem]:
    with _writing(conn) as cursor:
        cursor.execute(
            "UPDATE problems SET notes = ?, solution_link = ?, is_incorrect = ? WHERE id = ?",
            (notes, solution_link, int(is_incorrect), problem_id),
        )
        if cursor.rowcount == 0:
            return None
    return get_problem(conn, problem_id)


def get_problem_categories(conn, problem_id: int) -> Set[int]:
    cursor = conn.execute(
        "SELECT category_id FROM problem_categories WHERE problem_id = ?", (problem_id,)
    )
    return {row[0] for row in cursor.fetchall()}


def set_problem_categories(conn, problem_id: int, category_ids: Iterable[int]) -> Set[int]:
    """Replace a problem's category set."""
    wanted = set(category_ids)
    with _writing(conn) as cursor:
        cursor.execute("DELETE FROM problem_categories WHERE problem_id = ?", (problem_id,))
        cursor.executemany(
            "INSERT INTO problem_categories (problem_id, category_id) VALUES (?, ?)",
            [(problem_id, category_id) for category_id in sorted(wanted)],
        )
    return get_problem_categories(conn, problem_id)


def set_problem_categories_by_name(conn, problem_id: int, course_id: int, names: Iterable[str]) -> Set[int]:
    """Replace a problem's categories, creating missing course categories by name."""
    cleaned = parse_category_names(names)
    with _writing(conn) as cursor:
        category_ids = _category_ids_for_names(cursor, course_id, cleaned)
        cursor.execute("DELETE FROM problem_categories WHERE problem_id = ?", (problem_id,))
        cursor.executemany(
            "INSERT INTO problem_categories (problem_id, category_id) VALUES (?, ?)",
            [(problem_id, category_id) for category_id in category_ids],
        )
    return get_problem_categories(conn, problem_id)
