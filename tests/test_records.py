import pytest

from db import database, records
from db.errors import ForeignKeyViolation, InvalidKindError, UniqueConstraintViolation
from models.log_item import LogKind
from models.problem import FromExam, FromLogItem, Unattached


@pytest.fixture
def conn(migrated_db):
    with database.get_conn() as conn:
        yield conn


@pytest.fixture
def course(conn):
    semester = records.create_semester(conn, "Fall 2025")
    return records.create_course(conn, semester.id, "MATH 1A", "Calculus")


def test_course_defaults_to_unpublished(conn, course):
    assert course.is_published is False
    assert course.public_slug is None
    assert course.show_lecture_links is False


def test_reused_slug_is_rejected(conn, course):
    other = records.create_course(conn, course.semester_id, "MATH 1B", "Calculus II")
    records.update_course_visibility(conn, course.id, True, "calc", False)

    with pytest.raises(UniqueConstraintViolation):
        records.update_course_visibility(conn, other.id, True, "calc", True)

    assert records.get_course(conn, other.id).public_slug is None
    assert records.get_published_course(conn, "calc").id == course.id


def test_courses_without_slug_coexist(conn, course):
    other = records.create_course(conn, course.semester_id, "MATH 1B", "Calculus II")

    records.update_course_visibility(conn, course.id, False, None, False)
    updated = records.update_course_visibility(conn, other.id, False, "   ", True)

    assert updated.public_slug is None
    assert updated.show_lecture_links is True
    assert len(records.list_courses(conn, course.semester_id)) == 2


def test_unpublished_course_is_not_public(conn, course):
    records.update_course_visibility(conn, course.id, False, "calc", False)

    assert records.get_published_course(conn, "calc") is None


def test_missing_parent_is_a_foreign_key_violation(conn, course):
    with pytest.raises(ForeignKeyViolation):
        records.create_course(conn, 999, "CS 61A", "Programs")
    with pytest.raises(ForeignKeyViolation):
        records.create_log_item(conn, 999, LogKind.LECTURE, "第一讲")
    with pytest.raises(ForeignKeyViolation):
        records.create_problem(conn, "orphan", source=FromLogItem(log_item_id=999))
    with pytest.raises(ForeignKeyViolation):
        records.create_exam(conn, 999, "Final")


def test_log_kind_is_validated_on_write_and_read(conn, course):
    with pytest.raises(InvalidKindError):
        records.create_log_item(conn, course.id, "Seminar", "Guest talk")

    item = records.create_log_item(conn, course.id, "Homework", "作业二", date="2025-09-12")
    assert item.kind is LogKind.HOMEWORK

    conn.execute("UPDATE log_items SET kind = 'lecture' WHERE id = ?", (item.id,))
    conn.commit()
    with pytest.raises(InvalidKindError):
        records.get_log_item(conn, item.id)


def test_problem_source_round_trips(conn, course):
    item = records.create_log_item(conn, course.id, LogKind.QUIZ, "测验十")
    exam = records.create_exam(conn, course.id, "Midterm 1", "2025-10-15")

    from_item = records.create_problem(conn, "bad sign", source=FromLogItem(log_item_id=item.id))
    from_exam = records.create_problem(conn, "lost a factor", source=FromExam(exam_id=exam.id), is_incorrect=True)
    loose = records.create_problem(conn, "practice")

    assert from_item.source == FromLogItem(log_item_id=item.id)
    assert from_exam.source == FromExam(exam_id=exam.id)
    assert from_exam.is_incorrect is True
    assert loose.source == Unattached()
    assert [p.id for p in records.list_problems_for_exam(conn, exam.id)] == [from_exam.id]


def test_problem_with_both_sources_is_rejected_on_read(conn, course):
    item = records.create_log_item(conn, course.id, LogKind.LAB, "实验一")
    exam = records.create_exam(conn, course.id, "Final")
    problem = records.create_problem(conn, "mixed", source=FromLogItem(log_item_id=item.id))
    conn.execute("UPDATE problems SET exam_id = ? WHERE id = ?", (exam.id, problem.id))
    conn.commit()

    with pytest.raises(ValueError):
        records.get_problem(conn, problem.id)


def test_problem_categories_are_a_set(conn, course):
    item = records.create_log_item(conn, course.id, LogKind.LECTURE, "第三讲")
    problem = records.create_problem(conn, "chain rule", source=FromLogItem(log_item_id=item.id))

    ids = records.set_problem_categories_by_name(conn, problem.id, course.id, ["chain rule", " limits ", "chain rule", ""])

    assert len(ids) == 2
    assert records.get_problem(conn, problem.id).category_ids == ids
    assert {c.name for c in records.list_categories(conn, course.id)} == {"chain rule", "limits"}

    again = records.set_problem_categories_by_name(conn, problem.id, course.id, ["limits"])
    assert len(again) == 1
    assert again < ids
    assert len(records.list_categories(conn, course.id)) == 2


def test_created_category_is_read_back(conn, course):
    category = records.create_category(conn, course.id, "units")

    assert category == records.get_category(conn, category.id)
    assert (category.course_id, category.name) == (course.id, "units")
    assert records.get_category(conn, 999) is None


def test_unknown_category_id_is_rejected(conn, course):
    problem = records.create_problem(conn, "floating")
    category = records.create_category(conn, course.id, "units")

    with pytest.raises(ForeignKeyViolation):
        records.set_problem_categories(conn, problem.id, [category.id, 999])
    assert records.get_problem_categories(conn, problem.id) == set()

    assert records.set_problem_categories(conn, problem.id, [category.id]) == {category.id}


def test_deleting_log_item_removes_its_problems(conn, course):
    item = records.create_log_item(conn, course.id, LogKind.DISCUSSION, "讨论一")
    problem = records.create_problem(conn, "free body diagram", source=FromLogItem(log_item_id=item.id))
    records.set_problem_categories_by_name(conn, problem.id, course.id, ["forces"])

    assert records.delete_log_item(conn, item.id) is True

    assert records.get_log_item(conn, item.id) is None
    assert records.get_problem(conn, problem.id) is None
    assert conn.execute("SELECT COUNT(*) FROM problem_categories").fetchone()[0] == 0
    assert records.delete_log_item(conn, item.id) is False


def test_update_problem_marks_incorrect(conn, course):
    problem = records.create_problem(conn, "integration by parts")

    updated = records.update_problem(conn, problem.id, "redo", "https://example.com/sol", True)

    assert updated.is_incorrect is True
    assert updated.solution_link == "https://example.com/sol"
    assert records.update_problem(conn, 999, None, None, False) is None
