import pytest

from db import database
from db.errors import IntegrityViolation
from db.integrity import take_snapshot, verify_rebuild


def _seed(conn) -> None:
    conn.execute("INSERT INTO semesters (id, name) VALUES (1, 'Spring')")
    conn.execute("INSERT INTO courses (id, semester_id, code, title) VALUES (1, 1, 'PHYS 7A', 'Mechanics')")
    conn.execute("INSERT INTO exams (id, course_id, title) VALUES (1, 1, 'Midterm 1')")
    conn.execute("INSERT INTO categories (id, course_id, name) VALUES (1, 1, 'units'), (2, 1, 'vectors')")
    conn.execute("INSERT INTO problems (id, exam_id, description) VALUES (1, 1, 'wrong units'), (2, 1, 'sign')")
    conn.execute("INSERT INTO problem_categories (problem_id, category_id) VALUES (1, 1), (2, 2)")


@pytest.fixture
def seeded_conn(migrated_db):
    with database.get_migration_conn() as conn:
        _seed(conn)
        yield conn


def test_unchanged_tables_pass(seeded_conn):
    snapshot = take_snapshot(seeded_conn, "problems", ["problem_categories"])

    verify_rebuild(seeded_conn, snapshot)

    assert snapshot.dependents["problem_categories"].count == 2
    assert snapshot.primary_ids == {1, 2}


def test_dropped_association_fails_row_count(seeded_conn):
    snapshot = take_snapshot(seeded_conn, "problems", ["problem_categories"])
    seeded_conn.execute("DELETE FROM problem_categories WHERE problem_id = 2")

    with pytest.raises(IntegrityViolation) as excinfo:
        verify_rebuild(seeded_conn, snapshot)
    assert excinfo.value.check == "row count"


def test_swapped_association_fails_row_set(seeded_conn):
    snapshot = take_snapshot(seeded_conn, "problems", ["problem_categories"])
    seeded_conn.execute("UPDATE problem_categories SET category_id = 1 WHERE problem_id = 2")

    with pytest.raises(IntegrityViolation) as excinfo:
        verify_rebuild(seeded_conn, snapshot)
    assert excinfo.value.check == "row set"
    assert "1 rows lost" in excinfo.value.detail


def test_missing_primary_row_fails_primary_key(seeded_conn):
    snapshot = take_snapshot(seeded_conn, "problems", ["problem_categories"])
    seeded_conn.execute("DELETE FROM problems WHERE id = 2")

    with pytest.raises(IntegrityViolation) as excinfo:
        verify_rebuild(seeded_conn, snapshot)
    assert excinfo.value.check == "primary key"


def test_dangling_reference_is_reported(seeded_conn):
    seeded_conn.execute("INSERT INTO problem_categories (problem_id, category_id) VALUES (1, 42)")
    snapshot = take_snapshot(seeded_conn, "problems", ["problem_categories"])

    with pytest.raises(IntegrityViolation) as excinfo:
        verify_rebuild(seeded_conn, snapshot)
    assert excinfo.value.check == "dangling reference"
    assert "categories" in excinfo.value.detail
