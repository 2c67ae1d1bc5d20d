# Migration catalog for the study log database
from .migrations import Migration, SchemaRegistry
from .rebuild import ShadowRebuild

INITIAL_SCHEMA = (
    """
    CREATE TABLE semesters (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE courses (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        semester_id INTEGER NOT NULL,
        code TEXT NOT NULL,
        title TEXT NOT NULL,
        FOREIGN KEY (semester_id) REFERENCES semesters (id)
    )
    """,
    # kind: 'Lecture', 'Lab', 'Discussion', 'Homework', 'Midterm', 'Quiz', 'Other'
    """
    CREATE TABLE log_items (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        course_id INTEGER NOT NULL,
        kind TEXT NOT NULL,
        title TEXT NOT NULL,
        description TEXT,
        link TEXT,
        date TEXT,
        FOREIGN KEY (course_id) REFERENCES courses (id)
    )
    """,
    """
    CREATE TABLE categories (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        course_id INTEGER NOT NULL,
        name TEXT NOT NULL,
        FOREIGN KEY (course_id) REFERENCES courses (id)
    )
    """,
    """
    CREATE TABLE problems (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        log_item_id INTEGER NOT NULL,
        description TEXT NOT NULL,
        notes TEXT,
        image_url TEXT,
        FOREIGN KEY (log_item_id) REFERENCES log_items (id)
    )
    """,
    """
    CREATE TABLE problem_categories (
        problem_id INTEGER NOT NULL,
        category_id INTEGER NOT NULL,
        PRIMARY KEY (problem_id, category_id),
        FOREIGN KEY (problem_id) REFERENCES problems (id),
        FOREIGN KEY (category_id) REFERENCES categories (id)
    )
    """,
)

EXAMS_SQL = """
CREATE TABLE exams (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    course_id INTEGER NOT NULL,
    title TEXT NOT NULL,
    date TEXT,
    FOREIGN KEY (course_id) REFERENCES courses (id)
)
"""

# log_item_id becomes nullable, exam_id and is_incorrect are new
PROBLEMS_WITH_EXAMS_SQL = """
CREATE TABLE {name} (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    log_item_id INTEGER,
    exam_id INTEGER,
    description TEXT NOT NULL,
    notes TEXT,
    image_url TEXT,
    solution_link TEXT,
    is_incorrect INTEGER NOT NULL DEFAULT 0,
    FOREIGN KEY (log_item_id) REFERENCES log_items (id),
    FOREIGN KEY (exam_id) REFERENCES exams (id)
)
"""

PUBLIC_COURSES_SQL = (
    "ALTER TABLE courses ADD COLUMN is_published INTEGER NOT NULL DEFAULT 0",
    "ALTER TABLE courses ADD COLUMN public_slug TEXT",
    "ALTER TABLE courses ADD COLUMN show_lecture_links INTEGER NOT NULL DEFAULT 0",
    "CREATE UNIQUE INDEX idx_courses_public_slug ON courses (public_slug) WHERE public_slug IS NOT NULL",
    """
    CREATE TABLE translations (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        source_text TEXT NOT NULL,
        translated_text TEXT NOT NULL,
        source_lang TEXT NOT NULL DEFAULT 'zh',
        target_lang TEXT NOT NULL DEFAULT 'en',
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP
    )
    """,
    "CREATE UNIQUE INDEX idx_translations_source ON translations (source_text, source_lang, target_lang)",
)

# Indexes for lookups by parent
INDEXES_SQL = (
    "CREATE INDEX IF NOT EXISTS idx_courses_semester ON courses (semester_id)",
    "CREATE INDEX IF NOT EXISTS idx_log_items_course ON log_items (course_id, date)",
    "CREATE INDEX IF NOT EXISTS idx_categories_course ON categories (course_id, name)",
    "CREATE INDEX IF NOT EXISTS idx_problem_categories_category ON problem_categories (category_id)",
)


def _execute_all(conn, statements) -> None:
    # executescript() would commit the migration transaction
    for statement in statements:
        conn.execute(statement)


def initial_schema(conn) -> None:
    _execute_all(conn, INITIAL_SCHEMA)
    _execute_all(conn, INDEXES_SQL)


def add_exams_and_incorrect(conn) -> None:
    conn.execute(EXAMS_SQL)
    conn.execute("CREATE INDEX idx_exams_course ON exams (course_id)")
    ShadowRebuild(
        table="problems",
        create_sql=PROBLEMS_WITH_EXAMS_SQL,
        indexes=(
            "CREATE INDEX idx_problems_log_item ON {name} (log_item_id)",
            "CREATE INDEX idx_problems_exam ON {name} (exam_id)",
        ),
    ).run(conn)


def add_public_courses(conn) -> None:
    _execute_all(conn, PUBLIC_COURSES_SQL)


MIGRATIONS = (
    Migration("20240101000000", "initial_schema", initial_schema),
    Migration("20260205000000", "add_exams_and_incorrect", add_exams_and_incorrect),
    Migration("20260206000000", "add_public_courses", add_public_courses),
)

SCHEMA_VERSION = MIGRATIONS[-1].version


def build_registry(lock_timeout: int = 600) -> SchemaRegistry:
    return SchemaRegistry(MIGRATIONS, lock_timeout=lock_timeout)
