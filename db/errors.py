import sqlite3


class StudyLogError(Exception):
    """Base class for study log storage errors."""


class MigrationError(StudyLogError):
    """A schema migration could not be applied."""


class MigrationSequenceError(MigrationError):
    """Catalog order or stored schema version is inconsistent."""


class MigrationLockError(MigrationError):
    """Another migration run holds the schema lock."""


class IntegrityViolation(MigrationError):
    """A table rebuild failed verification and was rolled back."""

    def __init__(self, table: str, check: str, detail: str):
        self.table = table
        self.check = check
        self.detail = detail
        super().__init__(f"{table}: {check} check failed ({detail})")


class UniqueConstraintViolation(StudyLogError):
    pass


class ForeignKeyViolation(StudyLogError):
    pass


class InvalidKindError(ValueError):
    pass


def wrap_integrity_error(exc: sqlite3.IntegrityError) -> Exception:
    """Map a raw SQLite constraint failure onto the storage error types."""
    message = str(exc)
    if "FOREIGN KEY" in message:
        return ForeignKeyViolation(message)
    if "UNIQUE" in message or "PRIMARY KEY" in message:
        return UniqueConstraintViolation(message)
    return exc
