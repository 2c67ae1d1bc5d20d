"""Ordered, forward-only schema migrations with a durable high-water mark."""
from __future__ import annotations

import logging
import os
import socket
import sqlite3
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from .errors import MigrationLockError, MigrationSequenceError

logger = logging.getLogger(__name__)

VERSION_LENGTH = 14
DEFAULT_LOCK_TIMEOUT = 600

BOOKKEEPING_SQL = (
    """
    CREATE TABLE IF NOT EXISTS schema_version (
        id INTEGER PRIMARY KEY CHECK (id = 1),
        version TEXT NOT NULL,
        name TEXT NOT NULL,
        applied_at TEXT NOT NULL DEFAULT (datetime('now'))
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS schema_lock (
        id INTEGER PRIMARY KEY CHECK (id = 1),
        owner TEXT NOT NULL,
        acquired_at REAL NOT NULL
    )
    """,
)


@dataclass(frozen=True)
class Migration:
    version: str
    name: str
    apply: Callable[[sqlite3.Connection], None]

    @property
    def label(self) -> str:
        return f"{self.version}_{self.name}"


def default_lock_owner() -> str:
    return f"{socket.gethostname()}:{os.getpid()}"


class SchemaRegistry:
    """Applies a catalog of migrations in version order.

    The highest applied version lives in the single-row `schema_version`
    table and is only read or written here. Every migration runs in its own
    BEGIN IMMEDIATE transaction; the whole run holds the `schema_lock` row.
    The connection must be in autocommit mode (isolation_level=None).
    """

    def __init__(self, migrations: Sequence[Migration], lock_timeout: int = DEFAULT_LOCK_TIMEOUT):
        self.migrations = list(migrations)
        self.lock_timeout = lock_timeout

    @property
    def latest_version(self) -> Optional[str]:
        return self.migrations[-1].version if self.migrations else None

    def validate_catalog(self) -> None:
        previous = None
        for migration in self.migrations:
            version = migration.version
            if len(version) != VERSION_LENGTH or not version.isdigit():
                raise MigrationSequenceError(f"Malformed migration version {version!r}")
            if previous is not None and int(version) <= int(previous):
                raise MigrationSequenceError(
                    f"Migration {version} is not newer than preceding migration {previous}"
                )
            previous = version

    def ensure_bookkeeping(self, conn: sqlite3.Connection) -> None:
        for sql in BOOKKEEPING_SQL:
            conn.execute(sql)

    def current_version(self, conn: sqlite3.Connection) -> Optional[str]:
        exists = conn.execute(
            "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = 'schema_version'"
        ).fetchone()
        if not exists:
            return None
        row = conn.execute("SELECT version FROM schema_version WHERE id = 1").fetchone()
        return row[0] if row else None

    def _set_version(self, conn: sqlite3.Connection, migration: Migration) -> None:
        conn.execute(
            """
            INSERT INTO schema_version (id, version, name, applied_at)
            VALUES (1, ?, ?, datetime('now'))
            ON CONFLICT(id) DO UPDATE SET
                version = excluded.version,
                name = excluded.name,
                applied_at = excluded.applied_at
            """,
            (migration.version, migration.name),
        )

    def _check_known(self, current: Optional[str]) -> None:
        if current is None:
            return
        if current not in {m.version for m in self.migrations}:
            raise MigrationSequenceError(
                f"Stored schema version {current} does not match any known migration"
            )

    def pending(self, conn: sqlite3.Connection) -> List[Migration]:
        self.validate_catalog()
        current = self.current_version(conn)
        self._check_known(current)
        if current is None:
            return list(self.migrations)
        return [m for m in self.migrations if int(m.version) > int(current)]

    def acquire_lock(self, conn: sqlite3.Connection, owner: str) -> None:
        conn.execute("BEGIN IMMEDIATE")
        try:
            row = conn.execute("SELECT owner, acquired_at FROM schema_lock WHERE id = 1").fetchone()
            now = time.time()
            if row is not None:
                held_for = now - row[1]
                if held_for < self.lock_timeout:
                    raise MigrationLockError(
                        f"Schema lock held by {row[0]} for {int(held_for)}s"
                    )
                logger.warning(
                    "Taking over stale schema lock held by %s for %ds", row[0], int(held_for)
                )
            conn.execute(
                "INSERT OR REPLACE INTO schema_lock (id, owner, acquired_at) VALUES (1, ?, ?)",
                (owner, now),
            )
        except BaseException:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise
        conn.execute("COMMIT")

    def release_lock(self, conn: sqlite3.Connection, owner: str) -> None:
        if conn.in_transaction:
            conn.execute("ROLLBACK")
        conn.execute("DELETE FROM schema_lock WHERE id = 1 AND owner = ?", (owner,))

    def _apply_one(self, conn: sqlite3.Connection, migration: Migration) -> bool:
        conn.execute("BEGIN IMMEDIATE")
        try:
            current = self.current_version(conn)
            self._check_known(current)
            if current is not None and int(current) >= int(migration.version):
                conn.execute("ROLLBACK")
                logger.info("Migration %s already applied by another run", migration.label)
                return False
            migration.apply(conn)
            self._set_version(conn, migration)
        except BaseException:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise
        conn.execute("COMMIT")
        return True

    def apply_pending(self, conn: sqlite3.Connection, owner: Optional[str] = None) -> List[str]:
        """Apply every migration newer than the stored version.

        Returns the versions applied by this call. A failing migration is
        rolled back in full, stops the run and re-raises; earlier migrations
        from the same run stay committed.
        """
        if conn.isolation_level is not None:
            raise ValueError("apply_pending requires an autocommit connection (isolation_level=None)")
        self.validate_catalog()
        self.ensure_bookkeeping(conn)
        self._check_known(self.current_version(conn))

        owner = owner or default_lock_owner()
        foreign_keys = conn.execute("PRAGMA foreign_keys").fetchone()[0]
        self.acquire_lock(conn, owner)
        applied: List[str] = []
        try:
            conn.execute("PRAGMA foreign_keys = OFF")
            for migration in self.pending(conn):
                logger.info("Applying migration %s", migration.label)
                try:
                    if self._apply_one(conn, migration):
                        applied.append(migration.version)
                except Exception:
                    logger.exception("Migration %s failed; rolled back", migration.label)
                    raise
        finally:
            self.release_lock(conn, owner)
            conn.execute(f"PRAGMA foreign_keys = {'ON' if foreign_keys else 'OFF'}")
        if applied:
            logger.info("Applied %d migration(s); schema at %s", len(applied), applied[-1])
        else:
            logger.debug("Schema up to date at %s", self.current_version(conn))
        return applied
