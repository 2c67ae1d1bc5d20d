"""Rebuild-and-swap for structural changes SQLite cannot make in place.

SQLite has no ALTER for nullability, foreign keys or constraints, so such a
change recreates the table: build a shadow table with the new shape, copy the
rows with their ids, restage every table holding a foreign key into it, swap
the names and verify before the savepoint is released.
"""
from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from .errors import IntegrityViolation, MigrationError
from .integrity import quote, table_columns, take_snapshot, verify_rebuild

logger = logging.getLogger(__name__)

SHADOW_PREFIX = "_shadow_"
STAGED_PREFIX = "_staged_"


@dataclass
class DependentTable:
    name: str
    create_sql: str
    columns: List[str]
    extra_sql: List[str] = field(default_factory=list)
    sequence: Optional[int] = None


@dataclass
class RebuildReport:
    table: str
    rows_copied: int
    dependents: List[str]


def find_dependents(conn: sqlite3.Connection, table: str) -> List[str]:
    """Names of tables declaring a foreign key into `table`."""
    cursor = conn.execute(
        "SELECT name FROM sqlite_master WHERE type = 'table' AND name NOT LIKE 'sqlite_%' ORDER BY name"
    )
    dependents = []
    for (name,) in cursor.fetchall():
        if name.lower() == table.lower():
            continue
        fk_rows = conn.execute(f"PRAGMA foreign_key_list({quote(name)})").fetchall()
        if any(row[2].lower() == table.lower() for row in fk_rows):
            dependents.append(name)
    return dependents


def _attached_objects(conn: sqlite3.Connection, table: str) -> List[Tuple[str, str]]:
    """(name, sql) of the explicit indexes and triggers defined on `table`."""
    cursor = conn.execute(
        """
        SELECT name, sql FROM sqlite_master
        WHERE type IN ('index', 'trigger') AND tbl_name = ? AND sql IS NOT NULL
        ORDER BY type, name
        """,
        (table,),
    )
    return [(row[0], row[1]) for row in cursor.fetchall()]


def _describe_dependent(conn: sqlite3.Connection, name: str) -> DependentTable:
    create_sql = conn.execute(
        "SELECT sql FROM sqlite_master WHERE type = 'table' AND name = ?", (name,)
    ).fetchone()[0]
    return DependentTable(
        name=name,
        create_sql=create_sql,
        columns=table_columns(conn, name),
        extra_sql=[sql for _, sql in _attached_objects(conn, name)],
        sequence=_sequence_value(conn, name),
    )


def _sequence_value(conn: sqlite3.Connection, table: str) -> Optional[int]:
    exists = conn.execute(
        "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = 'sqlite_sequence'"
    ).fetchone()
    if not exists:
        return None
    row = conn.execute("SELECT seq FROM sqlite_sequence WHERE name = ?", (table,)).fetchone()
    return row[0] if row else None


def _restore_sequence(conn: sqlite3.Connection, table: str, sequence: Optional[int]) -> None:
    # Dropping a table deletes its sqlite_sequence row; never move it backwards
    if sequence is None:
        return
    cursor = conn.execute(
        "UPDATE sqlite_sequence SET seq = MAX(seq, ?) WHERE name = ?", (sequence, table)
    )
    if cursor.rowcount == 0:
        conn.execute("INSERT INTO sqlite_sequence (name, seq) VALUES (?, ?)", (table, sequence))


@dataclass
class ShadowRebuild:
    """Recreate `table` with the shape given by `create_sql`.

    `create_sql` is a CREATE TABLE statement with a `{name}` placeholder for
    the table name. `columns` limits which columns are copied; by default the
    columns shared by the old and new shape are copied and new columns take
    their declared defaults. `indexes` are CREATE INDEX statements (also with
    `{name}`) applied to the rebuilt table. Indexes and triggers of the old
    table whose names `indexes` does not reuse are recreated as they were.
    """

    table: str
    create_sql: str
    columns: Optional[Sequence[str]] = None
    indexes: Sequence[str] = ()

    @property
    def shadow_name(self) -> str:
        return SHADOW_PREFIX + self.table

    def _check_connection(self, conn: sqlite3.Connection) -> None:
        if conn.isolation_level is not None:
            raise MigrationError("table rebuild requires an autocommit connection (isolation_level=None)")
        if conn.execute("PRAGMA foreign_keys").fetchone()[0]:
            raise MigrationError("foreign key enforcement must be off during a table rebuild")

    def _copy_columns(self, conn: sqlite3.Connection) -> List[str]:
        source = table_columns(conn, self.table)
        target = table_columns(conn, self.shadow_name)
        if self.columns is not None:
            unknown = [c for c in self.columns if c not in source or c not in target]
            if unknown:
                raise MigrationError(f"cannot copy columns {unknown} into rebuilt {self.table}")
            return list(self.columns)
        return [column for column in target if column in source]

    def run(self, conn: sqlite3.Connection) -> RebuildReport:
        self._check_connection(conn)
        savepoint = quote(f"rebuild_{self.table}")
        conn.execute(f"SAVEPOINT {savepoint}")
        try:
            report = self._rebuild(conn)
        except BaseException:
            if conn.in_transaction:
                conn.execute(f"ROLLBACK TO {savepoint}")
                conn.execute(f"RELEASE {savepoint}")
            raise
        conn.execute(f"RELEASE {savepoint}")
        return report

    def _restore_attached(self, conn: sqlite3.Connection, attached: List[Tuple[str, str]]) -> None:
        """Recreate indexes and triggers the old table carried, unless `indexes` replaced them."""
        for name, sql in attached:
            exists = conn.execute("SELECT 1 FROM sqlite_master WHERE name = ?", (name,)).fetchone()
            if exists:
                continue
            try:
                conn.execute(sql)
            except sqlite3.OperationalError as exc:
                raise MigrationError(
                    f"cannot recreate {name} on rebuilt {self.table}: {exc}"
                ) from exc
            logger.debug("Recreated %s on %s", name, self.table)

    def _rebuild(self, conn: sqlite3.Connection) -> RebuildReport:
        table = quote(self.table)
        shadow = quote(self.shadow_name)
        dependents = [_describe_dependent(conn, name) for name in find_dependents(conn, self.table)]
        snapshot = take_snapshot(conn, self.table, [dep.name for dep in dependents])
        sequence = _sequence_value(conn, self.table)
        attached = _attached_objects(conn, self.table)

        conn.execute(self.create_sql.format(name=shadow))
        columns = self._copy_columns(conn)
        column_list = ", ".join(quote(column) for column in columns)
        cursor = conn.execute(
            f"INSERT INTO {shadow} ({column_list}) SELECT {column_list} FROM {table}"
        )
        rows_copied = cursor.rowcount
        logger.info("Copied %d rows from %s into shadow table", rows_copied, self.table)

        for dep in dependents:
            staged = quote(STAGED_PREFIX + dep.name)
            conn.execute(f"DROP TABLE IF EXISTS temp.{staged}")
            conn.execute(f"CREATE TEMP TABLE {staged} AS SELECT * FROM {quote(dep.name)}")
            conn.execute(f"DROP TABLE {quote(dep.name)}")
            logger.debug("Staged dependent table %s", dep.name)

        conn.execute(f"DROP TABLE {table}")
        conn.execute(f"ALTER TABLE {shadow} RENAME TO {table}")
        _restore_sequence(conn, self.table, sequence)
        for index_sql in self.indexes:
            conn.execute(index_sql.format(name=table))

        for dep in dependents:
            staged = quote(STAGED_PREFIX + dep.name)
            dep_columns = ", ".join(quote(column) for column in dep.columns)
            conn.execute(dep.create_sql)
            conn.execute(
                f"INSERT INTO {quote(dep.name)} ({dep_columns}) SELECT {dep_columns} FROM temp.{staged}"
            )
            _restore_sequence(conn, dep.name, dep.sequence)
            for sql in dep.extra_sql:
                conn.execute(sql)
            conn.execute(f"DROP TABLE temp.{staged}")
            logger.debug("Restored dependent table %s", dep.name)

        self._restore_attached(conn, attached)

        try:
            verify_rebuild(conn, snapshot)
        except IntegrityViolation as exc:
            logger.error("Rebuild of %s failed verification: %s", self.table, exc)
            raise
        logger.info(
            "Rebuilt %s (%d rows, dependents: %s)",
            self.table,
            rows_copied,
            ", ".join(dep.name for dep in dependents) or "none",
        )
        return RebuildReport(
            table=self.table,
            rows_copied=rows_copied,
            dependents=[dep.name for dep in dependents],
        )
