from __future__ import annotations

import sqlite3
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from .errors import IntegrityViolation


def quote(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def table_columns(conn: sqlite3.Connection, table: str) -> List[str]:
    cursor = conn.execute(f"PRAGMA table_info({quote(table)})")
    return [row[1] for row in cursor.fetchall()]


@dataclass
class DependentSnapshot:
    table: str
    columns: List[str]
    count: int
    rows: Counter


@dataclass
class RebuildSnapshot:
    table: str
    primary_ids: set
    dependents: Dict[str, DependentSnapshot] = field(default_factory=dict)


def _dependent_rows(conn: sqlite3.Connection, table: str, columns: Sequence[str]) -> Counter:
    column_list = ", ".join(quote(column) for column in columns)
    cursor = conn.execute(f"SELECT {column_list} FROM {quote(table)}")
    return Counter(tuple(row) for row in cursor.fetchall())


def _primary_ids(conn: sqlite3.Connection, table: str) -> set:
    cursor = conn.execute(f"SELECT rowid FROM {quote(table)}")
    return {row[0] for row in cursor.fetchall()}


def take_snapshot(conn: sqlite3.Connection, table: str, dependents: Sequence[str]) -> RebuildSnapshot:
    """Record what a rebuild of `table` must preserve.

    Captures the primary table's row ids and, for each dependent table, its
    row count and the multiset of its rows. For a junction table the rows are
    exactly its association pairs.
    """
    snapshot = RebuildSnapshot(table=table, primary_ids=_primary_ids(conn, table))
    for dependent in dependents:
        columns = table_columns(conn, dependent)
        rows = _dependent_rows(conn, dependent, columns)
        snapshot.dependents[dependent] = DependentSnapshot(
            table=dependent,
            columns=columns,
            count=sum(rows.values()),
            rows=rows,
        )
    return snapshot


def verify_rebuild(conn: sqlite3.Connection, snapshot: RebuildSnapshot) -> None:
    """Raise IntegrityViolation unless the rebuilt schema preserves the snapshot."""
    ids_after = _primary_ids(conn, snapshot.table)
    if ids_after != snapshot.primary_ids:
        missing = len(snapshot.primary_ids - ids_after)
        extra = len(ids_after - snapshot.primary_ids)
        raise IntegrityViolation(
            snapshot.table, "primary key", f"{missing} ids missing, {extra} ids added"
        )

    for dependent in snapshot.dependents.values():
        cursor = conn.execute(f"SELECT COUNT(*) FROM {quote(dependent.table)}")
        count_after = cursor.fetchone()[0]
        if count_after != dependent.count:
            raise IntegrityViolation(
                dependent.table, "row count", f"expected {dependent.count}, found {count_after}"
            )
        rows_after = _dependent_rows(conn, dependent.table, dependent.columns)
        if rows_after != dependent.rows:
            lost = sum((dependent.rows - rows_after).values())
            gained = sum((rows_after - dependent.rows).values())
            raise IntegrityViolation(
                dependent.table, "row set", f"{lost} rows lost, {gained} rows gained"
            )
        cursor = conn.execute(f"PRAGMA foreign_key_check({quote(dependent.table)})")
        dangling = cursor.fetchall()
        if dangling:
            first = dangling[0]
            raise IntegrityViolation(
                dependent.table,
                "dangling reference",
                f"{len(dangling)} rows reference missing {first[2]} rows",
            )
