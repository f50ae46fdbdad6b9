"""Edit history recording and querying for catalog-metadata."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterable

from catalog_metadata.models import EditRecord


def record_insert(
    conn: sqlite3.Connection,
    rows: Iterable[tuple[int, int, str]],
) -> None:
    """Record INSERT operations for ``(entity_id, key, value)`` rows."""
    conn.executemany(
        "INSERT INTO edit_history (entity_id, key, operation, value) "
        "VALUES (?, ?, 'INSERT', ?)",
        list(rows),
    )


def record_delete(
    conn: sqlite3.Connection,
    entity_id: int,
    key: int,
    old_value: str | None,
) -> None:
    """Record a DELETE operation in edit history."""
    conn.execute(
        "INSERT INTO edit_history (entity_id, key, operation, value) "
        "VALUES (?, ?, 'DELETE', ?)",
        (entity_id, key, old_value),
    )


def query_history(
    conn: sqlite3.Connection,
    *,
    entity_id: int | None = None,
    key: int | None = None,
    since: str | None = None,
    operation: str | None = None,
) -> list[EditRecord]:
    """Query edit history with optional filters."""
    clauses: list[str] = []
    params: list[int | str] = []

    if entity_id is not None:
        clauses.append("entity_id = ?")
        params.append(entity_id)
    if key is not None:
        clauses.append("key = ?")
        params.append(key)
    if since is not None:
        clauses.append("timestamp > ?")
        params.append(since)
    if operation is not None:
        clauses.append("operation = ?")
        params.append(operation)

    where = " AND ".join(clauses) if clauses else "1=1"
    sql = (
        f"SELECT rowid, * FROM edit_history WHERE {where} "
        "ORDER BY timestamp ASC, rowid ASC"
    )

    rows = conn.execute(sql, params).fetchall()
    return [
        EditRecord(
            id=row["rowid"],
            entity_id=row["entity_id"],
            key=row["key"],
            operation=row["operation"],
            value=row["value"],
            timestamp=row["timestamp"],
        )
        for row in rows
    ]
