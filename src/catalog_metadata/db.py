"""Database connection, DDL, and low-level CRUD for catalog-metadata."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterable
from pathlib import Path

from catalog_metadata.exceptions import DatabaseError
from catalog_metadata.models import AttributeDefinition, KeyValue, Snapshot

SCHEMA_VERSION = "1.0"

# ---------------------------------------------------------------------------
# DDL statements
# ---------------------------------------------------------------------------

_DDL = """
-- Meta table
CREATE TABLE IF NOT EXISTS meta (
    key TEXT NOT NULL,
    value TEXT,
    UNIQUE (key)
);

-- Attribute definitions
CREATE TABLE IF NOT EXISTS meta_data_keys (
    key INTEGER PRIMARY KEY AUTOINCREMENT,
    tagname TEXT NOT NULL,
    name TEXT,
    internal INTEGER CHECK( internal IN (0, 1) ) DEFAULT 0 NOT NULL,
    visible INTEGER CHECK( visible IN (0, 1) ) DEFAULT 1 NOT NULL,
    private INTEGER CHECK( private IN (0, 1) ) DEFAULT 0 NOT NULL,
    display_order INTEGER DEFAULT 0 NOT NULL,
    UNIQUE (tagname)
);

-- Catalog entities
CREATE TABLE IF NOT EXISTS images (
    id INTEGER PRIMARY KEY,
    filename TEXT,
    flags INTEGER DEFAULT 0 NOT NULL
);

-- Attribute values
CREATE TABLE IF NOT EXISTS meta_data (
    id INTEGER NOT NULL REFERENCES images (id) ON DELETE CASCADE,
    key INTEGER NOT NULL,
    value TEXT
);
CREATE INDEX IF NOT EXISTS meta_data_id_index ON meta_data (id, key);
CREATE INDEX IF NOT EXISTS meta_data_value_index ON meta_data (value);

-- Tags
CREATE TABLE IF NOT EXISTS tags (
    id INTEGER PRIMARY KEY,
    name TEXT NOT NULL,
    UNIQUE (name)
);

CREATE TABLE IF NOT EXISTS tagged_images (
    imgid INTEGER NOT NULL REFERENCES images (id) ON DELETE CASCADE,
    tagid INTEGER NOT NULL REFERENCES tags (id) ON DELETE CASCADE,
    position INTEGER DEFAULT 0,
    UNIQUE (imgid, tagid)
);
CREATE INDEX IF NOT EXISTS tagged_images_imgid_index ON tagged_images (imgid);

-- Color labels
CREATE TABLE IF NOT EXISTS color_labels (
    imgid INTEGER NOT NULL REFERENCES images (id) ON DELETE CASCADE,
    color INTEGER NOT NULL,
    UNIQUE (imgid, color)
);

-- Current selection
CREATE TABLE IF NOT EXISTS selected_images (
    imgid INTEGER PRIMARY KEY
);

-- Edit history
CREATE TABLE IF NOT EXISTS edit_history (
    rowid INTEGER PRIMARY KEY,
    entity_id INTEGER NOT NULL,
    key INTEGER NOT NULL,
    operation TEXT NOT NULL CHECK( operation IN ('INSERT', 'DELETE') ),
    value TEXT,
    timestamp TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%f', 'now'))
);
CREATE INDEX IF NOT EXISTS edit_history_entity_index ON edit_history (entity_id, key);
CREATE INDEX IF NOT EXISTS edit_history_timestamp_index ON edit_history (timestamp);
"""


def connect(db_path: str | Path = ":memory:") -> sqlite3.Connection:
    """Open a database connection with catalog PRAGMA settings."""
    db_path_str = str(db_path)
    conn = sqlite3.connect(db_path_str, check_same_thread=False)
    conn.execute("PRAGMA foreign_keys = ON")
    if db_path_str != ":memory:":
        conn.execute("PRAGMA journal_mode = WAL")
    conn.row_factory = sqlite3.Row
    return conn


def init_db(conn: sqlite3.Connection) -> None:
    """Initialize all tables if they don't exist. Set schema version."""
    conn.executescript(_DDL)
    conn.execute(
        "INSERT OR IGNORE INTO meta (key, value) VALUES ('schema_version', ?)",
        (SCHEMA_VERSION,),
    )
    conn.execute(
        "INSERT OR IGNORE INTO meta (key, value) "
        "VALUES ('created_at', strftime('%Y-%m-%dT%H:%M:%f', 'now'))",
    )
    conn.commit()


def check_schema_version(conn: sqlite3.Connection) -> None:
    """Verify the database schema version is compatible."""
    try:
        row = conn.execute(
            "SELECT value FROM meta WHERE key = 'schema_version'"
        ).fetchone()
    except sqlite3.OperationalError:
        # meta table doesn't exist - uninitialized DB
        return
    if row is None:
        return
    version = row[0]
    if version != SCHEMA_VERSION:
        raise DatabaseError(
            f"Incompatible schema version: {version} "
            f"(expected {SCHEMA_VERSION})"
        )


def is_valid_entity_id(entity_id: object) -> bool:
    """True for a usable entity id; ``None`` and ids below 1 are not."""
    return isinstance(entity_id, int) and entity_id > 0


# ---------------------------------------------------------------------------
# Attribute definition helpers
# ---------------------------------------------------------------------------

def select_definitions(conn: sqlite3.Connection) -> list[AttributeDefinition]:
    """All registered definitions ordered by display order."""
    rows = conn.execute(
        "SELECT key, tagname, name, internal, visible, private, display_order "
        "FROM meta_data_keys ORDER BY display_order"
    ).fetchall()
    return [
        AttributeDefinition(
            id=row["key"],
            tagname=row["tagname"],
            name=row["name"],
            internal=bool(row["internal"]),
            visible=bool(row["visible"]),
            private=bool(row["private"]),
            display_order=row["display_order"],
        )
        for row in rows
    ]


def insert_definition(
    conn: sqlite3.Connection, definition: AttributeDefinition
) -> None:
    """Insert a definition; raises ``sqlite3.IntegrityError`` on duplicates."""
    conn.execute(
        "INSERT INTO meta_data_keys "
        "(tagname, name, internal, visible, private, display_order) "
        "VALUES (?, ?, ?, ?, ?, ?)",
        (
            definition.tagname,
            definition.name,
            int(definition.internal),
            int(definition.visible),
            int(definition.private),
            definition.display_order,
        ),
    )


def get_definition_key(conn: sqlite3.Connection, tagname: str) -> int | None:
    """Get the generated key id for a tag name, or None."""
    row = conn.execute(
        "SELECT key FROM meta_data_keys WHERE tagname = ?",
        (tagname,),
    ).fetchone()
    return row[0] if row else None


# ---------------------------------------------------------------------------
# Attribute value helpers
# ---------------------------------------------------------------------------

def get_snapshot(conn: sqlite3.Connection, entity_id: int) -> Snapshot:
    """Everything stored for one entity, in insertion order."""
    rows = conn.execute(
        "SELECT key, value FROM meta_data WHERE id = ? ORDER BY rowid",
        (entity_id,),
    ).fetchall()
    return [KeyValue(row["key"], row["value"] or "") for row in rows]


def delete_values(
    conn: sqlite3.Connection, entity_id: int, keys: Iterable[int]
) -> None:
    keys = list(keys)
    if not keys:
        return
    placeholders = ", ".join("?" * len(keys))
    conn.execute(
        f"DELETE FROM meta_data WHERE id = ? AND key IN ({placeholders})",
        (entity_id, *keys),
    )


def insert_values(
    conn: sqlite3.Connection, rows: Iterable[tuple[int, int, str]]
) -> None:
    conn.executemany(
        "INSERT INTO meta_data (id, key, value) VALUES (?, ?, ?)",
        list(rows),
    )


def count_values_equal(conn: sqlite3.Connection, value: str) -> int:
    row = conn.execute(
        "SELECT COUNT(*) FROM meta_data WHERE value = ?",
        (value,),
    ).fetchone()
    return row[0]


# ---------------------------------------------------------------------------
# Selection helpers
# ---------------------------------------------------------------------------

def get_selected(conn: sqlite3.Connection) -> list[int]:
    rows = conn.execute(
        "SELECT imgid FROM selected_images ORDER BY imgid"
    ).fetchall()
    return [row[0] for row in rows]


def set_selected(
    conn: sqlite3.Connection, entity_ids: Iterable[int], selected: bool = True
) -> None:
    ids = [(i,) for i in entity_ids]
    if selected:
        conn.executemany(
            "INSERT OR IGNORE INTO selected_images (imgid) VALUES (?)", ids
        )
    else:
        conn.executemany("DELETE FROM selected_images WHERE imgid = ?", ids)


def clear_selection(conn: sqlite3.Connection) -> None:
    conn.execute("DELETE FROM selected_images")


# ---------------------------------------------------------------------------
# Entity helpers
# ---------------------------------------------------------------------------

def insert_image(
    conn: sqlite3.Connection,
    filename: str | None = None,
    flags: int = 0,
    *,
    image_id: int | None = None,
) -> int:
    """Create a catalog entity and return its id."""
    cur = conn.execute(
        "INSERT INTO images (id, filename, flags) VALUES (?, ?, ?)",
        (image_id, filename, flags),
    )
    return cur.lastrowid


def get_values(conn: sqlite3.Connection, entity_id: int, key: int) -> list[str]:
    """Values of one key for one entity."""
    rows = conn.execute(
        "SELECT value FROM meta_data WHERE id = ? AND key = ? ORDER BY rowid",
        (entity_id, key),
    ).fetchall()
    return [row[0] or "" for row in rows]


def get_selected_values(conn: sqlite3.Connection, key: int) -> list[str]:
    """Values of one key across the current selection, sorted."""
    rows = conn.execute(
        "SELECT value FROM meta_data WHERE id IN "
        "(SELECT imgid FROM selected_images) AND key = ? ORDER BY value",
        (key,),
    ).fetchall()
    return [row[0] or "" for row in rows]
