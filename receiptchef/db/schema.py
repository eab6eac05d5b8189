"""Database schema definitions and migration helpers."""

from __future__ import annotations

import sqlite3
from pathlib import Path

_SCHEMA_VERSION = 1

_DDL = """
CREATE TABLE IF NOT EXISTS canon_cache (
    key TEXT PRIMARY KEY,
    canonical_name TEXT NOT NULL,
    status TEXT NOT NULL CHECK (status IN ('item', 'not_item', 'unknown')),
    kind TEXT NOT NULL CHECK (kind IN ('food', 'household', 'other')),
    ingredient_type TEXT NOT NULL
        CHECK (ingredient_type IN ('ingredient', 'product', 'ambiguous')),
    confidence REAL NOT NULL,
    source TEXT NOT NULL,
    updated_at INTEGER NOT NULL,
    hits INTEGER NOT NULL DEFAULT 0
);

CREATE INDEX IF NOT EXISTS idx_canon_cache_updated_at ON canon_cache(updated_at DESC);

CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER NOT NULL
);
"""


def ensure_schema(
    db_path: str | Path, *, check_same_thread: bool = True
) -> sqlite3.Connection:
    """Open (or create) the database and ensure the schema is up to date.

    Args:
        db_path: Path to the SQLite database file.
        check_same_thread: Passed through to ``sqlite3.connect``; the cache
            turns it off and serializes access itself.

    Returns:
        An open sqlite3.Connection with the schema applied.
    """
    db_path = Path(db_path).expanduser()
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(str(db_path), check_same_thread=check_same_thread)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")

    # Check current schema version
    try:
        row = conn.execute("SELECT version FROM schema_version").fetchone()
        current_version = row["version"] if row else 0
    except sqlite3.OperationalError:
        current_version = 0

    if current_version < _SCHEMA_VERSION:
        conn.executescript(_DDL)
        conn.execute("DELETE FROM schema_version")
        conn.execute(
            "INSERT INTO schema_version (version) VALUES (?)",
            (_SCHEMA_VERSION,),
        )
        conn.commit()

    return conn
