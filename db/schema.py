from __future__ import annotations

import logging
import sqlite3

logger = logging.getLogger(__name__)


# Every record lives in a collection addressed by a slash-separated path,
# e.g. "projects/<pid>/workers" or "projects/<pid>/attendance/20240501".
# Snapshots are returned in rowid order, which is the insertion order.
DDL_TABLES_SQL = r"""
CREATE TABLE IF NOT EXISTS records (
    collection TEXT NOT NULL,
    record_id TEXT NOT NULL,
    payload TEXT NOT NULL,
    updated_at TEXT NOT NULL DEFAULT (datetime('now')),
    PRIMARY KEY (collection, record_id)
);
"""

DDL_INDEXES = (
    (
        "idx_records_collection",
        "records",
        ("collection",),
        "CREATE INDEX IF NOT EXISTS idx_records_collection ON records(collection)",
    ),
)


def table_exists(conn: sqlite3.Connection, table: str) -> bool:
    row = conn.execute(
        "SELECT 1 FROM sqlite_master WHERE type='table' AND name=?", (table,)
    ).fetchone()
    return row is not None


def get_table_columns(conn: sqlite3.Connection, table: str) -> list[str]:
    return [r[1] for r in conn.execute(f"PRAGMA table_info({table})").fetchall()]


def create_indexes_if_possible(conn: sqlite3.Connection) -> None:
    for idx_name, table, required_cols, create_sql in DDL_INDEXES:
        if not table_exists(conn, table):
            continue
        cols = set(get_table_columns(conn, table))
        if not set(required_cols).issubset(cols):
            logger.warning(
                "Skipping index %s: columns %s missing in %s",
                idx_name,
                required_cols,
                table,
            )
            continue
        try:
            conn.execute(create_sql)
        except sqlite3.OperationalError as exc:  # noqa: TRY003
            logger.warning("Could not create index %s: %s", idx_name, exc)


def initialize_schema(conn: sqlite3.Connection) -> None:
    conn.executescript(DDL_TABLES_SQL)
    create_indexes_if_possible(conn)
