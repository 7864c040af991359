from __future__ import annotations

import json
import sqlite3
from typing import Any, Mapping


def _dump(payload: Mapping[str, Any]) -> str:
    return json.dumps(dict(payload), ensure_ascii=False, sort_keys=False)


def _load(text: str) -> dict[str, Any]:
    data = json.loads(text)
    return data if isinstance(data, dict) else {"value": data}


def list_collection(conn: sqlite3.Connection, collection: str) -> dict[str, dict[str, Any]]:
    rows = conn.execute(
        "SELECT record_id, payload FROM records WHERE collection = ? ORDER BY rowid",
        (collection,),
    ).fetchall()
    return {r["record_id"]: _load(r["payload"]) for r in rows}


def get_record(conn: sqlite3.Connection, collection: str, record_id: str) -> dict[str, Any] | None:
    row = conn.execute(
        "SELECT payload FROM records WHERE collection = ? AND record_id = ?",
        (collection, record_id),
    ).fetchone()
    return _load(row["payload"]) if row else None


def upsert_record(conn: sqlite3.Connection, collection: str, record_id: str, payload: Mapping[str, Any]) -> None:
    # ON CONFLICT keeps the original rowid, so overwrites do not reorder snapshots
    conn.execute(
        """
        INSERT INTO records(collection, record_id, payload) VALUES (?, ?, ?)
        ON CONFLICT(collection, record_id)
        DO UPDATE SET payload = excluded.payload, updated_at = datetime('now')
        """,
        (collection, record_id, _dump(payload)),
    )


def merge_record(conn: sqlite3.Connection, collection: str, record_id: str, partial: Mapping[str, Any]) -> dict[str, Any]:
    current = get_record(conn, collection, record_id) or {}
    current.update(partial)
    upsert_record(conn, collection, record_id, current)
    return current


def delete_record(conn: sqlite3.Connection, collection: str, record_id: str) -> int:
    cur = conn.execute(
        "DELETE FROM records WHERE collection = ? AND record_id = ?",
        (collection, record_id),
    )
    return cur.rowcount
