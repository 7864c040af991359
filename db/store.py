"""Document-style record store on top of SQLite.

Records are JSON objects grouped into collections addressed by slash-separated
paths. Subscribers receive the full collection snapshot right away and again
after every committed write that touches the collection, in commit order.
"""

from __future__ import annotations

import logging
import sqlite3
import uuid
from pathlib import Path
from typing import Any, Callable, Mapping

from db import queries as q
from db.schema import initialize_schema
from db.sqlite import get_connection

logger = logging.getLogger(__name__)

Snapshot = dict[str, dict[str, Any]]
SnapshotHandler = Callable[[Snapshot], None]
ErrorHandler = Callable[["StoreUnavailableError"], None]


class StoreUnavailableError(RuntimeError):
    """A read or write could not reach the underlying database."""


def join_path(*parts: object) -> str:
    return "/".join(str(p).strip("/") for p in parts if str(p).strip("/"))


def split_record_path(record_path: str) -> tuple[str, str]:
    collection, sep, record_id = record_path.strip("/").rpartition("/")
    if not sep or not collection or not record_id:
        raise ValueError(f"Not a record path: {record_path!r}")
    return collection, record_id


class Subscription:
    def __init__(self, store: "RecordStore", collection: str, handler: SnapshotHandler, on_error: ErrorHandler | None) -> None:
        self.store = store
        self.collection = collection
        self.handler = handler
        self.on_error = on_error
        self.active = True

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        self.store._detach(self)
        logger.debug("Unsubscribed from %s", self.collection)


class RecordStore:
    """SQLite-backed implementation of the record store client interface."""

    def __init__(self, db_path: Path | str, enable_wal: bool | None = None) -> None:
        self.db_path = Path(db_path)
        self.enable_wal = enable_wal
        self._subscriptions: list[Subscription] = []
        try:
            with self._connect() as conn:
                initialize_schema(conn)
        except sqlite3.Error as exc:
            raise StoreUnavailableError(f"Cannot open record store {self.db_path}: {exc}") from exc

    def _connect(self):
        return get_connection(self.db_path, enable_wal=self.enable_wal)

    # ---- reads ----

    def snapshot(self, collection: str) -> Snapshot:
        try:
            with self._connect() as conn:
                return q.list_collection(conn, collection.strip("/"))
        except sqlite3.Error as exc:
            raise StoreUnavailableError(f"Cannot read {collection}: {exc}") from exc

    def get(self, record_path: str) -> dict[str, Any] | None:
        collection, record_id = split_record_path(record_path)
        try:
            with self._connect() as conn:
                return q.get_record(conn, collection, record_id)
        except sqlite3.Error as exc:
            raise StoreUnavailableError(f"Cannot read {record_path}: {exc}") from exc

    # ---- subscriptions ----

    def subscribe(self, collection: str, handler: SnapshotHandler, on_error: ErrorHandler | None = None) -> Subscription:
        sub = Subscription(self, collection.strip("/"), handler, on_error)
        self._subscriptions.append(sub)
        logger.debug("Subscribed to %s", sub.collection)
        try:
            self._deliver(sub, initial=True)
        except StoreUnavailableError:
            self._detach(sub)
            raise
        return sub

    def _detach(self, sub: Subscription) -> None:
        if sub in self._subscriptions:
            self._subscriptions.remove(sub)

    def _deliver(self, sub: Subscription, initial: bool = False) -> None:
        try:
            data = self.snapshot(sub.collection)
        except StoreUnavailableError as exc:
            logger.warning("Snapshot push for %s failed: %s", sub.collection, exc)
            if sub.on_error is not None:
                sub.on_error(exc)
            elif initial:
                raise
            return
        if not sub.active:
            return
        try:
            sub.handler(data)
        except Exception:  # noqa: BLE001
            # A broken handler must not stop delivery to the other subscribers
            logger.exception("Snapshot handler for %s failed", sub.collection)

    def _notify(self, collections: set[str]) -> None:
        for sub in list(self._subscriptions):
            if sub.active and sub.collection in collections:
                self._deliver(sub)

    # ---- writes ----

    def create(self, collection: str, record: Mapping[str, Any]) -> str:
        collection = collection.strip("/")
        record_id = uuid.uuid4().hex
        try:
            with self._connect() as conn:
                q.upsert_record(conn, collection, record_id, record)
        except sqlite3.Error as exc:
            raise StoreUnavailableError(f"Cannot create record in {collection}: {exc}") from exc
        logger.info("Created %s/%s", collection, record_id)
        self._notify({collection})
        return record_id

    def set(self, record_path: str, record: Mapping[str, Any]) -> None:
        collection, record_id = split_record_path(record_path)
        try:
            with self._connect() as conn:
                q.upsert_record(conn, collection, record_id, record)
        except sqlite3.Error as exc:
            raise StoreUnavailableError(f"Cannot write {record_path}: {exc}") from exc
        self._notify({collection})

    def update(self, record_path: str, partial: Mapping[str, Any]) -> None:
        collection, record_id = split_record_path(record_path)
        try:
            with self._connect() as conn:
                q.merge_record(conn, collection, record_id, partial)
        except sqlite3.Error as exc:
            raise StoreUnavailableError(f"Cannot update {record_path}: {exc}") from exc
        logger.info("Updated %s", record_path)
        self._notify({collection})

    def delete(self, record_path: str) -> None:
        collection, record_id = split_record_path(record_path)
        try:
            with self._connect() as conn:
                removed = q.delete_record(conn, collection, record_id)
        except sqlite3.Error as exc:
            raise StoreUnavailableError(f"Cannot delete {record_path}: {exc}") from exc
        logger.info("Deleted %s (%s row(s))", record_path, removed)
        self._notify({collection})

    def batch_write(self, values: Mapping[str, Mapping[str, Any] | None]) -> None:
        """Write several records in one transaction; a None value deletes the record.

        Either every write commits or none does.
        """
        touched: set[str] = set()
        try:
            with self._connect() as conn:
                for record_path, value in values.items():
                    collection, record_id = split_record_path(record_path)
                    if value is None:
                        q.delete_record(conn, collection, record_id)
                    else:
                        q.upsert_record(conn, collection, record_id, value)
                    touched.add(collection)
        except sqlite3.Error as exc:
            raise StoreUnavailableError(f"Batch write of {len(values)} record(s) failed: {exc}") from exc
        logger.info("Batch wrote %s record(s)", len(values))
        self._notify(touched)
