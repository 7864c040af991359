from __future__ import annotations

import datetime as dt
import logging
from typing import Any, Callable, Generic, TypeVar

from db.store import RecordStore, Snapshot, StoreUnavailableError, join_path
from services.attendance import DailySummary, date_key, summarize_ledger
from services.common import ATTENDANCE, PROJECTS, collection_path
from services.derivation import VIEWS, View, ViewState

logger = logging.getLogger(__name__)

S = TypeVar("S")
V = TypeVar("V")


class LiveView(Generic[S, V]):
    """Keeps a derived view in step with one collection subscription.

    Each pushed snapshot replaces the held one and the view is recomputed
    synchronously. When the store fails, the last good snapshot and view stay
    in place and the error is passed to on_error. After close() no further
    recomputation happens.
    """

    def __init__(
        self,
        store: RecordStore,
        collection: str,
        derive: Callable[[Snapshot | None, S], V],
        state: S,
        on_update: Callable[[V], None] | None = None,
        on_error: Callable[[StoreUnavailableError], None] | None = None,
    ) -> None:
        self.collection = collection
        self.derive = derive
        self.state = state
        self.on_update = on_update
        self.on_error = on_error
        self.snapshot: Snapshot | None = None
        self.view: V | None = None
        self.last_error: StoreUnavailableError | None = None
        self.closed = False
        self._subscription = store.subscribe(collection, self._on_snapshot, self._on_store_error)

    def _on_snapshot(self, snapshot: Snapshot) -> None:
        if self.closed:
            return
        self.snapshot = snapshot
        self.last_error = None
        self._recompute()

    def _on_store_error(self, exc: StoreUnavailableError) -> None:
        self.last_error = exc
        logger.warning("Keeping last view of %s: %s", self.collection, exc)
        if self.on_error is not None and not self.closed:
            self.on_error(exc)

    def _recompute(self) -> None:
        self.view = self.derive(self.snapshot, self.state)
        if self.on_update is not None:
            self.on_update(self.view)

    def set_state(self, state: S) -> V | None:
        """Apply new view state to the held snapshot without touching the store."""
        self.state = state
        if self.snapshot is not None and not self.closed:
            self._recompute()
        return self.view

    def close(self) -> None:
        self.closed = True
        self._subscription.unsubscribe()


def open_collection_view(
    store: RecordStore,
    project_id: str,
    entity: str,
    state: ViewState | None = None,
    on_update: Callable[[View], None] | None = None,
    on_error: Callable[[StoreUnavailableError], None] | None = None,
) -> LiveView[ViewState, View]:
    if entity not in VIEWS:
        raise ValueError(f"Unknown collection: {entity}")
    return LiveView(store, collection_path(project_id, entity), VIEWS[entity], state or ViewState(), on_update, on_error)


def _ledger_summary(snapshot: Snapshot | None, _state: Any) -> DailySummary:
    return summarize_ledger(snapshot)


def open_attendance_view(
    store: RecordStore,
    project_id: str,
    date: dt.date | dt.datetime | str,
    on_update: Callable[[DailySummary], None] | None = None,
    on_error: Callable[[StoreUnavailableError], None] | None = None,
) -> LiveView[None, DailySummary]:
    path = join_path(PROJECTS, project_id, ATTENDANCE, date_key(date))
    return LiveView(store, path, _ledger_summary, None, on_update, on_error)
