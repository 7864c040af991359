"""Filtered/sorted views and aggregate summaries over collection snapshots.

Every function here is pure: the same snapshot and view state always give the
same rows and summary. Derived fields (line total, pending, payment status,
low-stock flag) are computed only by the helpers below so that views, totals,
search and exports agree on one formula.
"""

from __future__ import annotations

import locale
import logging
import math
import unicodedata
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping, Sequence

from config.settings import CONFIG
from utils.text import contains_casefold

logger = logging.getLogger(__name__)

ASCENDING = "ascending"
DESCENDING = "descending"

NUMERIC_FIELDS = frozenset({"wage", "price", "quantity", "budget", "received", "pending", "lineTotal"})

PAID = "paid"
PENDING = "pending"


class NumericParseError(ValueError):
    pass


def parse_number(value: Any) -> float:
    if value is None or isinstance(value, bool):
        raise NumericParseError(f"Not a number: {value!r}")
    try:
        number = float(str(value).strip())
    except ValueError as exc:
        raise NumericParseError(f"Not a number: {value!r}") from exc
    if not math.isfinite(number):
        raise NumericParseError(f"Not a finite number: {value!r}")
    return number


def to_number(value: Any, default: float = 0.0) -> float:
    """Lenient parse used by views and totals: a bad value becomes default."""
    try:
        return parse_number(value)
    except NumericParseError as exc:
        logger.debug("%s, using %s", exc, default)
        return default


# ---- derived fields ----

def line_total(material: Mapping[str, Any]) -> float:
    return to_number(material.get("price")) * to_number(material.get("quantity"))


def is_low_stock(material: Mapping[str, Any], threshold: float) -> bool:
    return to_number(material.get("quantity")) < threshold


def client_pending(client: Mapping[str, Any]) -> float:
    return to_number(client.get("budget")) - to_number(client.get("received"))


def client_status(client: Mapping[str, Any]) -> str:
    return PAID if client_pending(client) <= 0 else PENDING


# ---- view state ----

@dataclass(frozen=True)
class SortState:
    key: str | None = None
    direction: str = ASCENDING

    def toggle(self, key: str) -> "SortState":
        """Same key flips the direction, a new key starts ascending."""
        if key == self.key and self.direction == ASCENDING:
            return SortState(key, DESCENDING)
        return SortState(key, ASCENDING)


@dataclass(frozen=True)
class ViewState:
    search_term: str = ""
    sort: SortState = field(default_factory=SortState)
    # Workers
    worker_type: str | None = None
    regular_only: bool = False
    # Materials
    show_low_stock: bool = False
    low_stock_threshold: float = CONFIG.low_stock_threshold
    # Clients: None, "paid" or "pending"
    client_status: str | None = None


@dataclass(frozen=True)
class WorkerSummary:
    total_workers: int
    average_wage: float
    total_daily_wage: float
    most_common_type: str | None
    regular_count: int


@dataclass(frozen=True)
class MaterialSummary:
    item_count: int
    total_cost: float
    low_stock_count: int


@dataclass(frozen=True)
class ClientSummary:
    client_count: int
    total_budget: float
    total_received: float
    total_pending: float
    payment_progress_percent: float
    paid_count: int
    pending_count: int


@dataclass(frozen=True)
class View:
    rows: list[dict[str, Any]]
    summary: Any


# ---- rows ----

def snapshot_rows(snapshot: Mapping[str, Any] | None) -> list[dict[str, Any]]:
    """Turn {id: record} into a list of records carrying their id, in snapshot order."""
    rows: list[dict[str, Any]] = []
    for record_id, record in (snapshot or {}).items():
        if not isinstance(record, Mapping):
            logger.warning("Skipping malformed record %s: %r", record_id, record)
            continue
        rows.append({**record, "id": record_id})
    return rows


def enrich_material(row: Mapping[str, Any], threshold: float) -> dict[str, Any]:
    return {**row, "lineTotal": line_total(row), "isLowStock": is_low_stock(row, threshold)}


def enrich_client(row: Mapping[str, Any]) -> dict[str, Any]:
    # pending is never trusted from storage
    return {**row, "pending": client_pending(row), "status": client_status(row)}


def matches_search(row: Mapping[str, Any], term: str, fields: Iterable[str]) -> bool:
    term = (term or "").strip()
    if not term:
        return True
    return any(contains_casefold(row.get(f), term) for f in fields)


def _text_key(value: Any) -> str:
    text = "" if value is None else str(value)
    # Accents are dropped so "Émile" files under E even in the C locale
    base = "".join(ch for ch in unicodedata.normalize("NFKD", text) if not unicodedata.combining(ch))
    return locale.strxfrm(base.casefold())


def sort_key(key: str) -> Callable[[Mapping[str, Any]], Any]:
    if key in NUMERIC_FIELDS:
        # Unparseable values rank as the smallest possible number
        return lambda row: to_number(row.get(key), default=-math.inf)
    return lambda row: _text_key(row.get(key))


def sort_rows(rows: Sequence[Mapping[str, Any]], sort: SortState) -> list[dict[str, Any]]:
    """Stable sort; equal keys keep their input order in both directions."""
    if not sort.key:
        return list(rows)
    return sorted(rows, key=sort_key(sort.key), reverse=sort.direction == DESCENDING)


# ---- summaries (always over the whole snapshot) ----

def summarize_workers(rows: Sequence[Mapping[str, Any]]) -> WorkerSummary:
    count = len(rows)
    total = sum(to_number(r.get("wage")) for r in rows)
    type_counts: dict[str, int] = {}
    for r in rows:
        tag = r.get("type")
        if tag is None or not str(tag).strip():
            continue
        type_counts[tag] = type_counts.get(tag, 0) + 1
    # max() returns the first maximal key, i.e. the tag seen first in snapshot order
    most_common = max(type_counts, key=type_counts.__getitem__) if type_counts else None
    return WorkerSummary(
        total_workers=count,
        average_wage=total / count if count else 0.0,
        total_daily_wage=total,
        most_common_type=most_common,
        regular_count=sum(1 for r in rows if r.get("isRegular") is True),
    )


def summarize_materials(rows: Sequence[Mapping[str, Any]], threshold: float) -> MaterialSummary:
    return MaterialSummary(
        item_count=len(rows),
        total_cost=sum(line_total(r) for r in rows),
        low_stock_count=sum(1 for r in rows if is_low_stock(r, threshold)),
    )


def summarize_clients(rows: Sequence[Mapping[str, Any]]) -> ClientSummary:
    total_budget = sum(to_number(r.get("budget")) for r in rows)
    total_received = sum(to_number(r.get("received")) for r in rows)
    statuses = [client_status(r) for r in rows]
    return ClientSummary(
        client_count=len(rows),
        total_budget=total_budget,
        total_received=total_received,
        total_pending=sum(client_pending(r) for r in rows),
        payment_progress_percent=100.0 * total_received / total_budget if total_budget else 0.0,
        paid_count=statuses.count(PAID),
        pending_count=statuses.count(PENDING),
    )


# ---- views ----

WORKER_SEARCH_FIELDS = ("name", "type", "contact")
MATERIAL_SEARCH_FIELDS = ("name",)
CLIENT_SEARCH_FIELDS = ("name", "contact")


def worker_view(snapshot: Mapping[str, Any] | None, state: ViewState = ViewState()) -> View:
    rows = snapshot_rows(snapshot)
    visible = [
        r
        for r in rows
        if matches_search(r, state.search_term, WORKER_SEARCH_FIELDS)
        and (state.worker_type is None or r.get("type") == state.worker_type)
        and (not state.regular_only or r.get("isRegular") is True)
    ]
    return View(sort_rows(visible, state.sort), summarize_workers(rows))


def material_view(snapshot: Mapping[str, Any] | None, state: ViewState = ViewState()) -> View:
    threshold = state.low_stock_threshold
    rows = [enrich_material(r, threshold) for r in snapshot_rows(snapshot)]
    visible = [
        r
        for r in rows
        if matches_search(r, state.search_term, MATERIAL_SEARCH_FIELDS)
        and (not state.show_low_stock or r["isLowStock"])
    ]
    return View(sort_rows(visible, state.sort), summarize_materials(rows, threshold))


def client_view(snapshot: Mapping[str, Any] | None, state: ViewState = ViewState()) -> View:
    rows = [enrich_client(r) for r in snapshot_rows(snapshot)]
    visible = [
        r
        for r in rows
        if matches_search(r, state.search_term, CLIENT_SEARCH_FIELDS)
        and (state.client_status is None or r["status"] == state.client_status)
    ]
    return View(sort_rows(visible, state.sort), summarize_clients(rows))


VIEWS: dict[str, Callable[[Mapping[str, Any] | None, ViewState], View]] = {
    "workers": worker_view,
    "materials": material_view,
    "clients": client_view,
}


def get_view(entity: str, snapshot: Mapping[str, Any] | None, state: ViewState = ViewState()) -> View:
    try:
        derive = VIEWS[entity]
    except KeyError:
        raise ValueError(f"Unknown collection: {entity}") from None
    return derive(snapshot, state)
