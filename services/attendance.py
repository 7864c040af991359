"""Daily attendance ledger for project workers.

Records live under projects/<pid>/attendance/<YYYYMMDD>/<workerId>. Each one
holds a copy of the worker's wage taken when attendance was marked; daily
liability is always summed from those copies, so later wage changes never
rewrite past payroll.
"""

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping

from dateutil import parser

from config.settings import CONFIG
from db.models import AttendanceRecord
from db.store import RecordStore, StoreUnavailableError, join_path
from services.common import ATTENDANCE, PROJECTS, WORKERS, BaseService
from services.derivation import to_number
from services.validation import ValidationError

logger = logging.getLogger(__name__)


class BatchWriteError(StoreUnavailableError):
    """A batched write failed; worker_ids lists the marks to retry one by one."""

    def __init__(self, message: str, worker_ids: list[str]) -> None:
        super().__init__(message)
        self.worker_ids = worker_ids


@dataclass(frozen=True)
class DailySummary:
    present_count: int
    total_liability: float


def date_key(value: dt.date | dt.datetime | str) -> str:
    """Normalise a calendar date to the ledger partition key, e.g. 2024-05-01 -> 20240501."""
    if isinstance(value, dt.datetime):
        value = value.date()
    if not isinstance(value, dt.date):
        text = str(value).strip()
        try:
            value = parser.isoparse(text).date()
        except ValueError as exc:
            raise ValidationError(f"Invalid date: {text}") from exc
    return value.strftime(CONFIG.attendance_key_format)


def summarize_ledger(records: Mapping[str, Mapping[str, Any]] | None) -> DailySummary:
    """Count present records and sum their wage snapshots.

    Works on stored records alone, so entries for workers that have since been
    removed still count.
    """
    present = [r for r in (records or {}).values() if isinstance(r, Mapping) and r.get("present") is True]
    return DailySummary(
        present_count=len(present),
        total_liability=sum(to_number(r.get("wage")) for r in present),
    )


class AttendanceLedger(BaseService):
    def __init__(
        self,
        store: RecordStore,
        project_id: str,
        today: Callable[[], dt.date] | None = None,
        now: Callable[[], dt.datetime] | None = None,
    ) -> None:
        super().__init__(store, project_id, today)
        self.now = now or dt.datetime.now

    def day_path(self, date: dt.date | dt.datetime | str) -> str:
        return join_path(PROJECTS, self.project_id, ATTENDANCE, date_key(date))

    def _entry(self, wage: Any, present: bool) -> AttendanceRecord:
        return AttendanceRecord(
            present=bool(present),
            time=self.now().isoformat(timespec="seconds"),
            wage=to_number(wage),
        )

    def mark_attendance(self, date: dt.date | dt.datetime | str, worker_id: str, present: bool) -> AttendanceRecord:
        """Write (or overwrite) the worker's mark for the day with a wage snapshot."""
        worker = self.store.get(self._record(WORKERS, worker_id))
        if worker is None:
            raise ValidationError(f"Worker {worker_id} not found")
        entry = self._entry(worker.get("wage"), present)
        self.store.set(join_path(self.day_path(date), worker_id), entry.to_record())
        logger.info("Marked worker %s %s on %s", worker_id, "present" if present else "absent", date_key(date))
        return entry

    def mark_all_regular(self, date: dt.date | dt.datetime | str) -> list[str]:
        """Mark every regular worker present in one batch. Returns the marked ids.

        The batch is atomic: on failure nothing was written and BatchWriteError
        carries the ids to retry individually.
        """
        day = self.day_path(date)
        workers = self.store.snapshot(self._collection(WORKERS))
        values = {
            join_path(day, worker_id): self._entry(worker.get("wage"), True).to_record()
            for worker_id, worker in workers.items()
            if worker.get("isRegular") is True
        }
        worker_ids = [path.rsplit("/", 1)[1] for path in values]
        if not values:
            logger.info("No regular workers to mark on %s", date_key(date))
            return []
        try:
            self.store.batch_write(values)
        except StoreUnavailableError as exc:
            raise BatchWriteError(f"Marking regular workers failed: {exc}", worker_ids) from exc
        logger.info("Marked %s regular worker(s) present on %s", len(worker_ids), date_key(date))
        return worker_ids

    def day_records(self, date: dt.date | dt.datetime | str) -> dict[str, dict[str, Any]]:
        return self.store.snapshot(self.day_path(date))

    def daily_summary(self, date: dt.date | dt.datetime | str) -> DailySummary:
        return summarize_ledger(self.day_records(date))
