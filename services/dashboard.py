from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Mapping

from config.settings import CONFIG
from db.store import join_path
from services.common import CLIENTS, MATERIALS, PROJECTS, WORKERS, BaseService
from services.derivation import snapshot_rows, summarize_clients, summarize_materials, to_number
from services.validation import ValidationError, optional_date, require_non_negative, require_text

logger = logging.getLogger(__name__)

COMPLETED = "Completed"
OVERDUE = "Overdue"
JUST_STARTED = "Just Started"
IN_PROGRESS = "In Progress"

PRIORITIES = ("high", "medium", "low")


@dataclass(frozen=True)
class ProjectStats:
    workers_count: int
    materials_count: int
    clients_count: int
    completion_percentage: int
    days_remaining: int
    budget_total: float
    budget_spent: float
    budget_received: float
    status: str


def completion_percentage(project: Mapping[str, Any]) -> int:
    tasks = to_number(project.get("tasks"))
    if tasks <= 0:
        return 0
    done = to_number(project.get("completedTasks"))
    value = Decimal(str(done / tasks * 100)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return int(value)


def days_remaining(project: Mapping[str, Any], today: dt.date) -> int:
    deadline = project.get("deadline")
    if not deadline:
        return 0
    try:
        return (dt.date.fromisoformat(str(deadline)[:10]) - today).days
    except ValueError:
        logger.warning("Bad project deadline %r, treating as none", deadline)
        return 0


def status_label(completion: int, days_left: int) -> str:
    if completion >= 100:
        return COMPLETED
    if days_left < 0:
        return OVERDUE
    if completion < 25:
        return JUST_STARTED
    return IN_PROGRESS


def project_stats(
    project: Mapping[str, Any],
    workers: Mapping[str, Any] | None,
    materials: Mapping[str, Any] | None,
    clients: Mapping[str, Any] | None,
    today: dt.date,
    low_stock_threshold: float = CONFIG.low_stock_threshold,
) -> ProjectStats:
    material_summary = summarize_materials(snapshot_rows(materials), low_stock_threshold)
    client_summary = summarize_clients(snapshot_rows(clients))
    completion = completion_percentage(project)
    days_left = days_remaining(project, today)
    return ProjectStats(
        workers_count=len(snapshot_rows(workers)),
        materials_count=material_summary.item_count,
        clients_count=client_summary.client_count,
        completion_percentage=completion,
        days_remaining=days_left,
        budget_total=client_summary.total_budget,
        budget_spent=material_summary.total_cost,
        budget_received=client_summary.total_received,
        status=status_label(completion, days_left),
    )


class DashboardService(BaseService):
    @property
    def project_path(self) -> str:
        return join_path(PROJECTS, self.project_id)

    def save_project(self, form: Mapping[str, Any]) -> None:
        name = require_text(form.get("name"), "Project name is required")
        tasks = require_non_negative(form.get("tasks", 0), "Valid task count is required")
        completed = require_non_negative(form.get("completedTasks", 0), "Valid completed task count is required")
        if completed > tasks:
            raise ValidationError("Completed tasks cannot exceed total tasks")
        priority = str(form.get("priority") or "medium").strip().lower()
        if priority not in PRIORITIES:
            raise ValidationError(f"Unknown priority: {priority}")
        self.store.update(
            self.project_path,
            {
                "name": name,
                "deadline": optional_date(form.get("deadline")) or "",
                "tasks": int(tasks),
                "completedTasks": int(completed),
                "priority": priority,
            },
        )
        logger.info("Saved project %s", self.project_id)

    def overview(self, low_stock_threshold: float = CONFIG.low_stock_threshold) -> ProjectStats:
        project = self.store.get(self.project_path)
        if project is None:
            raise ValidationError(f"Project {self.project_id} not found")
        return project_stats(
            project,
            self.store.snapshot(self._collection(WORKERS)),
            self.store.snapshot(self._collection(MATERIALS)),
            self.store.snapshot(self._collection(CLIENTS)),
            self.today(),
            low_stock_threshold,
        )
