from __future__ import annotations

import datetime as dt
from typing import Callable

from db.store import RecordStore, join_path

PROJECTS = "projects"
WORKERS = "workers"
MATERIALS = "materials"
CLIENTS = "clients"
ATTENDANCE = "attendance"


def collection_path(project_id: str, name: str) -> str:
    return join_path(PROJECTS, project_id, name)


def record_path(project_id: str, name: str, record_id: str) -> str:
    return join_path(PROJECTS, project_id, name, record_id)


class BaseService:
    """Project-scoped access to one record store."""

    def __init__(self, store: RecordStore, project_id: str, today: Callable[[], dt.date] | None = None) -> None:
        if not str(project_id).strip():
            raise ValueError("project_id is required")
        self.store = store
        self.project_id = str(project_id).strip()
        self.today = today or dt.date.today

    def _collection(self, name: str) -> str:
        return collection_path(self.project_id, name)

    def _record(self, name: str, record_id: str) -> str:
        return record_path(self.project_id, name, record_id)
