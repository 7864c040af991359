from __future__ import annotations

import logging
from typing import Any, Mapping

from config.settings import CONFIG
from db.models import Client, Material, Worker
from services import derivation as d
from services.common import CLIENTS, MATERIALS, WORKERS, BaseService
from services.confirmation import ConfirmationRequest
from services.suggestions import TypeSuggestions
from services.validation import optional_date, validate_client, validate_material, validate_worker

logger = logging.getLogger(__name__)


def _text(form: Mapping[str, Any], key: str) -> str:
    value = form.get(key)
    return "" if value is None else str(value).strip()


def _flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().casefold() in {"1", "true", "yes", "y", "on"}
    return bool(value)


class WorkersService(BaseService):
    def build(self, form: Mapping[str, Any]) -> Worker:
        validate_worker(form)
        return Worker(
            name=_text(form, "name"),
            type=_text(form, "type"),
            wage=float(_text(form, "wage")),
            contact=_text(form, "contact"),
            joining_date=optional_date(form.get("joiningDate")) or self.today().isoformat(),
            address=_text(form, "address") or None,
            is_regular=_flag(form.get("isRegular")),
        )

    def create(self, form: Mapping[str, Any], suggestions: TypeSuggestions | None = None) -> tuple[str, TypeSuggestions]:
        worker = self.build(form)
        worker_id = self.store.create(self._collection(WORKERS), worker.to_record())
        logger.info("Added worker %s (%s) to project %s", worker.name, worker_id, self.project_id)
        return worker_id, (suggestions or TypeSuggestions()).add_if_absent(worker.type)

    def update(self, worker_id: str, form: Mapping[str, Any], suggestions: TypeSuggestions | None = None) -> TypeSuggestions:
        worker = self.build(form)
        self.store.update(self._record(WORKERS, worker_id), worker.to_record())
        logger.info("Updated worker %s in project %s", worker_id, self.project_id)
        return (suggestions or TypeSuggestions()).add_if_absent(worker.type)

    def request_delete(self, worker_id: str, name: str) -> ConfirmationRequest:
        return ConfirmationRequest(
            f"Are you sure you want to remove {name} from the workers list?",
            lambda: self.store.delete(self._record(WORKERS, worker_id)),
        )

    def current(self) -> dict[str, dict[str, Any]]:
        return self.store.snapshot(self._collection(WORKERS))


class MaterialsService(BaseService):
    def build(self, form: Mapping[str, Any]) -> Material:
        validate_material(form)
        return Material(
            name=_text(form, "name"),
            quantity=float(_text(form, "quantity")),
            unit=_text(form, "unit"),
            price=float(_text(form, "price")),
            supplier=_text(form, "supplier") or None,
            date=optional_date(form.get("date")),
        )

    def create(self, form: Mapping[str, Any]) -> str:
        material = self.build(form)
        material_id = self.store.create(self._collection(MATERIALS), material.to_record())
        logger.info("Added material %s (%s) to project %s", material.name, material_id, self.project_id)
        return material_id

    def update(self, material_id: str, form: Mapping[str, Any]) -> None:
        material = self.build(form)
        self.store.update(self._record(MATERIALS, material_id), material.to_record())
        logger.info("Updated material %s in project %s", material_id, self.project_id)

    def request_delete(self, material_id: str, name: str) -> ConfirmationRequest:
        return ConfirmationRequest(
            f"Are you sure you want to delete {name}?",
            lambda: self.store.delete(self._record(MATERIALS, material_id)),
        )


class ClientsService(BaseService):
    def build(self, form: Mapping[str, Any]) -> Client:
        validate_client(form)
        return Client(
            name=_text(form, "name"),
            contact=_text(form, "contact"),
            budget=float(_text(form, "budget")),
            received=float(_text(form, "received")),
            payment_type=_text(form, "paymentType") or CONFIG.default_payment_type,
            join_date=optional_date(form.get("joinDate")) or self.today().isoformat(),
            address=_text(form, "address") or None,
        )

    @staticmethod
    def to_record(client: Client) -> dict[str, Any]:
        # pending/status are kept in the payload for raw-data readers only;
        # views recompute both from budget and received
        record = client.to_record()
        record["pending"] = d.client_pending(record)
        record["status"] = d.client_status(record)
        return record

    def create(self, form: Mapping[str, Any]) -> str:
        client = self.build(form)
        client_id = self.store.create(self._collection(CLIENTS), self.to_record(client))
        logger.info("Added client %s (%s) to project %s", client.name, client_id, self.project_id)
        return client_id

    def update(self, client_id: str, form: Mapping[str, Any]) -> None:
        client = self.build(form)
        self.store.update(self._record(CLIENTS, client_id), self.to_record(client))
        logger.info("Updated client %s in project %s", client_id, self.project_id)

    def request_delete(self, client_id: str, name: str) -> ConfirmationRequest:
        return ConfirmationRequest(
            f"Are you sure you want to delete {name}?",
            lambda: self.store.delete(self._record(CLIENTS, client_id)),
        )
