from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

# Stored payloads keep the camelCase keys of the existing project data.


@dataclass(slots=True)
class Worker:
    name: str
    type: str
    wage: float
    contact: str
    joining_date: str
    address: Optional[str] = None
    is_regular: bool = False

    def to_record(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "wage": self.wage,
            "contact": self.contact,
            "joiningDate": self.joining_date,
            "address": self.address or "",
            "isRegular": self.is_regular,
        }


@dataclass(slots=True)
class Material:
    name: str
    quantity: float
    unit: str
    price: float
    supplier: Optional[str] = None
    date: Optional[str] = None

    def to_record(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "quantity": self.quantity,
            "unit": self.unit,
            "price": self.price,
            "supplier": self.supplier or "",
            "date": self.date or "",
        }


@dataclass(slots=True)
class Client:
    name: str
    contact: str
    budget: float
    received: float
    payment_type: str
    join_date: str
    address: Optional[str] = None

    def to_record(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "address": self.address or "",
            "contact": self.contact,
            "budget": self.budget,
            "received": self.received,
            "paymentType": self.payment_type,
            "joinDate": self.join_date,
        }


@dataclass(slots=True)
class AttendanceRecord:
    present: bool
    time: str
    wage: float

    def to_record(self) -> dict[str, Any]:
        return {"present": self.present, "time": self.time, "wage": self.wage}
