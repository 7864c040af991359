from __future__ import annotations

import datetime as dt
import math
import re
from typing import Any, Callable, Mapping

from dateutil import parser

from config.settings import CONFIG
from utils.text import is_blank


class ValidationError(ValueError):
    pass


DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def require_text(value: Any, message: str) -> str:
    if is_blank(value):
        raise ValidationError(message)
    return str(value).strip()


def parse_finite(value: Any, message: str) -> float:
    """Parse a form value to a finite float or raise ValidationError with message."""
    if isinstance(value, bool) or is_blank(value):
        raise ValidationError(message)
    try:
        number = float(str(value).strip())
    except ValueError as exc:
        raise ValidationError(message) from exc
    if not math.isfinite(number):
        raise ValidationError(message)
    return number


def require_positive(value: Any, message: str) -> float:
    number = parse_finite(value, message)
    if number <= 0:
        raise ValidationError(message)
    return number


def require_non_negative(value: Any, message: str) -> float:
    number = parse_finite(value, message)
    if number < 0:
        raise ValidationError(message)
    return number


def parse_iso_date(value: str) -> dt.date:
    """Parse and validate ISO date (YYYY-MM-DD)."""
    if not DATE_RE.match(str(value).strip()):
        raise ValidationError(f"Date must be YYYY-MM-DD, got {value}")
    try:
        return parser.isoparse(str(value).strip()).date()
    except ValueError as exc:
        raise ValidationError(f"Invalid date: {value}") from exc


def optional_date(value: Any) -> str | None:
    if is_blank(value):
        return None
    return parse_iso_date(str(value)).isoformat()


def validate_worker(form: Mapping[str, Any]) -> None:
    require_text(form.get("name"), "Worker name is required")
    require_text(form.get("type"), "Worker type is required")
    require_positive(form.get("wage"), "Valid wage amount is required")
    require_text(form.get("contact"), "Contact number is required")
    optional_date(form.get("joiningDate"))


def validate_material(form: Mapping[str, Any]) -> None:
    require_text(form.get("name"), "Material name is required")
    require_text(form.get("quantity"), "Quantity is required")
    require_text(form.get("unit"), "Unit is required")
    require_text(form.get("price"), "Price is required")
    require_non_negative(form.get("quantity"), "Valid quantity is required")
    require_positive(form.get("price"), "Valid price is required")
    optional_date(form.get("date"))


def validate_client(form: Mapping[str, Any]) -> None:
    require_text(form.get("name"), "Client name is required")
    require_text(form.get("contact"), "Contact number is required")
    budget = require_positive(form.get("budget"), "Valid budget amount is required")
    received = require_non_negative(form.get("received"), "Valid received amount is required")
    if received > budget:
        raise ValidationError("Received amount cannot be greater than budget")
    payment_type = str(form.get("paymentType") or "").strip() or CONFIG.default_payment_type
    if payment_type not in CONFIG.payment_types:
        raise ValidationError(f"Unknown payment type: {payment_type}")
    optional_date(form.get("joinDate"))


def validation_message(validator: Callable[[Mapping[str, Any]], None], form: Mapping[str, Any]) -> str | None:
    """Run validator and return its message, or None when the form is valid."""
    try:
        validator(form)
    except ValidationError as exc:
        return str(exc)
    return None
