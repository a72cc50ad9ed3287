# Overview: Bulk employee and service import from CSV text.

"""
CSV import

- Header names are case-insensitive.
- Employees: name and phone are required; optional email, role,
  store_id, is_active.
- Services: name and price are required; optional description, unit,
  duration_minutes, category, taxable. price is in rupees and may carry
  a currency sign or thousands separators; a price_cents column wins
  when both are given.
- Each row is created in its own transaction. A bad row is reported as
  "Row N: ..." where N is its line in the file (the header is line 1,
  blank lines still count) and the remaining rows still import.
"""

from __future__ import annotations

import csv
import io
import logging
from typing import Any

from ..models import EMPLOYEE_ROLES
from . import employee_service, catalog_service, category_service


logger = logging.getLogger(__name__)

EMPLOYEE_COLUMNS = ("name", "phone")
SERVICE_COLUMNS = ("name", "price")

ROLE_ALIASES = {
    "admin": "admin",
    "store manager": "store_manager",
    "store_manager": "store_manager",
    "manager": "store_manager",
    "sales associate": "sales_associate",
    "sales_associate": "sales_associate",
    "sales": "sales_associate",
    "tailor": "tailor",
}

TRUE_VALUES = {"true", "1", "yes", "y", "active"}


class CsvImportError(ValueError):
    """Raised when the file as a whole cannot be imported."""
    pass


class EmployeeImportError(CsvImportError):
    pass


class ServiceImportError(CsvImportError):
    pass


def normalize_role(raw: str | None) -> str:
    key = " ".join((raw or "").strip().lower().split())
    if not key:
        return "sales_associate"
    role = ROLE_ALIASES.get(key, key.replace(" ", "_"))
    if role not in EMPLOYEE_ROLES:
        raise EmployeeImportError(f"Invalid role '{raw}'. Allowed: {', '.join(EMPLOYEE_ROLES)}")
    return role


def _to_cents(value: Any) -> int | None:
    text = str(value or "").strip().replace("\u20b9", "").replace("Rs.", "").replace(",", "").strip()
    if not text:
        return None
    try:
        cents = int(round(float(text) * 100))
    except (ValueError, OverflowError):
        raise ServiceImportError("Invalid price value")
    if cents < 0:
        raise ServiceImportError("Invalid price value")
    return cents


def _to_int(value: str, field: str) -> int | None:
    text = (value or "").strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        raise ServiceImportError(f"{field} must be a whole number")


def _read_rows(text: str, required: tuple[str, ...], error_cls) -> tuple[list[str], list[tuple[int, list[str]]]]:
    """Returns the lowered headers and (line number, cells) for every non-blank data row."""
    reader = csv.reader(io.StringIO(text.lstrip("\ufeff")))
    rows = []
    for row in reader:
        if any(cell.strip() for cell in row):
            rows.append((reader.line_num, row))
    if len(rows) < 2:
        raise error_cls("File must contain at least a header row and one data row.")
    headers = [h.strip().lower() for h in rows[0][1]]
    missing = [c for c in required if c not in headers]
    if missing:
        raise error_cls(f"Missing required columns: {', '.join(missing)}")
    return headers, rows[1:]


def _cell_reader(headers: list[str], row: list[str]):
    def value(field: str) -> str:
        if field not in headers:
            return ""
        index = headers.index(field)
        return row[index].strip() if index < len(row) else ""
    return value


def _employee_payload(headers: list[str], row: list[str]) -> tuple[dict, bool]:
    value = _cell_reader(headers, row)

    name = value("name")
    phone = value("phone")
    if not name or not phone:
        raise EmployeeImportError("Missing required fields (name, phone)")

    payload = {
        "name": name,
        "phone": phone,
        "email": value("email") or None,
        "role": normalize_role(value("role")),
    }
    store_id = value("store_id")
    if store_id:
        payload["store_id"] = store_id
    is_active = (value("is_active") or "true").lower() in TRUE_VALUES
    return payload, is_active


def _service_payload(headers: list[str], row: list[str]) -> dict:
    value = _cell_reader(headers, row)

    name = value("name")
    raw_price = value("price_cents") or value("price")
    if not name or not raw_price:
        raise ServiceImportError("Missing required fields (name, price)")

    if value("price_cents"):
        price_cents = _to_int(value("price_cents"), "price_cents")
    else:
        price_cents = _to_cents(raw_price)

    payload = {
        "name": name,
        "description": value("description") or None,
        "price_cents": price_cents,
        "unit": value("unit").lower() or "per_piece",
        "duration_minutes": _to_int(value("duration_minutes"), "duration_minutes"),
        "taxable": value("taxable").lower() in TRUE_VALUES,
        "active": (value("active") or "true").lower() in TRUE_VALUES,
    }
    category_name = value("category")
    if category_name:
        category = category_service.find_category(category_name)
        if category is None:
            raise ServiceImportError(f"Category '{category_name}' not found")
        payload["category_id"] = category.id
    return payload


def import_employees_csv(text: str) -> dict:
    """Returns {"success": int, "failed": int, "errors": [str, ...]}."""
    headers, rows = _read_rows(text or "", EMPLOYEE_COLUMNS, EmployeeImportError)
    result = {"success": 0, "failed": 0, "errors": []}

    for line_number, row in rows:
        try:
            payload, is_active = _employee_payload(headers, row)
            employee_service.create_employee(payload, is_active=is_active)
            result["success"] += 1
        except ValueError as exc:
            result["failed"] += 1
            result["errors"].append(f"Row {line_number}: {exc}")

    logger.info("Employee import finished: %d imported, %d failed", result["success"], result["failed"])
    return result


def import_services_csv(text: str) -> dict:
    """Same contract as import_employees_csv, for the service catalog."""
    headers, rows = _read_rows(text or "", SERVICE_COLUMNS, ServiceImportError)
    result = {"success": 0, "failed": 0, "errors": []}

    for line_number, row in rows:
        try:
            catalog_service.create_service(_service_payload(headers, row))
            result["success"] += 1
        except ValueError as exc:
            result["failed"] += 1
            result["errors"].append(f"Row {line_number}: {exc}")

    logger.info("Service import finished: %d imported, %d failed", result["success"], result["failed"])
    return result
