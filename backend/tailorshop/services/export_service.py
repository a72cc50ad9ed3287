# Overview: CSV export of list views.

from __future__ import annotations

import csv
import io
from typing import Iterable


CUSTOMER_COLUMNS = ["id", "name", "phone", "whatsapp", "email", "address", "city", "vip_status", "discount_percentage", "created_at"]

ORDER_COLUMNS = [
    "id", "order_number", "status", "customer_name", "customer_phone", "store_name",
    "assigned_employee_name", "due_date", "subtotal_cents", "discount_cents", "tax_cents",
    "total_cents", "deposit_cents", "remaining_balance_cents", "created_at",
]

INVENTORY_COLUMNS = ["id", "sku", "name", "category", "price_cents", "cost_cents", "quantity", "min_stock_level", "status"]


def export_csv(rows: Iterable[dict], columns: list[str]) -> str:
    """Render dict rows as CSV text with a header line. Missing keys are blank."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(columns)
    for row in rows:
        writer.writerow(["" if row.get(col) is None else row.get(col) for col in columns])
    return buf.getvalue()
