# Overview: CSV downloads of customers, orders and inventory.

from flask import Blueprint, Response

from ..services import customer_service, order_service, inventory_service, export_service


exports_bp = Blueprint("exports", __name__, url_prefix="/api/exports")


def _csv_response(body: str, filename: str) -> Response:
    return Response(
        body,
        mimetype="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@exports_bp.get("/customers.csv")
def export_customers():
    rows = customer_service.list_customers()
    return _csv_response(export_service.export_csv(rows, export_service.CUSTOMER_COLUMNS), "customers.csv")


@exports_bp.get("/orders.csv")
def export_orders():
    rows = order_service.list_orders()
    return _csv_response(export_service.export_csv(rows, export_service.ORDER_COLUMNS), "orders.csv")


@exports_bp.get("/inventory.csv")
def export_inventory():
    rows = inventory_service.list_items(include_inactive=True)
    return _csv_response(export_service.export_csv(rows, export_service.INVENTORY_COLUMNS), "inventory.csv")
