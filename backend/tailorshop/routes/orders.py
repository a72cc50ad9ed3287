# Overview: Flask API routes for orders, items, payments and invoices.

from flask import Blueprint, jsonify, request, current_app

from ..services import order_service, payment_service, fitting_service
from . import error_response, arg_int


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.get("")
def list_orders():
    try:
        rows = order_service.list_orders(
            status=request.args.get("status") or None,
            customer_id=arg_int("customer_id"),
            store_id=arg_int("store_id"),
        )
        return jsonify(rows), 200
    except ValueError as exc:
        return error_response(exc)


@orders_bp.post("")
def create_order():
    data = request.get_json(silent=True) or {}
    try:
        order = order_service.create_order(data)
        return jsonify(order_service.get_order_detail(order.id)), 201
    except ValueError as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to create order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/<int:order_id>")
def get_order(order_id: int):
    detail = order_service.get_order_detail(order_id)
    if not detail:
        return jsonify({"error": "Order not found"}), 404
    return jsonify(detail), 200


@orders_bp.put("/<int:order_id>")
def update_order(order_id: int):
    data = request.get_json(silent=True) or {}
    try:
        order = order_service.update_order(order_id, data)
        return jsonify(order.to_dict()), 200
    except ValueError as exc:
        return error_response(exc)


@orders_bp.post("/<int:order_id>/status")
def update_status(order_id: int):
    data = request.get_json(silent=True) or {}
    status = data.get("status")
    if not status:
        return jsonify({"error": "status is required"}), 400
    try:
        order = order_service.update_order_status(order_id, status)
        return jsonify(order.to_dict()), 200
    except ValueError as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to update status of order %s", order_id)
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("/<int:order_id>/cancel")
def cancel_order(order_id: int):
    try:
        return jsonify(order_service.cancel_order(order_id).to_dict()), 200
    except ValueError as exc:
        return error_response(exc)


@orders_bp.post("/<int:order_id>/settle")
def settle_order(order_id: int):
    try:
        return jsonify(order_service.mark_settled(order_id).to_dict()), 200
    except ValueError as exc:
        return error_response(exc)


@orders_bp.get("/<int:order_id>/invoice")
def invoice(order_id: int):
    try:
        return jsonify(order_service.build_invoice(order_id)), 200
    except ValueError as exc:
        return error_response(exc)


# --- Items ---

@orders_bp.post("/<int:order_id>/items")
def add_item(order_id: int):
    data = request.get_json(silent=True) or {}
    try:
        item = order_service.add_item(order_id, data)
        return jsonify(item.to_dict()), 201
    except ValueError as exc:
        return error_response(exc)


@orders_bp.patch("/<int:order_id>/items/<int:item_id>")
def update_item(order_id: int, item_id: int):
    data = request.get_json(silent=True) or {}
    if "quantity" not in data:
        return jsonify({"error": "quantity is required"}), 400
    try:
        item = order_service.update_item_quantity(order_id, item_id, data["quantity"])
        return jsonify(item.to_dict()), 200
    except ValueError as exc:
        return error_response(exc)


@orders_bp.delete("/<int:order_id>/items/<int:item_id>")
def remove_item(order_id: int, item_id: int):
    try:
        order_service.remove_item(order_id, item_id)
        return jsonify({"deleted": True}), 200
    except ValueError as exc:
        return error_response(exc)


@orders_bp.put("/<int:order_id>/items/<int:item_id>/measurement-version")
def pin_version(order_id: int, item_id: int):
    data = request.get_json(silent=True) or {}
    try:
        pinned = order_service.pin_measurement_version(
            item_id, data.get("measurement_version_id"), order_id=order_id
        )
        return jsonify(pinned.to_dict()), 200
    except ValueError as exc:
        return error_response(exc)


# --- Payments ---

@orders_bp.get("/<int:order_id>/payments")
def list_payments(order_id: int):
    try:
        payments = payment_service.list_payments(order_id)
        summary = payment_service.get_balance_summary(order_id)
        return jsonify({
            "payments": [p.to_dict() for p in payments],
            "balance": summary.to_dict(),
        }), 200
    except ValueError as exc:
        return error_response(exc)


@orders_bp.post("/<int:order_id>/payments")
def record_payment(order_id: int):
    data = request.get_json(silent=True) or {}
    try:
        entry, summary = payment_service.record_payment(
            order_id,
            data.get("amount_cents"),
            data.get("payment_type") or "payment",
            notes=data.get("notes"),
            recorded_by=data.get("recorded_by"),
        )
        return jsonify({"payment": entry.to_dict(), "balance": summary.to_dict()}), 201
    except ValueError as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to record payment for order %s", order_id)
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("/<int:order_id>/reconcile")
def reconcile(order_id: int):
    try:
        changed = payment_service.reconcile_order_balance(order_id)
        summary = payment_service.get_balance_summary(order_id)
        return jsonify({"changed": changed, "balance": summary.to_dict()}), 200
    except ValueError as exc:
        return error_response(exc)


# --- Fittings ---

@orders_bp.get("/<int:order_id>/fittings")
def list_fittings(order_id: int):
    return jsonify([f.to_dict() for f in fitting_service.list_for_order(order_id)]), 200


@orders_bp.post("/<int:order_id>/fittings")
def schedule_fitting(order_id: int):
    data = request.get_json(silent=True) or {}
    try:
        appointment = fitting_service.schedule_fitting(
            order_id,
            data.get("scheduled_at"),
            notes=data.get("notes"),
        )
        return jsonify(appointment.to_dict()), 201
    except ValueError as exc:
        return error_response(exc)
