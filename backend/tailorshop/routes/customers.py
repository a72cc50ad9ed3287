# Overview: Flask API routes for customers; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request, current_app

from ..services import customer_service
from . import error_response, arg_bool


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
def list_customers():
    rows = customer_service.list_customers(
        search=request.args.get("search"),
        vip_status=request.args.get("vip_status"),
    )
    return jsonify(rows), 200


@customers_bp.post("")
def create_customer():
    data = request.get_json(silent=True) or {}
    try:
        customer = customer_service.create_customer(data)
        return jsonify(customer.to_dict()), 201
    except ValueError as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to create customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.get("/<int:customer_id>")
def get_customer(customer_id: int):
    customer = customer_service.get_customer(customer_id)
    if not customer:
        return jsonify({"error": "Customer not found"}), 404
    return jsonify(customer.to_dict()), 200


@customers_bp.put("/<int:customer_id>")
def update_customer(customer_id: int):
    data = request.get_json(silent=True) or {}
    try:
        customer = customer_service.update_customer(customer_id, data)
        return jsonify(customer.to_dict()), 200
    except ValueError as exc:
        return error_response(exc)


@customers_bp.delete("/<int:customer_id>")
def delete_customer(customer_id: int):
    """?cascade=true also removes the customer's orders and everything under them."""
    try:
        counts = customer_service.delete_customer(customer_id, cascade=arg_bool("cascade"))
        return jsonify({"deleted": True, "counts": counts}), 200
    except ValueError as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to delete customer %s", customer_id)
        return jsonify({"error": "Internal server error"}), 500
