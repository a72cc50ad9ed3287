# Overview: Flask API routes for inventory; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request

from ..services import inventory_service
from . import error_response, arg_int, arg_bool


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.get("")
def list_items():
    try:
        rows = inventory_service.list_items(
            store_id=arg_int("store_id"),
            category=request.args.get("category"),
            include_inactive=arg_bool("include_inactive"),
        )
        return jsonify(rows), 200
    except ValueError as exc:
        return error_response(exc)


@inventory_bp.get("/low-stock")
def low_stock():
    try:
        return jsonify(inventory_service.list_low_stock(store_id=arg_int("store_id"))), 200
    except ValueError as exc:
        return error_response(exc)


@inventory_bp.post("")
def create_item():
    data = request.get_json(silent=True) or {}
    try:
        item = inventory_service.create_item(data)
        return jsonify(item.to_dict()), 201
    except ValueError as exc:
        return error_response(exc)


@inventory_bp.get("/<int:item_id>")
def get_item(item_id: int):
    item = inventory_service.get_item(item_id)
    if not item:
        return jsonify({"error": "Inventory item not found"}), 404
    return jsonify(item.to_dict()), 200


@inventory_bp.put("/<int:item_id>")
def update_item(item_id: int):
    data = request.get_json(silent=True) or {}
    try:
        item = inventory_service.update_item(item_id, data)
        return jsonify(item.to_dict()), 200
    except ValueError as exc:
        return error_response(exc)


@inventory_bp.post("/<int:item_id>/deactivate")
def deactivate_item(item_id: int):
    try:
        return jsonify(inventory_service.deactivate_item(item_id).to_dict()), 200
    except ValueError as exc:
        return error_response(exc)


@inventory_bp.post("/<int:item_id>/reactivate")
def reactivate_item(item_id: int):
    try:
        return jsonify(inventory_service.reactivate_item(item_id).to_dict()), 200
    except ValueError as exc:
        return error_response(exc)


@inventory_bp.delete("/<int:item_id>")
def delete_item(item_id: int):
    try:
        inventory_service.delete_item(item_id)
        return jsonify({"deleted": True}), 200
    except ValueError as exc:
        return error_response(exc)
