# Overview: Flask API routes for stores operations; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request

from ..services import store_service
from . import error_response, arg_bool


stores_bp = Blueprint("stores", __name__, url_prefix="/api/stores")


@stores_bp.get("")
def list_stores():
    return jsonify(store_service.list_stores(include_inactive=arg_bool("include_inactive"))), 200


@stores_bp.post("")
def create_store():
    data = request.get_json(silent=True) or {}
    try:
        store = store_service.create_store(data)
        return jsonify(store.to_dict()), 201
    except ValueError as exc:
        return error_response(exc)


@stores_bp.get("/<int:store_id>")
def get_store(store_id: int):
    store = store_service.get_store(store_id)
    if not store:
        return jsonify({"error": "Store not found"}), 404
    return jsonify(store.to_dict()), 200


@stores_bp.put("/<int:store_id>")
def update_store(store_id: int):
    data = request.get_json(silent=True) or {}
    try:
        store = store_service.update_store(store_id, data)
        return jsonify(store.to_dict()), 200
    except ValueError as exc:
        return error_response(exc)


@stores_bp.post("/<int:store_id>/deactivate")
def deactivate_store(store_id: int):
    try:
        return jsonify(store_service.deactivate_store(store_id).to_dict()), 200
    except ValueError as exc:
        return error_response(exc)


@stores_bp.post("/<int:store_id>/reactivate")
def reactivate_store(store_id: int):
    try:
        return jsonify(store_service.reactivate_store(store_id).to_dict()), 200
    except ValueError as exc:
        return error_response(exc)


@stores_bp.delete("/<int:store_id>")
def delete_store(store_id: int):
    try:
        store_service.delete_store(store_id)
        return jsonify({"deleted": True}), 200
    except ValueError as exc:
        return error_response(exc)
