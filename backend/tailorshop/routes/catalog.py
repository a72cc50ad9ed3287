# Overview: Flask API routes for the service catalog, its CSV import and categories.

from flask import Blueprint, jsonify, request, current_app

from ..services import catalog_service, category_service, import_service
from . import error_response, arg_int, arg_bool


services_bp = Blueprint("services", __name__, url_prefix="/api/services")
categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")


@services_bp.get("")
def list_services():
    try:
        rows = catalog_service.list_services(
            active_only=arg_bool("active_only"),
            category_id=arg_int("category_id"),
        )
        return jsonify(rows), 200
    except ValueError as exc:
        return error_response(exc)


@services_bp.post("")
def create_service():
    data = request.get_json(silent=True) or {}
    try:
        return jsonify(catalog_service.create_service(data).to_dict()), 201
    except ValueError as exc:
        return error_response(exc)


@services_bp.get("/<int:service_id>")
def get_service(service_id: int):
    service = catalog_service.get_service(service_id)
    if not service:
        return jsonify({"error": "Service not found"}), 404
    return jsonify(service.to_dict()), 200


@services_bp.put("/<int:service_id>")
def update_service(service_id: int):
    data = request.get_json(silent=True) or {}
    try:
        return jsonify(catalog_service.update_service(service_id, data).to_dict()), 200
    except ValueError as exc:
        return error_response(exc)


@services_bp.post("/<int:service_id>/deactivate")
def deactivate_service(service_id: int):
    try:
        return jsonify(catalog_service.set_active(service_id, False).to_dict()), 200
    except ValueError as exc:
        return error_response(exc)


@services_bp.post("/<int:service_id>/reactivate")
def reactivate_service(service_id: int):
    try:
        return jsonify(catalog_service.set_active(service_id, True).to_dict()), 200
    except ValueError as exc:
        return error_response(exc)


@services_bp.delete("/<int:service_id>")
def delete_service(service_id: int):
    try:
        catalog_service.delete_service(service_id)
        return jsonify({"deleted": True}), 200
    except ValueError as exc:
        return error_response(exc)


@services_bp.post("/import")
def import_services():
    """Accepts a multipart "file" upload or a raw text/csv body."""
    if "file" in request.files:
        raw = request.files["file"].stream.read()
    else:
        raw = request.get_data()
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError:
        return jsonify({"error": "File must be UTF-8 encoded CSV"}), 400

    try:
        return jsonify(import_service.import_services_csv(text)), 200
    except ValueError as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Service import failed")
        return jsonify({"error": "Internal server error"}), 500


@categories_bp.get("")
def list_categories():
    return jsonify(category_service.list_categories()), 200


@categories_bp.post("")
def create_category():
    data = request.get_json(silent=True) or {}
    try:
        return jsonify(category_service.create_category(data).to_dict()), 201
    except ValueError as exc:
        return error_response(exc)


@categories_bp.put("/<int:category_id>")
def update_category(category_id: int):
    data = request.get_json(silent=True) or {}
    try:
        return jsonify(category_service.update_category(category_id, data).to_dict()), 200
    except ValueError as exc:
        return error_response(exc)


@categories_bp.delete("/<int:category_id>")
def delete_category(category_id: int):
    try:
        category_service.delete_category(category_id)
        return jsonify({"deleted": True}), 200
    except ValueError as exc:
        return error_response(exc)
