# Overview: Flask API routes for display settings and app settings.

from flask import Blueprint, jsonify, request

from ..services import settings_service, storage_service, measurement_template_service
from . import error_response, arg_bool


settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@settings_bp.get("/measurement-templates")
def list_measurement_templates():
    return jsonify(measurement_template_service.list_templates(active_only=arg_bool("active_only"))), 200


@settings_bp.get("/measurement-templates/<garment_type>")
def get_measurement_template(garment_type: str):
    try:
        template = measurement_template_service.get_template(garment_type)
    except ValueError as exc:
        return error_response(exc)
    if template is None:
        return jsonify({
            "garment_type": garment_type,
            "fields": measurement_template_service.default_fields(),
            "is_active": False,
        }), 200
    return jsonify(template.to_dict()), 200


@settings_bp.put("/measurement-templates/<garment_type>")
def upsert_measurement_template(garment_type: str):
    data = request.get_json(silent=True) or {}
    try:
        template = measurement_template_service.upsert_template(garment_type, data)
        return jsonify(template.to_dict()), 200
    except ValueError as exc:
        return error_response(exc)


@settings_bp.delete("/measurement-templates/<garment_type>")
def delete_measurement_template(garment_type: str):
    try:
        measurement_template_service.delete_template(garment_type)
        return jsonify({"deleted": True}), 200
    except ValueError as exc:
        return error_response(exc)


@settings_bp.get("/<kind>")
def list_settings(kind: str):
    try:
        return jsonify(settings_service.list_settings(kind, active_only=arg_bool("active_only"))), 200
    except ValueError as exc:
        return error_response(exc)


@settings_bp.put("/<kind>/<code>")
def upsert_setting(kind: str, code: str):
    data = request.get_json(silent=True) or {}
    try:
        row = settings_service.upsert_setting(kind, code, data)
        return jsonify(row.to_dict()), 200
    except ValueError as exc:
        return error_response(exc)


@settings_bp.delete("/<kind>/<code>")
def delete_setting(kind: str, code: str):
    try:
        settings_service.delete_setting(kind, code)
        return jsonify({"deleted": True}), 200
    except ValueError as exc:
        return error_response(exc)


@settings_bp.post("/<kind>/reorder")
def reorder_settings(kind: str):
    data = request.get_json(silent=True) or {}
    try:
        return jsonify(settings_service.reorder_settings(kind, data.get("codes"))), 200
    except ValueError as exc:
        return error_response(exc)


@settings_bp.get("/app/<key>")
def get_app_setting(key: str):
    if key == settings_service.INVOICE_TEMPLATE_KEY:
        return jsonify({"key": key, "value": settings_service.get_invoice_template()}), 200
    return jsonify({"key": key, "value": settings_service.get_app_setting(key)}), 200


@settings_bp.put("/app/<key>")
def set_app_setting(key: str):
    data = request.get_json(silent=True) or {}
    if "value" not in data:
        return jsonify({"error": "value is required"}), 400
    try:
        return jsonify(settings_service.set_app_setting(key, data["value"]).to_dict()), 200
    except ValueError as exc:
        return error_response(exc)


@settings_bp.post("/app/invoice_template/logo")
def upload_logo():
    try:
        url = storage_service.save_upload(request.files.get("file"), "logos")
        template = settings_service.get_invoice_template()
        template["logo_url"] = url
        settings_service.set_app_setting(settings_service.INVOICE_TEMPLATE_KEY, template)
        return jsonify({"logo_url": url}), 200
    except ValueError as exc:
        return error_response(exc)
