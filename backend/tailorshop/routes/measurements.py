# Overview: Flask API routes for measurements, their versions and material images.

from flask import Blueprint, jsonify, request, current_app

from ..services import measurement_service, storage_service
from . import error_response, arg_int


measurements_bp = Blueprint("measurements", __name__, url_prefix="/api/measurements")


@measurements_bp.get("")
def list_measurements():
    try:
        rows = measurement_service.list_measurements(
            order_id=arg_int("order_id"),
            customer_id=arg_int("customer_id"),
        )
        return jsonify(rows), 200
    except ValueError as exc:
        return error_response(exc)


@measurements_bp.post("")
def create_measurement():
    data = request.get_json(silent=True) or {}
    try:
        measurement = measurement_service.create_measurement(data)
        return jsonify(measurement.to_dict()), 201
    except ValueError as exc:
        return error_response(exc)


@measurements_bp.get("/<int:measurement_id>")
def get_measurement(measurement_id: int):
    measurement = measurement_service.get_measurement(measurement_id)
    if not measurement:
        return jsonify({"error": "Measurement not found"}), 404
    return jsonify(measurement.to_dict()), 200


@measurements_bp.put("/<int:measurement_id>")
def update_measurement(measurement_id: int):
    """Body: measurement fields, plus optional change_reason and changed_by."""
    data = dict(request.get_json(silent=True) or {})
    change_reason = data.pop("change_reason", None)
    changed_by = data.pop("changed_by", None)
    try:
        measurement, version = measurement_service.update_measurement(
            measurement_id,
            data,
            change_reason=change_reason,
            changed_by=changed_by,
        )
        return jsonify({
            "measurement": measurement.to_dict(),
            "version": version.to_dict() if version else None,
        }), 200
    except ValueError as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to update measurement %s", measurement_id)
        return jsonify({"error": "Internal server error"}), 500


@measurements_bp.delete("/<int:measurement_id>")
def delete_measurement(measurement_id: int):
    try:
        measurement_service.delete_measurement(measurement_id)
        return jsonify({"deleted": True}), 200
    except ValueError as exc:
        return error_response(exc)


@measurements_bp.get("/<int:measurement_id>/versions")
def list_versions(measurement_id: int):
    try:
        versions = measurement_service.list_versions(measurement_id)
        return jsonify([v.to_dict() for v in versions]), 200
    except ValueError as exc:
        return error_response(exc)


@measurements_bp.get("/versions/<int:version_id>")
def get_version(version_id: int):
    version = measurement_service.get_version(version_id)
    if not version:
        return jsonify({"error": "Measurement version not found"}), 404
    return jsonify(version.to_dict()), 200


@measurements_bp.post("/<int:measurement_id>/images")
def upload_images(measurement_id: int):
    """Multipart upload; every file under the "images" field is stored."""
    files = [f for f in request.files.getlist("images") if f and f.filename]
    if not files:
        return jsonify({"error": "images are required"}), 400
    if not measurement_service.get_measurement(measurement_id):
        return jsonify({"error": "Measurement not found"}), 404
    try:
        urls = [storage_service.save_upload(f, "materials") for f in files]
        measurement = measurement_service.add_material_images(measurement_id, urls)
        return jsonify(measurement.to_dict()), 200
    except ValueError as exc:
        return error_response(exc)
