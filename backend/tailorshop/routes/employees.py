# Overview: Flask API routes for employees, CSV import and timekeeping.

from flask import Blueprint, jsonify, request, current_app

from ..services import employee_service, import_service, timekeeping_service
from . import error_response, arg_int, arg_bool


employees_bp = Blueprint("employees", __name__, url_prefix="/api/employees")


@employees_bp.get("")
def list_employees():
    try:
        rows = employee_service.list_employees(
            store_id=arg_int("store_id"),
            active_only=arg_bool("active_only"),
        )
        return jsonify(rows), 200
    except ValueError as exc:
        return error_response(exc)


@employees_bp.post("")
def create_employee():
    data = request.get_json(silent=True) or {}
    try:
        employee = employee_service.create_employee(data)
        return jsonify(employee.to_dict()), 201
    except ValueError as exc:
        return error_response(exc)


@employees_bp.get("/<int:employee_id>")
def get_employee(employee_id: int):
    employee = employee_service.get_employee(employee_id)
    if not employee:
        return jsonify({"error": "Employee not found"}), 404
    return jsonify(employee.to_dict()), 200


@employees_bp.put("/<int:employee_id>")
def update_employee(employee_id: int):
    data = request.get_json(silent=True) or {}
    try:
        employee = employee_service.update_employee(employee_id, data)
        return jsonify(employee.to_dict()), 200
    except ValueError as exc:
        return error_response(exc)


@employees_bp.post("/<int:employee_id>/deactivate")
def deactivate_employee(employee_id: int):
    try:
        return jsonify(employee_service.deactivate_employee(employee_id).to_dict()), 200
    except ValueError as exc:
        return error_response(exc)


@employees_bp.post("/<int:employee_id>/reactivate")
def reactivate_employee(employee_id: int):
    try:
        return jsonify(employee_service.reactivate_employee(employee_id).to_dict()), 200
    except ValueError as exc:
        return error_response(exc)


@employees_bp.delete("/<int:employee_id>")
def delete_employee(employee_id: int):
    try:
        employee_service.delete_employee(employee_id)
        return jsonify({"deleted": True}), 200
    except ValueError as exc:
        return error_response(exc)


@employees_bp.post("/import")
def import_employees():
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
        result = import_service.import_employees_csv(text)
        return jsonify(result), 200
    except ValueError as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Employee import failed")
        return jsonify({"error": "Internal server error"}), 500


@employees_bp.post("/<int:employee_id>/clock-in")
def clock_in(employee_id: int):
    data = request.get_json(silent=True) or {}
    try:
        entry = timekeeping_service.clock_in(
            employee_id=employee_id,
            store_id=data.get("store_id"),
            notes=data.get("notes"),
        )
        return jsonify(entry.to_dict()), 201
    except ValueError as exc:
        return error_response(exc)


@employees_bp.post("/<int:employee_id>/clock-out")
def clock_out(employee_id: int):
    data = request.get_json(silent=True) or {}
    try:
        entry = timekeeping_service.clock_out(employee_id=employee_id, notes=data.get("notes"))
        return jsonify(entry.to_dict()), 200
    except ValueError as exc:
        return error_response(exc)


@employees_bp.get("/<int:employee_id>/time-entries")
def list_time_entries(employee_id: int):
    entries = timekeeping_service.list_entries(employee_id=employee_id, open_only=arg_bool("open_only"))
    return jsonify([e.to_dict() for e in entries]), 200
