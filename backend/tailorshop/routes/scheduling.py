# Overview: Flask API routes for workshop tasks and fitting appointments.

from flask import Blueprint, jsonify, request

from ..services import task_service, fitting_service
from . import error_response, arg_int


tasks_bp = Blueprint("tasks", __name__, url_prefix="/api/tasks")
fittings_bp = Blueprint("fittings", __name__, url_prefix="/api/fittings")


@tasks_bp.get("")
def list_tasks():
    try:
        rows = task_service.list_tasks(
            status=request.args.get("status") or None,
            assigned_to=arg_int("assigned_to"),
            order_id=arg_int("order_id"),
        )
        return jsonify(rows), 200
    except ValueError as exc:
        return error_response(exc)


@tasks_bp.post("")
def create_task():
    data = request.get_json(silent=True) or {}
    try:
        return jsonify(task_service.create_task(data).to_dict()), 201
    except ValueError as exc:
        return error_response(exc)


@tasks_bp.put("/<int:task_id>")
def update_task(task_id: int):
    data = request.get_json(silent=True) or {}
    try:
        return jsonify(task_service.update_task(task_id, data).to_dict()), 200
    except ValueError as exc:
        return error_response(exc)


@tasks_bp.post("/<int:task_id>/status")
def update_task_status(task_id: int):
    data = request.get_json(silent=True) or {}
    try:
        return jsonify(task_service.update_task_status(task_id, data.get("status")).to_dict()), 200
    except ValueError as exc:
        return error_response(exc)


@tasks_bp.delete("/<int:task_id>")
def delete_task(task_id: int):
    try:
        task_service.delete_task(task_id)
        return jsonify({"deleted": True}), 200
    except ValueError as exc:
        return error_response(exc)


@fittings_bp.get("/upcoming")
def upcoming_fittings():
    try:
        rows = fitting_service.list_upcoming(store_id=arg_int("store_id"))
        return jsonify([f.to_dict() for f in rows]), 200
    except ValueError as exc:
        return error_response(exc)


@fittings_bp.post("/<int:appointment_id>/complete")
def complete_fitting(appointment_id: int):
    try:
        return jsonify(fitting_service.complete_fitting(appointment_id).to_dict()), 200
    except ValueError as exc:
        return error_response(exc)
