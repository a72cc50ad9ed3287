# Overview: Workshop tasks tied to orders and employees.

from __future__ import annotations

from ..extensions import db
from ..models import Task, Order, Employee, TASK_STATUSES
from ..validation import ModelValidationPolicy, validate_payload
from tailorshop.time_utils import utcnow
from . import read_cache
from .concurrency import lock_for_update, run_with_retry


class TaskError(ValueError):
    """Raised when task operations fail."""
    pass


TASK_POLICY = ModelValidationPolicy(
    writable_fields={"title", "description", "order_id", "assigned_to", "priority", "due_date"},
    required_on_create={"title"},
)


def _check_refs(patch: dict) -> None:
    if patch.get("order_id") is not None and not db.session.query(Order.id).filter_by(id=patch["order_id"]).first():
        raise TaskError("Order not found")
    if patch.get("assigned_to") is not None and not db.session.query(Employee.id).filter_by(id=patch["assigned_to"]).first():
        raise TaskError("Employee not found")


def _apply_status(task: Task, status: str) -> None:
    if status not in TASK_STATUSES:
        raise TaskError(f"Invalid task status '{status}'. Must be one of: {', '.join(TASK_STATUSES)}")
    task.status = status
    task.completed_at = utcnow() if status == "completed" else None


def create_task(data: dict) -> Task:
    data = dict(data or {})
    status = data.pop("status", None) or "pending"
    patch = validate_payload(model=Task, payload=data, policy=TASK_POLICY, partial=False)

    def _op():
        _check_refs(patch)
        task = Task(**patch)
        _apply_status(task, status)
        db.session.add(task)
        db.session.commit()
        return task

    task = run_with_retry(_op)
    read_cache.invalidate(read_cache.TASKS)
    return task


def update_task(task_id: int, data: dict) -> Task:
    data = dict(data or {})
    status = data.pop("status", None)
    patch = validate_payload(model=Task, payload=data, policy=TASK_POLICY, partial=True)

    def _op():
        task = lock_for_update(db.session.query(Task).filter_by(id=task_id)).first()
        if not task:
            raise TaskError("Task not found")
        _check_refs(patch)
        for key, value in patch.items():
            setattr(task, key, value)
        if status is not None and status != task.status:
            _apply_status(task, status)
        db.session.commit()
        return task

    task = run_with_retry(_op)
    read_cache.invalidate(read_cache.TASKS)
    return task


def update_task_status(task_id: int, status: str) -> Task:
    """Set the status; completed stamps completed_at, anything else clears it."""
    def _op():
        task = lock_for_update(db.session.query(Task).filter_by(id=task_id)).first()
        if not task:
            raise TaskError("Task not found")
        _apply_status(task, status)
        db.session.commit()
        return task

    task = run_with_retry(_op)
    read_cache.invalidate(read_cache.TASKS)
    return task


def get_task(task_id: int) -> Task | None:
    return db.session.query(Task).filter_by(id=task_id).first()


def list_tasks(*, status: str | None = None, assigned_to: int | None = None, order_id: int | None = None) -> list[dict]:
    if status is not None and status not in TASK_STATUSES:
        raise TaskError(f"Invalid task status '{status}'")

    def _load():
        q = db.session.query(Task)
        if status is not None:
            q = q.filter(Task.status == status)
        if assigned_to is not None:
            q = q.filter(Task.assigned_to == assigned_to)
        if order_id is not None:
            q = q.filter(Task.order_id == order_id)
        rows = q.order_by(Task.priority.desc(), Task.due_date.asc(), Task.id.asc()).all()
        return [t.to_dict() for t in rows]

    return read_cache.cached(read_cache.TASKS, ("list", status, assigned_to, order_id), _load)


def delete_task(task_id: int) -> None:
    def _op():
        task = db.session.query(Task).filter_by(id=task_id).first()
        if not task:
            raise TaskError("Task not found")
        db.session.delete(task)
        db.session.commit()

    run_with_retry(_op)
    read_cache.invalidate(read_cache.TASKS)
