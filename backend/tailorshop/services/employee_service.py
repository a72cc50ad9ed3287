from __future__ import annotations

from ..extensions import db
from ..models import Employee, Store, Order, Task, TimeEntry, EMPLOYEE_ROLES, STATUS_ACTIVE, STATUS_INACTIVE, STATUS_DELETED
from ..validation import ModelValidationPolicy, validate_payload, enforce_money_fields
from . import read_cache
from .concurrency import lock_for_update, run_with_retry
from .lifecycle_service import ensure_record_transition


class EmployeeError(ValueError):
    """Raised when employee operations fail."""
    pass


EMPLOYEE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "email", "phone", "role", "store_id", "hourly_rate_cents"},
    required_on_create={"name", "role"},
    choices={"role": EMPLOYEE_ROLES},
)


def _invalidate() -> None:
    read_cache.invalidate(read_cache.EMPLOYEES, read_cache.ORDERS, read_cache.TASKS)


def _check_store(store_id: int | None) -> None:
    if store_id is None:
        return
    if not db.session.query(Store.id).filter_by(id=store_id).first():
        raise EmployeeError("Store not found")


def create_employee(data: dict, *, is_active: bool = True) -> Employee:
    patch = validate_payload(model=Employee, payload=data, policy=EMPLOYEE_POLICY, partial=False)
    enforce_money_fields(patch, "hourly_rate_cents")

    def _op():
        _check_store(patch.get("store_id"))
        employee = Employee(status=STATUS_ACTIVE if is_active else STATUS_INACTIVE, **patch)
        db.session.add(employee)
        db.session.commit()
        return employee

    employee = run_with_retry(_op)
    _invalidate()
    return employee


def update_employee(employee_id: int, data: dict) -> Employee:
    patch = validate_payload(model=Employee, payload=data, policy=EMPLOYEE_POLICY, partial=True)
    enforce_money_fields(patch, "hourly_rate_cents")

    def _op():
        employee = lock_for_update(db.session.query(Employee).filter_by(id=employee_id)).first()
        if not employee:
            raise EmployeeError("Employee not found")
        if "store_id" in patch:
            _check_store(patch["store_id"])
        for key, value in patch.items():
            setattr(employee, key, value)
        db.session.commit()
        return employee

    employee = run_with_retry(_op)
    _invalidate()
    return employee


def get_employee(employee_id: int) -> Employee | None:
    return db.session.query(Employee).filter_by(id=employee_id).first()


def list_employees(*, store_id: int | None = None, active_only: bool = False) -> list[dict]:
    """Active employees first, then by name."""
    def _load():
        q = db.session.query(Employee)
        if store_id is not None:
            q = q.filter(Employee.store_id == store_id)
        if active_only:
            q = q.filter(Employee.status == STATUS_ACTIVE)
        rows = q.order_by(Employee.name.asc()).all()
        rows.sort(key=lambda e: 0 if e.is_active else 1)
        return [e.to_dict() for e in rows]

    return read_cache.cached(read_cache.EMPLOYEES, ("list", store_id, active_only), _load)


def _set_status(employee_id: int, status: str) -> Employee:
    def _op():
        employee = lock_for_update(db.session.query(Employee).filter_by(id=employee_id)).first()
        if not employee:
            raise EmployeeError("Employee not found")
        ensure_record_transition(employee.status, status, label="Employee")
        employee.status = status
        db.session.commit()
        return employee

    employee = run_with_retry(_op)
    _invalidate()
    return employee


def deactivate_employee(employee_id: int) -> Employee:
    return _set_status(employee_id, STATUS_INACTIVE)


def reactivate_employee(employee_id: int) -> Employee:
    return _set_status(employee_id, STATUS_ACTIVE)


def delete_employee(employee_id: int) -> None:
    """Remove an employee row; assigned orders and tasks become unassigned."""
    def _op():
        employee = lock_for_update(db.session.query(Employee).filter_by(id=employee_id)).first()
        if not employee:
            raise EmployeeError("Employee not found")
        ensure_record_transition(employee.status, STATUS_DELETED, label="Employee")

        db.session.query(Order).filter(Order.assigned_employee_id == employee_id).update(
            {Order.assigned_employee_id: None}, synchronize_session=False
        )
        db.session.query(Task).filter(Task.assigned_to == employee_id).update(
            {Task.assigned_to: None}, synchronize_session=False
        )
        db.session.query(TimeEntry).filter(TimeEntry.employee_id == employee_id).delete(
            synchronize_session=False
        )
        db.session.delete(employee)
        db.session.commit()

    run_with_retry(_op)
    _invalidate()
