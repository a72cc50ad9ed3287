# Overview: Employee clock-in/clock-out shifts.

"""
Timekeeping Service

An employee opens a shift by clocking in and closes it by clocking out.
At most one shift per employee is open at a time.
"""

from ..extensions import db
from ..models import TimeEntry, Employee, Store
from tailorshop.time_utils import utcnow


class TimekeepingError(ValueError):
    """Raised for invalid timekeeping operations."""
    pass


def _get_open_entry(employee_id: int) -> TimeEntry | None:
    return db.session.query(TimeEntry).filter_by(employee_id=employee_id, clock_out=None).first()


def clock_in(*, employee_id: int, store_id: int | None = None, notes: str | None = None) -> TimeEntry:
    employee = db.session.query(Employee).filter_by(id=employee_id).first()
    if not employee:
        raise TimekeepingError("Employee not found")
    if not employee.is_active:
        raise TimekeepingError("Inactive employees cannot clock in")
    if _get_open_entry(employee_id):
        raise TimekeepingError("Employee is already clocked in")

    store_id = store_id if store_id is not None else employee.store_id
    if store_id is not None and not db.session.query(Store.id).filter_by(id=store_id).first():
        raise TimekeepingError("Store not found")

    entry = TimeEntry(
        employee_id=employee_id,
        store_id=store_id,
        clock_in=utcnow(),
        notes=notes,
    )
    db.session.add(entry)
    db.session.commit()
    return entry


def clock_out(*, employee_id: int, notes: str | None = None) -> TimeEntry:
    entry = _get_open_entry(employee_id)
    if not entry:
        raise TimekeepingError("Employee is not clocked in")

    entry.clock_out = utcnow()
    if notes:
        entry.notes = f"{entry.notes}\n{notes}" if entry.notes else notes
    db.session.commit()
    return entry


def list_entries(*, employee_id: int | None = None, store_id: int | None = None, open_only: bool = False) -> list[TimeEntry]:
    q = db.session.query(TimeEntry)
    if employee_id is not None:
        q = q.filter(TimeEntry.employee_id == employee_id)
    if store_id is not None:
        q = q.filter(TimeEntry.store_id == store_id)
    if open_only:
        q = q.filter(TimeEntry.clock_out.is_(None))
    return q.order_by(TimeEntry.clock_in.desc(), TimeEntry.id.desc()).all()
