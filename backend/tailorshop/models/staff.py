from __future__ import annotations

from ..extensions import db
from tailorshop.time_utils import to_utc_z
from .stores import STATUS_ACTIVE


EMPLOYEE_ROLES = ("admin", "store_manager", "sales_associate", "tailor")


class Employee(db.Model):
    """Shop staff. Orders and tasks may be assigned to an employee."""
    __tablename__ = "employees"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    role = db.Column(db.String(32), nullable=False, default="sales_associate")
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=True, index=True)
    hourly_rate_cents = db.Column(db.Integer, nullable=True)
    status = db.Column(db.String(16), nullable=False, default=STATUS_ACTIVE, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    store = db.relationship("Store", backref=db.backref("employees", lazy=True))

    @property
    def is_active(self) -> bool:
        return self.status == STATUS_ACTIVE

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "role": self.role,
            "store_id": self.store_id,
            "hourly_rate_cents": self.hourly_rate_cents,
            "status": self.status,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class TimeEntry(db.Model):
    """
    One clock-in/clock-out shift.

    An employee has at most one open entry (clock_out is NULL) at a time.
    """
    __tablename__ = "time_entries"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=True, index=True)
    clock_in = db.Column(db.DateTime(timezone=True), nullable=False)
    clock_out = db.Column(db.DateTime(timezone=True), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    employee = db.relationship("Employee", backref=db.backref("time_entries", lazy=True))

    def to_dict(self) -> dict:
        minutes = None
        if self.clock_out is not None:
            minutes = int((self.clock_out - self.clock_in).total_seconds() // 60)
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "store_id": self.store_id,
            "clock_in": to_utc_z(self.clock_in),
            "clock_out": to_utc_z(self.clock_out),
            "worked_minutes": minutes,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }
