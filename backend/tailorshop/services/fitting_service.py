# Overview: Trial-fitting appointments for orders.

from __future__ import annotations

from datetime import datetime, timezone

from ..extensions import db
from ..models import FittingAppointment, Order
from tailorshop.time_utils import parse_iso_datetime, utcnow
from .concurrency import run_with_retry


class FittingError(ValueError):
    """Raised when fitting operations fail."""
    pass


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _parse_when(value) -> datetime:
    if isinstance(value, datetime):
        return _naive_utc(value)
    try:
        when = parse_iso_datetime(value) if isinstance(value, str) else None
    except ValueError:
        when = None
    if when is None:
        raise FittingError("scheduled_at must be an ISO-8601 datetime")
    return when


def schedule_fitting(order_id: int, scheduled_at, *, notes: str | None = None) -> FittingAppointment:
    """Book a fitting; the customer and store come from the order."""
    when = _parse_when(scheduled_at)

    def _op():
        order = db.session.query(Order).filter_by(id=order_id).first()
        if not order:
            raise FittingError("Order not found")
        if order.status == "cancelled":
            raise FittingError("Cannot schedule a fitting for a cancelled order")
        appointment = FittingAppointment(
            order_id=order.id,
            customer_id=order.customer_id,
            store_id=order.store_id,
            scheduled_at=when,
            notes=notes,
        )
        db.session.add(appointment)
        db.session.commit()
        return appointment

    return run_with_retry(_op)


def list_for_order(order_id: int) -> list[FittingAppointment]:
    return (
        db.session.query(FittingAppointment)
        .filter(FittingAppointment.order_id == order_id)
        .order_by(FittingAppointment.scheduled_at.asc())
        .all()
    )


def list_upcoming(*, store_id: int | None = None, now: datetime | None = None) -> list[FittingAppointment]:
    now = _naive_utc(now) if now is not None else utcnow()
    q = db.session.query(FittingAppointment).filter(
        FittingAppointment.is_completed.is_(False),
        FittingAppointment.scheduled_at >= now,
    )
    if store_id is not None:
        q = q.filter(FittingAppointment.store_id == store_id)
    return q.order_by(FittingAppointment.scheduled_at.asc()).all()


def complete_fitting(appointment_id: int) -> FittingAppointment:
    def _op():
        appointment = db.session.query(FittingAppointment).filter_by(id=appointment_id).first()
        if not appointment:
            raise FittingError("Fitting appointment not found")
        appointment.is_completed = True
        db.session.commit()
        return appointment

    return run_with_retry(_op)
