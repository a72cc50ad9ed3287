from __future__ import annotations

from sqlalchemy import or_

from ..extensions import db
from ..models import (
    Customer, Store, Order, OrderItem, PaymentHistory, FittingAppointment,
    Measurement, MeasurementVersion, Task, VIP_TIERS,
)
from ..validation import ModelValidationPolicy, validate_payload
from . import read_cache
from .concurrency import lock_for_update, run_with_retry


class CustomerError(ValueError):
    """Raised when customer operations fail."""
    pass


CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "phone", "whatsapp", "email", "address", "city", "notes",
        "vip_status", "discount_percentage", "preferred_store_id",
    },
    required_on_create={"name", "phone"},
    choices={"vip_status": VIP_TIERS},
)


def _invalidate() -> None:
    read_cache.invalidate(read_cache.CUSTOMERS, read_cache.ORDERS, read_cache.MEASUREMENTS)


def _check_patch(patch: dict) -> None:
    pct = patch.get("discount_percentage")
    if pct is not None and not (0 <= pct <= 100):
        raise CustomerError("discount_percentage must be between 0 and 100")
    store_id = patch.get("preferred_store_id")
    if store_id is not None and not db.session.query(Store.id).filter_by(id=store_id).first():
        raise CustomerError("Store not found")


def create_customer(data: dict) -> Customer:
    patch = validate_payload(model=Customer, payload=data, policy=CUSTOMER_POLICY, partial=False)

    def _op():
        _check_patch(patch)
        customer = Customer(**patch)
        db.session.add(customer)
        db.session.commit()
        return customer

    customer = run_with_retry(_op)
    _invalidate()
    return customer


def update_customer(customer_id: int, data: dict) -> Customer:
    patch = validate_payload(model=Customer, payload=data, policy=CUSTOMER_POLICY, partial=True)

    def _op():
        customer = lock_for_update(db.session.query(Customer).filter_by(id=customer_id)).first()
        if not customer:
            raise CustomerError("Customer not found")
        _check_patch(patch)
        for key, value in patch.items():
            setattr(customer, key, value)
        db.session.commit()
        return customer

    customer = run_with_retry(_op)
    _invalidate()
    return customer


def get_customer(customer_id: int) -> Customer | None:
    return db.session.query(Customer).filter_by(id=customer_id).first()


def list_customers(*, search: str | None = None, vip_status: str | None = None) -> list[dict]:
    """Newest first. search matches name, phone or email."""
    def _load():
        q = db.session.query(Customer)
        if search:
            like = f"%{search.strip()}%"
            q = q.filter(or_(
                Customer.name.ilike(like),
                Customer.phone.ilike(like),
                Customer.email.ilike(like),
            ))
        if vip_status:
            q = q.filter(Customer.vip_status == vip_status)
        return [c.to_dict() for c in q.order_by(Customer.created_at.desc(), Customer.id.desc()).all()]

    return read_cache.cached(read_cache.CUSTOMERS, ("list", search, vip_status), _load)


def delete_customer(customer_id: int, *, cascade: bool = False) -> dict:
    """
    Delete a customer.

    Without cascade the call is refused while the customer has orders.
    With cascade every dependent row goes in the same transaction:
    order items, payments, fittings, measurement versions, measurements
    and orders. Tasks on those orders are kept and detached.
    Returns per-table delete counts.
    """
    def _op():
        customer = lock_for_update(db.session.query(Customer).filter_by(id=customer_id)).first()
        if not customer:
            raise CustomerError("Customer not found")

        order_ids = [row.id for row in db.session.query(Order.id).filter(Order.customer_id == customer_id).all()]
        if order_ids and not cascade:
            raise CustomerError("Customer has orders; delete with cascade to remove them")

        counts = {
            "order_items": 0,
            "payment_history": 0,
            "fitting_appointments": 0,
            "measurement_versions": 0,
            "measurements": 0,
            "orders": 0,
        }

        if order_ids:
            measurement_ids = [
                row.id for row in db.session.query(Measurement.id).filter(Measurement.order_id.in_(order_ids)).all()
            ]

            counts["order_items"] = db.session.query(OrderItem).filter(
                OrderItem.order_id.in_(order_ids)
            ).delete(synchronize_session=False)
            counts["payment_history"] = db.session.query(PaymentHistory).filter(
                PaymentHistory.order_id.in_(order_ids)
            ).delete(synchronize_session=False)
            db.session.query(Task).filter(Task.order_id.in_(order_ids)).update(
                {Task.order_id: None}, synchronize_session=False
            )

            if measurement_ids:
                # Orders and items of other customers may still point at these rows
                db.session.query(OrderItem).filter(OrderItem.measurement_id.in_(measurement_ids)).update(
                    {OrderItem.measurement_id: None, OrderItem.measurement_version_id: None},
                    synchronize_session=False,
                )
                db.session.query(Order).filter(Order.measurement_id.in_(measurement_ids)).update(
                    {Order.measurement_id: None, Order.measurement_version_id: None},
                    synchronize_session=False,
                )
                counts["measurement_versions"] = db.session.query(MeasurementVersion).filter(
                    MeasurementVersion.measurement_id.in_(measurement_ids)
                ).delete(synchronize_session=False)
                counts["measurements"] = db.session.query(Measurement).filter(
                    Measurement.id.in_(measurement_ids)
                ).delete(synchronize_session=False)

        fitting_filter = FittingAppointment.customer_id == customer_id
        if order_ids:
            fitting_filter = or_(fitting_filter, FittingAppointment.order_id.in_(order_ids))
        counts["fitting_appointments"] = db.session.query(FittingAppointment).filter(
            fitting_filter
        ).delete(synchronize_session=False)

        if order_ids:
            counts["orders"] = db.session.query(Order).filter(
                Order.id.in_(order_ids)
            ).delete(synchronize_session=False)

        db.session.delete(customer)
        db.session.commit()
        return counts

    counts = run_with_retry(_op)
    _invalidate()
    read_cache.invalidate(read_cache.TASKS)
    return counts
