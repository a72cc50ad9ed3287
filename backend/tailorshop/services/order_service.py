# Overview: Orders, their line items, status changes and invoices.

"""
Order rules

TOTALS (all integer cents):
    subtotal = sum(item.unit_price_cents * item.quantity)
    discount = order.discount_cents, capped at subtotal. When an order is
               created without one, it is taken from the customer's
               discount_percentage (rounded down).
    tax      = (subtotal - discount) * ORDER_TAX_RATE_BPS // 10000
    total    = subtotal - discount + tax

    Every item change recomputes the totals and the cached balance in the
    same transaction.

    A line linked to inventory or a catalog service copies its name and
    price unless the request gives them. Inactive services are refused.

STATUS:
    See lifecycle_service. Orders outside draft need at least one item.
    Status notifications are sent after the status change has committed.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import (
    Order, OrderItem, Customer, Store, Employee, InventoryItem,
    Measurement, MeasurementVersion, Service,
)
from ..validation import ModelValidationPolicy, validate_payload, enforce_money_fields
from . import read_cache, notification_service, settings_service
from .concurrency import lock_for_update, run_with_retry
from .ledger_service import compute_balance
from .lifecycle_service import (
    ORDER_TERMINAL_STATUSES,
    ensure_order_transition,
    validate_initial_order_status,
    validate_order_status,
)
from .payment_service import apply_balance


class OrderError(ValueError):
    """Raised when order operations fail."""
    pass


ORDER_POLICY = ModelValidationPolicy(
    writable_fields={
        "customer_id", "store_id", "assigned_employee_id", "due_date", "notes",
        "discount_cents", "measurement_id", "measurement_version_id",
    },
    required_on_create={"customer_id", "store_id", "due_date"},
)

ITEM_POLICY = ModelValidationPolicy(
    writable_fields={
        "description", "unit_price_cents", "quantity", "inventory_id", "service_id",
        "measurement_id", "measurement_version_id", "is_custom_work",
    },
)


def _invalidate() -> None:
    read_cache.invalidate(read_cache.ORDERS, read_cache.MEASUREMENTS)


def format_order_number(order_id: int) -> str:
    return f"ORD-{order_id:06d}"


def _load_locked(order_id: int) -> Order:
    order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
    if not order:
        raise OrderError("Order not found")
    return order


def _ensure_editable(order: Order) -> None:
    if order.status in ORDER_TERMINAL_STATUSES:
        raise OrderError(f"Order is {order.status} and can no longer be changed")


def _check_references(patch: dict) -> None:
    checks = (
        ("customer_id", Customer, "Customer not found"),
        ("store_id", Store, "Store not found"),
        ("assigned_employee_id", Employee, "Employee not found"),
        ("measurement_id", Measurement, "Measurement not found"),
    )
    for key, model, message in checks:
        value = patch.get(key)
        if value is not None and not db.session.query(model.id).filter_by(id=value).first():
            raise OrderError(message)
    _check_version_pin(patch.get("measurement_id"), patch.get("measurement_version_id"))


def _check_version_pin(measurement_id: int | None, version_id: int | None) -> None:
    if version_id is None:
        return
    version = db.session.query(MeasurementVersion).filter_by(id=version_id).first()
    if not version:
        raise OrderError("Measurement version not found")
    if measurement_id is None or version.measurement_id != measurement_id:
        raise OrderError("Measurement version does not belong to the measurement")


def _build_item(order: Order, data: dict) -> OrderItem:
    patch = validate_payload(model=OrderItem, payload=data, policy=ITEM_POLICY, partial=True)
    enforce_money_fields(patch, "unit_price_cents")
    quantity = patch.get("quantity", 1)
    if quantity is None or quantity < 1:
        raise OrderError("quantity must be at least 1")
    patch["quantity"] = quantity

    inventory_id = patch.get("inventory_id")
    if inventory_id is not None:
        stock = db.session.query(InventoryItem).filter_by(id=inventory_id).first()
        if not stock:
            raise OrderError("Inventory item not found")
        patch.setdefault("description", stock.name)
        if patch.get("unit_price_cents") is None:
            patch["unit_price_cents"] = stock.price_cents

    service_id = patch.get("service_id")
    if service_id is not None:
        service = db.session.query(Service).filter_by(id=service_id).first()
        if not service:
            raise OrderError("Service not found")
        if not service.active:
            raise OrderError("Service is inactive")
        patch.setdefault("description", service.name)
        if patch.get("unit_price_cents") is None:
            patch["unit_price_cents"] = service.price_cents

    if not patch.get("description"):
        raise OrderError("description is required")
    if patch.get("unit_price_cents") is None:
        raise OrderError("unit_price_cents is required")

    measurement_id = patch.get("measurement_id")
    if measurement_id is not None and not db.session.query(Measurement.id).filter_by(id=measurement_id).first():
        raise OrderError("Measurement not found")
    _check_version_pin(measurement_id, patch.get("measurement_version_id"))

    item = OrderItem(order_id=order.id, **patch)
    item.total_price_cents = item.unit_price_cents * item.quantity
    return item


def _items(order_id: int) -> list[OrderItem]:
    return db.session.query(OrderItem).filter_by(order_id=order_id).order_by(OrderItem.id.asc()).all()


def compute_totals(subtotal_cents: int, discount_cents: int, tax_rate_bps: int) -> dict:
    discount = max(0, min(discount_cents or 0, subtotal_cents))
    taxable = subtotal_cents - discount
    tax = taxable * max(0, tax_rate_bps) // 10000
    return {
        "subtotal_cents": subtotal_cents,
        "discount_cents": discount,
        "tax_cents": tax,
        "total_cents": taxable + tax,
    }


def _recompute(order: Order) -> None:
    """Refresh totals from the items, then the cached balance. Flushes only."""
    db.session.flush()
    subtotal = sum(i.total_price_cents for i in _items(order.id))
    totals = compute_totals(subtotal, order.discount_cents, current_app.config.get("ORDER_TAX_RATE_BPS", 0))
    for key, value in totals.items():
        setattr(order, key, value)
    apply_balance(order)


def create_order(data: dict) -> Order:
    """
    Create an order with optional "items" and initial "status" (draft or pending).

    The order number is derived from the new id inside the same transaction.
    """
    data = dict(data or {})
    items_data = data.pop("items", None) or []
    status = data.pop("status", None) or "pending"
    if not isinstance(items_data, list):
        raise OrderError("items must be a list")
    validate_initial_order_status(status)

    patch = validate_payload(model=Order, payload=data, policy=ORDER_POLICY, partial=False)
    enforce_money_fields(patch, "discount_cents")
    if status != "draft" and not items_data:
        raise OrderError("An order needs at least one item unless it is a draft")

    def _op():
        _check_references(patch)
        customer = db.session.query(Customer).filter_by(id=patch["customer_id"]).first()
        if "discount_cents" not in patch:
            patch["discount_cents"] = 0

        order = Order(status=status, **patch)
        db.session.add(order)
        db.session.flush()
        order.order_number = format_order_number(order.id)

        items = [_build_item(order, item) for item in items_data]
        db.session.add_all(items)
        db.session.flush()

        if "discount_cents" not in data and customer.discount_percentage:
            subtotal = sum(i.total_price_cents for i in items)
            order.discount_cents = int(subtotal * customer.discount_percentage // 100)

        _recompute(order)
        db.session.commit()
        return order

    order = run_with_retry(_op)
    _invalidate()
    if items_data:
        notification_service.notify_order_created(order.id)
    return order


def update_order(order_id: int, data: dict) -> Order:
    """Partial update of order fields. Status has its own operation."""
    if data and "status" in data:
        raise OrderError("Use the status endpoint to change order status")
    patch = validate_payload(model=Order, payload=data, policy=ORDER_POLICY, partial=True)
    enforce_money_fields(patch, "discount_cents")

    def _op():
        order = _load_locked(order_id)
        _ensure_editable(order)
        pin = {
            "measurement_id": patch.get("measurement_id", order.measurement_id),
            "measurement_version_id": patch.get("measurement_version_id", order.measurement_version_id),
        }
        _check_references({**patch, **pin})
        for key, value in patch.items():
            setattr(order, key, value)
        if "discount_cents" in patch:
            if order.discount_cents is None:
                order.discount_cents = 0
            _recompute(order)
        db.session.commit()
        return order

    order = run_with_retry(_op)
    _invalidate()
    return order


def update_order_status(order_id: int, new_status: str) -> Order:
    """
    Move an order to new_status.

    The matching customer message (in_production, ready_for_pickup,
    completed) goes out only after commit and only when the status
    actually changed.
    """
    validate_order_status(new_status)

    def _op():
        order = _load_locked(order_id)
        old_status = order.status
        ensure_order_transition(old_status, new_status)
        if old_status == new_status:
            return order, old_status
        if new_status != "draft" and new_status != "cancelled" and not _items(order.id):
            raise OrderError("An order needs at least one item before leaving draft")
        order.status = new_status
        db.session.commit()
        return order, old_status

    order, old_status = run_with_retry(_op)
    if old_status != new_status:
        _invalidate()
        notification_service.notify_status_change(order.id, old_status, new_status)
    return order


def cancel_order(order_id: int) -> Order:
    return update_order_status(order_id, "cancelled")


def mark_settled(order_id: int) -> Order:
    """Flag a cancelled order as settled once refunds are done."""
    def _op():
        order = _load_locked(order_id)
        if order.status != "cancelled":
            raise OrderError("Only cancelled orders can be marked as settled")
        order.is_settled = True
        db.session.commit()
        return order

    order = run_with_retry(_op)
    _invalidate()
    return order


def get_order(order_id: int) -> Order | None:
    return db.session.query(Order).filter_by(id=order_id).first()


def list_orders(
    *,
    status: str | None = None,
    customer_id: int | None = None,
    store_id: int | None = None,
) -> list[dict]:
    """Newest first, with customer, store and assignee names joined in."""
    if status is not None:
        validate_order_status(status)

    def _load():
        q = (
            db.session.query(
                Order,
                Customer.name,
                Customer.phone,
                Customer.vip_status,
                Store.name,
                Employee.name,
            )
            .join(Customer, Order.customer_id == Customer.id)
            .outerjoin(Store, Order.store_id == Store.id)
            .outerjoin(Employee, Order.assigned_employee_id == Employee.id)
        )
        if status is not None:
            q = q.filter(Order.status == status)
        if customer_id is not None:
            q = q.filter(Order.customer_id == customer_id)
        if store_id is not None:
            q = q.filter(Order.store_id == store_id)

        out = []
        for order, c_name, c_phone, c_vip, s_name, e_name in q.order_by(Order.created_at.desc(), Order.id.desc()).all():
            d = order.to_dict()
            d.update({
                "customer_name": c_name,
                "customer_phone": c_phone,
                "customer_vip_status": c_vip,
                "store_name": s_name,
                "assigned_employee_name": e_name,
            })
            out.append(d)
        return out

    return read_cache.cached(read_cache.ORDERS, ("list", status, customer_id, store_id), _load)


def get_order_detail(order_id: int) -> dict | None:
    order = get_order(order_id)
    if not order:
        return None
    d = order.to_dict()
    d["items"] = [i.to_dict() for i in _items(order.id)]
    d["payments"] = [p.to_dict() for p in order.payments]
    d["balance"] = compute_balance(order.total_cents, order.payments).to_dict()
    return d


# --- Items ---

def add_item(order_id: int, data: dict) -> OrderItem:
    def _op():
        order = _load_locked(order_id)
        _ensure_editable(order)
        item = _build_item(order, data or {})
        db.session.add(item)
        _recompute(order)
        db.session.commit()
        return item

    item = run_with_retry(_op)
    _invalidate()
    return item


def _load_item(order: Order, item_id: int) -> OrderItem:
    item = db.session.query(OrderItem).filter_by(id=item_id, order_id=order.id).first()
    if not item:
        raise OrderError("Order item not found")
    return item


def remove_item(order_id: int, item_id: int) -> None:
    def _op():
        order = _load_locked(order_id)
        _ensure_editable(order)
        item = _load_item(order, item_id)
        if order.status != "draft" and len(_items(order.id)) == 1:
            raise OrderError("Cannot remove the last item of an order outside draft")
        db.session.delete(item)
        _recompute(order)
        db.session.commit()

    run_with_retry(_op)
    _invalidate()


def update_item_quantity(order_id: int, item_id: int, quantity: int) -> OrderItem:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise OrderError("quantity must be an integer of at least 1")

    def _op():
        order = _load_locked(order_id)
        _ensure_editable(order)
        item = _load_item(order, item_id)
        item.quantity = quantity
        item.total_price_cents = item.unit_price_cents * quantity
        _recompute(order)
        db.session.commit()
        return item

    item = run_with_retry(_op)
    _invalidate()
    return item


def pin_measurement_version(item_id: int, version_id: int | None, *, order_id: int | None = None) -> OrderItem:
    """
    Point an item at a stored measurement snapshot (None clears the pin).

    The version must belong to the item's measurement; an item without a
    measurement adopts the version's measurement.
    """
    def _op():
        q = db.session.query(OrderItem).filter_by(id=item_id)
        if order_id is not None:
            q = q.filter_by(order_id=order_id)
        item = lock_for_update(q).first()
        if not item:
            raise OrderError("Order item not found")
        if item.order.status in ORDER_TERMINAL_STATUSES:
            raise OrderError(f"Order is {item.order.status} and can no longer be changed")
        if version_id is None:
            item.measurement_version_id = None
        else:
            version = db.session.query(MeasurementVersion).filter_by(id=version_id).first()
            if not version:
                raise OrderError("Measurement version not found")
            if item.measurement_id is None:
                item.measurement_id = version.measurement_id
            elif item.measurement_id != version.measurement_id:
                raise OrderError("Measurement version does not belong to the item's measurement")
            item.measurement_version_id = version.id
        db.session.commit()
        return item

    item = run_with_retry(_op)
    _invalidate()
    return item


def build_invoice(order_id: int) -> dict:
    """Everything needed to render an invoice, as plain data."""
    order = get_order(order_id)
    if not order:
        raise OrderError("Order not found")
    payments = list(order.payments)
    return {
        "order": order.to_dict(),
        "customer": order.customer.to_dict() if order.customer else None,
        "store": order.store.to_dict() if order.store else None,
        "assigned_employee": order.assigned_employee.name if order.assigned_employee else None,
        "items": [i.to_dict() for i in _items(order.id)],
        "payments": [p.to_dict() for p in payments],
        "balance": compute_balance(order.total_cents, payments).to_dict(),
        "template": settings_service.get_invoice_template(),
    }
