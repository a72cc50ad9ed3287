from __future__ import annotations

from ..extensions import db
from tailorshop.time_utils import to_utc_z, to_iso_date


ORDER_STATUSES = (
    "draft",
    "pending",
    "deposit_paid",
    "materials_ordered",
    "in_production",
    "ready_for_fitting",
    "ready_for_pickup",
    "completed",
    "cancelled",
)

PAYMENT_TYPE_PAYMENT = "payment"
PAYMENT_TYPE_REFUND = "refund"


class Order(db.Model):
    """
    A customer order.

    deposit_cents and remaining_balance_cents are a cache of the payment
    ledger. They are rewritten in the same transaction as every ledger
    insert and every change of total_cents.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.UniqueConstraint("order_number", name="uq_orders_order_number"),
        db.Index("ix_orders_status", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    # Assigned right after the insert flush, inside the same transaction
    order_number = db.Column(db.String(32), nullable=True)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=True, index=True)
    assigned_employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=True, index=True)

    status = db.Column(db.String(32), nullable=False, default="pending")

    subtotal_cents = db.Column(db.Integer, nullable=False, default=0)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False, default=0)
    deposit_cents = db.Column(db.Integer, nullable=False, default=0)
    remaining_balance_cents = db.Column(db.Integer, nullable=False, default=0)
    is_settled = db.Column(db.Boolean, nullable=False, default=False)

    due_date = db.Column(db.Date, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    # Plain columns: measurements already reference orders, a FK here would form a cycle
    measurement_id = db.Column(db.Integer, nullable=True)
    measurement_version_id = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    customer = db.relationship("Customer", backref=db.backref("orders", lazy=True))
    store = db.relationship("Store", backref=db.backref("orders", lazy=True))
    assigned_employee = db.relationship("Employee", backref=db.backref("assigned_orders", lazy=True))
    items = db.relationship("OrderItem", backref="order", lazy=True, order_by="OrderItem.id")
    payments = db.relationship("PaymentHistory", backref="order", lazy=True, order_by="PaymentHistory.id")

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Order id={self.id} number={self.order_number!r} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_number": self.order_number,
            "customer_id": self.customer_id,
            "store_id": self.store_id,
            "assigned_employee_id": self.assigned_employee_id,
            "status": self.status,
            "subtotal_cents": self.subtotal_cents,
            "tax_cents": self.tax_cents,
            "discount_cents": self.discount_cents,
            "total_cents": self.total_cents,
            "deposit_cents": self.deposit_cents,
            "remaining_balance_cents": self.remaining_balance_cents,
            "is_settled": self.is_settled,
            "due_date": to_iso_date(self.due_date),
            "notes": self.notes,
            "measurement_id": self.measurement_id,
            "measurement_version_id": self.measurement_version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }


class OrderItem(db.Model):
    """
    One line of an order.

    Price and description are copied from inventory or the service
    catalog when the line is created. measurement_version_id pins the
    measurement snapshot the garment was cut from.
    """
    __tablename__ = "order_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    description = db.Column(db.String(255), nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False, default=0)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    total_price_cents = db.Column(db.Integer, nullable=False, default=0)
    inventory_id = db.Column(db.Integer, db.ForeignKey("inventory.id"), nullable=True, index=True)
    service_id = db.Column(db.Integer, db.ForeignKey("services.id"), nullable=True, index=True)
    measurement_id = db.Column(db.Integer, db.ForeignKey("measurements.id"), nullable=True, index=True)
    measurement_version_id = db.Column(db.Integer, db.ForeignKey("measurement_versions.id"), nullable=True)
    is_custom_work = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "description": self.description,
            "unit_price_cents": self.unit_price_cents,
            "quantity": self.quantity,
            "total_price_cents": self.total_price_cents,
            "inventory_id": self.inventory_id,
            "service_id": self.service_id,
            "measurement_id": self.measurement_id,
            "measurement_version_id": self.measurement_version_id,
            "is_custom_work": self.is_custom_work,
            "created_at": to_utc_z(self.created_at),
        }


class PaymentHistory(db.Model):
    """
    Append-only payment ledger for an order.

    amount_cents is always positive; payment_type decides the direction
    ("payment" adds, "refund" subtracts).
    """
    __tablename__ = "payment_history"
    __table_args__ = (
        db.CheckConstraint("amount_cents > 0", name="ck_payment_history_amount_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    amount_cents = db.Column(db.Integer, nullable=False)
    payment_type = db.Column(db.String(32), nullable=False, default=PAYMENT_TYPE_PAYMENT)
    notes = db.Column(db.Text, nullable=True)
    recorded_by = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "amount_cents": self.amount_cents,
            "payment_type": self.payment_type,
            "notes": self.notes,
            "recorded_by": self.recorded_by,
            "created_at": to_utc_z(self.created_at),
        }
