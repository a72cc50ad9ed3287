# Overview: Payment ledger writes; every insert refreshes the order's cached balance.

from __future__ import annotations

from ..extensions import db
from ..models import Order, PaymentHistory, PAYMENT_TYPE_PAYMENT, PAYMENT_TYPE_REFUND
from ..validation import MAX_AMOUNT_CENTS
from . import read_cache
from .concurrency import lock_for_update, run_with_retry
from .ledger_service import BalanceSummary, compute_balance, max_refundable


PAYMENT_TYPES = (PAYMENT_TYPE_PAYMENT, PAYMENT_TYPE_REFUND)


class PaymentError(ValueError):
    """Raised when payment operations fail."""
    pass


def _ledger(order_id: int) -> list[PaymentHistory]:
    return (
        db.session.query(PaymentHistory)
        .filter(PaymentHistory.order_id == order_id)
        .order_by(PaymentHistory.id.asc())
        .all()
    )


def apply_balance(order: Order) -> BalanceSummary:
    """
    Write the ledger totals into the order's cached columns.

    Caller owns the transaction: this only flushes.
    """
    db.session.flush()
    summary = compute_balance(order.total_cents, _ledger(order.id))
    order.deposit_cents = summary.net_received_cents
    order.remaining_balance_cents = summary.remaining_balance_cents
    return summary


def record_payment(
    order_id: int,
    amount_cents: int,
    payment_type: str = PAYMENT_TYPE_PAYMENT,
    *,
    notes: str | None = None,
    recorded_by: str | None = None,
) -> tuple[PaymentHistory, BalanceSummary]:
    """
    Append a payment or refund and update the order balance atomically.

    Rules:
    - amount_cents is a positive whole number of cents
    - refunds cannot exceed what has been received
    - cancelled orders accept refunds only
    """
    if isinstance(amount_cents, bool) or not isinstance(amount_cents, int):
        raise PaymentError("amount_cents must be an integer")
    if amount_cents <= 0:
        raise PaymentError("amount_cents must be > 0")
    if amount_cents > MAX_AMOUNT_CENTS:
        raise PaymentError(f"amount_cents cannot exceed {MAX_AMOUNT_CENTS}")
    if payment_type not in PAYMENT_TYPES:
        raise PaymentError(f"Invalid payment_type '{payment_type}'. Must be one of: {', '.join(PAYMENT_TYPES)}")

    def _op():
        order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
        if not order:
            raise PaymentError("Order not found")

        if payment_type == PAYMENT_TYPE_REFUND:
            refundable = max_refundable(_ledger(order.id))
            if amount_cents > refundable:
                raise PaymentError(
                    f"Refund of {amount_cents} exceeds refundable amount {refundable}"
                )
        elif order.status == "cancelled":
            raise PaymentError("Cannot record a payment on a cancelled order")

        entry = PaymentHistory(
            order_id=order.id,
            amount_cents=amount_cents,
            payment_type=payment_type,
            notes=notes,
            recorded_by=recorded_by,
        )
        db.session.add(entry)
        summary = apply_balance(order)
        db.session.commit()
        return entry, summary

    result = run_with_retry(_op)
    read_cache.invalidate(read_cache.ORDERS)
    return result


def list_payments(order_id: int) -> list[PaymentHistory]:
    if not db.session.query(Order.id).filter_by(id=order_id).first():
        raise PaymentError("Order not found")
    return _ledger(order_id)


def get_balance_summary(order_id: int) -> BalanceSummary:
    order = db.session.query(Order).filter_by(id=order_id).first()
    if not order:
        raise PaymentError("Order not found")
    return compute_balance(order.total_cents, _ledger(order.id))


def reconcile_order_balance(order_id: int) -> bool:
    """Recompute the cached balance from the ledger. Returns True if it was wrong."""
    def _op():
        order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
        if not order:
            raise PaymentError("Order not found")
        before = (order.deposit_cents, order.remaining_balance_cents)
        summary = apply_balance(order)
        changed = before != (summary.net_received_cents, summary.remaining_balance_cents)
        if changed:
            db.session.commit()
        else:
            db.session.rollback()
        return changed

    changed = run_with_retry(_op)
    if changed:
        read_cache.invalidate(read_cache.ORDERS)
    return changed


def reconcile_all() -> list[int]:
    """Repair every order whose cached balance drifted. Returns the repaired ids."""
    order_ids = [row.id for row in db.session.query(Order.id).order_by(Order.id.asc()).all()]
    return [order_id for order_id in order_ids if reconcile_order_balance(order_id)]
