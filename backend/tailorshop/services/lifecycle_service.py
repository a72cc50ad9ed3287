# Overview: Explicit state machines for orders and for active/inactive records.

"""
Lifecycle rules

ORDER STATUS:
    draft, pending, deposit_paid, materials_ordered, in_production,
    ready_for_fitting, ready_for_pickup, completed, cancelled

    - New orders start in draft or pending.
    - completed and cancelled are terminal: nothing moves out of them.
    - Any other status may move to any status, since a garment can go back
      to production after a failed fitting.

RECORDS (stores, employees, inventory):
    ACTIVE <-> INACTIVE, and either -> DELETED.
    DELETED is applied by removing the row, so it never appears in a column.
"""

from __future__ import annotations

from ..models import ORDER_STATUSES, STATUS_ACTIVE, STATUS_INACTIVE, STATUS_DELETED


ORDER_INITIAL_STATUSES = {"draft", "pending"}
ORDER_TERMINAL_STATUSES = {"completed", "cancelled"}

RECORD_TRANSITIONS = {
    STATUS_ACTIVE: {STATUS_INACTIVE, STATUS_DELETED},
    STATUS_INACTIVE: {STATUS_ACTIVE, STATUS_DELETED},
}


class LifecycleError(ValueError):
    """Raised when a status value or transition is not allowed."""
    pass


def validate_order_status(status: str) -> None:
    if status not in ORDER_STATUSES:
        raise LifecycleError(
            f"Invalid order status '{status}'. Must be one of: {', '.join(ORDER_STATUSES)}"
        )


def validate_initial_order_status(status: str) -> None:
    validate_order_status(status)
    if status not in ORDER_INITIAL_STATUSES:
        raise LifecycleError("New orders must start as 'draft' or 'pending'")


def can_transition_order(from_status: str, to_status: str) -> bool:
    validate_order_status(from_status)
    validate_order_status(to_status)
    if from_status == to_status:
        return True
    return from_status not in ORDER_TERMINAL_STATUSES


def ensure_order_transition(from_status: str, to_status: str) -> None:
    if not can_transition_order(from_status, to_status):
        raise LifecycleError(
            f"Cannot change order status from '{from_status}' to '{to_status}': "
            f"'{from_status}' is final"
        )


def can_transition_record(from_status: str, to_status: str) -> bool:
    if from_status == to_status:
        return True
    return to_status in RECORD_TRANSITIONS.get(from_status, set())


def ensure_record_transition(from_status: str, to_status: str, *, label: str = "Record") -> None:
    if not can_transition_record(from_status, to_status):
        raise LifecycleError(f"{label} cannot move from {from_status} to {to_status}")
