# Overview: Pure balance calculations over an order's payment ledger.

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any, Iterable

from ..models import PAYMENT_TYPE_REFUND

"""
Ledger invariants

- net_received = sum(payments) - sum(refunds)
- remaining_balance = max(0, total - net_received)
- Overpayment is allowed; the balance floors at zero.
- The most that can be refunded is what has been received (never negative).
"""


@dataclass(frozen=True)
class BalanceSummary:
    total_cents: int
    total_received_cents: int
    total_refunded_cents: int
    net_received_cents: int
    remaining_balance_cents: int

    def to_dict(self) -> dict:
        return asdict(self)


def _field(entry: Any, name: str):
    if isinstance(entry, dict):
        return entry.get(name)
    return getattr(entry, name)


def compute_balance(total_cents: int, payments: Iterable[Any]) -> BalanceSummary:
    """
    Derive received and outstanding amounts from ledger entries.

    Entries may be PaymentHistory rows or dicts with amount_cents and
    payment_type. Anything that is not a refund counts as money in.
    """
    received = 0
    refunded = 0
    for entry in payments:
        amount = int(_field(entry, "amount_cents") or 0)
        if _field(entry, "payment_type") == PAYMENT_TYPE_REFUND:
            refunded += amount
        else:
            received += amount

    net = received - refunded
    total = int(total_cents or 0)
    return BalanceSummary(
        total_cents=total,
        total_received_cents=received,
        total_refunded_cents=refunded,
        net_received_cents=net,
        remaining_balance_cents=max(0, total - net),
    )


def max_refundable(payments: Iterable[Any]) -> int:
    return max(0, compute_balance(0, payments).net_received_cents)
