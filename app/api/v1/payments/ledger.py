"""
Fee ledger arithmetic.

Pure functions over payments, refunds and adjustments; the service layer loads rows and
persists results. Rows are read by attribute, so anything shaped like the ORM models works.
Amounts are Decimal throughout.
"""

import random
import time
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, Optional, Sequence
from uuid import UUID

from app.core.enums import AdjustmentType, PaymentStatus

ZERO = Decimal("0")
_BASE36 = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"


def to_decimal(val) -> Decimal:
    if val is None:
        return ZERO
    return val if isinstance(val, Decimal) else Decimal(str(val))


def determine_payment_status(total_paid: Decimal, total_due: Decimal) -> PaymentStatus:
    """UNPAID when nothing is paid, then OVERPAID / PAID / PARTIAL against the amount due."""
    if total_paid == ZERO:
        return PaymentStatus.UNPAID
    if total_paid > total_due:
        return PaymentStatus.OVERPAID
    if total_paid == total_due:
        return PaymentStatus.PAID
    return PaymentStatus.PARTIAL


def adjustment_delta(adjustment_type: str, amount) -> Decimal:
    """Signed effect of an adjustment on the amount due: discounts lower it, additional charges raise it."""
    value = to_decimal(amount)
    return -value if adjustment_type == AdjustmentType.DISCOUNT.value else value


def net_paid(payments: Iterable) -> Decimal:
    """Sum of amount_paid minus refund_amount (the payment's running refund total)."""
    return sum((to_decimal(p.amount_paid) - to_decimal(p.refund_amount) for p in payments), ZERO)


def total_adjustments(adjustments: Iterable) -> Decimal:
    return sum((adjustment_delta(a.type, a.amount) for a in adjustments), ZERO)


def last_payment_date(payments: Iterable) -> Optional[datetime]:
    dates = [p.payment_date for p in payments if p.payment_date is not None]
    return max(dates) if dates else None


def compute_fee_totals(base_fee, payments: Sequence, adjustments: Sequence) -> Dict[str, object]:
    """Snapshot values for a student's year: base fee, adjustments, due, paid, balance and status."""
    base = to_decimal(base_fee)
    adjustments_total = total_adjustments(adjustments)
    paid = net_paid(payments)
    due = base + adjustments_total
    return {
        "base_fee": base,
        "total_adjustments": adjustments_total,
        "total_due": due,
        "total_paid": paid,
        "balance": due - paid,
        "payment_status": determine_payment_status(paid, due),
        "last_payment_date": last_payment_date(payments),
    }


def total_refunded(payment) -> Decimal:
    return sum((to_decimal(r.amount) for r in payment.refunds), ZERO)


def paid_by_breakdown(payments: Iterable) -> Dict[UUID, Decimal]:
    """
    Amount already paid per fee breakdown across payments, net of refunds.
    A payment's refunds are spread over its line items in proportion to their amounts.
    """
    paid: Dict[UUID, Decimal] = {}
    for payment in payments:
        items = [li for li in payment.line_items if li.fee_breakdown_id is not None]
        for item in items:
            paid[item.fee_breakdown_id] = paid.get(item.fee_breakdown_id, ZERO) + to_decimal(item.amount)
        refunded = total_refunded(payment)
        items_total = sum((to_decimal(li.amount) for li in items), ZERO)
        if refunded == ZERO or items_total == ZERO:
            continue
        for item in items:
            paid[item.fee_breakdown_id] -= refunded * to_decimal(item.amount) / items_total
    return paid


def refundable_amount(
    payment,
    refundable_by_breakdown: Dict[UUID, Optional[bool]],
    template_has_non_refundable: bool,
) -> Decimal:
    """
    Portion of a payment that may be refunded, before subtracting refunds already issued.

    With line items: the items whose breakdown is refundable or has no flag (a missing
    breakdown counts as refundable). Without line items the allocation is unknown, so the
    whole payment is refundable unless the student's fee template has any non-refundable line.
    """
    if payment.line_items:
        return sum(
            (
                to_decimal(item.amount)
                for item in payment.line_items
                if refundable_by_breakdown.get(item.fee_breakdown_id) is not False
            ),
            ZERO,
        )
    if template_has_non_refundable:
        return ZERO
    return to_decimal(payment.amount_paid)


def _base36(n: int) -> str:
    if n == 0:
        return "0"
    digits = []
    while n:
        n, rem = divmod(n, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_refund_reference(student_id, timestamp_ms: Optional[int] = None, rng: Optional[random.Random] = None) -> str:
    """REF-<first 6 chars of student id>-<base36 ms timestamp>-<2 random base36 chars>, upper-case."""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    rng = rng or random
    suffix = "".join(rng.choice(_BASE36) for _ in range(2))
    return f"REF-{str(student_id)[:6].upper()}-{_base36(timestamp_ms)}-{suffix}"
