import random
import re
import uuid
from datetime import datetime
from decimal import Decimal
from types import SimpleNamespace

from app.api.v1.payments import ledger
from app.core.enums import PaymentStatus


def _payment(amount, refunded="0", line_items=(), refunds=(), payment_date=None):
    return SimpleNamespace(
        amount_paid=Decimal(amount),
        refund_amount=Decimal(refunded),
        line_items=list(line_items),
        refunds=list(refunds),
        payment_date=payment_date,
    )


def _item(breakdown_id, amount):
    return SimpleNamespace(fee_breakdown_id=breakdown_id, amount=Decimal(amount))


def test_determine_payment_status() -> None:
    due = Decimal("15000")
    assert ledger.determine_payment_status(Decimal("0"), due) == PaymentStatus.UNPAID
    assert ledger.determine_payment_status(Decimal("5000"), due) == PaymentStatus.PARTIAL
    assert ledger.determine_payment_status(Decimal("15000.00"), due) == PaymentStatus.PAID
    assert ledger.determine_payment_status(Decimal("15000.01"), due) == PaymentStatus.OVERPAID


def test_paid_without_anything_due_is_overpaid() -> None:
    assert ledger.determine_payment_status(Decimal("100"), Decimal("0")) == PaymentStatus.OVERPAID
    assert ledger.determine_payment_status(Decimal("0"), Decimal("0")) == PaymentStatus.UNPAID


def test_compute_fee_totals_nets_refunds_and_adjustments() -> None:
    payments = [
        _payment("10000", refunded="2000", payment_date=datetime(2025, 6, 10)),
        _payment("3000", payment_date=datetime(2025, 7, 1)),
    ]
    adjustments = [
        SimpleNamespace(type="DISCOUNT", amount=Decimal("1500")),
        SimpleNamespace(type="ADDITIONAL", amount=Decimal("500")),
    ]
    totals = ledger.compute_fee_totals(Decimal("15000"), payments, adjustments)

    assert totals["base_fee"] == Decimal("15000")
    assert totals["total_adjustments"] == Decimal("-1000")
    assert totals["total_due"] == Decimal("14000")
    assert totals["total_paid"] == Decimal("11000")
    assert totals["balance"] == Decimal("3000")
    assert totals["payment_status"] == PaymentStatus.PARTIAL
    assert totals["last_payment_date"] == datetime(2025, 7, 1)
    assert totals["balance"] == totals["total_due"] - totals["total_paid"]


def test_compute_fee_totals_without_template() -> None:
    totals = ledger.compute_fee_totals(None, [], [])
    assert totals["base_fee"] == Decimal("0")
    assert totals["total_due"] == Decimal("0")
    assert totals["payment_status"] == PaymentStatus.UNPAID
    assert totals["last_payment_date"] is None


def test_paid_by_breakdown_spreads_refunds_over_line_items() -> None:
    tuition, books = uuid.uuid4(), uuid.uuid4()
    payment = _payment(
        "4000",
        line_items=[_item(tuition, "3000"), _item(books, "1000")],
        refunds=[SimpleNamespace(amount=Decimal("400"))],
    )
    earlier = _payment("2000", line_items=[_item(tuition, "2000")])

    paid = ledger.paid_by_breakdown([payment, earlier])

    assert paid[tuition] == Decimal("4700")
    assert paid[books] == Decimal("900")


def test_refundable_amount_skips_non_refundable_items() -> None:
    tuition, registration, unknown = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
    payment = _payment(
        "6000",
        line_items=[_item(tuition, "4000"), _item(registration, "1500"), _item(unknown, "500")],
    )
    flags = {tuition: True, registration: False}

    assert ledger.refundable_amount(payment, flags, template_has_non_refundable=True) == Decimal("4500")


def test_refundable_amount_without_line_items() -> None:
    payment = _payment("5000")
    assert ledger.refundable_amount(payment, {}, template_has_non_refundable=False) == Decimal("5000")
    assert ledger.refundable_amount(payment, {}, template_has_non_refundable=True) == Decimal("0")


def test_adjustment_delta_sign() -> None:
    assert ledger.adjustment_delta("DISCOUNT", "250") == Decimal("-250")
    assert ledger.adjustment_delta("ADDITIONAL", "250") == Decimal("250")


def test_refund_reference_format() -> None:
    student_id = uuid.UUID("abcdef12-3456-7890-abcd-ef1234567890")
    ref = ledger.generate_refund_reference(student_id, timestamp_ms=1735689600000, rng=random.Random(7))

    assert ref.startswith("REF-ABCDEF-")
    assert re.fullmatch(r"REF-[0-9A-Z]{6}-[0-9A-Z]+-[0-9A-Z]{2}", ref)
    assert ref.split("-")[2] == ledger._base36(1735689600000)


def test_base36() -> None:
    assert ledger._base36(0) == "0"
    assert ledger._base36(35) == "Z"
    assert ledger._base36(36) == "10"
