"""
Payments service: payments with per-breakdown line items, refunds, adjustments, the
StudentFeeStatus reconciler, and student optional fees.

Every mutation of payments, refunds or adjustments ends with update_student_fee_status in
the same session, so the snapshot is committed together with the change that caused it.
"""

import logging
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from fastapi import status
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.enums import EnrollmentStatus, PaymentStatus
from app.core.exceptions import ServiceError
from app.core.grades import grade_rank
from app.core.models import (
    AcademicYear,
    FeeBreakdown,
    FeeTemplate,
    OptionalFee,
    OptionalFeeVariation,
    Payment,
    PaymentAdjustment,
    PaymentLineItem,
    Refund,
    Student,
    StudentFeeStatus,
    StudentOptionalFee,
)

from . import ledger
from .schemas import (
    AdjustmentCreate,
    AdjustmentResponse,
    FeeStatusBreakdown,
    FeeStatusResponse,
    LatePaymentUpdate,
    PaymentCreate,
    PaymentHistoryItem,
    PaymentLineItemResponse,
    PaymentResponse,
    RefundCreate,
    RefundResponse,
    StudentOptionalFeeAmountUpdate,
    StudentOptionalFeeAssign,
    StudentOptionalFeePay,
    StudentOptionalFeeResponse,
)

logger = logging.getLogger(__name__)

to_decimal = ledger.to_decimal


def _naive_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def local_day_bounds(date_from: Optional[date], date_to: Optional[date]) -> Tuple[Optional[datetime], Optional[datetime]]:
    """UTC [start, end) for calendar days in the school's timezone. Either side may be open."""
    offset = timedelta(hours=settings.school_utc_offset_hours)
    start = datetime.combine(date_from, time.min) - offset if date_from else None
    end = datetime.combine(date_to + timedelta(days=1), time.min) - offset if date_to else None
    return start, end


async def _get_student(db: AsyncSession, student_id: UUID) -> Student:
    student = await db.get(Student, student_id)
    if not student:
        raise ServiceError("Student not found", status.HTTP_404_NOT_FOUND)
    return student


async def _get_year(db: AsyncSession, academic_year_id: UUID) -> AcademicYear:
    ay = await db.get(AcademicYear, academic_year_id)
    if not ay:
        raise ServiceError("Academic year not found", status.HTTP_404_NOT_FOUND)
    return ay


async def _get_template(db: AsyncSession, grade_level: str, academic_year_id: UUID) -> Optional[FeeTemplate]:
    result = await db.execute(
        select(FeeTemplate).where(
            FeeTemplate.grade_level == grade_level,
            FeeTemplate.academic_year_id == academic_year_id,
        )
    )
    return result.scalar_one_or_none()


async def _year_payments(db: AsyncSession, student_id: UUID, academic_year_id: UUID) -> List[Payment]:
    result = await db.execute(
        select(Payment).where(Payment.student_id == student_id, Payment.academic_year_id == academic_year_id)
    )
    return list(result.scalars().all())


async def _year_adjustments(db: AsyncSession, student_id: UUID, academic_year_id: UUID) -> List[PaymentAdjustment]:
    result = await db.execute(
        select(PaymentAdjustment)
        .where(PaymentAdjustment.student_id == student_id, PaymentAdjustment.academic_year_id == academic_year_id)
        .order_by(PaymentAdjustment.created_at.desc())
    )
    return list(result.scalars().all())


# --- Reconciler ---
async def update_student_fee_status(
    db: AsyncSession,
    student_id: UUID,
    academic_year_id: UUID,
) -> Optional[StudentFeeStatus]:
    """
    Recompute the student's fee snapshot for the year from payments, refunds and adjustments
    and upsert it. Idempotent. Staged only: the caller commits. Unknown student is a no-op.
    """
    student = await db.get(Student, student_id)
    if not student:
        return None
    template = await _get_template(db, student.grade_level, academic_year_id)
    payments = await _year_payments(db, student_id, academic_year_id)
    adjustments = await _year_adjustments(db, student_id, academic_year_id)
    totals = ledger.compute_fee_totals(template.total_amount if template else None, payments, adjustments)

    result = await db.execute(
        select(StudentFeeStatus).where(
            StudentFeeStatus.student_id == student_id,
            StudentFeeStatus.academic_year_id == academic_year_id,
        )
    )
    fee_status = result.scalar_one_or_none()
    if fee_status is None:
        fee_status = StudentFeeStatus(
            student_id=student_id,
            academic_year_id=academic_year_id,
            is_late_payment=False,
        )
        db.add(fee_status)
    fee_status.fee_template_id = template.id if template else None
    fee_status.base_fee = totals["base_fee"]
    fee_status.total_adjustments = totals["total_adjustments"]
    fee_status.total_due = totals["total_due"]
    fee_status.total_paid = totals["total_paid"]
    fee_status.balance = totals["balance"]
    fee_status.payment_status = totals["payment_status"].value
    fee_status.last_payment_date = totals["last_payment_date"]
    await db.flush()
    return fee_status


# --- Payments ---
async def _breakdown_map(db: AsyncSession, payments: List[Payment]) -> Dict[UUID, FeeBreakdown]:
    ids = {li.fee_breakdown_id for p in payments for li in p.line_items if li.fee_breakdown_id is not None}
    if not ids:
        return {}
    result = await db.execute(select(FeeBreakdown).where(FeeBreakdown.id.in_(ids)))
    return {b.id: b for b in result.scalars().all()}


def _payment_to_response(p: Payment, breakdowns: Dict[UUID, FeeBreakdown]) -> PaymentResponse:
    line_items = []
    for li in p.line_items:
        b = breakdowns.get(li.fee_breakdown_id)
        line_items.append(
            PaymentLineItemResponse(
                id=li.id,
                fee_breakdown_id=li.fee_breakdown_id,
                amount=to_decimal(li.amount),
                description=li.description,
                category=b.category if b else None,
                is_refundable=b.is_refundable if b else None,
            )
        )
    return PaymentResponse(
        id=p.id,
        student_id=p.student_id,
        academic_year_id=p.academic_year_id,
        amount_paid=to_decimal(p.amount_paid),
        payment_date=p.payment_date,
        payment_method=p.payment_method,
        reference_number=p.reference_number,
        remarks=p.remarks,
        created_by=p.created_by,
        is_refunded=p.is_refunded,
        refund_amount=to_decimal(p.refund_amount),
        refund_date=p.refund_date,
        refund_reason=p.refund_reason,
        refunded_by=p.refunded_by,
        line_items=line_items,
        refunds=[_refund_to_response(r) for r in sorted(p.refunds, key=lambda r: r.refund_date)],
        created_at=p.created_at,
    )


def _refund_to_response(r: Refund) -> RefundResponse:
    return RefundResponse(
        id=r.id,
        payment_id=r.payment_id,
        amount=to_decimal(r.amount),
        reason=r.reason,
        reference_number=r.reference_number,
        refunded_by=r.refunded_by,
        refund_date=r.refund_date,
    )


async def _payments_to_response(db: AsyncSession, payments: List[Payment]) -> List[PaymentResponse]:
    breakdowns = await _breakdown_map(db, payments)
    return [_payment_to_response(p, breakdowns) for p in payments]


async def list_payments(
    db: AsyncSession,
    student_id: UUID,
    academic_year_id: Optional[UUID] = None,
    search: Optional[str] = None,
    payment_method: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> List[PaymentResponse]:
    """Payments of a student, newest first. date_from / date_to are school-local calendar days."""
    stmt = select(Payment).where(Payment.student_id == student_id)
    if academic_year_id is not None:
        stmt = stmt.where(Payment.academic_year_id == academic_year_id)
    if payment_method and payment_method != "all":
        stmt = stmt.where(Payment.payment_method == payment_method)
    start, end = local_day_bounds(date_from, date_to)
    if start is not None:
        stmt = stmt.where(Payment.payment_date >= start)
    if end is not None:
        stmt = stmt.where(Payment.payment_date < end)
    if search:
        pattern = f"%{search.strip()}%"
        stmt = stmt.where(or_(Payment.reference_number.ilike(pattern), Payment.remarks.ilike(pattern)))
    result = await db.execute(stmt.order_by(Payment.payment_date.desc()))
    return await _payments_to_response(db, list(result.scalars().all()))


async def _validate_line_items(
    db: AsyncSession,
    student_id: UUID,
    payload: PaymentCreate,
) -> List[PaymentLineItem]:
    """Reject line items that would overpay a breakdown given earlier payments net of refunds."""
    already = ledger.paid_by_breakdown(await _year_payments(db, student_id, payload.academic_year_id))
    items: List[PaymentLineItem] = []
    for item in payload.line_items or []:
        breakdown = await db.get(FeeBreakdown, item.fee_breakdown_id)
        if not breakdown:
            raise ServiceError(f"Fee breakdown {item.fee_breakdown_id} not found", status.HTTP_400_BAD_REQUEST)
        already_paid = already.get(breakdown.id, ledger.ZERO)
        remaining = to_decimal(breakdown.amount) - already_paid
        if item.amount > remaining:
            raise ServiceError(
                f'Payment amount for "{breakdown.description}" exceeds remaining balance of '
                f"₱{remaining:.2f}. Already paid: ₱{already_paid:.2f}",
                status.HTTP_400_BAD_REQUEST,
            )
        # Later items on the same breakdown count this one as paid
        already[breakdown.id] = already_paid + item.amount
        items.append(
            PaymentLineItem(fee_breakdown_id=breakdown.id, amount=item.amount, description=breakdown.description)
        )
    return items


async def create_payment(
    db: AsyncSession,
    student_id: UUID,
    payload: PaymentCreate,
    created_by: str,
) -> PaymentResponse:
    await _get_student(db, student_id)
    await _get_year(db, payload.academic_year_id)
    line_items = await _validate_line_items(db, student_id, payload)
    payment = Payment(
        student_id=student_id,
        academic_year_id=payload.academic_year_id,
        amount_paid=payload.amount_paid,
        payment_date=_naive_utc(payload.payment_date) if payload.payment_date else datetime.utcnow(),
        payment_method=payload.payment_method.value,
        reference_number=payload.reference_number,
        remarks=payload.remarks,
        created_by=created_by,
        is_refunded=False,
        refund_amount=ledger.ZERO,
        line_items=line_items,
        refunds=[],
    )
    db.add(payment)
    await db.flush()
    await update_student_fee_status(db, student_id, payload.academic_year_id)
    await db.commit()
    logger.info("Recorded payment %s of %s for student %s", payment.id, payload.amount_paid, student_id)
    return (await _payments_to_response(db, [payment]))[0]


async def _payment_refundable_amount(db: AsyncSession, student: Student, payment: Payment) -> Decimal:
    breakdowns = await _breakdown_map(db, [payment])
    refundable_by_breakdown = {b_id: b.is_refundable for b_id, b in breakdowns.items()}
    template_has_non_refundable = False
    if not payment.line_items:
        template = await _get_template(db, student.grade_level, payment.academic_year_id)
        template_has_non_refundable = bool(template) and any(b.is_refundable is False for b in template.breakdowns)
    return ledger.refundable_amount(payment, refundable_by_breakdown, template_has_non_refundable)


async def refund_payment(
    db: AsyncSession,
    student_id: UUID,
    payload: RefundCreate,
    refunded_by: str,
) -> RefundResponse:
    """Refund part of a payment, limited to its refundable portion minus earlier refunds."""
    payment = await db.get(Payment, payload.payment_id)
    if not payment:
        raise ServiceError("Payment not found", status.HTTP_404_NOT_FOUND)
    if payment.student_id != student_id:
        raise ServiceError("Payment does not belong to this student", status.HTTP_400_BAD_REQUEST)
    student = await _get_student(db, student_id)

    refundable = await _payment_refundable_amount(db, student, payment)
    already_refunded = ledger.total_refunded(payment)
    max_refundable = refundable - already_refunded
    if max_refundable <= ledger.ZERO:
        raise ServiceError(
            "This payment has no refundable amount remaining (all refundable items have been refunded "
            "or payment contains only non-refundable items).",
            status.HTTP_400_BAD_REQUEST,
        )
    if payload.refund_amount > max_refundable:
        raise ServiceError(
            f"Refund amount cannot exceed the refundable portion of {max_refundable:.2f}. "
            "This payment includes non-refundable fee items.",
            status.HTTP_400_BAD_REQUEST,
        )

    now = datetime.utcnow()
    refund = Refund(
        amount=payload.refund_amount,
        reason=payload.refund_reason.strip(),
        reference_number=ledger.generate_refund_reference(student_id),
        refunded_by=refunded_by,
        refund_date=now,
    )
    payment.refunds.append(refund)
    # Scalar refund columns mirror the Refund rows
    new_total = already_refunded + payload.refund_amount
    payment.refund_amount = new_total
    payment.is_refunded = new_total >= to_decimal(payment.amount_paid)
    payment.refund_date = now
    payment.refund_reason = refund.reason
    payment.refunded_by = refunded_by
    await db.flush()
    await update_student_fee_status(db, student_id, payment.academic_year_id)
    await db.commit()
    logger.info("Refunded %s on payment %s (%s)", payload.refund_amount, payment.id, refund.reference_number)
    return _refund_to_response(refund)


async def update_payment_remarks(
    db: AsyncSession,
    student_id: UUID,
    payment_id: UUID,
    remarks: Optional[str],
) -> PaymentResponse:
    payment = await db.get(Payment, payment_id)
    if not payment:
        raise ServiceError("Payment not found", status.HTTP_404_NOT_FOUND)
    if payment.student_id != student_id:
        raise ServiceError("Payment does not belong to this student", status.HTTP_400_BAD_REQUEST)
    payment.remarks = remarks
    await db.commit()
    return (await _payments_to_response(db, [payment]))[0]


# --- Adjustments ---
def _adjustment_to_response(a: PaymentAdjustment) -> AdjustmentResponse:
    return AdjustmentResponse(
        id=a.id,
        student_id=a.student_id,
        academic_year_id=a.academic_year_id,
        type=a.type,
        amount=to_decimal(a.amount),
        reason=a.reason,
        description=a.description,
        created_by=a.created_by,
        created_at=a.created_at,
    )


async def list_adjustments(
    db: AsyncSession,
    student_id: UUID,
    academic_year_id: Optional[UUID] = None,
) -> List[AdjustmentResponse]:
    stmt = select(PaymentAdjustment).where(PaymentAdjustment.student_id == student_id)
    if academic_year_id is not None:
        stmt = stmt.where(PaymentAdjustment.academic_year_id == academic_year_id)
    result = await db.execute(stmt.order_by(PaymentAdjustment.created_at.desc()))
    return [_adjustment_to_response(a) for a in result.scalars().all()]


async def create_adjustment(
    db: AsyncSession,
    student_id: UUID,
    payload: AdjustmentCreate,
    created_by: str,
) -> AdjustmentResponse:
    await _get_student(db, student_id)
    await _get_year(db, payload.academic_year_id)
    adjustment = PaymentAdjustment(
        student_id=student_id,
        academic_year_id=payload.academic_year_id,
        type=payload.type.value,
        amount=payload.amount,
        reason=payload.reason.strip(),
        description=payload.description,
        created_by=created_by,
    )
    db.add(adjustment)
    await db.flush()
    await update_student_fee_status(db, student_id, payload.academic_year_id)
    await db.commit()
    return _adjustment_to_response(adjustment)


# --- Fee status ---
async def get_fee_status(
    db: AsyncSession,
    student_id: UUID,
    academic_year_id: UUID,
    search: Optional[str] = None,
    payment_method: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> FeeStatusResponse:
    """Fee snapshot (created or refreshed here), template breakdowns, filtered payments and adjustments."""
    student = await _get_student(db, student_id)
    ay = await _get_year(db, academic_year_id)
    fee_status = await update_student_fee_status(db, student_id, academic_year_id)
    await db.commit()

    template = await _get_template(db, student.grade_level, academic_year_id)
    all_payments = await _year_payments(db, student_id, academic_year_id)
    paid = ledger.paid_by_breakdown(all_payments)
    breakdowns = [
        FeeStatusBreakdown(
            id=b.id,
            description=b.description,
            amount=to_decimal(b.amount),
            category=b.category,
            order=b.order,
            is_refundable=b.is_refundable,
            paid=paid.get(b.id, ledger.ZERO),
        )
        for b in sorted(template.breakdowns if template else [], key=lambda b: b.order)
    ]
    payments = await list_payments(
        db,
        student_id,
        academic_year_id=academic_year_id,
        search=search,
        payment_method=payment_method,
        date_from=date_from,
        date_to=date_to,
    )
    adjustments = [_adjustment_to_response(a) for a in await _year_adjustments(db, student_id, academic_year_id)]
    return FeeStatusResponse(
        id=fee_status.id,
        student_id=student.id,
        student_name=student.full_name,
        grade_level=student.grade_level,
        academic_year_id=ay.id,
        academic_year_name=ay.name,
        fee_template_id=fee_status.fee_template_id,
        fee_template_name=template.name if template else None,
        base_fee=to_decimal(fee_status.base_fee),
        total_adjustments=to_decimal(fee_status.total_adjustments),
        total_due=to_decimal(fee_status.total_due),
        total_paid=to_decimal(fee_status.total_paid),
        balance=to_decimal(fee_status.balance),
        payment_status=fee_status.payment_status,
        last_payment_date=fee_status.last_payment_date,
        is_late_payment=fee_status.is_late_payment,
        late_since=fee_status.late_since,
        breakdowns=breakdowns,
        payments=payments,
        adjustments=adjustments,
    )


async def set_late_payment(
    db: AsyncSession,
    student_id: UUID,
    academic_year_id: UUID,
    payload: LatePaymentUpdate,
) -> FeeStatusResponse:
    result = await db.execute(
        select(StudentFeeStatus).where(
            StudentFeeStatus.student_id == student_id,
            StudentFeeStatus.academic_year_id == academic_year_id,
        )
    )
    fee_status = result.scalar_one_or_none()
    if not fee_status:
        raise ServiceError("Fee status not found", status.HTTP_404_NOT_FOUND)
    fee_status.is_late_payment = payload.is_late_payment
    fee_status.late_since = _naive_utc(payload.late_since) if payload.late_since else None
    await db.commit()
    return await get_fee_status(db, student_id, academic_year_id)


async def list_payment_history(
    db: AsyncSession,
    academic_year_id: UUID,
    payment_status: Optional[str] = None,
    grade_level: Optional[str] = None,
) -> List[PaymentHistoryItem]:
    """
    Fee status of every non-dropped student for the year. Students without a snapshot get an
    UNPAID one from their grade's template.
    """
    await _get_year(db, academic_year_id)
    stmt = select(Student).where(Student.enrollment_status != EnrollmentStatus.DROPPED.value)
    if grade_level and grade_level != "All Grades":
        stmt = stmt.where(Student.grade_level == grade_level)
    students = list((await db.execute(stmt)).scalars().all())

    result = await db.execute(
        select(StudentFeeStatus).where(
            StudentFeeStatus.academic_year_id == academic_year_id,
            StudentFeeStatus.student_id.in_([s.id for s in students]),
        )
    )
    statuses = {fs.student_id: fs for fs in result.scalars().all()}

    missing = [s for s in students if s.id not in statuses]
    if missing:
        templates_result = await db.execute(
            select(FeeTemplate).where(FeeTemplate.academic_year_id == academic_year_id)
        )
        templates = {t.grade_level: t for t in templates_result.scalars().all()}
        for s in missing:
            template = templates.get(s.grade_level)
            base = to_decimal(template.total_amount if template else None)
            fs = StudentFeeStatus(
                student_id=s.id,
                academic_year_id=academic_year_id,
                fee_template_id=template.id if template else None,
                base_fee=base,
                total_adjustments=ledger.ZERO,
                total_due=base,
                total_paid=ledger.ZERO,
                balance=base,
                payment_status=PaymentStatus.UNPAID.value,
                is_late_payment=False,
            )
            db.add(fs)
            statuses[s.id] = fs
        try:
            await db.commit()
        except IntegrityError:
            # Another request created some of the snapshots first
            await db.rollback()
            logger.warning("Concurrent fee status creation for year %s; retrying read", academic_year_id)
            return await list_payment_history(db, academic_year_id, payment_status, grade_level)

    rows = []
    for s in students:
        fs = statuses[s.id]
        if payment_status and payment_status != "ALL" and fs.payment_status != payment_status:
            continue
        rows.append(
            PaymentHistoryItem(
                fee_status_id=fs.id,
                student_id=s.id,
                full_name=s.full_name,
                grade_level=s.grade_level,
                contact_number=s.contact_number,
                academic_year_id=academic_year_id,
                fee_template_id=fs.fee_template_id,
                total_due=to_decimal(fs.total_due),
                total_paid=to_decimal(fs.total_paid),
                balance=to_decimal(fs.balance),
                payment_status=fs.payment_status,
                is_late_payment=fs.is_late_payment,
                last_payment_date=fs.last_payment_date,
            )
        )
    rows.sort(key=lambda r: (grade_rank(r.grade_level), r.full_name))
    return rows


# --- Student optional fees ---
async def _optional_fee_response(db: AsyncSession, sof: StudentOptionalFee) -> StudentOptionalFeeResponse:
    fee = await db.get(OptionalFee, sof.optional_fee_id)
    variation = await db.get(OptionalFeeVariation, sof.selected_variation_id) if sof.selected_variation_id else None
    amount, paid_amount = to_decimal(sof.amount), to_decimal(sof.paid_amount)
    return StudentOptionalFeeResponse(
        id=sof.id,
        student_id=sof.student_id,
        academic_year_id=sof.academic_year_id,
        optional_fee_id=sof.optional_fee_id,
        optional_fee_name=fee.name if fee else "",
        category=fee.category if fee else "OTHER",
        selected_variation_id=sof.selected_variation_id,
        selected_variation_name=variation.name if variation else None,
        amount=amount,
        paid_amount=paid_amount,
        balance=amount - paid_amount,
        is_paid=sof.is_paid,
        created_at=sof.created_at,
    )


async def _get_student_optional_fee(
    db: AsyncSession, student_id: UUID, academic_year_id: UUID, optional_fee_id: UUID
) -> StudentOptionalFee:
    result = await db.execute(
        select(StudentOptionalFee).where(
            StudentOptionalFee.student_id == student_id,
            StudentOptionalFee.academic_year_id == academic_year_id,
            StudentOptionalFee.optional_fee_id == optional_fee_id,
        )
    )
    sof = result.scalar_one_or_none()
    if not sof:
        raise ServiceError("Optional fee not found", status.HTTP_404_NOT_FOUND)
    return sof


async def list_student_optional_fees(
    db: AsyncSession,
    student_id: UUID,
    academic_year_id: Optional[UUID] = None,
) -> List[StudentOptionalFeeResponse]:
    stmt = select(StudentOptionalFee).where(StudentOptionalFee.student_id == student_id)
    if academic_year_id is not None:
        stmt = stmt.where(StudentOptionalFee.academic_year_id == academic_year_id)
    result = await db.execute(stmt.order_by(StudentOptionalFee.created_at.desc()))
    return [await _optional_fee_response(db, sof) for sof in result.scalars().all()]


async def assign_optional_fee(
    db: AsyncSession,
    student_id: UUID,
    payload: StudentOptionalFeeAssign,
) -> StudentOptionalFeeResponse:
    await _get_student(db, student_id)
    await _get_year(db, payload.academic_year_id)
    fee = await db.get(OptionalFee, payload.optional_fee_id)
    if not fee:
        raise ServiceError("Optional fee not found", status.HTTP_404_NOT_FOUND)
    variation = None
    if payload.selected_variation_id is not None:
        variation = await db.get(OptionalFeeVariation, payload.selected_variation_id)
        if not variation or variation.optional_fee_id != fee.id:
            raise ServiceError("Variation does not belong to this optional fee", status.HTTP_400_BAD_REQUEST)
    amount = payload.amount
    if amount is None:
        amount = variation.amount if variation else fee.amount
    if amount is None:
        raise ServiceError("Amount is required for this optional fee", status.HTTP_400_BAD_REQUEST)

    existing = await db.execute(
        select(StudentOptionalFee.id).where(
            StudentOptionalFee.student_id == student_id,
            StudentOptionalFee.academic_year_id == payload.academic_year_id,
            StudentOptionalFee.optional_fee_id == payload.optional_fee_id,
        )
    )
    if existing.scalar_one_or_none():
        raise ServiceError("This optional fee is already assigned to the student", status.HTTP_409_CONFLICT)
    sof = StudentOptionalFee(
        student_id=student_id,
        academic_year_id=payload.academic_year_id,
        optional_fee_id=payload.optional_fee_id,
        selected_variation_id=payload.selected_variation_id,
        amount=amount,
        paid_amount=ledger.ZERO,
        is_paid=False,
    )
    db.add(sof)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ServiceError("This optional fee is already assigned to the student", status.HTTP_409_CONFLICT)
    return await _optional_fee_response(db, sof)


async def remove_optional_fee(
    db: AsyncSession,
    student_id: UUID,
    academic_year_id: UUID,
    optional_fee_id: UUID,
) -> None:
    sof = await _get_student_optional_fee(db, student_id, academic_year_id, optional_fee_id)
    await db.delete(sof)
    await db.commit()


async def pay_optional_fee(
    db: AsyncSession,
    student_id: UUID,
    optional_fee_id: UUID,
    payload: StudentOptionalFeePay,
) -> Tuple[str, StudentOptionalFeeResponse]:
    """Add a (partial) payment; without an amount the full fee amount is paid."""
    sof = await _get_student_optional_fee(db, student_id, payload.academic_year_id, optional_fee_id)
    amount = to_decimal(sof.amount)
    payment_amount = payload.amount_paid if payload.amount_paid is not None else amount
    new_paid = to_decimal(sof.paid_amount) + payment_amount
    if new_paid > amount:
        raise ServiceError("Payment amount exceeds total fee amount", status.HTTP_400_BAD_REQUEST)
    sof.paid_amount = new_paid
    sof.is_paid = new_paid >= amount
    await db.commit()
    message = "Optional fee marked as paid" if sof.is_paid else "Partial payment recorded"
    return message, await _optional_fee_response(db, sof)


async def update_optional_fee_amount(
    db: AsyncSession,
    student_id: UUID,
    optional_fee_id: UUID,
    payload: StudentOptionalFeeAmountUpdate,
) -> StudentOptionalFeeResponse:
    sof = await _get_student_optional_fee(db, student_id, payload.academic_year_id, optional_fee_id)
    sof.amount = payload.amount
    sof.is_paid = to_decimal(sof.paid_amount) >= payload.amount
    await db.commit()
    return await _optional_fee_response(db, sof)
