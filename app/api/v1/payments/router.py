"""Payments API: a student's payments, refunds, adjustments, fee status and optional fees."""

from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_admin
from app.auth.schemas import CurrentAdmin
from app.core.enums import PaymentStatus
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import (
    AdjustmentCreate,
    AdjustmentResponse,
    FeeStatusResponse,
    LatePaymentUpdate,
    PaymentCreate,
    PaymentHistoryItem,
    PaymentRemarksUpdate,
    PaymentResponse,
    RefundCreate,
    RefundResponse,
    StudentOptionalFeeAmountUpdate,
    StudentOptionalFeeAssign,
    StudentOptionalFeePay,
    StudentOptionalFeePayResponse,
    StudentOptionalFeeResponse,
)
from . import service

router = APIRouter(prefix="/api/v1/students", tags=["payments"])
history_router = APIRouter(prefix="/api/v1/payment-history", tags=["payments"])


# --- Payments ---
@router.get("/{student_id}/payments", response_model=List[PaymentResponse])
async def list_payments(
    student_id: UUID,
    academic_year_id: Optional[UUID] = Query(None, alias="academicYearId"),
    search: Optional[str] = Query(None),
    payment_method: Optional[str] = Query(None, alias="paymentMethod"),
    date_from: Optional[date] = Query(None, alias="dateFrom"),
    date_to: Optional[date] = Query(None, alias="dateTo"),
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> List[PaymentResponse]:
    return await service.list_payments(
        db,
        student_id,
        academic_year_id=academic_year_id,
        search=search,
        payment_method=payment_method,
        date_from=date_from,
        date_to=date_to,
    )


@router.post("/{student_id}/payments", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
async def create_payment(
    student_id: UUID,
    payload: PaymentCreate,
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> PaymentResponse:
    """Record a payment. Line items may not exceed what remains on their fee breakdown."""
    try:
        return await service.create_payment(db, student_id, payload, created_by=current_admin.actor)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.patch("/{student_id}/payments", response_model=RefundResponse)
async def refund_payment(
    student_id: UUID,
    payload: RefundCreate,
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> RefundResponse:
    """Refund part of a payment. Non-refundable line items are excluded from the refundable amount."""
    try:
        return await service.refund_payment(db, student_id, payload, refunded_by=current_admin.actor)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.patch("/{student_id}/payments/{payment_id}", response_model=PaymentResponse)
async def update_payment_remarks(
    student_id: UUID,
    payment_id: UUID,
    payload: PaymentRemarksUpdate,
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> PaymentResponse:
    try:
        return await service.update_payment_remarks(db, student_id, payment_id, payload.remarks)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


# --- Adjustments ---
@router.get("/{student_id}/adjustments", response_model=List[AdjustmentResponse])
async def list_adjustments(
    student_id: UUID,
    academic_year_id: Optional[UUID] = Query(None, alias="academicYearId"),
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> List[AdjustmentResponse]:
    return await service.list_adjustments(db, student_id, academic_year_id=academic_year_id)


@router.post("/{student_id}/adjustments", response_model=AdjustmentResponse, status_code=status.HTTP_201_CREATED)
async def create_adjustment(
    student_id: UUID,
    payload: AdjustmentCreate,
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> AdjustmentResponse:
    try:
        return await service.create_adjustment(db, student_id, payload, created_by=current_admin.actor)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


# --- Fee status ---
@router.get("/{student_id}/fee-status", response_model=FeeStatusResponse)
async def get_fee_status(
    student_id: UUID,
    academic_year_id: Optional[UUID] = Query(None, alias="academicYearId"),
    search: Optional[str] = Query(None),
    payment_method: Optional[str] = Query(None, alias="paymentMethod"),
    date_from: Optional[date] = Query(None, alias="dateFrom"),
    date_to: Optional[date] = Query(None, alias="dateTo"),
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> FeeStatusResponse:
    """Reconciled balance for the year, with breakdowns, payments (filterable) and adjustments."""
    if academic_year_id is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Academic year ID is required")
    try:
        return await service.get_fee_status(
            db,
            student_id,
            academic_year_id,
            search=search,
            payment_method=payment_method,
            date_from=date_from,
            date_to=date_to,
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.patch("/{student_id}/fee-status", response_model=FeeStatusResponse)
async def set_late_payment(
    student_id: UUID,
    payload: LatePaymentUpdate,
    academic_year_id: UUID = Query(..., alias="academicYearId"),
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> FeeStatusResponse:
    try:
        return await service.set_late_payment(db, student_id, academic_year_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


# --- Optional fees ---
@router.get("/{student_id}/optional-fees", response_model=List[StudentOptionalFeeResponse])
async def list_student_optional_fees(
    student_id: UUID,
    academic_year_id: Optional[UUID] = Query(None, alias="academicYearId"),
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> List[StudentOptionalFeeResponse]:
    return await service.list_student_optional_fees(db, student_id, academic_year_id=academic_year_id)


@router.post(
    "/{student_id}/optional-fees",
    response_model=StudentOptionalFeeResponse,
    status_code=status.HTTP_201_CREATED,
)
async def assign_optional_fee(
    student_id: UUID,
    payload: StudentOptionalFeeAssign,
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> StudentOptionalFeeResponse:
    try:
        return await service.assign_optional_fee(db, student_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/{student_id}/optional-fees", status_code=status.HTTP_204_NO_CONTENT)
async def remove_optional_fee(
    student_id: UUID,
    optional_fee_id: UUID = Query(..., alias="optionalFeeId"),
    academic_year_id: UUID = Query(..., alias="academicYearId"),
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> Response:
    try:
        await service.remove_optional_fee(db, student_id, academic_year_id, optional_fee_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{student_id}/optional-fees/{optional_fee_id}/pay", response_model=StudentOptionalFeePayResponse)
async def pay_optional_fee(
    student_id: UUID,
    optional_fee_id: UUID,
    payload: StudentOptionalFeePay,
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> StudentOptionalFeePayResponse:
    try:
        message, fee = await service.pay_optional_fee(db, student_id, optional_fee_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return StudentOptionalFeePayResponse(message=message, fee=fee)


@router.patch("/{student_id}/optional-fees/{optional_fee_id}", response_model=StudentOptionalFeeResponse)
async def update_optional_fee_amount(
    student_id: UUID,
    optional_fee_id: UUID,
    payload: StudentOptionalFeeAmountUpdate,
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> StudentOptionalFeeResponse:
    try:
        return await service.update_optional_fee_amount(db, student_id, optional_fee_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


# --- Payment history overview ---
@history_router.get("", response_model=List[PaymentHistoryItem])
async def list_payment_history(
    academic_year_id: UUID = Query(..., alias="academicYearId"),
    payment_status: Optional[str] = Query(None, alias="paymentStatus", description="UNPAID, PARTIAL, PAID, OVERPAID or ALL"),
    grade_level: Optional[str] = Query(None, alias="gradeLevel"),
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> List[PaymentHistoryItem]:
    if payment_status and payment_status != "ALL" and payment_status not in PaymentStatus.__members__:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid payment status")
    try:
        return await service.list_payment_history(
            db, academic_year_id, payment_status=payment_status, grade_level=grade_level
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
