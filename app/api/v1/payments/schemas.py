"""Payments schemas: payments with line items, refunds, adjustments, fee status and student optional fees."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.core.enums import AdjustmentType, PaymentMethod


# --- Payments ---
class PaymentLineItemCreate(BaseModel):
    fee_breakdown_id: UUID
    amount: Decimal = Field(..., gt=0)


class PaymentCreate(BaseModel):
    academic_year_id: UUID
    amount_paid: Decimal = Field(..., gt=0)
    payment_date: Optional[datetime] = None
    payment_method: PaymentMethod = PaymentMethod.CASH
    reference_number: Optional[str] = Field(None, max_length=100)
    remarks: Optional[str] = None
    line_items: Optional[List[PaymentLineItemCreate]] = None


class RefundCreate(BaseModel):
    payment_id: UUID
    refund_amount: Decimal = Field(..., gt=0)
    refund_reason: str = Field(..., min_length=1)


class PaymentRemarksUpdate(BaseModel):
    remarks: Optional[str] = None


class PaymentLineItemResponse(BaseModel):
    id: UUID
    fee_breakdown_id: Optional[UUID] = None
    amount: Decimal
    description: str
    category: Optional[str] = None
    is_refundable: Optional[bool] = None


class RefundResponse(BaseModel):
    id: UUID
    payment_id: UUID
    amount: Decimal
    reason: str
    reference_number: str
    refunded_by: str
    refund_date: datetime

    class Config:
        from_attributes = True


class PaymentResponse(BaseModel):
    id: UUID
    student_id: UUID
    academic_year_id: UUID
    amount_paid: Decimal
    payment_date: datetime
    payment_method: str
    reference_number: Optional[str] = None
    remarks: Optional[str] = None
    created_by: str
    is_refunded: bool
    refund_amount: Decimal
    refund_date: Optional[datetime] = None
    refund_reason: Optional[str] = None
    refunded_by: Optional[str] = None
    line_items: List[PaymentLineItemResponse]
    refunds: List[RefundResponse]
    created_at: datetime


# --- Adjustments ---
class AdjustmentCreate(BaseModel):
    academic_year_id: UUID
    type: AdjustmentType
    amount: Decimal = Field(..., gt=0)
    reason: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None


class AdjustmentResponse(BaseModel):
    id: UUID
    student_id: UUID
    academic_year_id: UUID
    type: str
    amount: Decimal
    reason: str
    description: Optional[str] = None
    created_by: str
    created_at: datetime

    class Config:
        from_attributes = True


# --- Fee status ---
class FeeStatusBreakdown(BaseModel):
    id: UUID
    description: str
    amount: Decimal
    category: str
    order: int
    is_refundable: Optional[bool] = None
    paid: Decimal = Field(..., description="Paid so far against this line, net of refunds")


class FeeStatusResponse(BaseModel):
    id: UUID
    student_id: UUID
    student_name: str
    grade_level: str
    academic_year_id: UUID
    academic_year_name: Optional[str] = None
    fee_template_id: Optional[UUID] = None
    fee_template_name: Optional[str] = None
    base_fee: Decimal
    total_adjustments: Decimal
    total_due: Decimal
    total_paid: Decimal
    balance: Decimal
    payment_status: str
    last_payment_date: Optional[datetime] = None
    is_late_payment: bool
    late_since: Optional[datetime] = None
    breakdowns: List[FeeStatusBreakdown] = Field(default_factory=list)
    payments: List[PaymentResponse] = Field(default_factory=list)
    adjustments: List[AdjustmentResponse] = Field(default_factory=list)


class LatePaymentUpdate(BaseModel):
    is_late_payment: bool
    late_since: Optional[datetime] = None


class PaymentHistoryItem(BaseModel):
    """One student's fee status row in the payment history overview."""

    fee_status_id: UUID
    student_id: UUID
    full_name: str
    grade_level: str
    contact_number: str
    academic_year_id: UUID
    fee_template_id: Optional[UUID] = None
    total_due: Decimal
    total_paid: Decimal
    balance: Decimal
    payment_status: str
    is_late_payment: bool
    last_payment_date: Optional[datetime] = None


# --- Student optional fees ---
class StudentOptionalFeeAssign(BaseModel):
    optional_fee_id: UUID
    academic_year_id: UUID
    selected_variation_id: Optional[UUID] = None
    amount: Optional[Decimal] = Field(None, ge=0, description="Defaults to the variation's or the fee's amount")


class StudentOptionalFeePay(BaseModel):
    academic_year_id: UUID
    amount_paid: Optional[Decimal] = Field(None, gt=0, description="Defaults to the full fee amount")


class StudentOptionalFeeAmountUpdate(BaseModel):
    academic_year_id: UUID
    amount: Decimal = Field(..., ge=0)


class StudentOptionalFeeResponse(BaseModel):
    id: UUID
    student_id: UUID
    academic_year_id: UUID
    optional_fee_id: UUID
    optional_fee_name: str
    category: str
    selected_variation_id: Optional[UUID] = None
    selected_variation_name: Optional[str] = None
    amount: Decimal
    paid_amount: Decimal
    balance: Decimal
    is_paid: bool
    created_at: datetime


class StudentOptionalFeePayResponse(BaseModel):
    message: str
    fee: StudentOptionalFeeResponse
