"""Payments against a student's base fee, with per-breakdown line items and refunds."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Numeric, String, Text, Uuid
from sqlalchemy.orm import relationship

from app.db.session import Base


class Payment(Base):
    """
    Money received for a (student, academic year). Refunds are rows in Refund; the scalar
    refund_* columns predate them and are kept in sync (refund_amount = sum of refunds).
    """

    __tablename__ = "payments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    student_id = Column(Uuid, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    academic_year_id = Column(Uuid, ForeignKey("academic_years.id", ondelete="CASCADE"), nullable=False, index=True)
    amount_paid = Column(Numeric(12, 2), nullable=False)
    payment_date = Column(DateTime, default=datetime.utcnow, nullable=False)
    payment_method = Column(String(20), nullable=False)  # CASH, CHECK, BANK_TRANSFER, ONLINE, GCASH, PAYMAYA
    reference_number = Column(String(100), nullable=True)
    remarks = Column(Text, nullable=True)
    created_by = Column(String(255), nullable=False)

    is_refunded = Column(Boolean, nullable=False, default=False)
    refund_amount = Column(Numeric(12, 2), nullable=False, default=0)
    refund_date = Column(DateTime, nullable=True)
    refund_reason = Column(Text, nullable=True)
    refunded_by = Column(String(255), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    line_items = relationship("PaymentLineItem", cascade="all, delete-orphan", lazy="selectin")
    refunds = relationship(
        "Refund", order_by="Refund.refund_date", cascade="all, delete-orphan", lazy="selectin"
    )


class PaymentLineItem(Base):
    """Portion of a payment allocated to one fee breakdown."""

    __tablename__ = "payment_line_items"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    payment_id = Column(Uuid, ForeignKey("payments.id", ondelete="CASCADE"), nullable=False, index=True)
    fee_breakdown_id = Column(Uuid, ForeignKey("fee_breakdowns.id", ondelete="SET NULL"), nullable=True)
    amount = Column(Numeric(12, 2), nullable=False)
    description = Column(String(255), nullable=False)


class Refund(Base):
    __tablename__ = "refunds"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    payment_id = Column(Uuid, ForeignKey("payments.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    reason = Column(Text, nullable=False)
    reference_number = Column(String(100), nullable=False)
    refunded_by = Column(String(255), nullable=False)
    refund_date = Column(DateTime, default=datetime.utcnow, nullable=False)
