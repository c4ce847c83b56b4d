"""Fee templates: the base tuition package per grade level and academic year."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from app.db.session import Base


class FeeTemplate(Base):
    """One template per (grade_level, academic_year). total_amount is the student's base fee."""

    __tablename__ = "fee_templates"
    __table_args__ = (
        UniqueConstraint("grade_level", "academic_year_id", name="uq_fee_template_grade_year"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    grade_level = Column(String(30), nullable=False)
    academic_year_id = Column(Uuid, ForeignKey("academic_years.id", ondelete="CASCADE"), nullable=False, index=True)
    total_amount = Column(Numeric(12, 2), nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    breakdowns = relationship(
        "FeeBreakdown",
        order_by="FeeBreakdown.order",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class FeeBreakdown(Base):
    """Line of a fee template (Tuition, Books, ...). Payments may be allocated per breakdown."""

    __tablename__ = "fee_breakdowns"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    fee_template_id = Column(Uuid, ForeignKey("fee_templates.id", ondelete="CASCADE"), nullable=False, index=True)
    description = Column(String(255), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    category = Column(String(30), nullable=False)
    order = Column(Integer, nullable=False, default=0)
    # NULL means refundable (rows created before the flag existed)
    is_refundable = Column(Boolean, nullable=True, default=True)
