"""Optional fees (ID card, uniforms, graduation, ...) and their assignment to students."""

import uuid
from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import relationship

from app.db.session import Base


class OptionalFee(Base):
    """Catalog entry. amount is NULL when the fee is priced per variation (e.g. uniform sizes)."""

    __tablename__ = "optional_fees"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    amount = Column(Numeric(12, 2), nullable=True)
    category = Column(String(30), nullable=False, default="OTHER")
    has_variations = Column(Boolean, nullable=False, default=False)
    # Empty list: applies to every grade level
    applicable_grade_levels = Column(JSON, nullable=False, default=list)
    academic_year_id = Column(Uuid, ForeignKey("academic_years.id", ondelete="CASCADE"), nullable=True, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    sort_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    variations = relationship(
        "OptionalFeeVariation",
        order_by="OptionalFeeVariation.sort_order",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class OptionalFeeVariation(Base):
    __tablename__ = "optional_fee_variations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    optional_fee_id = Column(Uuid, ForeignKey("optional_fees.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    sort_order = Column(Integer, nullable=False, default=0)


class StudentOptionalFee(Base):
    """Optional fee assigned to a student for a year, paid separately from the base fee."""

    __tablename__ = "student_optional_fees"
    __table_args__ = (
        UniqueConstraint(
            "student_id", "academic_year_id", "optional_fee_id", name="uq_student_optional_fee"
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    student_id = Column(Uuid, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    academic_year_id = Column(Uuid, ForeignKey("academic_years.id", ondelete="CASCADE"), nullable=False)
    optional_fee_id = Column(Uuid, ForeignKey("optional_fees.id", ondelete="CASCADE"), nullable=False)
    selected_variation_id = Column(
        Uuid, ForeignKey("optional_fee_variations.id", ondelete="SET NULL"), nullable=True
    )
    amount = Column(Numeric(12, 2), nullable=False)
    paid_amount = Column(Numeric(12, 2), nullable=False, default=0)
    is_paid = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
