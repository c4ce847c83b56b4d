import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Numeric, String, UniqueConstraint, Uuid

from app.db.session import Base


class StudentFeeStatus(Base):
    """
    Derived balance snapshot for a (student, academic year). Never edited by hand except the
    late-payment flag; every payment, refund and adjustment recomputes it from source rows.
    """

    __tablename__ = "student_fee_statuses"
    __table_args__ = (
        UniqueConstraint("student_id", "academic_year_id", name="uq_fee_status_student_year"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    student_id = Column(Uuid, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    academic_year_id = Column(Uuid, ForeignKey("academic_years.id", ondelete="CASCADE"), nullable=False, index=True)
    fee_template_id = Column(Uuid, ForeignKey("fee_templates.id", ondelete="SET NULL"), nullable=True)
    base_fee = Column(Numeric(12, 2), nullable=False, default=0)
    total_adjustments = Column(Numeric(12, 2), nullable=False, default=0)
    total_due = Column(Numeric(12, 2), nullable=False, default=0)
    total_paid = Column(Numeric(12, 2), nullable=False, default=0)
    balance = Column(Numeric(12, 2), nullable=False, default=0)
    payment_status = Column(String(20), nullable=False, default="UNPAID")
    last_payment_date = Column(DateTime, nullable=True)
    is_late_payment = Column(Boolean, nullable=False, default=False)
    late_since = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
