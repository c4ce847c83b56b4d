import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Numeric, String, Text, Uuid

from app.db.session import Base


class PaymentAdjustment(Base):
    """Discount (lowers total due) or additional charge (raises it) for a student's year."""

    __tablename__ = "payment_adjustments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    student_id = Column(Uuid, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    academic_year_id = Column(Uuid, ForeignKey("academic_years.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String(20), nullable=False)  # DISCOUNT | ADDITIONAL
    amount = Column(Numeric(12, 2), nullable=False)  # always positive; sign comes from type
    reason = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    created_by = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
