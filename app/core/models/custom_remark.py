import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Uuid

from app.db.session import Base


class CustomRemark(Base):
    """Checkbox label offered in the student remarks field, grouped by category."""

    __tablename__ = "custom_remarks"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    label = Column(String(255), nullable=False)
    category = Column(String(50), nullable=False)  # payment, documents, behavioral, administrative, special
    sort_order = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_by = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
