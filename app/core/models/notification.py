import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Text, Uuid

from app.db.session import Base


class Notification(Base):
    """Inbox item for one admin. ENROLLMENT notifications point at the pending student."""

    __tablename__ = "notifications"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    admin_id = Column(Uuid, ForeignKey("admins.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String(20), nullable=False)  # ENROLLMENT | SYSTEM | ALERT
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    is_read = Column(Boolean, nullable=False, default=False)
    student_id = Column(Uuid, ForeignKey("students.id", ondelete="CASCADE"), nullable=True, index=True)
    enrollment_id = Column(Uuid, ForeignKey("enrollments.id", ondelete="CASCADE"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
