import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, String, UniqueConstraint, Uuid

from app.db.session import Base


class Section(Base):
    """Named class group within a grade level (e.g. Grade 7 - Perseverance). Not year-scoped."""

    __tablename__ = "sections"
    __table_args__ = (UniqueConstraint("name", "grade_level", name="uq_section_name_grade"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    grade_level = Column(String(30), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
