import uuid
from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, String, Uuid

from app.db.session import Base


class RecycleBin(Base):
    """
    Soft-deleted entity kept as a JSON snapshot until permanent_delete_at
    (deleted_at + retention days). Restoring re-creates the row with its original id.
    """

    __tablename__ = "recycle_bin"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    entity_type = Column(String(30), nullable=False, index=True)  # student, section, academicYear, feeTemplate, customRemark
    entity_id = Column(Uuid, nullable=False)
    entity_data = Column(JSON, nullable=False)
    entity_name = Column(String(320), nullable=False)
    deleted_by = Column(String(255), nullable=False)
    deleted_at = Column(DateTime, nullable=False)
    permanent_delete_at = Column(DateTime, nullable=False, index=True)
