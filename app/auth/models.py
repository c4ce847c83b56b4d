import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, String, Text, Uuid

from app.db.session import Base


class Admin(Base):
    """School staff account that signs in to the admin dashboard."""

    __tablename__ = "admins"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String(255), nullable=False, unique=True)
    name = Column(String(255), nullable=True)
    password_hash = Column(Text, nullable=False)
    # ADMIN | REGISTRAR | CASHIER; informational only, every admin can use every route
    role = Column(String(50), nullable=False, default="ADMIN")
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
