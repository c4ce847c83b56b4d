from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class AdminInfo(BaseModel):
    id: UUID
    name: Optional[str] = None
    email: EmailStr
    role: str


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    admin: AdminInfo
    issued_at: datetime


class CurrentAdmin(BaseModel):
    """Authenticated admin resolved from the bearer token."""

    id: UUID
    email: str
    name: Optional[str] = None
    role: str

    @property
    def actor(self) -> str:
        """Value stored in created_by / deleted_by / refunded_by columns."""
        return self.email
