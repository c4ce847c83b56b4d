from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.core.enums import NotificationType


class NotificationCreate(BaseModel):
    type: NotificationType = NotificationType.SYSTEM
    title: str = Field(..., min_length=1, max_length=255)
    message: str = Field(..., min_length=1)
    student_id: Optional[UUID] = None
    enrollment_id: Optional[UUID] = None


class NotificationUpdate(BaseModel):
    is_read: bool


class NotificationResponse(BaseModel):
    id: UUID
    admin_id: UUID
    type: str
    title: str
    message: str
    is_read: bool
    student_id: Optional[UUID] = None
    enrollment_id: Optional[UUID] = None
    created_at: datetime

    class Config:
        from_attributes = True


class MarkAllReadResponse(BaseModel):
    updated: int
