from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class CustomRemarkCreate(BaseModel):
    label: str = Field(..., min_length=1, max_length=255)
    category: str = Field(..., min_length=1, max_length=50)
    sort_order: int = 0


class CustomRemarkUpdate(BaseModel):
    label: Optional[str] = Field(None, min_length=1, max_length=255)
    category: Optional[str] = Field(None, min_length=1, max_length=50)
    is_active: Optional[bool] = None
    sort_order: Optional[int] = None


class CustomRemarkResponse(BaseModel):
    id: UUID
    label: str
    category: str
    sort_order: int
    is_active: bool
    created_by: str
    created_at: datetime
    updated_at: datetime
    student_count: int = Field(0, description="Students whose remarks include this label")

    class Config:
        from_attributes = True


class StudentWithRemark(BaseModel):
    id: UUID
    name: str
    lrn: Optional[str] = None
    grade_level: str
    section: str


class SeedRemarksResponse(BaseModel):
    message: str
    created: int
    skipped: int
