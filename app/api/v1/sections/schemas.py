from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class SectionCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    grade_level: str = Field(..., min_length=1, max_length=30, description="e.g. Kinder 1, Grade 7")


class SectionUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    grade_level: Optional[str] = Field(None, min_length=1, max_length=30)
    is_active: Optional[bool] = None


class SectionResponse(BaseModel):
    id: UUID
    name: str
    grade_level: str
    is_active: bool
    student_count: int = Field(0, description="Students assigned to this section in the active academic year")
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
