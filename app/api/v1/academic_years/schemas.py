from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from app.core.enums import YearAction


def _check_dates(start_date: Optional[date], end_date: Optional[date]) -> None:
    if start_date and end_date and end_date <= start_date:
        raise ValueError("end_date must be after start_date")


class AcademicYearCreate(BaseModel):
    """New school year. It becomes the active year and is prepopulated from the previous one."""

    name: str = Field(..., min_length=1, max_length=50, description="e.g. 2025-2026")
    start_date: date
    end_date: Optional[date] = None

    @model_validator(mode="after")
    def check_dates(self):
        _check_dates(self.start_date, self.end_date)
        return self


class AcademicYearUpdate(BaseModel):
    """PUT: full update of name and dates."""

    name: str = Field(..., min_length=1, max_length=50)
    start_date: date
    end_date: Optional[date] = None

    @model_validator(mode="after")
    def check_dates(self):
        _check_dates(self.start_date, self.end_date)
        return self


class AcademicYearPatch(BaseModel):
    """PATCH: partial update. is_active=true activates the year (and deactivates the others)."""

    name: Optional[str] = Field(None, min_length=1, max_length=50)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_active: Optional[bool] = None


class AcademicYearAction(BaseModel):
    action: YearAction


class AcademicYearResponse(BaseModel):
    id: UUID
    name: str
    start_date: date
    end_date: Optional[date] = None
    is_active: bool
    is_closed: bool
    enrollment_count: int = 0
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class AcademicYearActionResponse(AcademicYearResponse):
    message: str


class PrepopulationSummary(BaseModel):
    sections_created: int = 0
    remarks_created: int = 0
    fee_templates_copied: int = 0
    optional_fees_copied: int = 0
    total_actions: int = 0
    source_year: Optional[str] = Field(None, description="Year the fees were copied from")


class CreateAcademicYearResponse(BaseModel):
    academic_year: AcademicYearResponse
    prepopulation: PrepopulationSummary
    message: str = "Academic year created successfully with prepopulated data"


class AcademicYearDeleteResponse(BaseModel):
    message: str = "Academic year and all related records deleted successfully"
    deleted_year: str
    deleted_enrollments: int
    deleted_fee_statuses: int
    deleted_payments: int
    deleted_refunds: int
    deleted_optional_fees: int
    deleted_adjustments: int
    deleted_fee_templates: int


# --- Import students from another year ---
class ImportCandidate(BaseModel):
    id: UUID
    lrn: Optional[str] = None
    full_name: str
    grade_level: str
    current_grade: str = Field(..., description="Grade in the source year")
    next_grade: str = Field(..., description="Suggested grade for the target year")


class ImportCandidatesResponse(BaseModel):
    students: List[ImportCandidate]
    total: int


class ImportStudentItem(BaseModel):
    student_id: UUID
    grade_level: str


class ImportStudentsRequest(BaseModel):
    students: List[ImportStudentItem] = Field(..., min_length=1)


class ImportStudentsResponse(BaseModel):
    message: str
    success: int
    skipped: int
    errors: List[str] = Field(default_factory=list)
