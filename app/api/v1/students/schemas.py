import re
from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from app.core.enums import EnrollmentStatus, Gender

# Philippine mobile number: 09XXXXXXXXX or +639XXXXXXXXX
PH_MOBILE_RE = re.compile(r"^(09|\+639)\d{9}$")


def _blank_to_none(v):
    if isinstance(v, str) and not v.strip():
        return None
    return v


class StudentCreate(BaseModel):
    """
    Enrollment form. Remarks may be sent already encoded ("text|Label,Label") in `remarks`,
    or split into `remark_text` and `remark_labels`, which take precedence.
    """

    lrn: Optional[str] = Field(None, pattern=r"^\d{12}$", description="Learner Reference Number")
    first_name: str = Field(..., min_length=1, max_length=100)
    middle_name: Optional[str] = Field(None, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    gender: Gender
    contact_number: str
    date_of_birth: date

    house_number: Optional[str] = None
    street: Optional[str] = None
    subdivision: Optional[str] = None
    barangay: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    zip_code: Optional[str] = Field(None, max_length=10)

    parent_guardian: str = Field(..., min_length=1)
    father_name: Optional[str] = None
    father_occupation: Optional[str] = None
    mother_name: Optional[str] = None
    mother_occupation: Optional[str] = None
    guardian_relationship: Optional[str] = None
    emergency_contact_name: Optional[str] = None
    emergency_contact_number: Optional[str] = None

    grade_level: str = Field(..., min_length=1)
    section_id: Optional[UUID] = None
    enrollment_status: EnrollmentStatus = EnrollmentStatus.PENDING
    is_transferee: bool = False
    previous_school: Optional[str] = None

    remarks: Optional[str] = None
    remark_text: Optional[str] = None
    remark_labels: Optional[List[str]] = None

    @field_validator(
        "lrn",
        "middle_name",
        "previous_school",
        "emergency_contact_name",
        "emergency_contact_number",
        mode="before",
    )
    @classmethod
    def blank_as_missing(cls, v):
        return _blank_to_none(v)

    @field_validator("contact_number")
    @classmethod
    def check_contact_number(cls, v: str) -> str:
        v = v.strip()
        if not PH_MOBILE_RE.match(v):
            raise ValueError("Contact number must be 09XXXXXXXXX or +639XXXXXXXXX")
        return v

    @field_validator("emergency_contact_number")
    @classmethod
    def check_emergency_number(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not PH_MOBILE_RE.match(v.strip()):
            raise ValueError("Emergency contact number must be 09XXXXXXXXX or +639XXXXXXXXX")
        return v.strip() if v else v

    @model_validator(mode="after")
    def check_dependent_fields(self):
        if self.is_transferee and not self.previous_school:
            raise ValueError("Previous school is required for transferees")
        if bool(self.emergency_contact_name) != bool(self.emergency_contact_number):
            raise ValueError("Emergency contact name and number must be provided together")
        return self

    @property
    def full_name(self) -> str:
        return " ".join(p.strip() for p in (self.first_name, self.middle_name, self.last_name) if p and p.strip())


# Edits resubmit the whole form
StudentUpdate = StudentCreate


class StudentSwitch(BaseModel):
    grade_level: str = Field(..., min_length=1)
    section_id: Optional[UUID] = None


class EnrollmentSummary(BaseModel):
    id: UUID
    academic_year_id: UUID
    school_year: str
    grade_level: str
    section_id: Optional[UUID] = None
    section_name: Optional[str] = None
    status: str
    enrollment_date: datetime


class StudentResponse(BaseModel):
    id: UUID
    lrn: Optional[str] = None
    first_name: str
    middle_name: Optional[str] = None
    last_name: str
    full_name: str
    gender: str
    contact_number: str
    date_of_birth: date
    house_number: Optional[str] = None
    street: Optional[str] = None
    subdivision: Optional[str] = None
    barangay: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    zip_code: Optional[str] = None
    parent_guardian: str
    father_name: Optional[str] = None
    father_occupation: Optional[str] = None
    mother_name: Optional[str] = None
    mother_occupation: Optional[str] = None
    guardian_relationship: Optional[str] = None
    emergency_contact_name: Optional[str] = None
    emergency_contact_number: Optional[str] = None
    grade_level: str
    section_id: Optional[UUID] = None
    section_name: Optional[str] = None
    enrollment_status: str
    is_transferee: bool
    previous_school: Optional[str] = None
    remarks: Optional[str] = None
    remark_text: str = ""
    remark_labels: List[str] = Field(default_factory=list)
    remarks_display: str = "None"
    enrollments: List[EnrollmentSummary] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class StudentEnrollResponse(StudentResponse):
    is_reenrollment: bool
    enrollment_id: UUID


class StudentSwitchResponse(StudentResponse):
    message: str = "Student switched successfully"


class StudentSearchResult(BaseModel):
    id: UUID
    lrn: Optional[str] = None
    full_name: str
    first_name: str
    last_name: str
    date_of_birth: date
    grade_level: str
    barangay: Optional[str] = None
    city: Optional[str] = None
    enrollment_status: str
    latest_enrollment: Optional[EnrollmentSummary] = None


class StudentDuplicateCheck(BaseModel):
    first_name: str = Field(..., min_length=1)
    middle_name: Optional[str] = None
    last_name: str = Field(..., min_length=1)
    date_of_birth: Optional[date] = None


class StudentDeleteResponse(BaseModel):
    success: bool = True
    deleted_enrollments: int
