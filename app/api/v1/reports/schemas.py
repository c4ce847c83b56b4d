from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel


class GradeDistribution(BaseModel):
    grade_level: str
    count: int
    male: int
    female: int


class ReportStudent(BaseModel):
    id: UUID
    lrn: Optional[str] = None
    full_name: str
    gender: str
    grade_level: str
    section_name: Optional[str] = None
    barangay: Optional[str] = None
    city: Optional[str] = None
    enrollment_status: str
    is_transferee: bool


class EnrollmentReport(BaseModel):
    academic_year: str
    total_students: int
    enrolled_students: int
    pending_students: int
    transferees: int
    grade_distribution: List[GradeDistribution]
    students: List[ReportStudent]
