"""Per-year enrollment report and its Excel export."""

import io
from typing import Dict, List
from uuid import UUID

from fastapi import status
from openpyxl import Workbook
from openpyxl.styles import Font
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import EnrollmentStatus, Gender
from app.core.exceptions import ServiceError
from app.core.grades import grade_rank
from app.core.models import AcademicYear, Enrollment, Section, Student

from .schemas import EnrollmentReport, GradeDistribution, ReportStudent

STUDENT_HEADERS = ["LRN", "Full Name", "Gender", "Grade Level", "Section", "Barangay", "City", "Status", "Transferee"]


async def build_report(db: AsyncSession, academic_year_id: UUID) -> EnrollmentReport:
    """
    Statistics over the students enrolled in the year. Grade level and status come from the
    year's enrollment, so reports on past years show where students were at the time.
    """
    ay = await db.get(AcademicYear, academic_year_id)
    if not ay:
        raise ServiceError("Academic year not found", status.HTTP_404_NOT_FOUND)
    result = await db.execute(
        select(Enrollment, Student)
        .join(Student, Student.id == Enrollment.student_id)
        .where(Enrollment.academic_year_id == academic_year_id)
    )
    rows = result.all()
    section_ids = {e.section_id for e, _ in rows if e.section_id is not None}
    names: Dict[UUID, str] = {}
    if section_ids:
        names_result = await db.execute(select(Section.id, Section.name).where(Section.id.in_(section_ids)))
        names = dict(names_result.all())

    students: List[ReportStudent] = [
        ReportStudent(
            id=s.id,
            lrn=s.lrn,
            full_name=s.full_name,
            gender=s.gender,
            grade_level=e.grade_level,
            section_name=names.get(e.section_id),
            barangay=s.barangay,
            city=s.city,
            enrollment_status=e.status,
            is_transferee=s.is_transferee,
        )
        for e, s in rows
    ]
    students.sort(key=lambda r: (grade_rank(r.grade_level), r.full_name))

    distribution: Dict[str, GradeDistribution] = {}
    for r in students:
        entry = distribution.setdefault(r.grade_level, GradeDistribution(grade_level=r.grade_level, count=0, male=0, female=0))
        entry.count += 1
        if r.gender == Gender.MALE.value:
            entry.male += 1
        elif r.gender == Gender.FEMALE.value:
            entry.female += 1

    return EnrollmentReport(
        academic_year=ay.name,
        total_students=len(students),
        enrolled_students=sum(1 for r in students if r.enrollment_status == EnrollmentStatus.ENROLLED.value),
        pending_students=sum(1 for r in students if r.enrollment_status == EnrollmentStatus.PENDING.value),
        transferees=sum(1 for r in students if r.is_transferee),
        grade_distribution=sorted(distribution.values(), key=lambda d: grade_rank(d.grade_level)),
        students=students,
    )


def build_report_excel(report: EnrollmentReport) -> bytes:
    """Workbook with a Summary sheet (totals and grade distribution) and a Students sheet."""
    wb = Workbook()
    bold = Font(bold=True)

    ws_summary = wb.active
    ws_summary.title = "Summary"
    ws_summary.append([f"Enrollment Report {report.academic_year}"])
    ws_summary["A1"].font = Font(bold=True, size=14)
    ws_summary.append([])
    for label, value in (
        ("Total Students", report.total_students),
        ("Enrolled", report.enrolled_students),
        ("Pending", report.pending_students),
        ("Transferees", report.transferees),
    ):
        ws_summary.append([label, value])
    ws_summary.append([])
    ws_summary.append(["Grade Level", "Total", "Male", "Female"])
    for cell in ws_summary[ws_summary.max_row]:
        cell.font = bold
    for d in report.grade_distribution:
        ws_summary.append([d.grade_level, d.count, d.male, d.female])

    ws_students = wb.create_sheet("Students")
    ws_students.append(STUDENT_HEADERS)
    for cell in ws_students[1]:
        cell.font = bold
    for r in report.students:
        ws_students.append(
            [
                r.lrn or "",
                r.full_name,
                r.gender,
                r.grade_level,
                r.section_name or "Not Assigned",
                r.barangay or "",
                r.city or "",
                r.enrollment_status,
                "Yes" if r.is_transferee else "No",
            ]
        )

    bio = io.BytesIO()
    wb.save(bio)
    return bio.getvalue()
