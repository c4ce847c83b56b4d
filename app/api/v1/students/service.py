"""
Students service: enrollment and re-enrollment, edits with status transitions, hard delete
with active-year preconditions, grade/section switch, and the read models (list, archive, search).

A student's grade_level, section_id and enrollment_status mirror its enrollment in the active
academic year; every write here keeps the two in step.
"""

import logging
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from fastapi import status
from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.notifications import service as notifications
from app.core.enums import EnrollmentStatus
from app.core.exceptions import ServiceError
from app.core.models import AcademicYear, Enrollment, Section, Student

from .remarks import encode_remarks, format_remarks_for_display, parse_remarks
from .schemas import (
    EnrollmentSummary,
    StudentCreate,
    StudentDeleteResponse,
    StudentDuplicateCheck,
    StudentEnrollResponse,
    StudentResponse,
    StudentSearchResult,
    StudentSwitch,
    StudentSwitchResponse,
    StudentUpdate,
)

logger = logging.getLogger(__name__)

NO_ACTIVE_YEAR_FOR_ENROLLMENT = "No active academic year. Please create an academic year first."
NO_ACTIVE_YEAR = "No active academic year found"
LRN_CONFLICT = "A student with this LRN already exists"

# Form fields copied onto the Student row as-is
_STUDENT_FIELDS = (
    "lrn",
    "first_name",
    "middle_name",
    "last_name",
    "contact_number",
    "date_of_birth",
    "house_number",
    "street",
    "subdivision",
    "barangay",
    "city",
    "province",
    "zip_code",
    "parent_guardian",
    "father_name",
    "father_occupation",
    "mother_name",
    "mother_occupation",
    "guardian_relationship",
    "emergency_contact_name",
    "emergency_contact_number",
    "grade_level",
    "section_id",
    "is_transferee",
    "previous_school",
)


async def get_active_year(db: AsyncSession) -> Optional[AcademicYear]:
    result = await db.execute(select(AcademicYear).where(AcademicYear.is_active.is_(True)))
    return result.scalars().first()


async def _section_names(db: AsyncSession, section_ids) -> Dict[UUID, str]:
    ids = {sid for sid in section_ids if sid is not None}
    if not ids:
        return {}
    result = await db.execute(select(Section.id, Section.name).where(Section.id.in_(ids)))
    return {sid: name for sid, name in result.all()}


async def _enrollments_of(db: AsyncSession, student_id: UUID) -> List[Enrollment]:
    result = await db.execute(
        select(Enrollment).where(Enrollment.student_id == student_id).order_by(Enrollment.enrollment_date.desc())
    )
    return list(result.scalars().all())


def _enrollment_summary(e: Enrollment, section_names: Dict[UUID, str]) -> EnrollmentSummary:
    return EnrollmentSummary(
        id=e.id,
        academic_year_id=e.academic_year_id,
        school_year=e.school_year,
        grade_level=e.grade_level,
        section_id=e.section_id,
        section_name=section_names.get(e.section_id),
        status=e.status,
        enrollment_date=e.enrollment_date,
    )


def _student_fields(s: Student, section_names: Dict[UUID, str]) -> dict:
    remark_text, remark_labels = parse_remarks(s.remarks)
    data = {field: getattr(s, field) for field in _STUDENT_FIELDS}
    data.update(
        id=s.id,
        full_name=s.full_name,
        gender=s.gender,
        section_name=section_names.get(s.section_id),
        enrollment_status=s.enrollment_status,
        remarks=s.remarks,
        remark_text=remark_text,
        remark_labels=remark_labels,
        remarks_display=format_remarks_for_display(s.remarks),
        created_at=s.created_at,
        updated_at=s.updated_at,
    )
    return data


async def _student_to_response(db: AsyncSession, s: Student, enrollments: Optional[List[Enrollment]] = None) -> StudentResponse:
    if enrollments is None:
        enrollments = await _enrollments_of(db, s.id)
    names = await _section_names(db, [s.section_id] + [e.section_id for e in enrollments])
    return StudentResponse(
        **_student_fields(s, names),
        enrollments=[_enrollment_summary(e, names) for e in enrollments],
    )


def _remarks_value(payload: StudentCreate) -> Optional[str]:
    if payload.remark_text is not None or payload.remark_labels is not None:
        return encode_remarks(payload.remark_text, payload.remark_labels)
    return payload.remarks


def _apply_payload(student: Student, payload: StudentCreate, sent_only: bool = False) -> None:
    """
    Copy the form onto the row. With sent_only (re-enrollment) fields the client left out
    keep their stored values, and a stored LRN is never cleared.
    """
    sent = payload.model_fields_set
    for field in _STUDENT_FIELDS:
        if sent_only and field not in sent:
            continue
        value = getattr(payload, field)
        if sent_only and field == "lrn" and value is None:
            continue
        setattr(student, field, value)
    student.full_name = payload.full_name
    student.gender = payload.gender.value
    student.enrollment_status = payload.enrollment_status.value
    if not sent_only or sent & {"remarks", "remark_text", "remark_labels"}:
        student.remarks = _remarks_value(payload)
    if not student.is_transferee:
        student.previous_school = None


async def _check_section(db: AsyncSession, section_id: Optional[UUID]) -> None:
    if section_id is not None and not await db.get(Section, section_id):
        raise ServiceError("Section not found", status.HTTP_400_BAD_REQUEST)


async def _find_existing(db: AsyncSession, payload: StudentCreate) -> Optional[Student]:
    """Match a resubmitted form to a known student: LRN first, then full name and date of birth."""
    if payload.lrn:
        result = await db.execute(select(Student).where(Student.lrn == payload.lrn))
        student = result.scalar_one_or_none()
        if student:
            return student
    result = await db.execute(
        select(Student).where(
            Student.full_name == payload.full_name,
            Student.date_of_birth == payload.date_of_birth,
        )
    )
    return result.scalars().first()


async def _active_enrollment(db: AsyncSession, student_id: UUID, academic_year_id: UUID) -> Optional[Enrollment]:
    result = await db.execute(
        select(Enrollment).where(
            Enrollment.student_id == student_id,
            Enrollment.academic_year_id == academic_year_id,
        )
    )
    return result.scalar_one_or_none()


async def enroll_student(
    db: AsyncSession,
    payload: StudentCreate,
    admin_id: UUID,
) -> StudentEnrollResponse:
    """
    Create a student with an enrollment in the active year, or re-enroll a matching student.
    A re-enrollment within the same year updates that year's enrollment instead of adding one.
    PENDING enrollments raise a notification for the acting admin.
    """
    active_year = await get_active_year(db)
    if not active_year:
        raise ServiceError(NO_ACTIVE_YEAR_FOR_ENROLLMENT, status.HTTP_400_BAD_REQUEST)
    await _check_section(db, payload.section_id)

    student = await _find_existing(db, payload)
    is_reenrollment = student is not None
    if student is None:
        student = Student()
        db.add(student)
    _apply_payload(student, payload, sent_only=is_reenrollment)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        raise ServiceError(LRN_CONFLICT, status.HTTP_409_CONFLICT)

    enrollment = await _active_enrollment(db, student.id, active_year.id) if is_reenrollment else None
    if enrollment is None:
        enrollment = Enrollment(student_id=student.id, academic_year_id=active_year.id)
        db.add(enrollment)
    enrollment.school_year = active_year.name
    enrollment.grade_level = student.grade_level
    enrollment.section_id = student.section_id
    enrollment.status = student.enrollment_status
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ServiceError(LRN_CONFLICT, status.HTTP_409_CONFLICT)

    response = StudentEnrollResponse(
        **(await _student_to_response(db, student)).model_dump(),
        is_reenrollment=is_reenrollment,
        enrollment_id=enrollment.id,
    )
    logger.info(
        "%s student %s in %s (%s)",
        "Re-enrolled" if is_reenrollment else "Enrolled",
        student.id,
        active_year.name,
        student.enrollment_status,
    )
    if student.enrollment_status == EnrollmentStatus.PENDING.value:
        await notifications.notify_pending_enrollment(
            db,
            admin_id=admin_id,
            student_id=student.id,
            enrollment_id=enrollment.id,
            full_name=student.full_name,
            grade_level=student.grade_level,
            is_reenrollment=is_reenrollment,
        )
    return response


async def list_students(
    db: AsyncSession,
    grade_level: Optional[str] = None,
    status_filter: Optional[str] = None,
    search: Optional[str] = None,
    academic_year: Optional[str] = None,
) -> List[StudentResponse]:
    """Students by name. academic_year is a year name and keeps students with an enrollment in it."""
    stmt = select(Student)
    if grade_level and grade_level != "All Grades":
        stmt = stmt.where(Student.grade_level == grade_level)
    if status_filter and status_filter != "All Status":
        stmt = stmt.where(Student.enrollment_status == status_filter)
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        stmt = stmt.where(
            or_(Student.full_name.ilike(pattern), Student.lrn.ilike(pattern), Student.city.ilike(pattern))
        )
    if academic_year:
        stmt = stmt.where(
            Student.id.in_(select(Enrollment.student_id).where(Enrollment.school_year == academic_year))
        )
    students = list((await db.execute(stmt.order_by(Student.full_name))).scalars().all())
    return await _with_enrollments(db, students)


async def _with_enrollments(
    db: AsyncSession,
    students: List[Student],
    academic_year_id: Optional[UUID] = None,
) -> List[StudentResponse]:
    if not students:
        return []
    stmt = select(Enrollment).where(Enrollment.student_id.in_([s.id for s in students]))
    if academic_year_id is not None:
        stmt = stmt.where(Enrollment.academic_year_id == academic_year_id)
    by_student: Dict[UUID, List[Enrollment]] = {}
    for e in (await db.execute(stmt.order_by(Enrollment.enrollment_date.desc()))).scalars().all():
        by_student.setdefault(e.student_id, []).append(e)
    names = await _section_names(
        db,
        [s.section_id for s in students] + [e.section_id for es in by_student.values() for e in es],
    )
    return [
        StudentResponse(
            **_student_fields(s, names),
            enrollments=[_enrollment_summary(e, names) for e in by_student.get(s.id, [])],
        )
        for s in students
    ]


async def list_archive(
    db: AsyncSession,
    academic_year_id: UUID,
    search: Optional[str] = None,
    grade_level: Optional[str] = None,
) -> List[StudentResponse]:
    """Students enrolled in the given year, with only that year's enrollment attached."""
    stmt = select(Student).where(
        Student.id.in_(select(Enrollment.student_id).where(Enrollment.academic_year_id == academic_year_id))
    )
    if grade_level and grade_level != "All Grades":
        stmt = stmt.where(Student.grade_level == grade_level)
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        stmt = stmt.where(
            or_(
                Student.full_name.ilike(pattern),
                Student.lrn.ilike(pattern),
                Student.city.ilike(pattern),
                Student.parent_guardian.ilike(pattern),
            )
        )
    students = list((await db.execute(stmt.order_by(Student.full_name))).scalars().all())
    return await _with_enrollments(db, students, academic_year_id=academic_year_id)


async def _latest_enrollments(db: AsyncSession, students: List[Student]) -> Dict[UUID, EnrollmentSummary]:
    if not students:
        return {}
    result = await db.execute(
        select(Enrollment)
        .where(Enrollment.student_id.in_([s.id for s in students]))
        .order_by(Enrollment.created_at.desc())
    )
    latest: Dict[UUID, Enrollment] = {}
    for e in result.scalars().all():
        latest.setdefault(e.student_id, e)
    names = await _section_names(db, [e.section_id for e in latest.values()])
    return {sid: _enrollment_summary(e, names) for sid, e in latest.items()}


def _search_result(s: Student, latest: Dict[UUID, EnrollmentSummary]) -> StudentSearchResult:
    return StudentSearchResult(
        id=s.id,
        lrn=s.lrn,
        full_name=s.full_name,
        first_name=s.first_name,
        last_name=s.last_name,
        date_of_birth=s.date_of_birth,
        grade_level=s.grade_level,
        barangay=s.barangay,
        city=s.city,
        enrollment_status=s.enrollment_status,
        latest_enrollment=latest.get(s.id),
    )


async def search_students(db: AsyncSession, q: str, limit: int = 10) -> List[StudentSearchResult]:
    """Name or LRN lookup for the re-enrollment form. Queries under 2 characters match nothing."""
    q = (q or "").strip()
    if len(q) < 2:
        return []
    pattern = f"%{q}%"
    result = await db.execute(
        select(Student)
        .where(
            or_(
                Student.full_name.ilike(pattern),
                Student.first_name.ilike(pattern),
                Student.last_name.ilike(pattern),
                Student.lrn.ilike(pattern),
            )
        )
        .order_by(Student.last_name)
        .limit(limit)
    )
    students = list(result.scalars().all())
    latest = await _latest_enrollments(db, students)
    return [_search_result(s, latest) for s in students]


async def find_possible_duplicates(db: AsyncSession, payload: StudentDuplicateCheck) -> List[StudentSearchResult]:
    """Students matching the full name, or first and last name (case-insensitive), optionally the birth date."""
    full_name = " ".join(p.strip() for p in (payload.first_name, payload.middle_name, payload.last_name) if p and p.strip())
    stmt = select(Student).where(
        or_(
            func.lower(Student.full_name) == full_name.lower(),
            (func.lower(Student.first_name) == payload.first_name.strip().lower())
            & (func.lower(Student.last_name) == payload.last_name.strip().lower()),
        )
    )
    if payload.date_of_birth is not None:
        stmt = stmt.where(Student.date_of_birth == payload.date_of_birth)
    students = list((await db.execute(stmt.order_by(Student.last_name))).scalars().all())
    latest = await _latest_enrollments(db, students)
    return [_search_result(s, latest) for s in students]


async def get_student(db: AsyncSession, student_id: UUID) -> Optional[StudentResponse]:
    student = await db.get(Student, student_id)
    if not student:
        return None
    return await _student_to_response(db, student)


async def _load_for_change(db: AsyncSession, student_id: UUID, verb: str) -> Tuple[Student, AcademicYear, List[Enrollment]]:
    """Student, active year and the student's enrollments; 403 unless enrolled in the active year."""
    student = await db.get(Student, student_id)
    if not student:
        raise ServiceError("Student not found", status.HTTP_404_NOT_FOUND)
    active_year = await get_active_year(db)
    if not active_year:
        raise ServiceError(NO_ACTIVE_YEAR, status.HTTP_400_BAD_REQUEST)
    enrollments = await _enrollments_of(db, student_id)
    if not any(e.academic_year_id == active_year.id for e in enrollments):
        raise ServiceError(
            f"Cannot {verb} student not enrolled in current academic year", status.HTTP_403_FORBIDDEN
        )
    return student, active_year, enrollments


async def update_student(
    db: AsyncSession,
    student_id: UUID,
    payload: StudentUpdate,
    admin_id: UUID,
) -> StudentResponse:
    """
    Full edit. A status change is mirrored on the active-year enrollment and on the enrollment
    notifications: ENROLLED clears them, DROPPED rewrites them, PENDING raises a new one.
    """
    student, active_year, enrollments = await _load_for_change(db, student_id, "edit")
    await _check_section(db, payload.section_id)
    previous_status = student.enrollment_status
    _apply_payload(student, payload)
    enrollment_id = None
    for e in enrollments:
        if e.academic_year_id == active_year.id:
            e.grade_level = student.grade_level
            e.section_id = student.section_id
            e.status = student.enrollment_status
            enrollment_id = e.id

    new_status = student.enrollment_status
    status_changed = new_status != previous_status
    if status_changed and new_status == EnrollmentStatus.ENROLLED.value:
        await notifications.clear_enrollment_notifications(db, student.id)
    elif status_changed and new_status == EnrollmentStatus.DROPPED.value:
        await notifications.mark_enrollment_dropped(db, student.id, student.full_name)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ServiceError(LRN_CONFLICT, status.HTTP_409_CONFLICT)

    response = await _student_to_response(db, student, enrollments)
    if status_changed and new_status == EnrollmentStatus.PENDING.value:
        await notifications.notify_pending_enrollment(
            db,
            admin_id=admin_id,
            student_id=student.id,
            enrollment_id=enrollment_id,
            full_name=student.full_name,
            grade_level=student.grade_level,
            is_reenrollment=len(enrollments) > 1,
        )
    return response


async def delete_student(db: AsyncSession, student_id: UUID) -> StudentDeleteResponse:
    """Hard delete, only for students whose sole enrollment history is the active year."""
    student, active_year, enrollments = await _load_for_change(db, student_id, "delete")
    if any(e.academic_year_id != active_year.id for e in enrollments):
        raise ServiceError(
            "Cannot delete student with enrollments in closed academic years", status.HTTP_403_FORBIDDEN
        )
    await notifications.clear_enrollment_notifications(db, student_id)
    await db.execute(delete(Enrollment).where(Enrollment.student_id == student_id))
    await db.delete(student)
    await db.commit()
    logger.info("Deleted student %s with %d enrollment(s)", student_id, len(enrollments))
    return StudentDeleteResponse(success=True, deleted_enrollments=len(enrollments))


async def switch_student(db: AsyncSession, student_id: UUID, payload: StudentSwitch) -> StudentSwitchResponse:
    """Move a student to another grade level and/or section, along with its active-year enrollment."""
    student = await db.get(Student, student_id)
    if not student:
        raise ServiceError("Student not found", status.HTTP_404_NOT_FOUND)
    active_year = await get_active_year(db)
    if not active_year:
        raise ServiceError(NO_ACTIVE_YEAR, status.HTTP_400_BAD_REQUEST)
    await _check_section(db, payload.section_id)
    student.grade_level = payload.grade_level.strip()
    student.section_id = payload.section_id
    enrollment = await _active_enrollment(db, student_id, active_year.id)
    if enrollment:
        enrollment.grade_level = student.grade_level
        enrollment.section_id = student.section_id
    await db.commit()
    response = await _student_to_response(db, student)
    return StudentSwitchResponse(**response.model_dump())
