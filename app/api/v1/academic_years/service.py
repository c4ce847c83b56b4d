"""
Academic year lifecycle: single active year, end/activate, prepopulation of a new year from
the previous one, cascading delete into the recycle bin, and carrying students over.
"""

import logging
from datetime import date
from typing import Dict, List, Optional
from uuid import UUID

from fastapi import status
from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.custom_remarks.service import seed_default_remarks
from app.api.v1.fees.service import copy_fee_templates, copy_optional_fees
from app.api.v1.recycle_bin.service import move_to_recycle_bin, snapshot
from app.api.v1.sections.service import ensure_default_sections
from app.core.enums import EnrollmentStatus, RecycleEntityType, YearAction
from app.core.exceptions import ServiceError
from app.core.grades import SECTION_DEFINITIONS, next_grade_level
from app.core.models import (
    AcademicYear,
    Enrollment,
    FeeBreakdown,
    FeeTemplate,
    Notification,
    OptionalFee,
    OptionalFeeVariation,
    Payment,
    PaymentAdjustment,
    PaymentLineItem,
    Refund,
    Student,
    StudentFeeStatus,
    StudentOptionalFee,
)

from .schemas import (
    AcademicYearActionResponse,
    AcademicYearCreate,
    AcademicYearDeleteResponse,
    AcademicYearPatch,
    AcademicYearResponse,
    AcademicYearUpdate,
    CreateAcademicYearResponse,
    ImportCandidate,
    ImportCandidatesResponse,
    ImportStudentsRequest,
    ImportStudentsResponse,
    PrepopulationSummary,
)

logger = logging.getLogger(__name__)


def _to_response(ay: AcademicYear, enrollment_count: int = 0) -> AcademicYearResponse:
    return AcademicYearResponse(
        id=ay.id,
        name=ay.name,
        start_date=ay.start_date,
        end_date=ay.end_date,
        is_active=ay.is_active,
        is_closed=ay.is_closed,
        enrollment_count=enrollment_count,
        created_at=ay.created_at,
        updated_at=ay.updated_at,
    )


async def _enrollment_count(db: AsyncSession, academic_year_id: UUID) -> int:
    result = await db.execute(
        select(func.count(Enrollment.id)).where(Enrollment.academic_year_id == academic_year_id)
    )
    return result.scalar_one()


async def _get_or_404(db: AsyncSession, academic_year_id: UUID) -> AcademicYear:
    ay = await db.get(AcademicYear, academic_year_id)
    if not ay:
        raise ServiceError("Academic year not found", status.HTTP_404_NOT_FOUND)
    return ay


async def _check_name_free(db: AsyncSession, name: str, exclude_id: Optional[UUID] = None) -> None:
    stmt = select(AcademicYear.id).where(AcademicYear.name == name)
    if exclude_id is not None:
        stmt = stmt.where(AcademicYear.id != exclude_id)
    if (await db.execute(stmt)).scalars().first():
        raise ServiceError(f"Academic year with name '{name}' already exists", status.HTTP_409_CONFLICT)


async def set_active_academic_year(db: AsyncSession, academic_year_id: UUID) -> AcademicYear:
    """Stage: deactivate every other year, then activate this one. Caller commits both together."""
    ay = await _get_or_404(db, academic_year_id)
    await db.execute(
        update(AcademicYear)
        .where(AcademicYear.id != academic_year_id, AcademicYear.is_active.is_(True))
        .values(is_active=False)
    )
    ay.is_active = True
    return ay


async def get_active_academic_year(db: AsyncSession) -> Optional[AcademicYearResponse]:
    result = await db.execute(select(AcademicYear).where(AcademicYear.is_active.is_(True)))
    ay = result.scalars().first()
    return _to_response(ay, await _enrollment_count(db, ay.id)) if ay else None


async def validate_single_active_year(db: AsyncSession) -> Optional[AcademicYear]:
    """The active year, or None. More than one active year is a data integrity error."""
    result = await db.execute(select(AcademicYear).where(AcademicYear.is_active.is_(True)))
    active = list(result.scalars().all())
    if len(active) > 1:
        raise ServiceError(
            f"Data integrity error: Multiple active academic years found ({len(active)}). "
            "Only one academic year can be active at a time.",
            status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    return active[0] if active else None


async def _prepopulate(
    db: AsyncSession,
    new_year: AcademicYear,
    source_year: Optional[AcademicYear],
    created_by: str,
) -> PrepopulationSummary:
    sections_created = await ensure_default_sections(db, SECTION_DEFINITIONS)
    remarks_created, _ = await seed_default_remarks(db, created_by)
    templates_copied = optional_copied = 0
    if source_year is not None:
        templates_copied = await copy_fee_templates(db, source_year, new_year)
        optional_copied = await copy_optional_fees(db, source_year, new_year)
    return PrepopulationSummary(
        sections_created=sections_created,
        remarks_created=remarks_created,
        fee_templates_copied=templates_copied,
        optional_fees_copied=optional_copied,
        total_actions=sections_created + remarks_created + templates_copied + optional_copied,
        source_year=source_year.name if source_year else None,
    )


async def create_academic_year(
    db: AsyncSession,
    payload: AcademicYearCreate,
    created_by: str,
) -> CreateAcademicYearResponse:
    """
    Create the year as the active one and prepopulate it: default sections, the remarks
    catalog, and fee templates / optional fees copied from the most recent other year.
    Everything commits in one transaction.
    """
    name = payload.name.strip()
    await _check_name_free(db, name)
    source = await db.execute(select(AcademicYear).order_by(AcademicYear.start_date.desc()).limit(1))
    source_year = source.scalars().first()

    await db.execute(update(AcademicYear).where(AcademicYear.is_active.is_(True)).values(is_active=False))
    ay = AcademicYear(
        name=name,
        start_date=payload.start_date,
        end_date=payload.end_date,
        is_active=True,
        is_closed=False,
    )
    db.add(ay)
    await db.flush()
    summary = await _prepopulate(db, ay, source_year, created_by)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ServiceError("Academic year could not be created (conflicting data)", status.HTTP_409_CONFLICT)
    logger.info(
        "Created academic year %s: %d section(s), %d remark(s), %d fee template(s), %d optional fee(s) from %s",
        ay.name,
        summary.sections_created,
        summary.remarks_created,
        summary.fee_templates_copied,
        summary.optional_fees_copied,
        summary.source_year or "nothing",
    )
    return CreateAcademicYearResponse(academic_year=_to_response(ay), prepopulation=summary)


async def list_academic_years(db: AsyncSession) -> List[AcademicYearResponse]:
    """All years, newest start date first, with enrollment counts."""
    result = await db.execute(select(AcademicYear).order_by(AcademicYear.start_date.desc()))
    years = list(result.scalars().all())
    counts_result = await db.execute(
        select(Enrollment.academic_year_id, func.count(Enrollment.id)).group_by(Enrollment.academic_year_id)
    )
    counts: Dict[UUID, int] = dict(counts_result.all())
    return [_to_response(ay, counts.get(ay.id, 0)) for ay in years]


async def get_academic_year(db: AsyncSession, academic_year_id: UUID) -> Optional[AcademicYearResponse]:
    ay = await db.get(AcademicYear, academic_year_id)
    if not ay:
        return None
    return _to_response(ay, await _enrollment_count(db, ay.id))


async def update_academic_year(
    db: AsyncSession,
    academic_year_id: UUID,
    payload: AcademicYearUpdate,
) -> AcademicYearResponse:
    ay = await _get_or_404(db, academic_year_id)
    name = payload.name.strip()
    await _check_name_free(db, name, exclude_id=academic_year_id)
    ay.name = name
    ay.start_date = payload.start_date
    ay.end_date = payload.end_date
    await db.commit()
    return _to_response(ay, await _enrollment_count(db, ay.id))


async def patch_academic_year(
    db: AsyncSession,
    academic_year_id: UUID,
    payload: AcademicYearPatch,
) -> AcademicYearResponse:
    ay = await _get_or_404(db, academic_year_id)
    if payload.name is not None:
        name = payload.name.strip()
        await _check_name_free(db, name, exclude_id=academic_year_id)
        ay.name = name
    if payload.start_date is not None:
        ay.start_date = payload.start_date
    if "end_date" in payload.model_fields_set:
        ay.end_date = payload.end_date
    if ay.end_date and ay.end_date <= ay.start_date:
        raise ServiceError("end_date must be after start_date", status.HTTP_400_BAD_REQUEST)
    if payload.is_active is True:
        await set_active_academic_year(db, academic_year_id)
    elif payload.is_active is False:
        ay.is_active = False
    await db.commit()
    return _to_response(ay, await _enrollment_count(db, ay.id))


async def apply_action(db: AsyncSession, academic_year_id: UUID, action: YearAction) -> AcademicYearActionResponse:
    """end: deactivate, close and stamp today's end date. activate: make it the single active year."""
    if action == YearAction.END:
        ay = await _get_or_404(db, academic_year_id)
        ay.is_active = False
        ay.is_closed = True
        ay.end_date = date.today()
        message = "Academic year ended successfully"
    else:
        ay = await set_active_academic_year(db, academic_year_id)
        ay.is_closed = False
        message = "Academic year activated successfully"
    await db.commit()
    logger.info("Academic year %s: %s", ay.name, action.value)
    response = _to_response(ay, await _enrollment_count(db, ay.id))
    return AcademicYearActionResponse(**response.model_dump(), message=message)


async def delete_academic_year(db: AsyncSession, academic_year_id: UUID, deleted_by: str) -> AcademicYearDeleteResponse:
    """
    Snapshot the year into the recycle bin, then delete everything scoped to it: fee statuses,
    payments with their line items and refunds, optional fee assignments, adjustments, fee
    templates, optional fees and enrollments. Students themselves are kept.
    """
    ay = await _get_or_404(db, academic_year_id)
    year_name = ay.name
    data = snapshot(ay)
    data["enrollment_count"] = await _enrollment_count(db, academic_year_id)
    move_to_recycle_bin(db, RecycleEntityType.ACADEMIC_YEAR, ay.id, data, year_name, deleted_by)

    def _count(result) -> int:
        return result.rowcount or 0

    payment_ids = select(Payment.id).where(Payment.academic_year_id == academic_year_id)
    template_ids = select(FeeTemplate.id).where(FeeTemplate.academic_year_id == academic_year_id)
    optional_ids = select(OptionalFee.id).where(OptionalFee.academic_year_id == academic_year_id)
    enrollment_ids = select(Enrollment.id).where(Enrollment.academic_year_id == academic_year_id)

    fee_statuses = _count(
        await db.execute(delete(StudentFeeStatus).where(StudentFeeStatus.academic_year_id == academic_year_id))
    )
    refunds = _count(await db.execute(delete(Refund).where(Refund.payment_id.in_(payment_ids))))
    await db.execute(delete(PaymentLineItem).where(PaymentLineItem.payment_id.in_(payment_ids)))
    payments = _count(await db.execute(delete(Payment).where(Payment.academic_year_id == academic_year_id)))
    optional_assignments = _count(
        await db.execute(delete(StudentOptionalFee).where(StudentOptionalFee.academic_year_id == academic_year_id))
    )
    adjustments = _count(
        await db.execute(delete(PaymentAdjustment).where(PaymentAdjustment.academic_year_id == academic_year_id))
    )
    await db.execute(delete(FeeBreakdown).where(FeeBreakdown.fee_template_id.in_(template_ids)))
    templates = _count(await db.execute(delete(FeeTemplate).where(FeeTemplate.academic_year_id == academic_year_id)))
    await db.execute(delete(OptionalFeeVariation).where(OptionalFeeVariation.optional_fee_id.in_(optional_ids)))
    await db.execute(delete(OptionalFee).where(OptionalFee.academic_year_id == academic_year_id))
    await db.execute(delete(Notification).where(Notification.enrollment_id.in_(enrollment_ids)))
    enrollments = _count(await db.execute(delete(Enrollment).where(Enrollment.academic_year_id == academic_year_id)))
    await db.delete(ay)
    await db.commit()

    logger.info(
        "Deleted academic year %s: %d enrollment(s), %d fee status(es), %d payment(s), %d refund(s), "
        "%d optional fee assignment(s), %d adjustment(s), %d fee template(s)",
        year_name,
        enrollments,
        fee_statuses,
        payments,
        refunds,
        optional_assignments,
        adjustments,
        templates,
    )
    return AcademicYearDeleteResponse(
        deleted_year=year_name,
        deleted_enrollments=enrollments,
        deleted_fee_statuses=fee_statuses,
        deleted_payments=payments,
        deleted_refunds=refunds,
        deleted_optional_fees=optional_assignments,
        deleted_adjustments=adjustments,
        deleted_fee_templates=templates,
    )


# --- Carry students over from another year ---
async def list_import_candidates(
    db: AsyncSession,
    target_year_id: UUID,
    source_year_id: UUID,
) -> ImportCandidatesResponse:
    """ENROLLED students of the source year not yet enrolled in the target, with a suggested next grade."""
    await _get_or_404(db, target_year_id)
    already = select(Enrollment.student_id).where(Enrollment.academic_year_id == target_year_id)
    result = await db.execute(
        select(Enrollment, Student)
        .join(Student, Student.id == Enrollment.student_id)
        .where(
            Enrollment.academic_year_id == source_year_id,
            Enrollment.status == EnrollmentStatus.ENROLLED.value,
            Enrollment.student_id.not_in(already),
        )
        .order_by(Student.full_name)
    )
    candidates = [
        ImportCandidate(
            id=student.id,
            lrn=student.lrn,
            full_name=student.full_name,
            grade_level=student.grade_level,
            current_grade=enrollment.grade_level,
            next_grade=next_grade_level(enrollment.grade_level),
        )
        for enrollment, student in result.all()
    ]
    return ImportCandidatesResponse(students=candidates, total=len(candidates))


async def _import_one(db: AsyncSession, target: AcademicYear, student_id: UUID, grade_level: str) -> bool:
    """Enroll one student into target; False when already enrolled there. Commits on success."""
    student = await db.get(Student, student_id)
    if not student:
        raise ServiceError(f"Student with ID {student_id} not found", status.HTTP_404_NOT_FOUND)
    existing = await db.execute(
        select(Enrollment.id).where(Enrollment.student_id == student_id, Enrollment.academic_year_id == target.id)
    )
    if existing.scalar_one_or_none():
        return False
    grade_level = grade_level.strip()
    if not grade_level:
        raise ServiceError(f"Grade level is required for {student.full_name}", status.HTTP_400_BAD_REQUEST)
    db.add(
        Enrollment(
            student_id=student_id,
            academic_year_id=target.id,
            school_year=target.name,
            grade_level=grade_level,
            section_id=None,
            status=EnrollmentStatus.ENROLLED.value,
        )
    )
    student.grade_level = grade_level
    student.section_id = None
    student.enrollment_status = EnrollmentStatus.ENROLLED.value
    await db.commit()
    return True


async def import_students(
    db: AsyncSession,
    target_year_id: UUID,
    payload: ImportStudentsRequest,
) -> ImportStudentsResponse:
    """Enroll each listed student in its own transaction; one failure does not stop the rest."""
    target = await _get_or_404(db, target_year_id)
    target_name = target.name
    success = skipped = 0
    errors: List[str] = []
    for item in payload.students:
        try:
            if await _import_one(db, target, item.student_id, item.grade_level):
                success += 1
            else:
                skipped += 1
        except (ServiceError, IntegrityError) as e:
            await db.rollback()
            # Rollback expires loaded rows; reload what the next iteration reads
            target = await _get_or_404(db, target_year_id)
            student = await db.get(Student, item.student_id)
            reason = e.message if isinstance(e, ServiceError) else "already enrolled in this academic year"
            errors.append(f"{student.full_name if student else item.student_id}: {reason}")
            logger.warning("Failed to import student %s into %s: %s", item.student_id, target_name, reason)
    logger.info("Imported %d student(s) into %s (%d skipped, %d failed)", success, target_name, skipped, len(errors))
    return ImportStudentsResponse(
        message=f"Successfully enrolled {success} students",
        success=success,
        skipped=skipped,
        errors=errors,
    )
