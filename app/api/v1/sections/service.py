from typing import Dict, List, Optional
from uuid import UUID

from fastapi import status
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.recycle_bin.service import move_to_recycle_bin, snapshot
from app.core.enums import RecycleEntityType
from app.core.exceptions import ServiceError
from app.core.grades import grade_rank
from app.core.models import AcademicYear, Enrollment, Section, Student

from .schemas import SectionCreate, SectionResponse, SectionUpdate

DUPLICATE_MESSAGE = "Section already exists for this grade level"


def _section_to_response(s: Section, student_count: int = 0) -> SectionResponse:
    return SectionResponse(
        id=s.id,
        name=s.name,
        grade_level=s.grade_level,
        is_active=s.is_active,
        student_count=student_count,
        created_at=s.created_at,
        updated_at=s.updated_at,
    )


async def _student_counts(db: AsyncSession, section_ids: List[UUID]) -> Dict[UUID, int]:
    """Map section_id -> students assigned to it who are enrolled in the active academic year."""
    if not section_ids:
        return {}
    stmt = select(Student.section_id, func.count(func.distinct(Student.id))).where(
        Student.section_id.in_(section_ids)
    )
    active = await db.execute(select(AcademicYear.id).where(AcademicYear.is_active.is_(True)))
    active_year_id = active.scalars().first()
    if active_year_id is not None:
        stmt = stmt.join(Enrollment, Enrollment.student_id == Student.id).where(
            Enrollment.academic_year_id == active_year_id
        )
    result = await db.execute(stmt.group_by(Student.section_id))
    return {section_id: count for section_id, count in result.all()}


async def create_section(db: AsyncSession, payload: SectionCreate) -> SectionResponse:
    name, grade_level = payload.name.strip(), payload.grade_level.strip()
    existing = await db.execute(
        select(Section.id).where(Section.name == name, Section.grade_level == grade_level)
    )
    if existing.scalar_one_or_none():
        raise ServiceError(DUPLICATE_MESSAGE, status.HTTP_409_CONFLICT)
    obj = Section(name=name, grade_level=grade_level, is_active=True)
    db.add(obj)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ServiceError(DUPLICATE_MESSAGE, status.HTTP_409_CONFLICT)
    return _section_to_response(obj)


async def list_sections(
    db: AsyncSession,
    grade_level: Optional[str] = None,
    status_filter: Optional[str] = None,
    search: Optional[str] = None,
    sort_by: str = "gradeLevel",
    sort_order: str = "asc",
) -> List[SectionResponse]:
    """List sections. status_filter: active | inactive | all. sort_by: gradeLevel | name | students | status."""
    stmt = select(Section)
    if grade_level and grade_level != "all":
        stmt = stmt.where(Section.grade_level == grade_level)
    if status_filter == "active":
        stmt = stmt.where(Section.is_active.is_(True))
    elif status_filter == "inactive":
        stmt = stmt.where(Section.is_active.is_(False))
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        stmt = stmt.where(or_(Section.name.ilike(pattern), Section.grade_level.ilike(pattern)))
    result = await db.execute(stmt)
    rows = list(result.scalars().all())
    counts = await _student_counts(db, [s.id for s in rows])

    reverse = sort_order == "desc"
    if sort_by == "name":
        rows.sort(key=lambda s: s.name, reverse=reverse)
    elif sort_by == "students":
        rows.sort(key=lambda s: counts.get(s.id, 0), reverse=reverse)
    elif sort_by == "status":
        # Active first when ascending
        rows.sort(key=lambda s: (not s.is_active, s.name), reverse=reverse)
    else:
        rows.sort(key=lambda s: s.name)
        rows.sort(key=lambda s: grade_rank(s.grade_level), reverse=reverse)
    return [_section_to_response(s, counts.get(s.id, 0)) for s in rows]


async def get_section(db: AsyncSession, section_id: UUID) -> Optional[SectionResponse]:
    obj = await db.get(Section, section_id)
    if not obj:
        return None
    counts = await _student_counts(db, [obj.id])
    return _section_to_response(obj, counts.get(obj.id, 0))


async def update_section(db: AsyncSession, section_id: UUID, payload: SectionUpdate) -> Optional[SectionResponse]:
    obj = await db.get(Section, section_id)
    if not obj:
        return None
    name = payload.name.strip() if payload.name is not None else obj.name
    grade_level = payload.grade_level.strip() if payload.grade_level is not None else obj.grade_level
    if (name, grade_level) != (obj.name, obj.grade_level):
        clash = await db.execute(
            select(Section.id).where(
                Section.name == name, Section.grade_level == grade_level, Section.id != obj.id
            )
        )
        if clash.scalar_one_or_none():
            raise ServiceError(DUPLICATE_MESSAGE, status.HTTP_409_CONFLICT)
    obj.name, obj.grade_level = name, grade_level
    if payload.is_active is not None:
        obj.is_active = payload.is_active
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ServiceError(DUPLICATE_MESSAGE, status.HTTP_409_CONFLICT)
    counts = await _student_counts(db, [obj.id])
    return _section_to_response(obj, counts.get(obj.id, 0))


async def delete_section(db: AsyncSession, section_id: UUID, deleted_by: str) -> bool:
    """Soft delete into the recycle bin. Blocked while any student is assigned to the section."""
    obj = await db.get(Section, section_id)
    if not obj:
        return False
    used = await db.execute(select(func.count(Student.id)).where(Student.section_id == section_id))
    student_count = used.scalar_one()
    if student_count:
        raise ServiceError(
            f"Cannot delete section with {student_count} student(s). Please reassign students first.",
            status.HTTP_400_BAD_REQUEST,
        )
    move_to_recycle_bin(
        db,
        RecycleEntityType.SECTION,
        obj.id,
        snapshot(obj),
        f"{obj.name} ({obj.grade_level})",
        deleted_by,
    )
    await db.delete(obj)
    await db.commit()
    return True


async def ensure_default_sections(db: AsyncSession, definitions: Dict[str, List[str]]) -> int:
    """Stage sections from definitions that do not exist yet. Returns how many were added; caller commits."""
    result = await db.execute(select(Section.name, Section.grade_level))
    present = {(name, grade) for name, grade in result.all()}
    created = 0
    for grade_level, names in definitions.items():
        for name in names:
            if (name, grade_level) in present:
                continue
            db.add(Section(name=name, grade_level=grade_level, is_active=True))
            present.add((name, grade_level))
            created += 1
    return created
