"""Custom remarks catalog: the checkbox labels offered on the student remarks field."""

from collections import Counter
from typing import List, Optional, Tuple
from uuid import UUID

from fastapi import status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.recycle_bin.service import move_to_recycle_bin, snapshot
from app.api.v1.students.remarks import DEFAULT_REMARK_CATEGORIES, parse_remarks
from app.core.enums import RecycleEntityType
from app.core.exceptions import ServiceError
from app.core.models import CustomRemark, Section, Student

from .schemas import CustomRemarkCreate, CustomRemarkResponse, CustomRemarkUpdate, StudentWithRemark

DUPLICATE_MESSAGE = "A remark with this label already exists in this category"


def _to_response(r: CustomRemark, student_count: int = 0) -> CustomRemarkResponse:
    return CustomRemarkResponse(
        id=r.id,
        label=r.label,
        category=r.category,
        sort_order=r.sort_order,
        is_active=r.is_active,
        created_by=r.created_by,
        created_at=r.created_at,
        updated_at=r.updated_at,
        student_count=student_count,
    )


async def _label_counts(db: AsyncSession) -> Counter:
    result = await db.execute(select(Student.remarks).where(Student.remarks.isnot(None)))
    counts: Counter = Counter()
    for (remarks,) in result.all():
        _, labels = parse_remarks(remarks)
        counts.update(set(labels))
    return counts


async def _find_duplicate(
    db: AsyncSession, label: str, category: str, exclude_id: Optional[UUID] = None
) -> Optional[CustomRemark]:
    stmt = select(CustomRemark).where(CustomRemark.label == label, CustomRemark.category == category)
    if exclude_id is not None:
        stmt = stmt.where(CustomRemark.id != exclude_id)
    result = await db.execute(stmt)
    return result.scalars().first()


async def list_remarks(db: AsyncSession, active_only: bool = False) -> List[CustomRemarkResponse]:
    stmt = select(CustomRemark)
    if active_only:
        stmt = stmt.where(CustomRemark.is_active.is_(True))
    stmt = stmt.order_by(CustomRemark.category, CustomRemark.sort_order, CustomRemark.label)
    result = await db.execute(stmt)
    counts = await _label_counts(db)
    return [_to_response(r, counts.get(r.label, 0)) for r in result.scalars().all()]


async def create_remark(db: AsyncSession, payload: CustomRemarkCreate, created_by: str) -> CustomRemarkResponse:
    label, category = payload.label.strip(), payload.category.strip()
    if await _find_duplicate(db, label, category):
        raise ServiceError(DUPLICATE_MESSAGE, status.HTTP_400_BAD_REQUEST)
    remark = CustomRemark(label=label, category=category, sort_order=payload.sort_order, created_by=created_by)
    db.add(remark)
    await db.commit()
    return _to_response(remark)


async def update_remark(db: AsyncSession, remark_id: UUID, payload: CustomRemarkUpdate) -> CustomRemarkResponse:
    remark = await db.get(CustomRemark, remark_id)
    if not remark:
        raise ServiceError("Custom remark not found", status.HTTP_404_NOT_FOUND)
    if payload.label is not None or payload.category is not None:
        label = payload.label.strip() if payload.label is not None else remark.label
        category = payload.category.strip() if payload.category is not None else remark.category
        if await _find_duplicate(db, label, category, exclude_id=remark.id):
            raise ServiceError(DUPLICATE_MESSAGE, status.HTTP_400_BAD_REQUEST)
        remark.label, remark.category = label, category
    if payload.is_active is not None:
        remark.is_active = payload.is_active
    if payload.sort_order is not None:
        remark.sort_order = payload.sort_order
    await db.commit()
    counts = await _label_counts(db)
    return _to_response(remark, counts.get(remark.label, 0))


async def delete_remark(db: AsyncSession, remark_id: UUID, deleted_by: str) -> None:
    """Move the remark to the recycle bin. Students keep the label text in their remarks."""
    remark = await db.get(CustomRemark, remark_id)
    if not remark:
        raise ServiceError("Custom remark not found", status.HTTP_404_NOT_FOUND)
    move_to_recycle_bin(
        db,
        RecycleEntityType.CUSTOM_REMARK,
        remark.id,
        snapshot(remark),
        f"{remark.label} ({remark.category})",
        deleted_by,
    )
    await db.delete(remark)
    await db.commit()


async def list_students_with_remark(db: AsyncSession, label: str) -> List[StudentWithRemark]:
    result = await db.execute(
        select(Student, Section.name).outerjoin(Section, Section.id == Student.section_id)
    )
    matches = []
    for student, section_name in result.all():
        _, labels = parse_remarks(student.remarks)
        if label not in labels:
            continue
        name = " ".join(p for p in (student.first_name, student.middle_name, student.last_name) if p)
        matches.append(
            StudentWithRemark(
                id=student.id,
                name=name,
                lrn=student.lrn,
                grade_level=student.grade_level,
                section=section_name or "Not Assigned",
            )
        )
    return matches


async def seed_default_remarks(db: AsyncSession, created_by: str) -> Tuple[int, int]:
    """Stage the default catalog entries that are missing. Returns (created, skipped); caller commits."""
    existing = await db.execute(select(CustomRemark.label, CustomRemark.category))
    present = {(label, category) for label, category in existing.all()}
    created = skipped = 0
    for category, labels in DEFAULT_REMARK_CATEGORIES.items():
        for order, label in enumerate(labels):
            if (label, category) in present:
                skipped += 1
                continue
            db.add(CustomRemark(label=label, category=category, sort_order=order, created_by=created_by))
            created += 1
    return created, skipped
