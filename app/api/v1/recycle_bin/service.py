"""
Recycle bin: soft delete as JSON snapshots, restore by entity type, and expiry purge.

Snapshots hold column values only (JSON-safe). Nested collections are stored under
plain keys ("enrollments", "breakdowns") and restored for the entity types that own them.
"""

import logging
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from fastapi import status
from sqlalchemy import delete, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.enums import RecycleEntityType
from app.core.exceptions import ServiceError
from app.core.models import (
    AcademicYear,
    CustomRemark,
    Enrollment,
    FeeBreakdown,
    FeeTemplate,
    RecycleBin,
    Section,
    Student,
)

from .schemas import RecycleBinItemResponse

logger = logging.getLogger(__name__)


def _to_json_value(val: Any) -> Any:
    if isinstance(val, UUID):
        return str(val)
    if isinstance(val, (datetime, date)):
        return val.isoformat()
    if isinstance(val, Decimal):
        return str(val)
    return val


def snapshot(obj: Any) -> Dict[str, Any]:
    """Column values of an ORM row as a JSON-serialisable dict."""
    return {col.key: _to_json_value(getattr(obj, col.key)) for col in obj.__table__.columns}


def _from_json_value(column, val: Any) -> Any:
    if val is None:
        return None
    try:
        python_type = column.type.python_type
    except NotImplementedError:
        return val
    if python_type is UUID:
        return val if isinstance(val, UUID) else UUID(str(val))
    if python_type is datetime:
        return datetime.fromisoformat(val) if isinstance(val, str) else val
    if python_type is date:
        return date.fromisoformat(val[:10]) if isinstance(val, str) else val
    if python_type is Decimal:
        return Decimal(str(val))
    return val


def rebuild(model, data: Dict[str, Any]):
    """Instantiate model from a snapshot; keys that are not columns of model are ignored."""
    values = {}
    for col in model.__table__.columns:
        if col.key in data:
            values[col.key] = _from_json_value(col, data[col.key])
    return model(**values)


def _days_remaining(permanent_delete_at: datetime, now: datetime) -> int:
    remaining = permanent_delete_at - now
    return max(0, remaining.days)


def _to_response(item: RecycleBin, now: Optional[datetime] = None) -> RecycleBinItemResponse:
    now = now or datetime.utcnow()
    return RecycleBinItemResponse(
        id=item.id,
        entity_type=item.entity_type,
        entity_id=item.entity_id,
        entity_name=item.entity_name,
        entity_data=item.entity_data or {},
        deleted_by=item.deleted_by,
        deleted_at=item.deleted_at,
        permanent_delete_at=item.permanent_delete_at,
        days_remaining=_days_remaining(item.permanent_delete_at, now),
    )


def move_to_recycle_bin(
    db: AsyncSession,
    entity_type: RecycleEntityType,
    entity_id: UUID,
    entity_data: Dict[str, Any],
    entity_name: str,
    deleted_by: str,
) -> RecycleBin:
    """Stage a recycle-bin row. The caller deletes the entity and commits both together."""
    deleted_at = datetime.utcnow()
    item = RecycleBin(
        entity_type=entity_type.value,
        entity_id=entity_id,
        entity_data=entity_data,
        entity_name=entity_name,
        deleted_by=deleted_by,
        deleted_at=deleted_at,
        permanent_delete_at=deleted_at + timedelta(days=settings.recycle_bin_retention_days),
    )
    db.add(item)
    return item


async def list_items(
    db: AsyncSession,
    entity_type: Optional[str] = None,
    search: Optional[str] = None,
) -> List[RecycleBinItemResponse]:
    stmt = select(RecycleBin)
    if entity_type and entity_type != "all":
        stmt = stmt.where(RecycleBin.entity_type == entity_type)
    if search:
        pattern = f"%{search.strip()}%"
        stmt = stmt.where(or_(RecycleBin.entity_name.ilike(pattern), RecycleBin.deleted_by.ilike(pattern)))
    stmt = stmt.order_by(RecycleBin.deleted_at.desc())
    result = await db.execute(stmt)
    now = datetime.utcnow()
    return [_to_response(item, now) for item in result.scalars().all()]


async def _restore_student(db: AsyncSession, data: Dict[str, Any]) -> None:
    if await db.get(Student, UUID(data["id"])):
        raise ServiceError("A student with this id already exists", status.HTTP_409_CONFLICT)
    if data.get("lrn"):
        clash = await db.execute(select(Student.id).where(Student.lrn == data["lrn"]))
        if clash.scalar_one_or_none():
            raise ServiceError(f"A student with LRN {data['lrn']} already exists", status.HTTP_409_CONFLICT)
    student = rebuild(Student, data)
    if student.section_id and not await db.get(Section, student.section_id):
        student.section_id = None
    db.add(student)
    await db.flush()
    for enrollment_data in data.get("enrollments") or []:
        enrollment = rebuild(Enrollment, enrollment_data)
        # Years deleted in the meantime take their enrollments with them
        if not await db.get(AcademicYear, enrollment.academic_year_id):
            continue
        if enrollment.section_id and not await db.get(Section, enrollment.section_id):
            enrollment.section_id = None
        db.add(enrollment)


async def _restore_section(db: AsyncSession, data: Dict[str, Any]) -> None:
    clash = await db.execute(
        select(Section.id).where(Section.name == data.get("name"), Section.grade_level == data.get("grade_level"))
    )
    if clash.scalar_one_or_none():
        raise ServiceError(
            f"Section {data.get('name')} already exists for {data.get('grade_level')}",
            status.HTTP_409_CONFLICT,
        )
    db.add(rebuild(Section, data))


async def _restore_academic_year(db: AsyncSession, data: Dict[str, Any]) -> None:
    if await db.get(AcademicYear, UUID(data["id"])):
        raise ServiceError("This academic year already exists", status.HTTP_409_CONFLICT)
    year = rebuild(AcademicYear, data)
    # Restored years come back inactive; activating is an explicit action.
    year.is_active = False
    db.add(year)


async def _restore_fee_template(db: AsyncSession, data: Dict[str, Any]) -> None:
    year_id = UUID(data["academic_year_id"])
    if not await db.get(AcademicYear, year_id):
        raise ServiceError(
            "The academic year of this fee template no longer exists", status.HTTP_400_BAD_REQUEST
        )
    clash = await db.execute(
        select(FeeTemplate.id).where(
            FeeTemplate.grade_level == data.get("grade_level"),
            FeeTemplate.academic_year_id == year_id,
        )
    )
    if clash.scalar_one_or_none():
        raise ServiceError(
            f"A fee template for {data.get('grade_level')} already exists in this academic year",
            status.HTTP_409_CONFLICT,
        )
    template = rebuild(FeeTemplate, data)
    template.breakdowns = [rebuild(FeeBreakdown, b) for b in data.get("breakdowns") or []]
    db.add(template)


async def _restore_custom_remark(db: AsyncSession, data: Dict[str, Any]) -> None:
    clash = await db.execute(
        select(CustomRemark.id).where(
            CustomRemark.label == data.get("label"),
            CustomRemark.category == data.get("category"),
        )
    )
    if clash.scalar_one_or_none():
        raise ServiceError("A remark with this label already exists in this category", status.HTTP_409_CONFLICT)
    db.add(rebuild(CustomRemark, data))


_RESTORERS = {
    RecycleEntityType.STUDENT.value: _restore_student,
    RecycleEntityType.SECTION.value: _restore_section,
    RecycleEntityType.ACADEMIC_YEAR.value: _restore_academic_year,
    RecycleEntityType.FEE_TEMPLATE.value: _restore_fee_template,
    RecycleEntityType.CUSTOM_REMARK.value: _restore_custom_remark,
}


async def restore_item(db: AsyncSession, item_id: UUID) -> Tuple[str, UUID]:
    """Re-create the snapshot's entity (original id) and drop the bin row. Returns (entity_type, entity_id)."""
    item = await db.get(RecycleBin, item_id)
    if not item:
        raise ServiceError("Item not found in recycle bin", status.HTTP_404_NOT_FOUND)
    restorer = _RESTORERS.get(item.entity_type)
    if restorer is None:
        raise ServiceError(f"Unknown entity type: {item.entity_type}", status.HTTP_400_BAD_REQUEST)
    entity_type, entity_id = item.entity_type, item.entity_id
    try:
        await restorer(db, item.entity_data or {})
        await db.delete(item)
        await db.commit()
    except ServiceError:
        await db.rollback()
        raise
    except IntegrityError:
        await db.rollback()
        raise ServiceError("Cannot restore: a conflicting record already exists", status.HTTP_409_CONFLICT)
    logger.info("Restored %s %s from recycle bin", entity_type, entity_id)
    return entity_type, entity_id


async def delete_item(db: AsyncSession, item_id: UUID) -> bool:
    item = await db.get(RecycleBin, item_id)
    if not item:
        return False
    await db.delete(item)
    await db.commit()
    return True


async def purge_expired(db: AsyncSession, now: Optional[datetime] = None) -> int:
    """Permanently remove every row whose permanent_delete_at is at or before now."""
    now = now or datetime.utcnow()
    result = await db.execute(delete(RecycleBin).where(RecycleBin.permanent_delete_at <= now))
    await db.commit()
    deleted = result.rowcount or 0
    logger.info("Purged %d expired recycle bin item(s)", deleted)
    return deleted
