"""Fees service: fee templates (base fee per grade and year) and the optional fee catalog."""

import logging
from decimal import Decimal
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
from app.core.models import (
    AcademicYear,
    FeeBreakdown,
    FeeTemplate,
    OptionalFee,
    OptionalFeeVariation,
    StudentFeeStatus,
    StudentOptionalFee,
)

from .schemas import (
    FeeBreakdownItem,
    FeeBreakdownResponse,
    FeeTemplateCreate,
    FeeTemplateResponse,
    FeeTemplateUpdate,
    OptionalFeeCreate,
    OptionalFeeResponse,
    OptionalFeeUpdate,
    OptionalFeeVariationItem,
    OptionalFeeVariationResponse,
)

logger = logging.getLogger(__name__)


def _to_decimal(val) -> Decimal:
    if val is None:
        return Decimal("0")
    return val if isinstance(val, Decimal) else Decimal(str(val))


# --- Fee Templates ---
def _template_to_response(t: FeeTemplate, academic_year_name: Optional[str] = None) -> FeeTemplateResponse:
    breakdowns = sorted(t.breakdowns, key=lambda b: b.order)
    return FeeTemplateResponse(
        id=t.id,
        name=t.name,
        grade_level=t.grade_level,
        academic_year_id=t.academic_year_id,
        academic_year_name=academic_year_name,
        total_amount=_to_decimal(t.total_amount),
        description=t.description,
        is_active=t.is_active,
        breakdowns=[
            FeeBreakdownResponse(
                id=b.id,
                description=b.description,
                amount=_to_decimal(b.amount),
                category=b.category,
                order=b.order,
                is_refundable=b.is_refundable,
            )
            for b in breakdowns
        ],
        created_at=t.created_at,
        updated_at=t.updated_at,
    )


async def _year_names(db: AsyncSession) -> Dict[UUID, str]:
    result = await db.execute(select(AcademicYear.id, AcademicYear.name))
    return {year_id: name for year_id, name in result.all()}


def _new_breakdown(item: FeeBreakdownItem) -> FeeBreakdown:
    return FeeBreakdown(
        description=item.description.strip(),
        amount=item.amount,
        category=item.category.value,
        order=item.order,
        is_refundable=True if item.is_refundable is None else item.is_refundable,
    )


async def create_fee_template(db: AsyncSession, payload: FeeTemplateCreate) -> FeeTemplateResponse:
    ay = await db.get(AcademicYear, payload.academic_year_id)
    if not ay:
        raise ServiceError("Academic year not found", status.HTTP_404_NOT_FOUND)
    grade_level = payload.grade_level.strip()
    existing = await db.execute(
        select(FeeTemplate.id).where(
            FeeTemplate.grade_level == grade_level,
            FeeTemplate.academic_year_id == payload.academic_year_id,
        )
    )
    if existing.scalar_one_or_none():
        raise ServiceError(
            f"Fee template already exists for {grade_level} in this academic year",
            status.HTTP_409_CONFLICT,
        )
    template = FeeTemplate(
        name=payload.name.strip(),
        grade_level=grade_level,
        academic_year_id=payload.academic_year_id,
        total_amount=payload.total_amount,
        description=payload.description,
        is_active=payload.is_active,
        breakdowns=[_new_breakdown(item) for item in payload.breakdowns],
    )
    db.add(template)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ServiceError(
            f"Fee template already exists for {grade_level} in this academic year",
            status.HTTP_409_CONFLICT,
        )
    return _template_to_response(template, ay.name)


async def list_fee_templates(
    db: AsyncSession,
    grade_level: Optional[str] = None,
    academic_year_id: Optional[UUID] = None,
    search: Optional[str] = None,
    category: Optional[str] = None,
) -> List[FeeTemplateResponse]:
    stmt = select(FeeTemplate)
    if grade_level and grade_level != "all":
        stmt = stmt.where(FeeTemplate.grade_level == grade_level)
    if academic_year_id is not None:
        stmt = stmt.where(FeeTemplate.academic_year_id == academic_year_id)
    if search:
        pattern = f"%{search.strip()}%"
        stmt = stmt.where(or_(FeeTemplate.name.ilike(pattern), FeeTemplate.description.ilike(pattern)))
    if category and category != "all":
        stmt = stmt.where(
            FeeTemplate.breakdowns.any(FeeBreakdown.category == category)
        )
    result = await db.execute(stmt.order_by(FeeTemplate.created_at.desc()))
    templates = sorted(result.scalars().all(), key=lambda t: grade_rank(t.grade_level))
    names = await _year_names(db)
    return [_template_to_response(t, names.get(t.academic_year_id)) for t in templates]


async def get_fee_template(db: AsyncSession, template_id: UUID) -> Optional[FeeTemplateResponse]:
    template = await db.get(FeeTemplate, template_id)
    if not template:
        return None
    ay = await db.get(AcademicYear, template.academic_year_id)
    return _template_to_response(template, ay.name if ay else None)


async def update_fee_template(
    db: AsyncSession,
    template_id: UUID,
    payload: FeeTemplateUpdate,
) -> FeeTemplateResponse:
    template = await db.get(FeeTemplate, template_id)
    if not template:
        raise ServiceError("Fee template not found", status.HTTP_404_NOT_FOUND)
    if payload.name is not None:
        template.name = payload.name.strip()
    if payload.total_amount is not None:
        template.total_amount = payload.total_amount
    if payload.description is not None:
        template.description = payload.description
    if payload.is_active is not None:
        template.is_active = payload.is_active
    if payload.breakdowns is not None:
        current = {b.id: b for b in template.breakdowns}
        replacement = []
        for item in payload.breakdowns:
            kept = current.get(item.id) if item.id else None
            if kept is None:
                replacement.append(_new_breakdown(item))
                continue
            kept.description = item.description.strip()
            kept.amount = item.amount
            kept.category = item.category.value
            kept.order = item.order
            kept.is_refundable = True if item.is_refundable is None else item.is_refundable
            replacement.append(kept)
        # delete-orphan removes breakdowns left out of the payload
        template.breakdowns = replacement
    await db.commit()
    ay = await db.get(AcademicYear, template.academic_year_id)
    return _template_to_response(template, ay.name if ay else None)


async def delete_fee_template(db: AsyncSession, template_id: UUID, deleted_by: str) -> None:
    """Soft delete into the recycle bin; 409 while any student fee status references the template."""
    in_use = await db.execute(
        select(func.count(StudentFeeStatus.id)).where(StudentFeeStatus.fee_template_id == template_id)
    )
    count = in_use.scalar_one()
    if count:
        raise ServiceError(
            f"Cannot delete fee template. {count} student(s) are currently using this template.",
            status.HTTP_409_CONFLICT,
        )
    template = await db.get(FeeTemplate, template_id)
    if not template:
        raise ServiceError("Fee template not found", status.HTTP_404_NOT_FOUND)
    data = snapshot(template)
    data["breakdowns"] = [snapshot(b) for b in template.breakdowns]
    move_to_recycle_bin(db, RecycleEntityType.FEE_TEMPLATE, template.id, data, template.name, deleted_by)
    await db.delete(template)
    await db.commit()


# --- Optional Fees ---
def _optional_fee_to_response(f: OptionalFee) -> OptionalFeeResponse:
    variations = sorted(f.variations, key=lambda v: _to_decimal(v.amount))
    return OptionalFeeResponse(
        id=f.id,
        name=f.name,
        description=f.description,
        amount=_to_decimal(f.amount) if f.amount is not None else None,
        category=f.category,
        has_variations=f.has_variations,
        applicable_grade_levels=list(f.applicable_grade_levels or []),
        academic_year_id=f.academic_year_id,
        is_active=f.is_active,
        sort_order=f.sort_order,
        variations=[
            OptionalFeeVariationResponse(id=v.id, name=v.name, amount=_to_decimal(v.amount))
            for v in variations
        ],
        created_at=f.created_at,
        updated_at=f.updated_at,
    )


def _new_variation(item: OptionalFeeVariationItem, order: int) -> OptionalFeeVariation:
    return OptionalFeeVariation(name=item.name.strip(), amount=item.amount, sort_order=order)


async def create_optional_fee(db: AsyncSession, payload: OptionalFeeCreate) -> OptionalFeeResponse:
    if payload.academic_year_id is not None and not await db.get(AcademicYear, payload.academic_year_id):
        raise ServiceError("Academic year not found", status.HTTP_404_NOT_FOUND)
    if not payload.has_variations and payload.amount is None:
        raise ServiceError("Amount is required for fees without variations", status.HTTP_400_BAD_REQUEST)
    fee = OptionalFee(
        name=payload.name.strip(),
        description=payload.description,
        amount=payload.amount,
        category=payload.category.value,
        has_variations=payload.has_variations,
        applicable_grade_levels=payload.applicable_grade_levels,
        academic_year_id=payload.academic_year_id,
        is_active=payload.is_active,
        sort_order=payload.sort_order,
        variations=[_new_variation(v, i) for i, v in enumerate(payload.variations)],
    )
    db.add(fee)
    await db.commit()
    return _optional_fee_to_response(fee)


async def list_optional_fees(
    db: AsyncSession,
    academic_year_id: Optional[UUID] = None,
    grade_level: Optional[str] = None,
    category: Optional[str] = None,
    is_active: Optional[bool] = None,
    search: Optional[str] = None,
) -> List[OptionalFeeResponse]:
    stmt = select(OptionalFee)
    if academic_year_id is not None:
        stmt = stmt.where(OptionalFee.academic_year_id == academic_year_id)
    if category:
        stmt = stmt.where(OptionalFee.category == category)
    if is_active is not None:
        stmt = stmt.where(OptionalFee.is_active.is_(is_active))
    if search:
        pattern = f"%{search.strip()}%"
        stmt = stmt.where(or_(OptionalFee.name.ilike(pattern), OptionalFee.description.ilike(pattern)))
    result = await db.execute(stmt.order_by(OptionalFee.sort_order, OptionalFee.name))
    fees = result.scalars().all()
    if grade_level:
        # Empty applicable_grade_levels means the fee applies to every grade
        fees = [f for f in fees if not f.applicable_grade_levels or grade_level in f.applicable_grade_levels]
    return [_optional_fee_to_response(f) for f in fees]


async def get_optional_fee(db: AsyncSession, fee_id: UUID) -> Optional[OptionalFeeResponse]:
    fee = await db.get(OptionalFee, fee_id)
    return _optional_fee_to_response(fee) if fee else None


async def update_optional_fee(db: AsyncSession, fee_id: UUID, payload: OptionalFeeUpdate) -> OptionalFeeResponse:
    fee = await db.get(OptionalFee, fee_id)
    if not fee:
        raise ServiceError("Optional fee not found", status.HTTP_404_NOT_FOUND)
    data = payload.model_dump(exclude_unset=True, exclude={"variations"})
    if "category" in data and data["category"] is not None:
        data["category"] = data["category"].value
    if "name" in data and data["name"] is not None:
        data["name"] = data["name"].strip()
    for field, value in data.items():
        setattr(fee, field, value)
    if payload.variations is not None:
        current = {v.id: v for v in fee.variations}
        synced = []
        for order, item in enumerate(payload.variations):
            kept = current.get(item.id) if item.id else None
            if kept is None:
                synced.append(_new_variation(item, order))
                continue
            kept.name = item.name.strip()
            kept.amount = item.amount
            kept.sort_order = order
            synced.append(kept)
        fee.variations = synced
    await db.commit()
    return _optional_fee_to_response(fee)


async def delete_optional_fee(db: AsyncSession, fee_id: UUID) -> None:
    """Hard delete; 400 while the fee is assigned to any student."""
    fee = await db.get(OptionalFee, fee_id)
    if not fee:
        raise ServiceError("Optional fee not found", status.HTTP_404_NOT_FOUND)
    assigned = await db.execute(
        select(func.count(StudentOptionalFee.id)).where(StudentOptionalFee.optional_fee_id == fee_id)
    )
    assigned_count = assigned.scalar_one()
    if assigned_count:
        raise ServiceError(
            f"Cannot delete optional fee. It is currently assigned to {assigned_count} student(s).",
            status.HTTP_400_BAD_REQUEST,
            details={"assigned_count": assigned_count},
        )
    await db.delete(fee)
    await db.commit()


# --- Year prepopulation ---
async def copy_fee_templates(
    db: AsyncSession,
    source_year: AcademicYear,
    target_year: AcademicYear,
) -> int:
    """Stage copies of source_year's templates for grades target_year lacks. Caller commits."""
    existing = await db.execute(
        select(FeeTemplate.grade_level).where(FeeTemplate.academic_year_id == target_year.id)
    )
    present = set(existing.scalars().all())
    result = await db.execute(select(FeeTemplate).where(FeeTemplate.academic_year_id == source_year.id))
    copied = 0
    for t in result.scalars().all():
        if t.grade_level in present:
            continue
        db.add(
            FeeTemplate(
                name=t.name.replace(source_year.name, target_year.name),
                grade_level=t.grade_level,
                academic_year_id=target_year.id,
                total_amount=t.total_amount,
                description=t.description,
                is_active=t.is_active,
                breakdowns=[
                    FeeBreakdown(
                        description=b.description,
                        amount=b.amount,
                        category=b.category,
                        order=b.order,
                        is_refundable=b.is_refundable,
                    )
                    for b in t.breakdowns
                ],
            )
        )
        copied += 1
    return copied


async def copy_optional_fees(
    db: AsyncSession,
    source_year: AcademicYear,
    target_year: AcademicYear,
) -> int:
    """Stage copies of source_year's optional fees whose names target_year lacks. Caller commits."""
    existing = await db.execute(select(OptionalFee.name).where(OptionalFee.academic_year_id == target_year.id))
    present = set(existing.scalars().all())
    result = await db.execute(select(OptionalFee).where(OptionalFee.academic_year_id == source_year.id))
    copied = 0
    for f in result.scalars().all():
        if f.name in present:
            continue
        db.add(
            OptionalFee(
                name=f.name,
                description=f.description,
                amount=f.amount,
                category=f.category,
                has_variations=f.has_variations,
                applicable_grade_levels=list(f.applicable_grade_levels or []),
                academic_year_id=target_year.id,
                is_active=f.is_active,
                sort_order=f.sort_order,
                variations=[
                    OptionalFeeVariation(name=v.name, amount=v.amount, sort_order=v.sort_order)
                    for v in f.variations
                ],
            )
        )
        copied += 1
    return copied
