"""Fees API: fee templates per grade and year, and the optional fee catalog."""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_admin
from app.auth.schemas import CurrentAdmin
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import (
    FeeTemplateCreate,
    FeeTemplateResponse,
    FeeTemplateUpdate,
    OptionalFeeCreate,
    OptionalFeeResponse,
    OptionalFeeUpdate,
)
from . import service

router = APIRouter(prefix="/api/v1/fees", tags=["fees"])


# --- Fee Templates ---
@router.post("/templates", response_model=FeeTemplateResponse, status_code=status.HTTP_201_CREATED)
async def create_fee_template(
    payload: FeeTemplateCreate,
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> FeeTemplateResponse:
    """Create the fee template for a grade level in an academic year (409 if one exists)."""
    try:
        return await service.create_fee_template(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/templates", response_model=List[FeeTemplateResponse])
async def list_fee_templates(
    grade_level: Optional[str] = Query(None, alias="gradeLevel"),
    academic_year_id: Optional[UUID] = Query(None, alias="academicYearId"),
    search: Optional[str] = Query(None),
    category: Optional[str] = Query(None, description="Only templates having a breakdown in this category"),
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> List[FeeTemplateResponse]:
    return await service.list_fee_templates(
        db, grade_level=grade_level, academic_year_id=academic_year_id, search=search, category=category
    )


@router.get("/templates/{template_id}", response_model=FeeTemplateResponse)
async def get_fee_template(
    template_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> FeeTemplateResponse:
    template = await service.get_fee_template(db, template_id)
    if not template:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Fee template not found")
    return template


@router.put("/templates/{template_id}", response_model=FeeTemplateResponse)
async def update_fee_template(
    template_id: UUID,
    payload: FeeTemplateUpdate,
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> FeeTemplateResponse:
    try:
        return await service.update_fee_template(db, template_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/templates/{template_id}")
async def delete_fee_template(
    template_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> dict:
    """Move the template to the recycle bin (409 while students' fee statuses use it)."""
    try:
        await service.delete_fee_template(db, template_id, deleted_by=current_admin.actor)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {"success": True}


# --- Optional Fees ---
@router.post("/optional", response_model=OptionalFeeResponse, status_code=status.HTTP_201_CREATED)
async def create_optional_fee(
    payload: OptionalFeeCreate,
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> OptionalFeeResponse:
    try:
        return await service.create_optional_fee(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/optional", response_model=List[OptionalFeeResponse])
async def list_optional_fees(
    academic_year_id: Optional[UUID] = Query(None, alias="academicYearId"),
    grade_level: Optional[str] = Query(None, alias="gradeLevel"),
    category: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None, alias="isActive"),
    search: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> List[OptionalFeeResponse]:
    return await service.list_optional_fees(
        db,
        academic_year_id=academic_year_id,
        grade_level=grade_level,
        category=category,
        is_active=is_active,
        search=search,
    )


@router.get("/optional/{fee_id}", response_model=OptionalFeeResponse)
async def get_optional_fee(
    fee_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> OptionalFeeResponse:
    fee = await service.get_optional_fee(db, fee_id)
    if not fee:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Optional fee not found")
    return fee


@router.patch("/optional/{fee_id}", response_model=OptionalFeeResponse)
async def update_optional_fee(
    fee_id: UUID,
    payload: OptionalFeeUpdate,
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> OptionalFeeResponse:
    try:
        return await service.update_optional_fee(db, fee_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/optional/{fee_id}")
async def delete_optional_fee(
    fee_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> dict:
    """Refused with 400 and details.assigned_count while the fee is assigned to students."""
    await service.delete_optional_fee(db, fee_id)
    return {"message": "Optional fee deleted successfully"}
