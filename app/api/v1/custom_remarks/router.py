from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_admin
from app.auth.schemas import CurrentAdmin
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import (
    CustomRemarkCreate,
    CustomRemarkResponse,
    CustomRemarkUpdate,
    SeedRemarksResponse,
    StudentWithRemark,
)
from . import service

router = APIRouter(prefix="/api/v1/custom-remarks", tags=["custom-remarks"])


@router.get("", response_model=List[CustomRemarkResponse])
async def list_custom_remarks(
    active_only: bool = Query(False, alias="activeOnly"),
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> List[CustomRemarkResponse]:
    """Catalog with the number of students carrying each label."""
    return await service.list_remarks(db, active_only=active_only)


@router.post("", response_model=CustomRemarkResponse, status_code=status.HTTP_201_CREATED)
async def create_custom_remark(
    payload: CustomRemarkCreate,
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> CustomRemarkResponse:
    try:
        return await service.create_remark(db, payload, created_by=current_admin.actor)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/seed", response_model=SeedRemarksResponse)
async def seed_custom_remarks(
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> SeedRemarksResponse:
    created, skipped = await service.seed_default_remarks(db, created_by=current_admin.actor)
    await db.commit()
    return SeedRemarksResponse(
        message=f"Seeded {created} remark(s), skipped {skipped} existing",
        created=created,
        skipped=skipped,
    )


@router.get("/students", response_model=List[StudentWithRemark])
async def list_students_with_remark(
    label: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> List[StudentWithRemark]:
    return await service.list_students_with_remark(db, label)


@router.patch("/{remark_id}", response_model=CustomRemarkResponse)
async def update_custom_remark(
    remark_id: UUID,
    payload: CustomRemarkUpdate,
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> CustomRemarkResponse:
    try:
        return await service.update_remark(db, remark_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/{remark_id}")
async def delete_custom_remark(
    remark_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> dict:
    """Soft delete into the recycle bin."""
    try:
        await service.delete_remark(db, remark_id, deleted_by=current_admin.actor)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {"success": True}
