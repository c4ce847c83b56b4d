from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_admin
from app.auth.schemas import CurrentAdmin
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import (
    AcademicYearAction,
    AcademicYearActionResponse,
    AcademicYearCreate,
    AcademicYearDeleteResponse,
    AcademicYearPatch,
    AcademicYearResponse,
    AcademicYearUpdate,
    CreateAcademicYearResponse,
    ImportCandidatesResponse,
    ImportStudentsRequest,
    ImportStudentsResponse,
)
from . import service

router = APIRouter(prefix="/api/v1/academic-years", tags=["academic-years"])


@router.post("", response_model=CreateAcademicYearResponse, status_code=status.HTTP_201_CREATED)
async def create_academic_year(
    payload: AcademicYearCreate,
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> CreateAcademicYearResponse:
    """Create academic year. It becomes the active year and is prepopulated from the most recent one."""
    try:
        return await service.create_academic_year(db, payload, created_by=current_admin.actor)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("", response_model=List[AcademicYearResponse])
async def list_academic_years(
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> List[AcademicYearResponse]:
    return await service.list_academic_years(db)


@router.get("/active", response_model=AcademicYearResponse)
async def get_active_academic_year(
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> AcademicYearResponse:
    """The active academic year, the default for enrollment and fee operations."""
    ay = await service.get_active_academic_year(db)
    if not ay:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No active academic year found")
    return ay


@router.get("/{academic_year_id}", response_model=AcademicYearResponse)
async def get_academic_year(
    academic_year_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> AcademicYearResponse:
    ay = await service.get_academic_year(db, academic_year_id)
    if not ay:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Academic year not found")
    return ay


@router.put("/{academic_year_id}", response_model=AcademicYearResponse)
async def update_academic_year(
    academic_year_id: UUID,
    payload: AcademicYearUpdate,
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> AcademicYearResponse:
    try:
        return await service.update_academic_year(db, academic_year_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.patch("/{academic_year_id}", response_model=AcademicYearResponse)
async def patch_academic_year(
    academic_year_id: UUID,
    payload: AcademicYearPatch,
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> AcademicYearResponse:
    """Partial update. is_active=true deactivates every other year in the same transaction."""
    try:
        return await service.patch_academic_year(db, academic_year_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/{academic_year_id}", response_model=AcademicYearActionResponse)
async def academic_year_action(
    academic_year_id: UUID,
    payload: AcademicYearAction,
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> AcademicYearActionResponse:
    """action=end closes the year; action=activate makes it the single active year."""
    try:
        return await service.apply_action(db, academic_year_id, payload.action)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/{academic_year_id}", response_model=AcademicYearDeleteResponse)
async def delete_academic_year(
    academic_year_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> AcademicYearDeleteResponse:
    """Move the year to the recycle bin and delete all of its enrollments and fee records."""
    try:
        return await service.delete_academic_year(db, academic_year_id, deleted_by=current_admin.actor)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/{academic_year_id}/import-students", response_model=ImportCandidatesResponse)
async def list_import_candidates(
    academic_year_id: UUID,
    source_year_id: UUID = Query(..., alias="sourceYearId"),
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> ImportCandidatesResponse:
    try:
        return await service.list_import_candidates(db, academic_year_id, source_year_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/{academic_year_id}/import-students", response_model=ImportStudentsResponse)
async def import_students(
    academic_year_id: UUID,
    payload: ImportStudentsRequest,
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> ImportStudentsResponse:
    """Enroll students from another year into this one (status ENROLLED, section cleared)."""
    try:
        return await service.import_students(db, academic_year_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
