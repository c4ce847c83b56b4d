"""Students API: enrollment, re-enrollment, edits, deletion, switching and student lookups."""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_admin
from app.auth.schemas import CurrentAdmin
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import (
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
from . import service

router = APIRouter(prefix="/api/v1/students", tags=["students"])


@router.post(
    "",
    response_model=StudentEnrollResponse,
    status_code=status.HTTP_201_CREATED,
    responses={200: {"model": StudentEnrollResponse, "description": "Existing student re-enrolled"}},
)
async def enroll_student(
    payload: StudentCreate,
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
):
    """
    Enroll a student in the active academic year. A student matching by LRN, or by full name
    and date of birth, is re-enrolled instead (200, is_reenrollment true); otherwise 201.
    """
    try:
        result = await service.enroll_student(db, payload, admin_id=current_admin.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    code = status.HTTP_200_OK if result.is_reenrollment else status.HTTP_201_CREATED
    return JSONResponse(status_code=code, content=result.model_dump(mode="json"))


@router.get("", response_model=List[StudentResponse])
async def list_students(
    grade_level: Optional[str] = Query(None, alias="gradeLevel"),
    status_filter: Optional[str] = Query(None, alias="status"),
    search: Optional[str] = Query(None, description="Name, LRN or city"),
    academic_year: Optional[str] = Query(None, alias="academicYear", description="Academic year name, e.g. 2025-2026"),
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> List[StudentResponse]:
    return await service.list_students(
        db, grade_level=grade_level, status_filter=status_filter, search=search, academic_year=academic_year
    )


@router.get("/search", response_model=List[StudentSearchResult])
async def search_students(
    q: str = Query("", description="At least 2 characters of a name or LRN"),
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> List[StudentSearchResult]:
    return await service.search_students(db, q)


@router.post("/search", response_model=List[StudentSearchResult])
async def find_possible_duplicates(
    payload: StudentDuplicateCheck,
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> List[StudentSearchResult]:
    return await service.find_possible_duplicates(db, payload)


@router.get("/archive", response_model=List[StudentResponse])
async def list_archive(
    academic_year_id: UUID = Query(..., alias="academicYearId"),
    search: Optional[str] = Query(None),
    grade_level: Optional[str] = Query(None, alias="gradeLevel"),
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> List[StudentResponse]:
    return await service.list_archive(db, academic_year_id, search=search, grade_level=grade_level)


@router.get("/{student_id}", response_model=StudentResponse)
async def get_student(
    student_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> StudentResponse:
    student = await service.get_student(db, student_id)
    if not student:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Student not found")
    return student


@router.put("/{student_id}", response_model=StudentResponse)
async def update_student(
    student_id: UUID,
    payload: StudentUpdate,
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> StudentResponse:
    """Edit a student enrolled in the active year (403 otherwise)."""
    try:
        return await service.update_student(db, student_id, payload, admin_id=current_admin.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/{student_id}", response_model=StudentDeleteResponse)
async def delete_student(
    student_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> StudentDeleteResponse:
    """Permanently delete a student enrolled only in the active year."""
    try:
        return await service.delete_student(db, student_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/{student_id}/switch", response_model=StudentSwitchResponse)
async def switch_student(
    student_id: UUID,
    payload: StudentSwitch,
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> StudentSwitchResponse:
    try:
        return await service.switch_student(db, student_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
