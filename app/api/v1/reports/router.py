from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_admin
from app.auth.schemas import CurrentAdmin
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import EnrollmentReport
from . import service

router = APIRouter(prefix="/api/v1/reports", tags=["reports"])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@router.get("", response_model=EnrollmentReport)
async def get_report(
    year_id: UUID = Query(..., alias="yearId"),
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> EnrollmentReport:
    """Enrollment totals, grade distribution (by gender) and the student list for a year."""
    try:
        return await service.build_report(db, year_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/export")
async def export_report(
    year_id: UUID = Query(..., alias="yearId"),
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> Response:
    """Same report as an Excel workbook."""
    try:
        report = await service.build_report(db, year_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    filename = f"enrollment_report_{report.academic_year}.xlsx".replace(" ", "_")
    return Response(
        content=service.build_report_excel(report),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
