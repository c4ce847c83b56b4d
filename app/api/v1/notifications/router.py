from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_admin
from app.auth.schemas import CurrentAdmin
from app.core.enums import NotificationType
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import MarkAllReadResponse, NotificationCreate, NotificationResponse, NotificationUpdate
from . import service

router = APIRouter(prefix="/api/v1/notifications", tags=["notifications"])


@router.get("", response_model=List[NotificationResponse])
async def list_notifications(
    type: Optional[NotificationType] = Query(None),
    read: Optional[bool] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> List[NotificationResponse]:
    """Notifications of the signed-in admin, newest first."""
    return await service.list_notifications(db, current_admin.id, type_filter=type, read=read)


@router.post("", response_model=NotificationResponse, status_code=status.HTTP_201_CREATED)
async def create_notification(
    payload: NotificationCreate,
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> NotificationResponse:
    return await service.create_notification(db, current_admin.id, payload)


@router.post("/mark-all-read", response_model=MarkAllReadResponse)
async def mark_all_read(
    type: Optional[NotificationType] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> MarkAllReadResponse:
    updated = await service.mark_all_read(db, current_admin.id, type_filter=type)
    return MarkAllReadResponse(updated=updated)


@router.patch("/{notification_id}", response_model=NotificationResponse)
async def update_notification(
    notification_id: UUID,
    payload: NotificationUpdate,
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> NotificationResponse:
    try:
        return await service.set_read(db, current_admin.id, notification_id, payload.is_read)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notification(
    notification_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> None:
    try:
        await service.delete_notification(db, current_admin.id, notification_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
