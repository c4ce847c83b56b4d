from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_admin
from app.auth.schemas import CurrentAdmin
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import PurgeResponse, RecycleBinItemResponse, RestoreResponse
from . import service

router = APIRouter(prefix="/api/v1/recycle-bin", tags=["recycle-bin"])


@router.get("", response_model=List[RecycleBinItemResponse])
async def list_recycle_bin(
    entity_type: Optional[str] = Query(None, alias="entityType", description="student, section, academicYear, feeTemplate, customRemark"),
    search: Optional[str] = Query(None, description="Match entity name or deleted_by"),
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> List[RecycleBinItemResponse]:
    """List soft-deleted items, newest first."""
    return await service.list_items(db, entity_type=entity_type, search=search)


@router.post("", response_model=PurgeResponse)
async def purge_expired_items(
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> PurgeResponse:
    """Permanently delete items past their retention date."""
    deleted = await service.purge_expired(db)
    return PurgeResponse(deleted_count=deleted, message=f"Permanently deleted {deleted} expired item(s)")


@router.patch("/{item_id}", response_model=RestoreResponse)
async def restore_recycle_bin_item(
    item_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> RestoreResponse:
    """Restore the item with its original id and remove it from the bin."""
    try:
        entity_type, entity_id = await service.restore_item(db, item_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return RestoreResponse(message="Item restored successfully", entity_type=entity_type, entity_id=entity_id)


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_recycle_bin_item(
    item_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_admin: CurrentAdmin = Depends(get_current_admin),
) -> None:
    """Permanently delete one item now."""
    deleted = await service.delete_item(db, item_id)
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Item not found in recycle bin")
