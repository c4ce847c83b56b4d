import logging
import secrets
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.db.session import get_db

from .schemas import PurgeResponse
from . import service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/cron", tags=["cron"])


def _authorize_cron(authorization: Optional[str]) -> None:
    if not settings.cron_secret:
        logger.error("CRON_SECRET is not set; refusing to run scheduled cleanup")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Cron job not configured")
    expected = f"Bearer {settings.cron_secret}"
    if not authorization or not secrets.compare_digest(authorization, expected):
        logger.warning("Rejected cron request with missing or invalid bearer token")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


@router.get("/cleanup-recycle-bin", response_model=PurgeResponse)
async def cleanup_recycle_bin(
    authorization: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
) -> PurgeResponse:
    """Scheduled purge of expired recycle-bin items. Authenticated by CRON_SECRET, not a session."""
    _authorize_cron(authorization)
    deleted = await service.purge_expired(db)
    return PurgeResponse(
        deleted_count=deleted,
        message=f"Successfully deleted {deleted} expired item(s) from recycle bin",
        timestamp=datetime.utcnow(),
    )
