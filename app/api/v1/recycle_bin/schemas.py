from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class RecycleBinItemResponse(BaseModel):
    id: UUID
    entity_type: str
    entity_id: UUID
    entity_name: str
    entity_data: Dict[str, Any]
    deleted_by: str
    deleted_at: datetime
    permanent_delete_at: datetime
    days_remaining: int = Field(..., description="Whole days left before the item is purged (0 when expired)")

    class Config:
        from_attributes = True


class RestoreResponse(BaseModel):
    message: str
    entity_type: str
    entity_id: UUID


class PurgeResponse(BaseModel):
    deleted_count: int
    message: str
    timestamp: Optional[datetime] = None
