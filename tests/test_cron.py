import uuid
from datetime import datetime, timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.models import RecycleBin

CRON_URL = "/api/v1/cron/cleanup-recycle-bin"


@pytest.mark.asyncio
async def test_cron_rejects_bad_token(anon_client: AsyncClient) -> None:
    response = await anon_client.get(CRON_URL, headers={"Authorization": "Bearer wrong"})
    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}

    response = await anon_client.get(CRON_URL)
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_cron_not_configured(anon_client: AsyncClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "cron_secret", None)
    response = await anon_client.get(CRON_URL, headers={"Authorization": "Bearer test-cron-secret"})
    assert response.status_code == 500
    assert response.json() == {"error": "Cron job not configured"}


@pytest.mark.asyncio
async def test_cron_purges_expired_items(anon_client: AsyncClient, db_session: AsyncSession) -> None:
    now = datetime.utcnow()
    for days_ago in (31, 10):
        deleted_at = now - timedelta(days=days_ago)
        db_session.add(
            RecycleBin(
                entity_type="customRemark",
                entity_id=uuid.uuid4(),
                entity_data={"label": f"Remark {days_ago}"},
                entity_name=f"Remark {days_ago}",
                deleted_by="registrar@school.edu.ph",
                deleted_at=deleted_at,
                permanent_delete_at=deleted_at + timedelta(days=30),
            )
        )
    await db_session.commit()

    response = await anon_client.get(CRON_URL, headers={"Authorization": f"Bearer {settings.cron_secret}"})
    assert response.status_code == 200
    data = response.json()
    assert data["deleted_count"] == 1
    assert data["message"] == "Successfully deleted 1 expired item(s) from recycle bin"
    assert data["timestamp"]
