import uuid
from datetime import datetime, timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.recycle_bin import service as recycle_bin
from app.core.enums import RecycleEntityType
from app.core.models import RecycleBin


@pytest.mark.asyncio
async def test_items_expire_after_thirty_days(db_session: AsyncSession) -> None:
    item = recycle_bin.move_to_recycle_bin(
        db_session,
        RecycleEntityType.SECTION,
        uuid.uuid4(),
        {"name": "Integrity", "grade_level": "Grade 8"},
        "Integrity (Grade 8)",
        "registrar@school.edu.ph",
    )
    await db_session.commit()

    assert item.permanent_delete_at - item.deleted_at == timedelta(days=30)

    # Purge removes exactly the rows due at or before now
    assert await recycle_bin.purge_expired(db_session, now=item.permanent_delete_at - timedelta(seconds=1)) == 0
    assert await recycle_bin.purge_expired(db_session, now=item.permanent_delete_at) == 1
    assert (await db_session.execute(select(RecycleBin))).scalars().all() == []


def test_days_remaining() -> None:
    now = datetime(2025, 8, 1, 12, 0)
    assert recycle_bin._days_remaining(now + timedelta(days=29, hours=23), now) == 29
    assert recycle_bin._days_remaining(now - timedelta(days=1), now) == 0


@pytest.mark.asyncio
async def test_delete_and_restore_section(client: AsyncClient, active_year: dict) -> None:
    created = await client.post("/api/v1/sections", json={"name": "Wisdom", "grade_level": "Grade 11"})
    assert created.status_code == 201
    section = created.json()

    deleted = await client.delete(f"/api/v1/sections/{section['id']}")
    assert deleted.status_code == 204
    assert (await client.get(f"/api/v1/sections/{section['id']}")).status_code == 404

    items = (await client.get("/api/v1/recycle-bin", params={"entityType": "section"})).json()
    assert len(items) == 1
    assert items[0]["entity_name"] == "Wisdom (Grade 11)"
    assert items[0]["deleted_by"] == "registrar@school.edu.ph"
    assert items[0]["days_remaining"] == 29

    restored = await client.patch(f"/api/v1/recycle-bin/{items[0]['id']}")
    assert restored.status_code == 200
    assert restored.json()["message"] == "Item restored successfully"
    assert restored.json()["entity_id"] == section["id"]

    again = await client.get(f"/api/v1/sections/{section['id']}")
    assert again.status_code == 200
    assert again.json()["name"] == "Wisdom"
    assert (await client.get("/api/v1/recycle-bin")).json() == []


@pytest.mark.asyncio
async def test_restore_conflict_keeps_item(client: AsyncClient, active_year: dict) -> None:
    section = (await client.post("/api/v1/sections", json={"name": "Wisdom", "grade_level": "Grade 11"})).json()
    await client.delete(f"/api/v1/sections/{section['id']}")
    await client.post("/api/v1/sections", json={"name": "Wisdom", "grade_level": "Grade 11"})

    [item] = (await client.get("/api/v1/recycle-bin")).json()
    response = await client.patch(f"/api/v1/recycle-bin/{item['id']}")
    assert response.status_code == 409
    assert len((await client.get("/api/v1/recycle-bin")).json()) == 1


@pytest.mark.asyncio
async def test_restore_academic_year_inactive(client: AsyncClient, active_year: dict) -> None:
    await client.delete(f"/api/v1/academic-years/{active_year['id']}")
    [item] = (await client.get("/api/v1/recycle-bin", params={"entityType": "academicYear"})).json()

    response = await client.patch(f"/api/v1/recycle-bin/{item['id']}")
    assert response.status_code == 200
    year = (await client.get(f"/api/v1/academic-years/{active_year['id']}")).json()
    assert year["name"] == "2025-2026"
    assert year["is_active"] is False


@pytest.mark.asyncio
async def test_permanent_delete_and_manual_purge(client: AsyncClient, active_year: dict) -> None:
    section = (await client.post("/api/v1/sections", json={"name": "Wisdom", "grade_level": "Grade 11"})).json()
    await client.delete(f"/api/v1/sections/{section['id']}")
    [item] = (await client.get("/api/v1/recycle-bin")).json()

    purge = await client.post("/api/v1/recycle-bin")
    assert purge.json() == {"deleted_count": 0, "message": "Permanently deleted 0 expired item(s)", "timestamp": None}

    assert (await client.delete(f"/api/v1/recycle-bin/{item['id']}")).status_code == 204
    missing = await client.delete(f"/api/v1/recycle-bin/{item['id']}")
    assert missing.status_code == 404
    assert missing.json() == {"error": "Item not found in recycle bin"}
