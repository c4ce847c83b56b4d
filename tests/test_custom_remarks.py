import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_seed_is_idempotent(client: AsyncClient) -> None:
    first = (await client.post("/api/v1/custom-remarks/seed")).json()
    assert first["created"] > 0
    assert first["skipped"] == 0

    second = (await client.post("/api/v1/custom-remarks/seed")).json()
    assert second["created"] == 0
    assert second["skipped"] == first["created"]


@pytest.mark.asyncio
async def test_remark_usage_counts(client: AsyncClient, active_year: dict, student_payload) -> None:
    await client.post(
        "/api/v1/students",
        json=student_payload(remark_text="Called mother", remark_labels=["Pending PSA", "Scholarship"]),
    )
    await client.post(
        "/api/v1/students",
        json=student_payload(first_name="Juan", last_name="Reyes", date_of_birth="2011-08-01", remarks="Scholarship"),
    )

    remarks = {r["label"]: r["student_count"] for r in (await client.get("/api/v1/custom-remarks")).json()}
    assert remarks["Scholarship"] == 2
    assert remarks["Pending PSA"] == 1
    assert remarks["Late Enrollment"] == 0

    students = (await client.get("/api/v1/custom-remarks/students", params={"label": "Pending PSA"})).json()
    assert [s["name"] for s in students] == ["Maria Santos Dela Cruz"]
    assert students[0]["section"] == "Not Assigned"


@pytest.mark.asyncio
async def test_create_update_delete_remark(client: AsyncClient) -> None:
    created = await client.post("/api/v1/custom-remarks", json={"label": "Needs Tutor", "category": "academic"})
    assert created.status_code == 201
    remark_id = created.json()["id"]

    duplicate = await client.post("/api/v1/custom-remarks", json={"label": "Needs Tutor", "category": "academic"})
    assert duplicate.status_code == 400

    updated = await client.patch(f"/api/v1/custom-remarks/{remark_id}", json={"is_active": False})
    assert updated.json()["is_active"] is False
    active = (await client.get("/api/v1/custom-remarks", params={"activeOnly": True})).json()
    assert remark_id not in [r["id"] for r in active]

    deleted = await client.delete(f"/api/v1/custom-remarks/{remark_id}")
    assert deleted.json() == {"success": True}
    [item] = (await client.get("/api/v1/recycle-bin", params={"entityType": "customRemark"})).json()
    assert item["entity_name"] == "Needs Tutor (academic)"
