import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_pending_enrollment_notifications(client: AsyncClient, active_year: dict, student_payload) -> None:
    await client.post("/api/v1/students", json=student_payload())
    await client.post("/api/v1/students", json=student_payload(grade_level="Grade 8"))

    notes = (await client.get("/api/v1/notifications", params={"type": "ENROLLMENT"})).json()
    assert {n["title"] for n in notes} == {"New Pending Enrollment", "Re-enrollment Pending"}
    assert all(n["is_read"] is False for n in notes)
    assert notes[0]["message"].endswith("and is awaiting approval.")


@pytest.mark.asyncio
async def test_enrolled_status_raises_no_notification(client: AsyncClient, active_year: dict, student_payload) -> None:
    await client.post("/api/v1/students", json=student_payload(enrollment_status="ENROLLED"))
    assert (await client.get("/api/v1/notifications")).json() == []


@pytest.mark.asyncio
async def test_read_state_and_delete(client: AsyncClient) -> None:
    first = await client.post("/api/v1/notifications", json={"title": "Backup done", "message": "Nightly backup finished"})
    assert first.status_code == 201
    second = await client.post(
        "/api/v1/notifications", json={"type": "ALERT", "title": "Disk", "message": "Storage at 90%"}
    )
    note_id = first.json()["id"]

    read = await client.patch(f"/api/v1/notifications/{note_id}", json={"is_read": True})
    assert read.status_code == 200
    assert read.json()["is_read"] is True
    unread = (await client.get("/api/v1/notifications", params={"read": False})).json()
    assert [n["id"] for n in unread] == [second.json()["id"]]

    marked = await client.post("/api/v1/notifications/mark-all-read")
    assert marked.json() == {"updated": 1}

    assert (await client.delete(f"/api/v1/notifications/{note_id}")).status_code == 204
    missing = await client.patch(f"/api/v1/notifications/{note_id}", json={"is_read": False})
    assert missing.status_code == 404
