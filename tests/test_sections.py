import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_create_and_list_sections(client: AsyncClient) -> None:
    for name, grade in (("Wisdom", "Grade 11"), ("Charity", "Kinder 1"), ("Faith", "Grade 2")):
        response = await client.post("/api/v1/sections", json={"name": name, "grade_level": grade})
        assert response.status_code == 201

    sections = (await client.get("/api/v1/sections")).json()
    assert [s["grade_level"] for s in sections] == ["Kinder 1", "Grade 2", "Grade 11"]
    by_name = (await client.get("/api/v1/sections", params={"sortBy": "name", "sortOrder": "desc"})).json()
    assert [s["name"] for s in by_name] == ["Wisdom", "Faith", "Charity"]

    duplicate = await client.post("/api/v1/sections", json={"name": "Wisdom", "grade_level": "Grade 11"})
    assert duplicate.status_code == 409


@pytest.mark.asyncio
async def test_deactivate_section(client: AsyncClient) -> None:
    section = (await client.post("/api/v1/sections", json={"name": "Wisdom", "grade_level": "Grade 11"})).json()
    response = await client.patch(f"/api/v1/sections/{section['id']}", json={"is_active": False})
    assert response.status_code == 200
    assert response.json()["is_active"] is False

    active = (await client.get("/api/v1/sections", params={"status": "active"})).json()
    assert active == []
    inactive = (await client.get("/api/v1/sections", params={"status": "inactive"})).json()
    assert [s["id"] for s in inactive] == [section["id"]]


@pytest.mark.asyncio
async def test_section_in_use_cannot_be_deleted(client: AsyncClient, active_year: dict, student_payload) -> None:
    section = (await client.get("/api/v1/sections", params={"gradeLevel": "Grade 7"})).json()[0]
    enrolled = await client.post("/api/v1/students", json=student_payload(section_id=section["id"]))
    assert enrolled.status_code == 201
    assert enrolled.json()["section_name"] == section["name"]

    counted = (await client.get(f"/api/v1/sections/{section['id']}")).json()
    assert counted["student_count"] == 1

    response = await client.delete(f"/api/v1/sections/{section['id']}")
    assert response.status_code == 400
    assert response.json() == {"error": "Cannot delete section with 1 student(s). Please reassign students first."}


@pytest.mark.asyncio
async def test_unknown_section_on_enrollment(client: AsyncClient, active_year: dict, student_payload) -> None:
    response = await client.post(
        "/api/v1/students", json=student_payload(section_id="00000000-0000-0000-0000-000000000000")
    )
    assert response.status_code == 400
    assert response.json() == {"error": "Section not found"}
