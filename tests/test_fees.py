import pytest
from httpx import AsyncClient


def _template(year_id: str, grade: str = "Grade 1") -> dict:
    return {
        "name": f"{grade} Fees",
        "grade_level": grade,
        "academic_year_id": year_id,
        "total_amount": "12500",
        "breakdowns": [
            {"description": "Tuition", "amount": "10000", "category": "TUITION", "order": 1},
            {"description": "Books", "amount": "2500", "category": "BOOKS", "order": 2},
        ],
    }


@pytest.mark.asyncio
async def test_one_template_per_grade_and_year(client: AsyncClient, active_year: dict) -> None:
    created = await client.post("/api/v1/fees/templates", json=_template(active_year["id"]))
    assert created.status_code == 201
    assert created.json()["academic_year_name"] == "2025-2026"

    duplicate = await client.post("/api/v1/fees/templates", json=_template(active_year["id"]))
    assert duplicate.status_code == 409
    assert duplicate.json() == {"error": "Fee template already exists for Grade 1 in this academic year"}


@pytest.mark.asyncio
async def test_update_template_breakdowns(client: AsyncClient, active_year: dict) -> None:
    template = (await client.post("/api/v1/fees/templates", json=_template(active_year["id"]))).json()
    tuition = next(b for b in template["breakdowns"] if b["description"] == "Tuition")

    response = await client.put(
        f"/api/v1/fees/templates/{template['id']}",
        json={
            "total_amount": "11000",
            "breakdowns": [
                {"id": tuition["id"], "description": "Tuition", "amount": "10000", "category": "TUITION", "order": 1},
                {"description": "Laboratory", "amount": "1000", "category": "LABORATORY", "order": 2, "is_refundable": False},
            ],
        },
    )
    assert response.status_code == 200, response.text
    data = response.json()
    assert {b["description"] for b in data["breakdowns"]} == {"Tuition", "Laboratory"}
    assert next(b for b in data["breakdowns"] if b["description"] == "Tuition")["id"] == tuition["id"]


@pytest.mark.asyncio
async def test_template_in_use_cannot_be_deleted(client: AsyncClient, active_year: dict, student_payload) -> None:
    template = (await client.post("/api/v1/fees/templates", json=_template(active_year["id"], "Grade 7"))).json()
    student = (await client.post("/api/v1/students", json=student_payload())).json()
    await client.get(f"/api/v1/students/{student['id']}/fee-status", params={"academicYearId": active_year["id"]})

    response = await client.delete(f"/api/v1/fees/templates/{template['id']}")
    assert response.status_code == 409
    assert response.json() == {"error": "Cannot delete fee template. 1 student(s) are currently using this template."}


@pytest.mark.asyncio
async def test_delete_template_to_recycle_bin(client: AsyncClient, active_year: dict) -> None:
    template = (await client.post("/api/v1/fees/templates", json=_template(active_year["id"]))).json()
    response = await client.delete(f"/api/v1/fees/templates/{template['id']}")
    assert response.status_code == 200
    assert (await client.get(f"/api/v1/fees/templates/{template['id']}")).status_code == 404

    [item] = (await client.get("/api/v1/recycle-bin", params={"entityType": "feeTemplate"})).json()
    assert len(item["entity_data"]["breakdowns"]) == 2
    assert (await client.patch(f"/api/v1/recycle-bin/{item['id']}")).status_code == 200

    restored = (await client.get(f"/api/v1/fees/templates/{template['id']}")).json()
    assert {b["description"] for b in restored["breakdowns"]} == {"Tuition", "Books"}


@pytest.mark.asyncio
async def test_optional_fee_catalog(client: AsyncClient, active_year: dict) -> None:
    missing_amount = await client.post(
        "/api/v1/fees/optional", json={"name": "ID Card", "category": "ID_CARD", "academic_year_id": active_year["id"]}
    )
    assert missing_amount.status_code == 400

    id_card = await client.post(
        "/api/v1/fees/optional",
        json={
            "name": "ID Card",
            "category": "ID_CARD",
            "amount": "150",
            "applicable_grade_levels": ["Grade 7", "Grade 8"],
            "academic_year_id": active_year["id"],
        },
    )
    assert id_card.status_code == 201
    await client.post(
        "/api/v1/fees/optional",
        json={"name": "Toga Rental", "category": "GRADUATION", "amount": "800", "applicable_grade_levels": ["Grade 12"]},
    )

    grade7 = (await client.get("/api/v1/fees/optional", params={"gradeLevel": "Grade 7"})).json()
    assert [f["name"] for f in grade7] == ["ID Card"]

    updated = await client.patch(f"/api/v1/fees/optional/{id_card.json()['id']}", json={"is_active": False})
    assert updated.json()["is_active"] is False
    active = (await client.get("/api/v1/fees/optional", params={"isActive": True})).json()
    assert [f["name"] for f in active] == ["Toga Rental"]

    deleted = await client.delete(f"/api/v1/fees/optional/{id_card.json()['id']}")
    assert deleted.json() == {"message": "Optional fee deleted successfully"}


@pytest.mark.asyncio
async def test_assigned_optional_fee_cannot_be_deleted(client: AsyncClient, active_year: dict, student_payload) -> None:
    fee = (
        await client.post(
            "/api/v1/fees/optional",
            json={"name": "ID Card", "category": "ID_CARD", "amount": "150", "academic_year_id": active_year["id"]},
        )
    ).json()
    student = (await client.post("/api/v1/students", json=student_payload())).json()
    assigned = await client.post(
        f"/api/v1/students/{student['id']}/optional-fees",
        json={"optional_fee_id": fee["id"], "academic_year_id": active_year["id"]},
    )
    assert assigned.status_code == 201, assigned.text

    response = await client.delete(f"/api/v1/fees/optional/{fee['id']}")
    assert response.status_code == 400
    assert response.json() == {
        "error": "Cannot delete optional fee. It is currently assigned to 1 student(s).",
        "details": {"assigned_count": 1},
    }

    missing = await client.delete("/api/v1/fees/optional/00000000-0000-0000-0000-000000000000")
    assert missing.status_code == 404
    assert missing.json() == {"error": "Optional fee not found"}
