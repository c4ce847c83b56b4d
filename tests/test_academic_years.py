import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.grades import SECTION_DEFINITIONS
from app.core.models import AcademicYear, CustomRemark, RecycleBin, Section
from app.api.v1.students.remarks import KNOWN_REMARKS


async def _create_year(client: AsyncClient, name: str, start: str) -> dict:
    response = await client.post("/api/v1/academic-years", json={"name": name, "start_date": start})
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_first_year_is_active_and_seeded(client: AsyncClient, db_session: AsyncSession) -> None:
    data = await _create_year(client, "2025-2026", "2025-06-02")

    year = data["academic_year"]
    assert year["is_active"] is True
    assert year["is_closed"] is False
    summary = data["prepopulation"]
    assert summary["sections_created"] == sum(len(names) for names in SECTION_DEFINITIONS.values())
    assert summary["remarks_created"] == len(KNOWN_REMARKS)
    assert summary["fee_templates_copied"] == 0
    assert summary["source_year"] is None

    sections = await db_session.execute(select(func.count(Section.id)))
    assert sections.scalar_one() == summary["sections_created"]
    remarks = await db_session.execute(select(func.count(CustomRemark.id)))
    assert remarks.scalar_one() == summary["remarks_created"]


@pytest.mark.asyncio
async def test_new_year_becomes_the_only_active_one(client: AsyncClient, db_session: AsyncSession) -> None:
    first = (await _create_year(client, "2024-2025", "2024-06-03"))["academic_year"]
    second = await _create_year(client, "2025-2026", "2025-06-02")

    # Defaults already exist, nothing seeded twice
    assert second["prepopulation"]["sections_created"] == 0
    assert second["prepopulation"]["remarks_created"] == 0
    assert second["prepopulation"]["source_year"] == "2024-2025"

    active = await client.get("/api/v1/academic-years/active")
    assert active.status_code == 200
    assert active.json()["id"] == second["academic_year"]["id"]

    result = await db_session.execute(select(func.count(AcademicYear.id)).where(AcademicYear.is_active.is_(True)))
    assert result.scalar_one() == 1

    activated = await client.post(f"/api/v1/academic-years/{first['id']}", json={"action": "activate"})
    assert activated.status_code == 200
    assert activated.json()["message"] == "Academic year activated successfully"
    assert activated.json()["is_active"] is True

    years = {y["name"]: y for y in (await client.get("/api/v1/academic-years")).json()}
    assert years["2024-2025"]["is_active"] is True
    assert years["2025-2026"]["is_active"] is False


@pytest.mark.asyncio
async def test_duplicate_year_name(client: AsyncClient) -> None:
    await _create_year(client, "2025-2026", "2025-06-02")
    response = await client.post("/api/v1/academic-years", json={"name": "2025-2026", "start_date": "2025-07-01"})
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_end_date_must_follow_start(client: AsyncClient) -> None:
    response = await client.post(
        "/api/v1/academic-years",
        json={"name": "2025-2026", "start_date": "2025-06-02", "end_date": "2025-01-01"},
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_no_active_year(client: AsyncClient) -> None:
    response = await client.get("/api/v1/academic-years/active")
    assert response.status_code == 404
    assert response.json() == {"error": "No active academic year found"}


@pytest.mark.asyncio
async def test_end_year(client: AsyncClient, active_year: dict) -> None:
    response = await client.post(f"/api/v1/academic-years/{active_year['id']}", json={"action": "end"})
    assert response.status_code == 200
    data = response.json()
    assert data["is_active"] is False
    assert data["is_closed"] is True
    assert data["end_date"] is not None

    bad = await client.post(f"/api/v1/academic-years/{active_year['id']}", json={"action": "archive"})
    assert bad.status_code == 400


@pytest.mark.asyncio
async def test_patch_activates_year(client: AsyncClient) -> None:
    first = (await _create_year(client, "2024-2025", "2024-06-03"))["academic_year"]
    await _create_year(client, "2025-2026", "2025-06-02")

    response = await client.patch(f"/api/v1/academic-years/{first['id']}", json={"is_active": True})
    assert response.status_code == 200
    assert response.json()["is_active"] is True
    active = (await client.get("/api/v1/academic-years/active")).json()
    assert active["id"] == first["id"]


@pytest.mark.asyncio
async def test_fee_templates_copied_into_new_year(client: AsyncClient, active_year: dict) -> None:
    template = {
        "name": "Grade 7 Fees 2025-2026",
        "grade_level": "Grade 7",
        "academic_year_id": active_year["id"],
        "total_amount": "15000",
        "breakdowns": [
            {"description": "Tuition", "amount": "12000", "category": "TUITION", "order": 1},
            {"description": "Registration", "amount": "3000", "category": "REGISTRATION", "order": 2, "is_refundable": False},
        ],
    }
    created = await client.post("/api/v1/fees/templates", json=template)
    assert created.status_code == 201, created.text

    data = await _create_year(client, "2026-2027", "2026-06-01")
    assert data["prepopulation"]["fee_templates_copied"] == 1

    response = await client.get(
        "/api/v1/fees/templates", params={"academicYearId": data["academic_year"]["id"]}
    )
    copies = response.json()
    assert len(copies) == 1
    assert copies[0]["name"] == "Grade 7 Fees 2026-2027"
    assert {b["description"]: b["is_refundable"] for b in copies[0]["breakdowns"]} == {
        "Tuition": True,
        "Registration": False,
    }


@pytest.mark.asyncio
async def test_delete_year_goes_to_recycle_bin(
    client: AsyncClient, db_session: AsyncSession, active_year: dict, student_payload
) -> None:
    enrolled = await client.post("/api/v1/students", json=student_payload())
    assert enrolled.status_code == 201

    response = await client.delete(f"/api/v1/academic-years/{active_year['id']}")
    assert response.status_code == 200
    data = response.json()
    assert data["deleted_year"] == "2025-2026"
    assert data["deleted_enrollments"] == 1

    assert (await client.get(f"/api/v1/academic-years/{active_year['id']}")).status_code == 404
    item = (await db_session.execute(select(RecycleBin))).scalar_one()
    assert item.entity_type == "academicYear"
    assert item.entity_name == "2025-2026"
    assert item.entity_data["enrollment_count"] == 1

    # The student record itself survives
    student = await client.get(f"/api/v1/students/{enrolled.json()['id']}")
    assert student.status_code == 200
    assert student.json()["enrollments"] == []


@pytest.mark.asyncio
async def test_import_students_from_previous_year(client: AsyncClient, student_payload) -> None:
    source = (await _create_year(client, "2024-2025", "2024-06-03"))["academic_year"]
    enrolled = await client.post(
        "/api/v1/students", json=student_payload(grade_level="Grade 6", enrollment_status="ENROLLED")
    )
    pending = await client.post(
        "/api/v1/students",
        json=student_payload(first_name="Jose", date_of_birth="2013-01-20", grade_level="Grade 5"),
    )
    assert enrolled.status_code == 201 and pending.status_code == 201
    target = (await _create_year(client, "2025-2026", "2025-06-02"))["academic_year"]

    response = await client.get(
        f"/api/v1/academic-years/{target['id']}/import-students", params={"sourceYearId": source["id"]}
    )
    assert response.status_code == 200
    candidates = response.json()
    assert candidates["total"] == 1
    assert candidates["students"][0]["current_grade"] == "Grade 6"
    assert candidates["students"][0]["next_grade"] == "Grade 7"

    student_id = enrolled.json()["id"]
    imported = await client.post(
        f"/api/v1/academic-years/{target['id']}/import-students",
        json={"students": [{"student_id": student_id, "grade_level": "Grade 7"}]},
    )
    assert imported.status_code == 200
    assert imported.json()["success"] == 1
    assert imported.json()["errors"] == []

    again = await client.post(
        f"/api/v1/academic-years/{target['id']}/import-students",
        json={"students": [{"student_id": student_id, "grade_level": "Grade 7"}]},
    )
    assert again.json()["success"] == 0
    assert again.json()["skipped"] == 1

    student = (await client.get(f"/api/v1/students/{student_id}")).json()
    assert student["grade_level"] == "Grade 7"
    assert student["enrollment_status"] == "ENROLLED"
    assert len(student["enrollments"]) == 2
