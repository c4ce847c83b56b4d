import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.models import Enrollment, Notification


@pytest.mark.asyncio
async def test_enroll_without_active_year(client: AsyncClient, student_payload) -> None:
    response = await client.post("/api/v1/students", json=student_payload())
    assert response.status_code == 400
    assert response.json() == {"error": "No active academic year. Please create an academic year first."}


@pytest.mark.asyncio
async def test_enroll_new_student(
    client: AsyncClient, db_session: AsyncSession, active_year: dict, student_payload
) -> None:
    response = await client.post(
        "/api/v1/students",
        json=student_payload(lrn="123456789012", remark_text="Walk-in", remark_labels=["New Student"]),
    )
    assert response.status_code == 201, response.text
    data = response.json()
    assert data["is_reenrollment"] is False
    assert data["full_name"] == "Maria Santos Dela Cruz"
    assert data["enrollment_status"] == "PENDING"
    assert data["remarks"] == "Walk-in|New Student"
    assert data["remarks_display"] == "(Admin NOTE: Walk-in) Other Remarks: New Student"
    assert len(data["enrollments"]) == 1
    assert data["enrollments"][0]["academic_year_id"] == active_year["id"]
    assert data["enrollments"][0]["school_year"] == "2025-2026"

    notifications = (await db_session.execute(select(Notification))).scalars().all()
    assert len(notifications) == 1
    assert notifications[0].title == "New Pending Enrollment"
    assert str(notifications[0].enrollment_id) == data["enrollment_id"]


@pytest.mark.asyncio
async def test_resubmitting_same_year_updates_enrollment(
    client: AsyncClient, db_session: AsyncSession, active_year: dict, student_payload
) -> None:
    first = await client.post("/api/v1/students", json=student_payload())
    assert first.status_code == 201

    second = await client.post("/api/v1/students", json=student_payload(grade_level="Grade 8"))
    assert second.status_code == 200
    data = second.json()
    assert data["is_reenrollment"] is True
    assert data["id"] == first.json()["id"]
    assert data["enrollment_id"] == first.json()["enrollment_id"]
    assert data["grade_level"] == "Grade 8"

    rows = (await db_session.execute(select(Enrollment))).scalars().all()
    assert len(rows) == 1
    assert rows[0].grade_level == "Grade 8"


@pytest.mark.asyncio
async def test_reenrollment_keeps_fields_left_out_of_the_form(
    client: AsyncClient, active_year: dict, student_payload
) -> None:
    first = await client.post(
        "/api/v1/students",
        json=student_payload(lrn="123456789012", father_name="Jose Dela Cruz", remark_text="Pays monthly"),
    )
    assert first.status_code == 201

    # Matched by name and date of birth; no LRN, father or remarks sent
    second = await client.post("/api/v1/students", json=student_payload(city="Pasig City"))
    assert second.status_code == 200
    data = second.json()
    assert data["is_reenrollment"] is True
    assert data["id"] == first.json()["id"]
    assert data["lrn"] == "123456789012"
    assert data["father_name"] == "Jose Dela Cruz"
    assert data["remark_text"] == "Pays monthly"
    assert data["city"] == "Pasig City"

    # An explicit blank LRN does not clear the stored one either
    third = await client.post("/api/v1/students", json=student_payload(lrn=""))
    assert third.json()["lrn"] == "123456789012"

    # The LRN still matches after the resubmissions
    by_lrn = await client.post(
        "/api/v1/students", json=student_payload(lrn="123456789012", first_name="Ma.")
    )
    assert by_lrn.json()["id"] == first.json()["id"]


@pytest.mark.asyncio
async def test_reenrollment_in_new_year_adds_enrollment(client: AsyncClient, active_year: dict, student_payload) -> None:
    first = await client.post("/api/v1/students", json=student_payload(lrn="123456789012", enrollment_status="ENROLLED"))
    await client.post("/api/v1/academic-years", json={"name": "2026-2027", "start_date": "2026-06-01"})

    # Matched by LRN even though the name changed
    second = await client.post(
        "/api/v1/students", json=student_payload(lrn="123456789012", first_name="Ma.", grade_level="Grade 8")
    )
    assert second.status_code == 200
    data = second.json()
    assert data["id"] == first.json()["id"]
    assert data["enrollment_id"] != first.json()["enrollment_id"]
    assert {e["school_year"] for e in data["enrollments"]} == {"2025-2026", "2026-2027"}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides",
    [
        {"contact_number": "0917123456"},
        {"contact_number": "+63917123456"},
        {"lrn": "12345"},
        {"is_transferee": True},
        {"emergency_contact_name": "Pedro Dela Cruz"},
        {"emergency_contact_name": "Pedro", "emergency_contact_number": "12345"},
        {"gender": "Other"},
    ],
)
async def test_enrollment_form_validation(client: AsyncClient, active_year: dict, student_payload, overrides) -> None:
    response = await client.post("/api/v1/students", json=student_payload(**overrides))
    assert response.status_code == 400
    assert response.json()["error"] == "Validation failed"


@pytest.mark.asyncio
async def test_transferee_and_international_number(client: AsyncClient, active_year: dict, student_payload) -> None:
    response = await client.post(
        "/api/v1/students",
        json=student_payload(
            contact_number="+639171234567",
            is_transferee=True,
            previous_school="San Roque Elementary School",
            emergency_contact_name="Pedro Dela Cruz",
            emergency_contact_number="09181234567",
        ),
    )
    assert response.status_code == 201
    assert response.json()["previous_school"] == "San Roque Elementary School"


@pytest.mark.asyncio
async def test_status_changes_drive_notifications(
    client: AsyncClient, db_session: AsyncSession, active_year: dict, student_payload
) -> None:
    created = (await client.post("/api/v1/students", json=student_payload())).json()
    student_id = created["id"]

    dropped = await client.put(f"/api/v1/students/{student_id}", json=student_payload(enrollment_status="DROPPED"))
    assert dropped.status_code == 200
    assert dropped.json()["enrollments"][0]["status"] == "DROPPED"
    note = (await db_session.execute(select(Notification))).scalar_one()
    await db_session.refresh(note)
    assert note.title == "Enrollment Dropped"

    enrolled = await client.put(f"/api/v1/students/{student_id}", json=student_payload(enrollment_status="ENROLLED"))
    assert enrolled.status_code == 200
    assert (await db_session.execute(select(Notification))).scalars().all() == []


@pytest.mark.asyncio
async def test_edit_requires_current_year_enrollment(client: AsyncClient, active_year: dict, student_payload) -> None:
    created = (await client.post("/api/v1/students", json=student_payload())).json()
    await client.post("/api/v1/academic-years", json={"name": "2026-2027", "start_date": "2026-06-01"})

    response = await client.put(f"/api/v1/students/{created['id']}", json=student_payload(city="Pasig"))
    assert response.status_code == 403
    assert response.json() == {"error": "Cannot edit student not enrolled in current academic year"}


@pytest.mark.asyncio
async def test_delete_student(client: AsyncClient, active_year: dict, student_payload) -> None:
    created = (await client.post("/api/v1/students", json=student_payload())).json()

    response = await client.delete(f"/api/v1/students/{created['id']}")
    assert response.status_code == 200
    assert response.json() == {"success": True, "deleted_enrollments": 1}
    assert (await client.get(f"/api/v1/students/{created['id']}")).status_code == 404


@pytest.mark.asyncio
async def test_delete_blocked_by_earlier_years(client: AsyncClient, active_year: dict, student_payload) -> None:
    created = (await client.post("/api/v1/students", json=student_payload(enrollment_status="ENROLLED"))).json()
    await client.post("/api/v1/academic-years", json={"name": "2026-2027", "start_date": "2026-06-01"})
    await client.post("/api/v1/students", json=student_payload(grade_level="Grade 8"))

    response = await client.delete(f"/api/v1/students/{created['id']}")
    assert response.status_code == 403
    assert response.json() == {"error": "Cannot delete student with enrollments in closed academic years"}


@pytest.mark.asyncio
async def test_switch_student(client: AsyncClient, active_year: dict, student_payload) -> None:
    created = (await client.post("/api/v1/students", json=student_payload())).json()
    sections = (await client.get("/api/v1/sections", params={"gradeLevel": "Grade 8"})).json()
    section = sections[0]

    response = await client.post(
        f"/api/v1/students/{created['id']}/switch",
        json={"grade_level": "Grade 8", "section_id": section["id"]},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "Student switched successfully"
    assert data["grade_level"] == "Grade 8"
    assert data["section_name"] == section["name"]
    assert data["enrollments"][0]["grade_level"] == "Grade 8"


@pytest.mark.asyncio
async def test_search_and_duplicates(client: AsyncClient, active_year: dict, student_payload) -> None:
    await client.post("/api/v1/students", json=student_payload(lrn="123456789012"))
    await client.post(
        "/api/v1/students",
        json=student_payload(first_name="Juan", middle_name=None, last_name="Reyes", date_of_birth="2011-08-01"),
    )

    assert (await client.get("/api/v1/students/search", params={"q": "M"})).json() == []
    by_name = (await client.get("/api/v1/students/search", params={"q": "reyes"})).json()
    assert [s["full_name"] for s in by_name] == ["Juan Reyes"]
    by_lrn = (await client.get("/api/v1/students/search", params={"q": "1234567"})).json()
    assert len(by_lrn) == 1
    assert by_lrn[0]["latest_enrollment"]["school_year"] == "2025-2026"

    duplicates = await client.post(
        "/api/v1/students/search",
        json={"first_name": "maria", "last_name": "dela cruz", "date_of_birth": "2012-03-14"},
    )
    assert duplicates.status_code == 200
    assert [s["full_name"] for s in duplicates.json()] == ["Maria Santos Dela Cruz"]


@pytest.mark.asyncio
async def test_list_students_filters(client: AsyncClient, active_year: dict, student_payload) -> None:
    await client.post("/api/v1/students", json=student_payload())
    await client.post(
        "/api/v1/students",
        json=student_payload(first_name="Juan", last_name="Reyes", date_of_birth="2011-08-01", grade_level="Grade 8"),
    )

    grade7 = (await client.get("/api/v1/students", params={"gradeLevel": "Grade 7"})).json()
    assert [s["first_name"] for s in grade7] == ["Maria"]
    by_year = (await client.get("/api/v1/students", params={"academicYear": "2025-2026"})).json()
    assert len(by_year) == 2
    other_year = (await client.get("/api/v1/students", params={"academicYear": "2019-2020"})).json()
    assert other_year == []

    archive = (await client.get("/api/v1/students/archive", params={"academicYearId": active_year["id"]})).json()
    assert len(archive) == 2
