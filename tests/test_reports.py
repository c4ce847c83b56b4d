import io

import pytest
from httpx import AsyncClient
from openpyxl import load_workbook


@pytest.fixture()
async def enrolled_students(client: AsyncClient, active_year: dict, student_payload) -> None:
    await client.post("/api/v1/students", json=student_payload(enrollment_status="ENROLLED"))
    await client.post(
        "/api/v1/students",
        json=student_payload(
            first_name="Juan",
            last_name="Reyes",
            gender="Male",
            date_of_birth="2016-08-01",
            grade_level="Grade 2",
            is_transferee=True,
            previous_school="Bagong Silang Elementary School",
        ),
    )


@pytest.mark.asyncio
async def test_enrollment_report(client: AsyncClient, active_year: dict, enrolled_students) -> None:
    response = await client.get("/api/v1/reports", params={"yearId": active_year["id"]})
    assert response.status_code == 200
    report = response.json()
    assert report["academic_year"] == "2025-2026"
    assert report["total_students"] == 2
    assert report["enrolled_students"] == 1
    assert report["pending_students"] == 1
    assert report["transferees"] == 1
    assert report["grade_distribution"] == [
        {"grade_level": "Grade 2", "count": 1, "male": 1, "female": 0},
        {"grade_level": "Grade 7", "count": 1, "male": 0, "female": 1},
    ]
    assert [s["full_name"] for s in report["students"]] == ["Juan Santos Reyes", "Maria Santos Dela Cruz"]


@pytest.mark.asyncio
async def test_report_export(client: AsyncClient, active_year: dict, enrolled_students) -> None:
    response = await client.get("/api/v1/reports/export", params={"yearId": active_year["id"]})
    assert response.status_code == 200
    assert response.headers["content-type"].startswith(
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    )
    assert "enrollment_report_2025-2026.xlsx" in response.headers["content-disposition"]

    wb = load_workbook(io.BytesIO(response.content))
    assert wb.sheetnames == ["Summary", "Students"]
    rows = list(wb["Students"].iter_rows(values_only=True))
    assert rows[0][1] == "Full Name"
    assert [r[1] for r in rows[1:]] == ["Juan Santos Reyes", "Maria Santos Dela Cruz"]
    assert rows[1][8] == "Yes"


@pytest.mark.asyncio
async def test_report_unknown_year(client: AsyncClient) -> None:
    response = await client.get("/api/v1/reports", params={"yearId": "00000000-0000-0000-0000-000000000000"})
    assert response.status_code == 404
