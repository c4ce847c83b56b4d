import pytest
from httpx import AsyncClient

from app.auth.models import Admin

ADMIN_EMAIL = "registrar@school.edu.ph"
ADMIN_PASSWORD = "Registrar2025!"


@pytest.mark.asyncio
async def test_login_success(anon_client: AsyncClient, admin: Admin) -> None:
    response = await anon_client.post(
        "/api/v1/auth/login",
        json={"email": ADMIN_EMAIL.upper(), "password": ADMIN_PASSWORD},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["token_type"] == "bearer"
    assert data["access_token"]
    assert data["admin"]["email"] == ADMIN_EMAIL
    assert data["admin"]["id"] == str(admin.id)

    me = await anon_client.get(
        "/api/v1/auth/me",
        headers={"Authorization": f"Bearer {data['access_token']}"},
    )
    assert me.status_code == 200
    assert me.json()["email"] == ADMIN_EMAIL


@pytest.mark.asyncio
async def test_login_invalid_credentials(anon_client: AsyncClient, admin: Admin) -> None:
    response = await anon_client.post(
        "/api/v1/auth/login",
        json={"email": ADMIN_EMAIL, "password": "wrong-password"},
    )
    assert response.status_code == 401
    assert response.json() == {"error": "Invalid credentials"}


@pytest.mark.asyncio
async def test_login_unknown_email(anon_client: AsyncClient, admin: Admin) -> None:
    response = await anon_client.post(
        "/api/v1/auth/login",
        json={"email": "nobody@school.edu.ph", "password": ADMIN_PASSWORD},
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_oauth_form_login(anon_client: AsyncClient, admin: Admin) -> None:
    response = await anon_client.post(
        "/api/v1/auth/login-oauth",
        data={"username": ADMIN_EMAIL, "password": ADMIN_PASSWORD},
    )
    assert response.status_code == 200
    assert response.json()["token_type"] == "bearer"


@pytest.mark.asyncio
async def test_protected_routes_require_token(anon_client: AsyncClient) -> None:
    response = await anon_client.get("/api/v1/academic-years")
    assert response.status_code == 401

    response = await anon_client.get(
        "/api/v1/students",
        headers={"Authorization": "Bearer not-a-token"},
    )
    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}
    assert response.headers["www-authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_validation_errors_are_400(anon_client: AsyncClient) -> None:
    response = await anon_client.post("/api/v1/auth/login", json={"email": "not-an-email"})
    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Validation failed"
    assert body["details"]
