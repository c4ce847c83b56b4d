import os
from typing import AsyncGenerator, Callable, Dict

# Settings are read at import time; point them at a throwaway database before importing the app.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("CRON_SECRET", "test-cron-secret")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import app.auth.models  # noqa: F401,E402
import app.core.models  # noqa: F401,E402
from app.auth.models import Admin
from app.auth.security import create_access_token
from app.auth.services import create_admin
from app.db.session import Base, get_db
from app.main import app

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
ADMIN_EMAIL = "registrar@school.edu.ph"
ADMIN_PASSWORD = "Registrar2025!"


@pytest.fixture()
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Fresh in-memory database per test; the FastAPI dependency is overridden to use it."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async_session = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session() as session:

        async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
            yield session

        app.dependency_overrides[get_db] = override_get_db
        yield session

    app.dependency_overrides.clear()
    await engine.dispose()


@pytest.fixture()
async def admin(db_session: AsyncSession) -> Admin:
    return await create_admin(db_session, email=ADMIN_EMAIL, password=ADMIN_PASSWORD, name="Registrar")


@pytest.fixture()
def auth_headers(admin: Admin) -> Dict[str, str]:
    token = create_access_token(subject={"sub": str(admin.id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
async def anon_client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Client without credentials."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture()
async def client(db_session: AsyncSession, auth_headers: Dict[str, str]) -> AsyncGenerator[AsyncClient, None]:
    """Client signed in as the registrar admin."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test", headers=auth_headers) as ac:
        yield ac


@pytest.fixture()
async def active_year(client: AsyncClient) -> dict:
    resp = await client.post("/api/v1/academic-years", json={"name": "2025-2026", "start_date": "2025-06-02"})
    assert resp.status_code == 201, resp.text
    return resp.json()["academic_year"]


@pytest.fixture()
def student_payload() -> Callable[..., dict]:
    """Enrollment form with valid defaults; keyword arguments override fields."""

    def make(**overrides) -> dict:
        data = {
            "first_name": "Maria",
            "middle_name": "Santos",
            "last_name": "Dela Cruz",
            "gender": "Female",
            "contact_number": "09171234567",
            "date_of_birth": "2012-03-14",
            "barangay": "San Isidro",
            "city": "Quezon City",
            "province": "Metro Manila",
            "parent_guardian": "Ana Dela Cruz",
            "grade_level": "Grade 7",
        }
        data.update(overrides)
        return data

    return make
