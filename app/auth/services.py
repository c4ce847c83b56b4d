from datetime import datetime, timezone
from typing import Optional

from fastapi import status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import Admin
from app.auth.schemas import AdminInfo, LoginRequest, LoginResponse
from app.auth.security import create_access_token, hash_password, verify_password
from app.core.exceptions import ServiceError


async def login_admin(db: AsyncSession, payload: LoginRequest) -> LoginResponse:
    # Email match is case-insensitive
    result = await db.execute(select(Admin).where(func.lower(Admin.email) == payload.email.lower()))
    admin: Optional[Admin] = result.scalar_one_or_none()
    if not admin or not verify_password(payload.password, admin.password_hash):
        raise ServiceError("Invalid credentials", status.HTTP_401_UNAUTHORIZED)

    issued_at = datetime.now(timezone.utc)
    access_token = create_access_token(
        subject={"sub": str(admin.id), "email": admin.email, "role": admin.role}
    )
    return LoginResponse(
        access_token=access_token,
        admin=AdminInfo(id=admin.id, name=admin.name, email=admin.email, role=admin.role),
        issued_at=issued_at,
    )


async def create_admin(
    db: AsyncSession,
    email: str,
    password: str,
    name: Optional[str] = None,
    role: str = "ADMIN",
) -> Admin:
    """Create an admin account (used by the bootstrap script and tests)."""
    existing = await db.execute(select(Admin).where(func.lower(Admin.email) == email.lower()))
    if existing.scalar_one_or_none():
        raise ServiceError("An admin with this email already exists", status.HTTP_409_CONFLICT)
    admin = Admin(email=email.lower(), name=name, password_hash=hash_password(password), role=role)
    db.add(admin)
    await db.commit()
    return admin
