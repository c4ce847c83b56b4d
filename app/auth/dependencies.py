from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import Admin
from app.auth.schemas import CurrentAdmin
from app.auth.security import decode_access_token
from app.db.session import get_db

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login-oauth")


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_admin(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> CurrentAdmin:
    """Resolve the signed-in admin from the bearer token; 401 for a bad token or a deleted admin."""
    try:
        claims = decode_access_token(token)
        admin_id = UUID(str(claims.get("sub")))
    except (JWTError, ValueError):
        raise _unauthorized()

    admin = await db.get(Admin, admin_id)
    if not admin:
        raise _unauthorized()
    return CurrentAdmin(id=admin.id, email=admin.email, name=admin.name, role=admin.role)
