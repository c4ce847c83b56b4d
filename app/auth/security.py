"""Password hashing (bcrypt) and the signed access tokens handed to admins at login."""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
from jose import jwt

from app.core.config import settings


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """False for a wrong password and for a stored hash bcrypt cannot parse."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def create_access_token(*, subject: Dict[str, Any], expires_minutes: Optional[int] = None) -> str:
    """Sign subject's claims (at least "sub", the admin id) with iat and exp added."""
    lifetime = timedelta(minutes=expires_minutes or settings.access_token_expire_minutes)
    issued_at = datetime.now(timezone.utc)
    claims = dict(subject, iat=int(issued_at.timestamp()), exp=issued_at + lifetime)
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Dict[str, Any]:
    """Verified claims of token. Raises jose.JWTError when the signature or expiry check fails."""
    return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
