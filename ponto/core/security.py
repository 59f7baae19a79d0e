from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Iterable

from jose import JWTError, jwt
from passlib.context import CryptContext

from .config import get_settings
from .exceptions import ForbiddenError

REVIEWER_ROLES = frozenset({"admin", "manager"})
USER_ROLES = frozenset({"employee", "manager", "admin"})

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(subject: str, role: str) -> tuple[str, datetime]:
    settings = get_settings()
    issued = datetime.now(timezone.utc)
    expires = issued + timedelta(minutes=settings.access_token_minutes)
    payload = {
        "sub": subject,
        "role": role,
        "exp": expires,
        "iat": issued,
    }
    token = jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)
    return token, expires


def decode_access_token(token: str) -> dict:
    settings = get_settings()
    return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])


def safe_decode_token(token: str) -> dict | None:
    try:
        return decode_access_token(token)
    except JWTError:
        return None


def require_role(actual_role: str | None, allowed_roles: Iterable[str] = REVIEWER_ROLES) -> None:
    if actual_role not in set(allowed_roles):
        raise ForbiddenError("Not authorized.")
