"""Password hashing and admin JWTs."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any, cast

from jose import jwt
from passlib.context import CryptContext

from src.config import settings

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    result: bool = pwd_context.verify(plain_password, hashed_password)
    return result


def get_password_hash(password: str) -> str:
    result: str = pwd_context.hash(password)
    return result


def create_access_token(
    subject: str,
    claims: dict[str, Any] | None = None,
    expires_delta: timedelta | None = None,
    now_utc: datetime | None = None,
) -> str:
    """Sign a token for `subject` (the admin user id).

    Args:
        subject: Value of the `sub` claim.
        claims: Extra claims, e.g. email and role.
        expires_delta: Lifetime; defaults to the configured jwt_expire_minutes.
        now_utc: Current UTC time, injectable for tests.
    """
    current_time = now_utc if now_utc is not None else datetime.now(UTC)
    lifetime = expires_delta or timedelta(minutes=settings.security.jwt_expire_minutes)

    to_encode = dict(claims or {})
    to_encode.update({"sub": subject, "exp": current_time + lifetime})
    encoded_jwt: str = jwt.encode(
        to_encode, settings.security.jwt_secret, algorithm=settings.security.jwt_algorithm
    )
    return encoded_jwt


def decode_access_token(token: str) -> dict[str, Any] | None:
    """Claims of a valid token; None when the signature or expiry is wrong."""
    try:
        payload = jwt.decode(
            token, settings.security.jwt_secret, algorithms=[settings.security.jwt_algorithm]
        )
        return cast(dict[str, Any], payload)
    except jwt.JWTError:
        return None
