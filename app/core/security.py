from datetime import datetime, timedelta, timezone
from typing import Any

from jose import ExpiredSignatureError, JWTError, jwt

from app.core.config import get_settings

ALGORITHM = "HS256"


def create_access_token(
    subject: str,
    tenant_id: str | None,
    role: str,
    expires_delta_minutes: int | None = None,
) -> str:
    """
    Create a JWT access token with subject (user id), tenant_id and role.

    Login endpoints live outside this service; this is used by
    operator tooling and tests.
    """
    settings = get_settings()
    if expires_delta_minutes is None:
        expires_delta_minutes = settings.access_token_expire_minutes

    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_delta_minutes)
    to_encode: dict[str, Any] = {
        "sub": str(subject),
        "tenant_id": tenant_id,
        "role": role,
        "exp": expire,
    }
    return jwt.encode(to_encode, settings.secret_key, algorithm=ALGORITHM)


def decode_token(token: str) -> dict[str, Any]:
    """
    Decode and validate a JWT token.
    Raises ValueError with descriptive message if token is invalid or expired.
    """
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except ExpiredSignatureError:
        raise ValueError("Token has expired. Please log in again.") from None
    except JWTError as exc:
        raise ValueError("Invalid token") from exc
    return payload
