from __future__ import annotations

from datetime import datetime, timedelta, timezone

from jose import jwt

from app.core.config import settings


def create_access_token(subject: str, *, expires_minutes: int | None = None) -> str:
    """Mint a bearer token the API accepts.

    Session issuance lives in the identity service; this helper exists for
    scripts and tests that need to call the API directly.
    """

    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {"sub": subject, "exp": expire}
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALG)
