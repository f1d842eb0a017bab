from __future__ import annotations

import hmac
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from bookkeeping.config import get_settings
from bookkeeping.core.errors import Unauthenticated


@dataclass(frozen=True)
class SessionContext:
    user_id: str
    auth_type: str
    email: Optional[str] = None
    expires_at: Optional[datetime] = None

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        if now is None:
            now = datetime.now(timezone.utc)
        return now >= self.expires_at


def require_session(ctx: Optional[SessionContext]) -> SessionContext:
    if ctx is None:
        raise Unauthenticated()
    if ctx.is_expired():
        raise Unauthenticated("Session expired")
    return ctx


def _load_api_keys() -> set[str]:
    settings = get_settings()
    keys = set()
    if settings.API_KEYS:
        for value in settings.API_KEYS.split(","):
            value = value.strip()
            if value:
                keys.add(value)
    return keys


def _get_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1]
    return None


def _decode_jwt(token: str) -> dict:
    settings = get_settings()
    if not settings.JWT_SECRET:
        raise Unauthenticated("JWT auth is not configured")

    options = {"verify_aud": bool(settings.JWT_AUDIENCE), "require": ["sub", "exp"]}
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE,
            issuer=settings.JWT_ISSUER,
            options=options,
        )
    except jwt.ExpiredSignatureError as exc:
        raise Unauthenticated("Session expired") from exc
    except jwt.PyJWTError as exc:
        raise Unauthenticated("Invalid JWT") from exc


def issue_access_token(user_id: str, *, email: str | None = None, now: datetime | None = None) -> str:
    settings = get_settings()
    if not settings.JWT_SECRET:
        raise RuntimeError("JWT_SECRET must be configured to issue access tokens")
    if now is None:
        now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "iat": now,
        "exp": now + timedelta(minutes=settings.ACCESS_TOKEN_TTL_MINUTES),
    }
    if email:
        payload["email"] = email
    if settings.JWT_AUDIENCE:
        payload["aud"] = settings.JWT_AUDIENCE
    if settings.JWT_ISSUER:
        payload["iss"] = settings.JWT_ISSUER
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def authenticate_request(
    api_key: Optional[str],
    authorization: Optional[str],
    session_user: Optional[str] = None,
) -> SessionContext:
    token = _get_bearer_token(authorization)
    if token:
        payload = _decode_jwt(token)
        expires_at = datetime.fromtimestamp(payload["exp"], tz=timezone.utc)
        return SessionContext(
            user_id=str(payload["sub"]),
            auth_type="jwt",
            email=payload.get("email"),
            expires_at=expires_at,
        )

    if api_key:
        for key in _load_api_keys():
            if hmac.compare_digest(api_key, key):
                return SessionContext(user_id="api-key", auth_type="api_key")
        raise Unauthenticated("Invalid API key")

    if session_user:
        return SessionContext(user_id=session_user, auth_type="session")

    raise Unauthenticated()


__all__ = [
    "SessionContext",
    "authenticate_request",
    "issue_access_token",
    "require_session",
]
