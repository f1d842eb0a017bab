from typing import Optional

from fastapi import Header, Request

from bookkeeping.config import get_settings
from bookkeeping.core.security import SessionContext, authenticate_request
from bookkeeping.database.session import get_db


def _session_user(request: Request) -> Optional[str]:
    if "session" not in request.scope:
        return None
    return request.session.get("user")


def require_auth(
    request: Request,
    authorization: Optional[str] = Header(None),
) -> SessionContext:
    settings = get_settings()
    api_key = request.headers.get(settings.API_KEY_HEADER) or request.headers.get("api-key")
    return authenticate_request(
        api_key=api_key,
        authorization=authorization,
        session_user=_session_user(request),
    )


__all__ = ["get_db", "require_auth"]
