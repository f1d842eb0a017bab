import secrets
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.middleware.sessions import SessionMiddleware

from bookkeeping.config import Settings, get_settings
from bookkeeping.core.constants import DEFAULT_DASHBOARD_PATH, LOGIN_PATH
from bookkeeping.core.errors import LedgerError, Unauthenticated
from bookkeeping.core.logging import setup_logging
from bookkeeping.database import Base, engine
from bookkeeping.dependencies import require_auth
from bookkeeping.models import import_all_models
from bookkeeping.routers import (
    auth_router,
    dashboard_router,
    expenses_router,
    health_router,
    inventory_router,
    products_router,
    sales_router,
)

setup_logging()
settings: Settings = get_settings()


@asynccontextmanager
async def lifespan(_app: FastAPI):
    import_all_models()
    Base.metadata.create_all(bind=engine)
    yield


def ledger_error_handler(_request: Request, exc: LedgerError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthenticated) else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.SESSION_SECRET or settings.JWT_SECRET or secrets.token_urlsafe(32),
    session_cookie=settings.SESSION_COOKIE,
    same_site="lax",
    https_only=settings.ENVIRONMENT.lower() != "local",
)
app.add_exception_handler(LedgerError, ledger_error_handler)

app.include_router(health_router)
app.include_router(auth_router)
app.include_router(dashboard_router)
app.include_router(products_router)
app.include_router(inventory_router)
app.include_router(sales_router)
app.include_router(expenses_router)


@app.get("/")
def root(request: Request):
    try:
        require_auth(request, request.headers.get("authorization"))
    except Unauthenticated:
        return RedirectResponse(url=LOGIN_PATH, status_code=302)
    return RedirectResponse(url=DEFAULT_DASHBOARD_PATH, status_code=302)


__all__ = ["app", "ledger_error_handler", "root"]
