from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import RedirectResponse

from bookkeeping.config import get_settings
from bookkeeping.core.constants import DEFAULT_DASHBOARD_PATH, LOGIN_PATH
from bookkeeping.core.credentials import login_enabled, verify_login_credentials
from bookkeeping.core.security import issue_access_token
from bookkeeping.schemas.auth import LoginRequest, LoginResponse

router = APIRouter(tags=["Auth"])


@router.get(LOGIN_PATH)
def login_status(request: Request):
    if request.session.get("user"):
        return RedirectResponse(url=DEFAULT_DASHBOARD_PATH, status_code=303)
    return {"login_enabled": login_enabled()}


@router.post(LOGIN_PATH, response_model=LoginResponse)
def login_submit(request: Request, payload: LoginRequest):
    if not login_enabled():
        raise HTTPException(
            status_code=400,
            detail="Login is not configured. Set login credentials in the environment.",
        )

    try:
        valid = verify_login_credentials(payload.username, payload.password)
    except ValueError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    if not valid:
        raise HTTPException(status_code=401, detail="Invalid login ID or password.")

    username = payload.username.strip()
    request.session["user"] = username
    access_token = None
    if get_settings().JWT_SECRET:
        access_token = issue_access_token(username)
    return LoginResponse(user=username, access_token=access_token)


@router.post("/logout")
def logout(request: Request):
    request.session.clear()
    return RedirectResponse(url=LOGIN_PATH, status_code=303)
