from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from bookkeeping.core.security import SessionContext
from bookkeeping.dependencies import get_db, require_auth
from bookkeeping.schemas.summary import DashboardSummary
from bookkeeping.services.summary_service import dashboard_summary

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("", response_model=DashboardSummary)
def dashboard(
    window_days: int | None = Query(None, ge=1, le=3660, description="Days covered by the totals"),
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(require_auth),
):
    return dashboard_summary(db, ctx, window_days=window_days)


__all__ = ["router"]
