from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from bookkeeping.config import get_settings
from bookkeeping.database.session import storage_errors
from bookkeeping.dependencies import get_db

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(db: Session = Depends(get_db)):
    """Liveness plus a round trip to the ledger database.

    A failed round trip raises ``StorageUnavailable`` and is answered with 503.
    """
    with storage_errors():
        db.execute(text("SELECT 1"))
    settings = get_settings()
    return {
        "status": "ok",
        "database": "ok",
        "service": settings.APP_NAME,
        "environment": settings.ENVIRONMENT,
        "checked_at": datetime.now(timezone.utc).isoformat(),
    }


__all__ = ["router"]
