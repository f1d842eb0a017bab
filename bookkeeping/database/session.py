import logging
from contextlib import contextmanager

from sqlalchemy.exc import DisconnectionError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session, sessionmaker

from bookkeeping.core.errors import StorageUnavailable
from bookkeeping.database.engine import engine

logger = logging.getLogger(__name__)

STORAGE_ERRORS = (OperationalError, PoolTimeoutError, DisconnectionError)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
    bind=engine,
)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def storage_errors():
    try:
        yield
    except STORAGE_ERRORS as exc:
        logger.warning("Storage call failed: %s", exc)
        raise StorageUnavailable() from exc


@contextmanager
def atomic(db: Session):
    """Commit everything done inside the block, or roll all of it back."""
    try:
        with storage_errors():
            yield db
            db.commit()
    except BaseException:
        db.rollback()
        raise
