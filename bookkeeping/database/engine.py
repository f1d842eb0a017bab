import logging
import sqlite3

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.pool import StaticPool

from bookkeeping.config import Settings, get_settings

app_settings: Settings = get_settings()
logger = logging.getLogger(__name__)


def _is_sqlite_memory(url) -> bool:
    sqlite_db = url.database
    if sqlite_db in (None, "", ":memory:"):
        return True
    return url.query.get("mode") == "memory"


def build_engine(database_url: str, *, timeout_seconds: int | None = None) -> Engine:
    if timeout_seconds is None:
        timeout_seconds = app_settings.DB_TIMEOUT_SECONDS

    db_url = make_url(database_url)
    backend = db_url.get_backend_name()
    is_sqlite = backend == "sqlite"
    is_sqlite_memory = is_sqlite and _is_sqlite_memory(db_url)

    connect_args = {}
    engine_kwargs: dict[str, object] = dict(pool_pre_ping=True)
    if is_sqlite:
        connect_args = {"check_same_thread": False, "timeout": timeout_seconds}
        if is_sqlite_memory:
            engine_kwargs.update(poolclass=StaticPool)
    else:
        engine_kwargs.update(pool_timeout=timeout_seconds)
        if backend == "postgresql":
            connect_args = {
                "connect_timeout": timeout_seconds,
                "options": "-c statement_timeout={}".format(timeout_seconds * 1000),
            }

    engine = create_engine(database_url, connect_args=connect_args, **engine_kwargs)

    if is_sqlite:
        busy_timeout_ms = timeout_seconds * 1000

        @event.listens_for(engine, "connect")
        def _set_sqlite_pragmas(dbapi_connection, _connection_record):
            cursor = dbapi_connection.cursor()
            try:
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.execute(f"PRAGMA busy_timeout={busy_timeout_ms}")
                if not is_sqlite_memory:
                    try:
                        cursor.execute("PRAGMA journal_mode=WAL")
                        cursor.execute("PRAGMA synchronous=NORMAL")
                    except sqlite3.DatabaseError:
                        logger.warning("Unable to enable WAL journal for %s.", database_url)
            finally:
                cursor.close()

    return engine


engine = build_engine(app_settings.DATABASE_URL)
