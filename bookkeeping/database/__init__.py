from bookkeeping.database.base import Base
from bookkeeping.database.engine import build_engine, engine
from bookkeeping.database.session import SessionLocal, atomic, get_db, storage_errors

__all__ = ["Base", "SessionLocal", "atomic", "build_engine", "engine", "get_db", "storage_errors"]
