from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ==============================
    # Application
    # ==============================
    APP_NAME: str = "Small Business Ledger"
    ENVIRONMENT: str = "local"

    # ==============================
    # Database
    # ==============================
    DATABASE_URL: str = "sqlite:///./ledger.db"
    DB_TIMEOUT_SECONDS: int = 30

    # ==============================
    # Logging
    # ==============================
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    # ==============================
    # Security
    # ==============================
    API_KEYS: Optional[str] = None
    API_KEY_HEADER: str = "X-API-Key"
    JWT_SECRET: Optional[str] = None
    JWT_ALGORITHM: str = "HS256"
    JWT_AUDIENCE: Optional[str] = None
    JWT_ISSUER: Optional[str] = None
    ACCESS_TOKEN_TTL_MINUTES: int = 60 * 12
    LOGIN_USERNAME: Optional[str] = None
    LOGIN_PASSWORD: Optional[str] = None
    LOGIN_PASSWORD_HASH: Optional[str] = None
    LOGIN_PASSWORD_SALT: Optional[str] = None
    LOGIN_PBKDF2_ROUNDS: int = 200_000
    SESSION_SECRET: Optional[str] = None
    SESSION_COOKIE: str = "ledger_session"

    # ==============================
    # Bookkeeping defaults
    # ==============================
    DEFAULT_STOCK_UNIT: str = "pcs"
    DEFAULT_REORDER_LEVEL: float = 10
    SUMMARY_WINDOW_DAYS: int = 30


@lru_cache
def get_settings() -> Settings:
    """Cached settings loader (once per process)."""
    return Settings()


__all__ = ["Settings", "get_settings"]
