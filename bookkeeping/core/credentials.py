from __future__ import annotations

import hashlib
import hmac

from bookkeeping.config import get_settings


def login_enabled() -> bool:
    settings = get_settings()
    return bool(settings.LOGIN_USERNAME and (settings.LOGIN_PASSWORD or settings.LOGIN_PASSWORD_HASH))


def hash_password(password: str, salt: str, rounds: int) -> str:
    digest = hashlib.pbkdf2_hmac(
        "sha256",
        password.encode("utf-8"),
        salt.encode("utf-8"),
        rounds,
    )
    return digest.hex()


def verify_login_credentials(username: str, password: str) -> bool:
    settings = get_settings()
    if not login_enabled():
        return False

    username = username.strip()
    password = password.strip()

    expected_username = settings.LOGIN_USERNAME.strip()
    if not hmac.compare_digest(username.casefold(), expected_username.casefold()):
        return False

    if settings.LOGIN_PASSWORD_HASH:
        if not settings.LOGIN_PASSWORD_SALT:
            raise ValueError("Login password salt is not configured.")
        computed = hash_password(
            password,
            settings.LOGIN_PASSWORD_SALT,
            settings.LOGIN_PBKDF2_ROUNDS,
        )
        return hmac.compare_digest(computed, settings.LOGIN_PASSWORD_HASH)

    if settings.LOGIN_PASSWORD:
        return hmac.compare_digest(password, settings.LOGIN_PASSWORD.strip())

    return False
