"""Admin login sessions kept in durable storage."""

import hmac
import json
import secrets
import time
from dataclasses import asdict, dataclass
from typing import Optional

from partshop import config
from partshop.logging_config import get_logger
from partshop.storage import KeyValueStorage

__all__ = ["AdminUser", "login", "logout", "get_current_user", "is_authenticated"]

logger = get_logger("auth")


@dataclass
class AdminUser:
    username: str
    token: str
    expires_at: float

    def to_dict(self) -> dict:
        return asdict(self)


def _matches(given: str, expected: str) -> bool:
    # compare_digest only accepts ASCII str, so compare the UTF-8 bytes
    return hmac.compare_digest(given.encode("utf-8"), expected.encode("utf-8"))


def login(
    username: str,
    password: str,
    storage: KeyValueStorage,
    remember_me: bool = False,
) -> Optional[AdminUser]:
    """Check credentials and start a session. Returns None on bad credentials."""
    valid_user = _matches(username or "", config.ADMIN_USERNAME)
    valid_password = _matches(password or "", config.ADMIN_PASSWORD)
    if not (valid_user and valid_password):
        logger.warning(f"Failed admin login for {username!r}")
        return None

    ttl = config.REMEMBER_ME_TTL_SECONDS if remember_me else config.SESSION_TTL_SECONDS
    user = AdminUser(username=username, token=secrets.token_urlsafe(32), expires_at=time.time() + ttl)
    storage.write(config.ADMIN_SESSION_KEY, json.dumps(user.to_dict()))
    logger.info(f"Admin {username} logged in")
    return user


def logout(storage: KeyValueStorage) -> None:
    storage.delete(config.ADMIN_SESSION_KEY)


def get_current_user(storage: KeyValueStorage) -> Optional[AdminUser]:
    """Return the stored session, discarding it if expired or unreadable."""
    raw = storage.read(config.ADMIN_SESSION_KEY)
    if raw is None:
        return None
    try:
        user = AdminUser(**json.loads(raw))
    except (ValueError, TypeError) as e:
        logger.warning(f"Discarding unreadable admin session: {e}")
        logout(storage)
        return None

    if time.time() > user.expires_at:
        logout(storage)
        return None
    return user


def is_authenticated(storage: KeyValueStorage, token: Optional[str] = None) -> bool:
    """True if a session is active (and, when given, ``token`` matches it)."""
    user = get_current_user(storage)
    if user is None:
        return False
    if token is None:
        return True
    return _matches(token, user.token)
