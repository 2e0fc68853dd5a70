"""Password hashing (bcrypt) and signed session tokens (PyJWT)."""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt
import jwt

from suivi.config import settings
from suivi.errors import Unauthenticated

logger = logging.getLogger(__name__)


def hash_password(password: str) -> str:
    """Salted bcrypt hash; the cost factor comes from BCRYPT_ROUNDS."""
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against a stored hash. Malformed hashes never match."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        logger.warning("Stored password hash is not a valid bcrypt hash")
        return False


def create_access_token(user_id: int, login: str, role: str) -> str:
    """Issue a signed token embedding identity and role, valid TOKEN_EXPIRE_HOURS."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "login": login,
        "role": role,
        "iat": now,
        "exp": now + timedelta(hours=settings.TOKEN_EXPIRE_HOURS),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict[str, Any]:
    """Verify signature and expiry; raise Unauthenticated on any failure."""
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise Unauthenticated("Token expired")
    except jwt.InvalidTokenError:
        raise Unauthenticated("Invalid token")

    try:
        payload["user_id"] = int(payload["sub"])
    except (TypeError, ValueError):
        raise Unauthenticated("Invalid token")
    return payload
