"""Credential checks and token resolution.

Login never reveals which part failed: unknown login, deactivated account
and wrong password all raise the same InvalidCredentials.
"""
import logging

from sqlalchemy.orm import Session

from suivi.errors import InvalidCredentials, Unauthenticated, ValidationError
from suivi.models.user import User
from suivi.security import create_access_token, decode_access_token, verify_password

logger = logging.getLogger(__name__)


def authenticate(db: Session, login: str, password: str) -> tuple[str, User]:
    """Validate login/password and issue a session token."""
    if not login or not password:
        raise ValidationError("Login and password are required")

    user = db.query(User).filter(User.login == login).first()
    if not user or not user.active:
        logger.warning("Login rejected for '%s': unknown or inactive account", login)
        raise InvalidCredentials()

    if not verify_password(password, user.password_hash):
        logger.warning("Login rejected for '%s': bad password", login)
        raise InvalidCredentials()

    token = create_access_token(user.id, user.login, user.role.value)
    logger.info("User %s (%s) logged in", user.id, user.login)
    return token, user


def resolve_token(db: Session, token: str) -> User:
    """Map a bearer token to a live, active identity.

    The identity is re-read on every call so that deactivating an account
    revokes tokens that are still within their validity window.
    """
    payload = decode_access_token(token)
    user = db.query(User).filter(User.id == payload["user_id"]).first()
    if not user or not user.active:
        raise Unauthenticated("User not authorized")
    return user
