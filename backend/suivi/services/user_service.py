"""Identity administration: Admin-only operations behind /api/users."""
import logging
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from suivi.database import is_unique_violation
from suivi.errors import DuplicateLogin, InternalError, NotFound, ValidationError
from suivi.models.record import ChangeRecord
from suivi.models.user import User, Role
from suivi.security import hash_password

logger = logging.getLogger(__name__)


def list_users(db: Session) -> list[User]:
    return db.query(User).order_by(User.display_name, User.id).all()


def get_user(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFound("User not found")
    return user


def create_user(
    db: Session,
    login: str,
    password: str,
    display_name: str,
    email: str | None = None,
    role: Role = Role.reader,
    active: bool = True,
) -> User:
    """Create an identity, storing only the salted hash of its password."""
    if db.query(User).filter(User.login == login).first():
        raise DuplicateLogin()

    user = User(
        login=login,
        password_hash=hash_password(password),
        display_name=display_name,
        email=email or None,
        role=role,
        active=active,
    )
    db.add(user)
    _commit_unique(db)
    db.refresh(user)
    logger.info("Created user %s (%s, %s)", user.id, user.login, user.role.value)
    return user


def update_user(db: Session, user_id: int, updates: dict[str, Any]) -> User:
    """Partial update; a new login is re-checked and a new password re-hashed."""
    user = get_user(db, user_id)

    new_login = updates.get("login")
    if new_login and new_login != user.login:
        if db.query(User).filter(User.login == new_login).first():
            raise DuplicateLogin()

    password = updates.pop("password", None)
    if password:
        user.password_hash = hash_password(password)

    for field, value in updates.items():
        if field == "email":
            value = value or None
        setattr(user, field, value)

    _commit_unique(db)
    db.refresh(user)
    logger.info("Updated user %s", user_id)
    return user


def delete_user(db: Session, user_id: int, caller: User) -> None:
    """Hard-delete an identity. Never the caller's own, never a record owner."""
    if user_id == caller.id:
        raise ValidationError("You cannot delete your own account")

    user = get_user(db, user_id)

    owned = db.query(ChangeRecord.id).filter(ChangeRecord.creator_id == user_id).count()
    if owned:
        raise ValidationError(
            f"User owns {owned} record(s); deactivate the account instead"
        )

    db.delete(user)
    db.commit()
    logger.info("Deleted user %s (%s)", user_id, user.login)


def _commit_unique(db: Session) -> None:
    """Commit, turning a store-level unique violation on login into DuplicateLogin."""
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        if is_unique_violation(exc):
            raise DuplicateLogin()
        logger.exception("User write rejected by the store")
        raise InternalError("User could not be saved")
