"""Request dependencies: bearer-token identity, capability gate, file storage."""
import enum
import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from suivi.config import settings
from suivi.database import get_db
from suivi.errors import Forbidden, Unauthenticated
from suivi.models.user import Role, User
from suivi.services import auth_service
from suivi.storage import LocalFileStorage

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


class Capability(str, enum.Enum):
    read = "read"
    write = "write"
    admin = "admin"


_ROLE_CAPABILITIES: dict[Role, frozenset[Capability]] = {
    Role.reader: frozenset({Capability.read}),
    Role.editor: frozenset({Capability.read, Capability.write}),
    Role.admin: frozenset({Capability.read, Capability.write, Capability.admin}),
}


def capabilities_for(role: Role) -> frozenset[Capability]:
    """The capability set derived from a role: the only place roles are interpreted."""
    return _ROLE_CAPABILITIES.get(role, frozenset())


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the bearer token to an active identity or raise Unauthenticated."""
    if not credentials or not credentials.credentials:
        raise Unauthenticated("Missing token")
    return auth_service.resolve_token(db, credentials.credentials)


def require(capability: Capability):
    """Build a dependency that admits only identities holding ``capability``."""

    def _gate(user: User = Depends(get_current_user)) -> User:
        if capability not in capabilities_for(user.role):
            logger.warning(
                "User %s (%s) denied '%s' capability", user.id, user.role.value, capability.value
            )
            raise Forbidden()
        return user

    return _gate


require_read = require(Capability.read)
require_write = require(Capability.write)
require_admin = require(Capability.admin)


def get_storage() -> LocalFileStorage:
    return LocalFileStorage(settings.UPLOAD_DIR)
