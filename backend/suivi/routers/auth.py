"""Authentication API routes."""
import logging
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from suivi.database import get_db
from suivi.deps import capabilities_for, get_current_user
from suivi.models.user import User
from suivi.schemas.user import CurrentUserOut, LoginRequest, LoginResponse
from suivi.services import auth_service

logger = logging.getLogger(__name__)
router = APIRouter()


def _current_user_out(user: User) -> CurrentUserOut:
    out = CurrentUserOut.model_validate(user)
    out.capabilities = sorted(c.value for c in capabilities_for(user.role))
    return out


@router.post("/login", response_model=LoginResponse)
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    """Exchange login/password for a bearer token."""
    token, user = auth_service.authenticate(db, payload.login, payload.password)
    return LoginResponse(token=token, user=_current_user_out(user))


@router.get("/me", response_model=CurrentUserOut)
def me(user: User = Depends(get_current_user)):
    """The identity behind the current token, with its derived capabilities."""
    return _current_user_out(user)
