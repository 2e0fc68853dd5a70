"""User administration API routes (Admin only)."""
import logging
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from suivi.database import get_db
from suivi.deps import require_admin
from suivi.models.user import User
from suivi.schemas.user import UserCreate, UserOut, UserUpdate
from suivi.services import user_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/", response_model=list[UserOut])
def list_users(db: Session = Depends(get_db), _: User = Depends(require_admin)):
    """List all users, by display name."""
    return user_service.list_users(db)


@router.get("/{user_id}", response_model=UserOut)
def get_user(user_id: int, db: Session = Depends(get_db), _: User = Depends(require_admin)):
    return user_service.get_user(db, user_id)


@router.post("/", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_user(payload: UserCreate, db: Session = Depends(get_db), _: User = Depends(require_admin)):
    """Create a user; the password is stored hashed."""
    return user_service.create_user(db, **payload.model_dump())


@router.put("/{user_id}", response_model=UserOut)
def update_user(
    user_id: int,
    payload: UserUpdate,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    """Update a user (partial update)."""
    return user_service.update_user(db, user_id, payload.model_dump(exclude_unset=True))


@router.delete("/{user_id}")
def delete_user(user_id: int, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    """Delete a user. Admins cannot delete their own account."""
    user_service.delete_user(db, user_id, caller=admin)
    return {"message": "User deleted"}
