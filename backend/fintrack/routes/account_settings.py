from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import Optional
import logging

from fintrack.database import get_db
from fintrack.models import User
from fintrack.db_helpers import get_user_id
from fintrack.schemas import AccountSettingsResponse, AccountSettingsUpdate

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_current_user(db: Session, user_id: str) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.get("", response_model=AccountSettingsResponse)
def get_account_settings(
    user_id: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """Account mode (personal or business) and company details."""
    user_id = get_user_id(user_id)
    return _get_current_user(db, user_id)


@router.patch("", response_model=AccountSettingsResponse)
def update_account_settings(
    settings: AccountSettingsUpdate,
    user_id: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """
    Switch between personal and business mode.

    Company name and CNPJ are only changed when present in the request.
    """
    user_id = get_user_id(user_id)
    user = _get_current_user(db, user_id)

    for field, value in settings.model_dump(exclude_unset=True).items():
        setattr(user, field, value)

    db.commit()
    db.refresh(user)
    logger.info(f"[ACCOUNT] User {user_id} switched to {user.account_type} mode")
    return user
