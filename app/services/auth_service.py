# app/services/auth_service.py
from typing import Optional

from sqlalchemy.orm import Session

from app.core.security import verify_password
from app.models.user import User
from app.services.identity_service import IdentityService


def authenticate(db: Session, email: str, password: str) -> Optional[User]:
    user = IdentityService().get_by_email(db, email)
    if not user:
        return None

    if not verify_password(password, user.password_hash):
        return None

    return user
