# app/services/identity_service.py
from __future__ import annotations

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.security import hash_password
from app.models.user import User


class IdentityConflict(ValueError):
    pass


class IdentityService:
    """
    Read side of the identity registry plus sign-up.
    Addresses are compared lower-cased; checksum casing is kept as stored.
    """

    EMAIL_SEARCH_LIMIT = 10

    def get_by_email(self, db: Session, email: str) -> Optional[User]:
        return db.execute(
            select(User).where(User.email == email.strip().lower())
        ).scalar_one_or_none()

    def get_by_eth_address(self, db: Session, eth_address: str) -> Optional[User]:
        return db.execute(
            select(User).where(User.eth_address == eth_address.strip().lower())
        ).scalar_one_or_none()

    def search_emails(self, db: Session, partial: str) -> List[str]:
        needle = partial.strip().lower()
        if not needle:
            return []
        return list(
            db.execute(
                select(User.email)
                .where(User.email.contains(needle, autoescape=True))
                .order_by(User.email.asc())
                .limit(self.EMAIL_SEARCH_LIMIT)
            ).scalars().all()
        )

    def register(
        self,
        db: Session,
        *,
        email: str,
        password: str,
        name: str,
        eth_address: str,
        account_address: Optional[str],
    ) -> User:
        row = User(
            email=email.strip().lower(),
            name=name,
            password_hash=hash_password(password),
            eth_address=eth_address.strip().lower(),
            account_address=account_address.strip().lower() if account_address else None,
        )
        db.add(row)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise IdentityConflict("Email or wallet address already registered.")
        db.refresh(row)
        return row
