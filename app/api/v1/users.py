#app/api/v1/users.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.core.auth_deps import get_current_principal
from app.models.user import User
from app.schemas.users import IdentityResponse, EmailListResponse
from app.services.identity_service import IdentityService

router = APIRouter(prefix="/users", dependencies=[Depends(get_current_principal)])


def _to_identity(u: User) -> dict:
    return {
        "email": u.email,
        "ethAddress": u.eth_address,
        "accountAddress": u.account_address,
    }


@router.get("/account-address", response_model=IdentityResponse)
def get_account_address(
    email: Optional[str] = Query(default=None),
    ethAddress: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
):
    if bool(email) == bool(ethAddress):
        raise HTTPException(status_code=400, detail="Exactly one of email or ethAddress is required.")

    svc = IdentityService()
    user = svc.get_by_email(db, email) if email else svc.get_by_eth_address(db, ethAddress)

    # a registered user without a deployed account contract cannot be a party yet
    if not user or not user.account_address:
        raise HTTPException(status_code=404, detail="Identity not found.")
    return {"data": _to_identity(user)}


@router.get("/emails", response_model=EmailListResponse)
def search_emails(
    q: str = Query(default="", max_length=256),
    db: Session = Depends(get_db),
):
    return {"data": IdentityService().search_emails(db, q)}
