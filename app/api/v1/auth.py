#app/api/v1/auth.py
from __future__ import annotations

from fastapi import APIRouter, HTTPException, Depends
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.schemas.auth import LoginRequest, RegisterRequest, TokenResponse
from app.schemas.users import IdentityResponse
from app.services.auth_service import authenticate
from app.services.identity_service import IdentityService, IdentityConflict
from app.core.security import create_identity_token
from app.api.v1.users import _to_identity

router = APIRouter(prefix="/auth")


@router.post("/register", response_model=IdentityResponse, status_code=201)
def register(req: RegisterRequest, db: Session = Depends(get_db)):
    try:
        user = IdentityService().register(
            db,
            email=req.email,
            password=req.password,
            name=req.name,
            eth_address=req.ethAddress,
            account_address=req.accountAddress,
        )
    except IdentityConflict as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {"data": _to_identity(user)}


@router.post("/login", response_model=TokenResponse)
def login(req: LoginRequest, db: Session = Depends(get_db)):
    user = authenticate(db, req.email, req.password)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid credentials.")

    token = create_identity_token(str(user.id), email=user.email, eth_address=user.eth_address)
    return TokenResponse(access_token=token)
