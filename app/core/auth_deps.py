#app/core/auth_deps.py
from __future__ import annotations

from dataclasses import dataclass

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.security import InvalidToken, decode_identity_token

bearer = HTTPBearer(auto_error=True)


@dataclass(frozen=True)
class Principal:
    user_id: str
    email: str
    eth_address: str


def get_current_principal(
    request: Request,
    creds: HTTPAuthorizationCredentials = Depends(bearer),
) -> Principal:
    """
    Canonical authentication dependency for the /users routes.

    Guarantees:
    - JWT is valid
    - sub, email and eth_address claims are present
    """

    try:
        payload = decode_identity_token(creds.credentials)
    except InvalidToken as e:
        raise HTTPException(status_code=401, detail=str(e))

    principal = Principal(
        user_id=str(payload["sub"]),
        email=str(payload["email"]),
        eth_address=str(payload["eth_address"]),
    )

    # Make principal available to downstream middleware / handlers
    request.state.principal = principal

    return principal
