# app/core/security.py
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from app.core.config import get_settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# claims every identity token carries besides exp/iat
IDENTITY_CLAIMS = ("sub", "email", "eth_address")


class InvalidToken(ValueError):
    pass


def hash_password(raw: str) -> str:
    return pwd_context.hash(raw)


def verify_password(raw: str, hashed: str) -> bool:
    return pwd_context.verify(raw, hashed)


def create_identity_token(
    user_id: str,
    *,
    email: str,
    eth_address: str,
    expires_minutes: Optional[int] = None,
) -> str:
    """
    Bearer token for an identity registry user. The wallet address rides
    along so callers can match it against the wallet they sign with.
    """
    settings = get_settings()
    exp_minutes = expires_minutes or settings.jwt_access_token_minutes
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "email": email.lower(),
        "eth_address": eth_address.lower(),
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=exp_minutes)).timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_identity_token(token: str) -> Dict[str, Any]:
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as e:
        raise InvalidToken("Invalid or expired token.") from e

    missing = [c for c in IDENTITY_CLAIMS if not payload.get(c)]
    if missing:
        raise InvalidToken(f"Token missing required claims: {', '.join(missing)}.")
    return payload
