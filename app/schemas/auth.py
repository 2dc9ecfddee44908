from __future__ import annotations
from typing import Optional
from pydantic import BaseModel, Field


class RegisterRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=256)
    password: str = Field(..., min_length=1)
    name: str = ""
    ethAddress: str = Field(..., min_length=42, max_length=42, description="wallet address (0x...)")
    accountAddress: Optional[str] = Field(default=None, min_length=42, max_length=42, description="deployed account contract")


class LoginRequest(BaseModel):
    email: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
