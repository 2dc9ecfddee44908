from __future__ import annotations
from typing import List, Optional
from pydantic import BaseModel


class IdentityRecord(BaseModel):
    email: str
    ethAddress: str
    accountAddress: Optional[str] = None


class IdentityResponse(BaseModel):
    data: IdentityRecord


class EmailListResponse(BaseModel):
    data: List[str]
