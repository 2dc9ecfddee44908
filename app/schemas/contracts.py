from __future__ import annotations
from datetime import date
from typing import List, Optional
from pydantic import BaseModel, Field

from app.models.enums import BuildingType, ContractType


class ContractCreateRequest(BaseModel):
    contractIndex: int = Field(..., ge=0)

    agentAddress: str = Field(..., min_length=42, max_length=42)
    sellerAddress: str = Field(..., min_length=42, max_length=42)
    buyerAddress: str = Field(..., min_length=42, max_length=42)

    buildingType: BuildingType
    buildingName: str = ""
    buildingAddress: str = ""
    buildingPhoto: Optional[str] = None

    contractType: ContractType
    contractDate: Optional[date] = None


class ContractResponse(BaseModel):
    id: str
    contractIndex: int
    agentAddress: str
    sellerAddress: str
    buyerAddress: str
    buildingType: str
    buildingName: str
    buildingAddress: str
    buildingPhoto: Optional[str] = None
    contractType: int
    contractDate: Optional[date] = None
    createdAtIso: Optional[str] = None


class ContractEnvelope(BaseModel):
    data: ContractResponse


class ContractListEnvelope(BaseModel):
    data: List[ContractResponse]


class PhotoUploadResponse(BaseModel):
    path: str
