# app/api/v1/contracts.py
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.db.session import get_db
from app.models.contract import ContractRecord
from app.schemas.contracts import (
    ContractCreateRequest,
    ContractEnvelope,
    ContractListEnvelope,
    PhotoUploadResponse,
)
from app.services.contract_service import ContractService, ContractConflict
from app.services.photo_service import store_photo

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/contracts")


def _iso(dt):
    return dt.isoformat() if dt else None


def _to_resp(c: ContractRecord) -> dict:
    return {
        "id": str(c.id),
        "contractIndex": c.contract_index,
        "agentAddress": c.agent_address,
        "sellerAddress": c.seller_address,
        "buyerAddress": c.buyer_address,
        "buildingType": c.building_type,
        "buildingName": c.building_name,
        "buildingAddress": c.building_address,
        "buildingPhoto": c.building_photo,
        "contractType": c.contract_type,
        "contractDate": c.contract_date,
        "createdAtIso": _iso(c.created_at),
    }


@router.post("", response_model=ContractEnvelope, status_code=201)
def create_contract(req: ContractCreateRequest, db: Session = Depends(get_db)):
    try:
        row = ContractService().create(
            db,
            contract_index=req.contractIndex,
            agent_address=req.agentAddress,
            seller_address=req.sellerAddress,
            buyer_address=req.buyerAddress,
            building_type=req.buildingType.value,
            building_name=req.buildingName,
            building_address=req.buildingAddress,
            building_photo=req.buildingPhoto,
            contract_type=req.contractType.value,
            contract_date=req.contractDate,
        )
    except ContractConflict as e:
        logger.info("[contracts] duplicate create contract_index=%s", e.contract_index)
        raise HTTPException(status_code=409, detail=str(e))
    return {"data": _to_resp(row)}


@router.get("", response_model=ContractListEnvelope)
def list_contracts(
    agentAddress: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
):
    rows = ContractService().list_contracts(db, agent_address=agentAddress)
    return {"data": [_to_resp(c) for c in rows]}


@router.get("/by-index/{contractIndex}", response_model=ContractEnvelope)
def get_contract_by_index(contractIndex: int, db: Session = Depends(get_db)):
    row = ContractService().get_by_index(db, contractIndex)
    if not row:
        raise HTTPException(status_code=404, detail="Contract not found.")
    return {"data": _to_resp(row)}


@router.post("/photo", response_model=PhotoUploadResponse)
def upload_photo(thumbnail: UploadFile = File(...)):
    try:
        path = store_photo(get_settings().upload_dir, thumbnail.filename or "", thumbnail.file)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return PhotoUploadResponse(path=path)
