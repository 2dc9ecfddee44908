from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional

from sqlalchemy import select, desc
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.contract import ContractRecord

logger = logging.getLogger(__name__)


class ContractConflict(ValueError):
    """A record for this contract_index already exists."""

    def __init__(self, contract_index: int):
        super().__init__(f"Contract {contract_index} already exists.")
        self.contract_index = contract_index


class ContractService:
    def get_by_index(self, db: Session, contract_index: int) -> Optional[ContractRecord]:
        return db.execute(
            select(ContractRecord).where(ContractRecord.contract_index == contract_index)
        ).scalar_one_or_none()

    def list_contracts(self, db: Session, *, agent_address: Optional[str] = None) -> List[ContractRecord]:
        q = select(ContractRecord).order_by(desc(ContractRecord.contract_index))
        if agent_address:
            q = q.where(ContractRecord.agent_address == agent_address.lower())
        return list(db.execute(q).scalars().all())

    def create(
        self,
        db: Session,
        *,
        contract_index: int,
        agent_address: str,
        seller_address: str,
        buyer_address: str,
        building_type: str,
        building_name: str,
        building_address: str,
        building_photo: Optional[str],
        contract_type: int,
        contract_date: Optional[date],
    ) -> ContractRecord:
        """
        Insert-once by contract_index. A duplicate (e.g. a redelivered
        confirmation event) raises ContractConflict and leaves the stored row as is.
        """
        if self.get_by_index(db, contract_index):
            raise ContractConflict(contract_index)

        row = ContractRecord(
            contract_index=contract_index,
            agent_address=agent_address.lower(),
            seller_address=seller_address.lower(),
            buyer_address=buyer_address.lower(),
            building_type=building_type,
            building_name=building_name,
            building_address=building_address,
            building_photo=building_photo,
            contract_type=int(contract_type),
            contract_date=contract_date,
        )
        db.add(row)
        try:
            db.commit()
        except IntegrityError:
            # lost the race against a concurrent insert of the same index
            db.rollback()
            raise ContractConflict(contract_index)
        db.refresh(row)

        logger.info("[contracts] stored contract_index=%s agent=%s", contract_index, row.agent_address)
        return row
