#app/models/contract.py
from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Optional

from sqlalchemy import (
    String,
    Date,
    DateTime,
    Integer,
    UniqueConstraint,
    Index,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class ContractRecord(Base):
    """
    Off-chain copy of a contract created on the ledger.

    Immutability rule:
      - Written once, after the UpdateContract event assigned contract_index.
      - contract_index is unique; a second write for the same index is a conflict.
    """

    __tablename__ = "contracts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    contract_index: Mapped[int] = mapped_column(Integer, nullable=False)

    # Parties (ledger account addresses)
    agent_address: Mapped[str] = mapped_column(String(42), nullable=False)
    seller_address: Mapped[str] = mapped_column(String(42), nullable=False)
    buyer_address: Mapped[str] = mapped_column(String(42), nullable=False)

    # Building
    building_type: Mapped[str] = mapped_column(String(32), nullable=False)
    building_name: Mapped[str] = mapped_column(String(256), nullable=False, default="")
    building_address: Mapped[str] = mapped_column(String(512), nullable=False, default="")
    building_photo: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)

    # Contract terms
    contract_type: Mapped[int] = mapped_column(Integer, nullable=False)
    contract_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint("contract_index", name="uq_contract_index"),
        Index("ix_contracts_agent", "agent_address"),
    )
