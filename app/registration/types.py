from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from app.models.enums import BuildingType, ContractType


class ContractDraft(BaseModel):
    """
    Form state of one registration attempt.

    Party addresses are filled in by identity resolution; contract_index
    stays None until the ledger confirmed the contract.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    agent_address: Optional[str] = None
    seller_address: Optional[str] = None
    buyer_address: Optional[str] = None

    building_type: BuildingType = BuildingType.jutaek
    building_name: str = ""
    building_address: str = ""
    building_photo: Optional[str] = None

    contract_index: Optional[int] = None
    contract_date: Optional[date] = None
    contract_type: Optional[ContractType] = None

    def with_parties(self, agent: str, seller: str, buyer: str) -> "ContractDraft":
        return self.model_copy(
            update={"agent_address": agent, "seller_address": seller, "buyer_address": buyer}
        )

    def with_index(self, contract_index: int) -> "ContractDraft":
        return self.model_copy(update={"contract_index": contract_index})

    def missing_fields(self) -> List[str]:
        required = ("agent_address", "seller_address", "buyer_address", "contract_type", "contract_index")
        return [name for name in required if getattr(self, name) is None]

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


@dataclass(frozen=True)
class LedgerTransactionRequest:
    agent_address: str
    seller_address: str
    buyer_address: str
    contract_type: ContractType

    def as_args(self) -> Tuple[str, str, str, int]:
        return (self.agent_address, self.seller_address, self.buyer_address, int(self.contract_type))


@dataclass(frozen=True)
class TransactionHandle:
    """Acknowledgment of a broadcast transaction. Not a confirmation."""

    tx_hash: str
    from_block: int
    request: LedgerTransactionRequest


@dataclass(frozen=True)
class ConfirmationEvent:
    contract_index: int
    block_number: int
    transaction_hash: Optional[str] = None
    log_index: int = 0


class PersistedContract(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    contract_index: int
    agent_address: str
    seller_address: str
    buyer_address: str
    building_type: str
    building_name: str = ""
    building_address: str = ""
    building_photo: Optional[str] = None
    contract_type: int
    contract_date: Optional[date] = None
    created_at_iso: Optional[str] = None

    # True when the record already existed (redelivered confirmation)
    replayed: bool = False
