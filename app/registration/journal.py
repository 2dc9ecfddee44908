from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List

from app.registration.types import ContractDraft, TransactionHandle

logger = logging.getLogger(__name__)


def _now():
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class PendingRegistration:
    """A contract accepted on chain whose off-chain record is not written yet."""

    draft: ContractDraft
    agent_address: str
    from_block: int
    tx_hash: str
    recorded_at: datetime = field(default_factory=_now)

    @classmethod
    def from_handle(cls, draft: ContractDraft, handle: TransactionHandle) -> "PendingRegistration":
        return cls(
            draft=draft,
            agent_address=handle.request.agent_address,
            from_block=handle.from_block,
            tx_hash=handle.tx_hash,
        )


class RegistrationJournal:
    """
    In-memory record of accepted-but-unpersisted registrations, keyed by tx hash.
    Entries survive pipeline failures so the reconciler can finish them.
    """

    def __init__(self):
        self._pending: Dict[str, PendingRegistration] = {}

    def record(self, entry: PendingRegistration) -> None:
        self._pending[entry.tx_hash] = entry
        logger.info("[journal] pending tx=%s from_block=%s", entry.tx_hash, entry.from_block)

    def resolve(self, tx_hash: str) -> None:
        if self._pending.pop(tx_hash, None) is not None:
            logger.info("[journal] resolved tx=%s", tx_hash)

    def pending(self) -> List[PendingRegistration]:
        return sorted(self._pending.values(), key=lambda p: p.from_block)

    def __len__(self) -> int:
        return len(self._pending)
