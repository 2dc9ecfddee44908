from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Set

from app.registration.errors import RegistrationError
from app.registration.journal import PendingRegistration, RegistrationJournal
from app.registration.ledger import LEDGER_READ_ERRORS, LedgerClient
from app.registration.persistence import ContractPersistenceClient
from app.registration.types import ConfirmationEvent, PersistedContract

logger = logging.getLogger(__name__)


class Reconciler:
    """
    Closes the gap left when a contract was created on chain but never written
    to the backend (confirmation timeout, persistence failure, closed session).

    For each journal entry it scans UpdateContract events of the agent account
    from the entry's start block to the head and persists the matching index.
    """

    def __init__(
        self,
        ledger: LedgerClient,
        persistence: ContractPersistenceClient,
        journal: RegistrationJournal,
    ):
        self._ledger = ledger
        self._persistence = persistence
        self._journal = journal

    async def sweep(self) -> List[PersistedContract]:
        pending = self._journal.pending()
        if not pending:
            return []

        head = await self._ledger.block_number()
        claimed: Set[int] = set()
        stored: List[PersistedContract] = []

        for entry in pending:
            events = await self._ledger.get_update_contract_events(entry.agent_address, entry.from_block, head)
            match = self._match(entry, events, claimed)
            if match is None:
                logger.info("[reconcile] tx=%s still unconfirmed at head=%s", entry.tx_hash, head)
                continue

            claimed.add(match.contract_index)
            try:
                contract = await self._persistence.create(entry.draft.with_index(match.contract_index))
            except RegistrationError as e:
                logger.warning("[reconcile] tx=%s contract_index=%s not stored: %s", entry.tx_hash, match.contract_index, e)
                continue

            self._journal.resolve(entry.tx_hash)
            stored.append(contract)
            logger.info("[reconcile] tx=%s stored contract_index=%s", entry.tx_hash, contract.contract_index)

        return stored

    async def run(self, interval: float) -> None:
        """Sweeps every ``interval`` seconds until the task is cancelled."""
        while True:
            try:
                await self.sweep()
            except LEDGER_READ_ERRORS as e:
                logger.warning("[reconcile] sweep skipped, ledger unreachable: %s", e)
            await asyncio.sleep(interval)

    @staticmethod
    def _match(
        entry: PendingRegistration,
        events: List[ConfirmationEvent],
        claimed: Set[int],
    ) -> Optional[ConfirmationEvent]:
        ordered = sorted(events, key=lambda ev: (ev.block_number, ev.log_index))
        for ev in ordered:
            if ev.transaction_hash and ev.transaction_hash.lower() == entry.tx_hash.lower():
                return ev
        # ledgers that do not report tx hashes: first unclaimed event after the start block
        for ev in ordered:
            if ev.transaction_hash is None and ev.contract_index not in claimed:
                return ev
        return None
