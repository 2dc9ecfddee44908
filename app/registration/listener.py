"""
Pull-based subscription to UpdateContract events of one account contract.

The listener polls the ledger from a recorded start block through the head and
onward, hands out events in block order and drops redeliveries of a
contract index it has already handed out.
"""
from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Deque, Optional, Set

from app.registration.errors import ConfirmationTimeout, RegistrationError
from app.registration.ledger import LEDGER_READ_ERRORS, LedgerClient
from app.registration.types import ConfirmationEvent

logger = logging.getLogger(__name__)


class ConfirmationListener:
    def __init__(
        self,
        ledger: LedgerClient,
        account_address: str,
        from_block: int,
        *,
        poll_interval: float = 2.0,
        transaction_hash: Optional[str] = None,
    ):
        self._ledger = ledger
        self.account_address = account_address
        self.from_block = from_block
        self._poll_interval = poll_interval
        self._tx_hash = transaction_hash.lower() if transaction_hash else None

        self._cursor = from_block
        self._last_block = from_block
        self._seen: Set[int] = set()
        self._buffer: Deque[ConfirmationEvent] = deque()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self) -> "ConfirmationListener":
        return self

    async def __anext__(self) -> ConfirmationEvent:
        event = await self._next_event()
        if event is None:
            raise StopAsyncIteration
        return event

    async def _next_event(self) -> Optional[ConfirmationEvent]:
        while not self._closed:
            if self._buffer:
                return self._buffer.popleft()
            await self._poll()
            if not self._buffer and not self._closed:
                await asyncio.sleep(self._poll_interval)
        return None

    async def _poll(self) -> None:
        try:
            head = await self._ledger.block_number()
            if head < self._cursor:
                return
            events = await self._ledger.get_update_contract_events(self.account_address, self._cursor, head)
        except LEDGER_READ_ERRORS as e:
            # subscription drops are expected; the cursor is unchanged so nothing is skipped
            logger.warning("[listener] poll failed account=%s cursor=%s: %s", self.account_address, self._cursor, e)
            return

        self._cursor = head + 1
        for event in sorted(events, key=lambda ev: (ev.block_number, ev.log_index)):
            self._accept(event)

    def _accept(self, event: ConfirmationEvent) -> None:
        if event.contract_index in self._seen:
            logger.debug("[listener] duplicate contract_index=%s dropped", event.contract_index)
            return
        if self._tx_hash and event.transaction_hash and event.transaction_hash.lower() != self._tx_hash:
            logger.debug(
                "[listener] contract_index=%s belongs to tx=%s, waiting for %s",
                event.contract_index, event.transaction_hash, self._tx_hash,
            )
            return
        if event.block_number < self._last_block:
            logger.warning(
                "[listener] out-of-order event contract_index=%s block=%s < %s dropped",
                event.contract_index, event.block_number, self._last_block,
            )
            return
        self._seen.add(event.contract_index)
        self._last_block = event.block_number
        self._buffer.append(event)

    async def first(self, timeout: Optional[float] = None) -> ConfirmationEvent:
        """
        Waits for one confirmation, then closes the listener.
        timeout=None waits forever.
        """
        try:
            event = await asyncio.wait_for(self._next_event(), timeout)
        except asyncio.TimeoutError:
            raise ConfirmationTimeout(self.account_address, self.from_block, timeout)
        finally:
            await self.close()
        if event is None:
            raise RegistrationError("Confirmation listener closed before an event arrived")
        return event

    async def close(self) -> None:
        if not self._closed:
            logger.debug("[listener] closed account=%s cursor=%s", self.account_address, self._cursor)
        self._closed = True

    async def __aenter__(self) -> "ConfirmationListener":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
