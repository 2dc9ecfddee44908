"""
Contract registration: identities -> ledger transaction -> confirmation -> backend record.
"""
from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Callable, Dict, List, Optional

from app.core.config import Settings
from app.registration.errors import NetworkError, RegistrationError, ValidationError, WalletRejected
from app.registration.identity import IdentityResolver
from app.registration.journal import PendingRegistration, RegistrationJournal
from app.registration.ledger import LEDGER_TRANSPORT_ERRORS, LedgerClient
from app.registration.listener import ConfirmationListener
from app.registration.persistence import ContractPersistenceClient
from app.registration.reconciliation import Reconciler
from app.registration.state_machine import RegistrationEvent, RegistrationState, TERMINAL_STATES, transition
from app.registration.submitter import LedgerTransactionSubmitter
from app.registration.types import (
    ConfirmationEvent,
    ContractDraft,
    LedgerTransactionRequest,
    PersistedContract,
)

logger = logging.getLogger(__name__)

OnComplete = Callable[[PersistedContract], Any]


class RegistrationPipeline:
    """
    One instance per user session.

    At most one submission is in flight per session.
    """

    def __init__(
        self,
        *,
        ledger: LedgerClient,
        resolver: IdentityResolver,
        submitter: LedgerTransactionSubmitter,
        persistence: ContractPersistenceClient,
        confirmation_timeout: Optional[float] = None,
        poll_interval: float = 2.0,
        journal: Optional[RegistrationJournal] = None,
        on_complete: Optional[OnComplete] = None,
        reconcile_interval: Optional[float] = None,
    ):
        self._ledger = ledger
        self._resolver = resolver
        self._submitter = submitter
        self._persistence = persistence
        self._confirmation_timeout = confirmation_timeout
        self._poll_interval = poll_interval
        self._journal = journal
        self._on_complete = on_complete
        self._reconcile_interval = reconcile_interval
        self._reconcile_task: Optional["asyncio.Task[None]"] = None

        self._lock = asyncio.Lock()
        self._persisted: Dict[int, PersistedContract] = {}
        self._inflight: Dict[int, "asyncio.Future[PersistedContract]"] = {}
        self._listener: Optional[ConfirmationListener] = None

        self.state = RegistrationState.IDLE
        self.history: List[RegistrationState] = [self.state]
        self.last_error: Optional[RegistrationError] = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        ledger: LedgerClient,
        resolver: IdentityResolver,
        persistence: ContractPersistenceClient,
        journal: Optional[RegistrationJournal] = None,
        on_complete: Optional[OnComplete] = None,
    ) -> "RegistrationPipeline":
        return cls(
            ledger=ledger,
            resolver=resolver,
            submitter=LedgerTransactionSubmitter(ledger),
            persistence=persistence,
            confirmation_timeout=settings.confirmation_timeout_seconds,
            poll_interval=settings.confirmation_poll_seconds,
            journal=journal if journal is not None else RegistrationJournal(),
            on_complete=on_complete,
            reconcile_interval=settings.reconcile_interval_seconds,
        )

    # ─────────────────────────────────────────────
    # STATE
    # ─────────────────────────────────────────────

    def _advance(self, event: RegistrationEvent) -> None:
        nxt = transition(self.state, event)
        logger.info("[registration] %s --%s--> %s", self.state.value, event.value, nxt.value)
        self.state = nxt
        self.history.append(nxt)

    def _fail(self, error: RegistrationError) -> None:
        self.last_error = error
        if self.state not in TERMINAL_STATES:
            self._advance(RegistrationEvent.FAILURE)
        logger.warning("[registration] failed: %s", error.message)

    def _restart(self) -> None:
        # a new submit action starts a fresh run; terminal states never reset themselves
        self.state = RegistrationState.IDLE
        self.history = [self.state]
        self.last_error = None

    # ─────────────────────────────────────────────
    # PUBLIC API
    # ─────────────────────────────────────────────

    async def register(self, draft: ContractDraft, *, seller: str, buyer: str) -> PersistedContract:
        """
        Runs the whole registration for the current form state.
        seller/buyer are the identifiers typed into the form (usually emails).
        """
        async with self._lock:
            self._restart()
            try:
                contract = await self._run(draft, seller=seller, buyer=buyer)
            except RegistrationError as e:
                self._fail(e)
                raise
            except Exception as e:
                err = RegistrationError(f"Unexpected failure: {e}", cause=e)
                self._fail(err)
                raise err from e

        if self._on_complete is not None:
            result = self._on_complete(contract)
            if inspect.isawaitable(result):
                await result
        return contract

    async def handle_confirmation(self, draft: ContractDraft, event: ConfirmationEvent) -> PersistedContract:
        """
        Consumes one confirmation event. A redelivered index is a no-op that
        returns the record written the first time; a redelivery that arrives
        while that write is still running waits for it.
        """
        index = event.contract_index
        done = self._persisted.get(index)
        if done is not None:
            logger.info("[registration] contract_index=%s already persisted, redelivery ignored", index)
            return done

        pending = self._inflight.get(index)
        if pending is not None:
            logger.info("[registration] contract_index=%s write in flight, redelivery joins it", index)
            return await asyncio.shield(pending)

        pending = asyncio.get_running_loop().create_future()
        self._inflight[index] = pending
        try:
            self._advance(RegistrationEvent.CONFIRMATION_RECEIVED)
            contract = await self._persistence.create(draft.with_index(index))
            self._persisted[index] = contract
            self._advance(RegistrationEvent.PERSISTED)
        except asyncio.CancelledError:
            pending.cancel()
            raise
        except Exception as e:
            pending.set_exception(e)
            # joined redeliveries re-raise it; this caller raises it below
            pending.exception()
            raise
        else:
            pending.set_result(contract)
            return contract
        finally:
            del self._inflight[index]

    @property
    def journal(self) -> Optional[RegistrationJournal]:
        return self._journal

    def start_reconciliation(self, interval: Optional[float] = None) -> "Optional[asyncio.Task[None]]":
        """
        Starts the background sweep that stores contracts confirmed on chain
        after this session stopped waiting for them. Needs a journal; returns
        None when no interval is configured.
        """
        interval = interval if interval is not None else self._reconcile_interval
        if interval is None:
            return None
        if self._journal is None:
            raise ValueError("Reconciliation needs a RegistrationJournal")
        if self._reconcile_task is None or self._reconcile_task.done():
            reconciler = Reconciler(self._ledger, self._persistence, self._journal)
            self._reconcile_task = asyncio.create_task(reconciler.run(interval))
            logger.info("[registration] reconciliation every %ss", interval)
        return self._reconcile_task

    async def close(self) -> None:
        """Session teardown: stops watching the ledger. On-chain effects stay."""
        if self._listener is not None:
            await self._listener.close()
        task, self._reconcile_task = self._reconcile_task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                logger.debug("[registration] reconciliation stopped")

    async def __aenter__(self) -> "RegistrationPipeline":
        if self._journal is not None:
            self.start_reconciliation()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # ─────────────────────────────────────────────
    # STEPS
    # ─────────────────────────────────────────────

    async def _run(self, draft: ContractDraft, *, seller: str, buyer: str) -> PersistedContract:
        if draft.contract_type is None:
            raise ValidationError("contract_type is required")
        if draft.contract_index is not None:
            raise ValidationError("draft already carries a contract_index")

        self._advance(RegistrationEvent.SUBMIT)
        wallet = await self._connected_wallet()
        agent, seller_addr, buyer_addr = await self._resolver.resolve_parties(wallet, seller, buyer)
        draft = draft.with_parties(agent, seller_addr, buyer_addr)
        self._advance(RegistrationEvent.IDENTITIES_RESOLVED)

        request = LedgerTransactionRequest(agent, seller_addr, buyer_addr, draft.contract_type)
        handle = await self._submitter.submit(request, sender=wallet)
        self._advance(RegistrationEvent.TRANSACTION_ACCEPTED)
        if self._journal is not None:
            self._journal.record(PendingRegistration.from_handle(draft, handle))

        self._listener = ConfirmationListener(
            self._ledger,
            agent,
            handle.from_block,
            poll_interval=self._poll_interval,
            transaction_hash=handle.tx_hash,
        )
        event = await self._listener.first(timeout=self._confirmation_timeout)
        logger.info(
            "[registration] confirmed contract_index=%s block=%s tx=%s",
            event.contract_index, event.block_number, handle.tx_hash,
        )

        contract = await self.handle_confirmation(draft, event)
        if self._journal is not None:
            self._journal.resolve(handle.tx_hash)
        return contract

    async def _connected_wallet(self) -> str:
        try:
            return await self._ledger.default_account()
        except LookupError as e:
            raise WalletRejected(f"No wallet account available: {e}", cause=e) from e
        except LEDGER_TRANSPORT_ERRORS as e:
            raise NetworkError(f"Wallet provider unreachable: {e}", cause=e) from e
