import asyncio

import aiohttp
import pytest

from app.core.config import Settings
from app.models.enums import BuildingType, ContractType
from app.registration.journal import PendingRegistration, RegistrationJournal
from app.registration.errors import ConfirmationTimeout
from app.registration.identity import IdentityResolver
from app.registration.persistence import ContractPersistenceClient
from app.registration.pipeline import RegistrationPipeline
from app.registration.reconciliation import Reconciler
from app.registration.submitter import LedgerTransactionSubmitter
from app.registration.types import ContractDraft

from conftest import AGENT_ACCOUNT, BUYER_ACCOUNT, SELLER_ACCOUNT


def _pending(tx_hash, from_block):
    draft = ContractDraft(
        agent_address=AGENT_ACCOUNT,
        seller_address=SELLER_ACCOUNT,
        buyer_address=BUYER_ACCOUNT,
        building_type=BuildingType.sangga,
        contract_type=ContractType.MONTHLY_RENT,
    )
    return PendingRegistration(draft=draft, agent_address=AGENT_ACCOUNT, from_block=from_block, tx_hash=tx_hash)


async def test_sweep_persists_confirmed_entries_by_tx_hash(ledger, backend, backend_client):
    journal = RegistrationJournal()
    journal.record(_pending("0xaaa", 100))
    journal.record(_pending("0xbbb", 105))
    ledger.head = 120
    ledger.emit(AGENT_ACCOUNT, 21, 110, tx_hash="0xbbb")
    ledger.emit(AGENT_ACCOUNT, 20, 101, tx_hash="0xaaa")

    stored = await Reconciler(ledger, ContractPersistenceClient(backend_client), journal).sweep()

    assert sorted(c.contract_index for c in stored) == [20, 21]
    assert len(journal) == 0
    assert backend.applied_writes == 2


async def test_unconfirmed_entries_stay_pending(ledger, backend, backend_client):
    journal = RegistrationJournal()
    journal.record(_pending("0xccc", 100))
    ledger.head = 150

    stored = await Reconciler(ledger, ContractPersistenceClient(backend_client), journal).sweep()

    assert stored == []
    assert len(journal) == 1
    assert backend.posts == []


async def test_already_persisted_contract_is_resolved(ledger, backend, backend_client):
    persistence = ContractPersistenceClient(backend_client)
    journal = RegistrationJournal()
    entry = _pending("0xddd", 100)
    journal.record(entry)
    ledger.head = 101
    ledger.emit(AGENT_ACCOUNT, 30, 101, tx_hash="0xddd")
    await persistence.create(entry.draft.with_index(30))

    stored = await Reconciler(ledger, persistence, journal).sweep()

    assert [c.replayed for c in stored] == [True]
    assert len(journal) == 0
    assert backend.applied_writes == 1


async def test_events_without_tx_hash_are_assigned_in_order(ledger, backend_client):
    journal = RegistrationJournal()
    journal.record(_pending("0x1", 100))
    journal.record(_pending("0x2", 100))
    ledger.head = 130
    ledger.emit(AGENT_ACCOUNT, 41, 104)
    ledger.emit(AGENT_ACCOUNT, 40, 102)

    stored = await Reconciler(ledger, ContractPersistenceClient(backend_client), journal).sweep()

    assert [c.contract_index for c in stored] == [40, 41]


async def test_backend_outage_keeps_entry(ledger, backend, backend_client):
    journal = RegistrationJournal()
    journal.record(_pending("0xeee", 100))
    ledger.head = 101
    ledger.emit(AGENT_ACCOUNT, 50, 101, tx_hash="0xeee")
    backend.down = True

    stored = await Reconciler(ledger, ContractPersistenceClient(backend_client), journal).sweep()

    assert stored == []
    assert len(journal) == 1


async def _until(predicate, timeout=1.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        assert loop.time() < deadline, "condition not reached"
        await asyncio.sleep(0.01)


async def test_background_sweep_stores_contract_after_confirmation_timeout(ledger, backend, backend_client):
    journal = RegistrationJournal()
    pipeline = RegistrationPipeline(
        ledger=ledger,
        resolver=IdentityResolver(backend_client),
        submitter=LedgerTransactionSubmitter(ledger),
        persistence=ContractPersistenceClient(backend_client),
        confirmation_timeout=0.05,
        poll_interval=0.01,
        journal=journal,
    )
    draft = ContractDraft(building_type=BuildingType.officetel, contract_type=ContractType.SALE)

    with pytest.raises(ConfirmationTimeout):
        await pipeline.register(draft, seller="seller@x.com", buyer="buyer@x.com")
    [entry] = journal.pending()

    # the ledger confirms after the session stopped waiting
    ledger.head += 1
    ledger.emit(entry.agent_address, 17, ledger.head, tx_hash=entry.tx_hash)

    task = pipeline.start_reconciliation(0.01)
    await _until(lambda: len(journal) == 0)
    await pipeline.close()

    assert task.done()
    assert backend.applied_writes == 1
    assert backend.contracts[17]["agentAddress"] == AGENT_ACCOUNT


async def test_session_context_runs_configured_sweep(ledger, backend_client):
    settings = Settings(database_url="sqlite://", jwt_secret_key="x", reconcile_interval_seconds=0.01)
    pipeline = RegistrationPipeline.from_settings(
        settings,
        ledger=ledger,
        resolver=IdentityResolver(backend_client),
        persistence=ContractPersistenceClient(backend_client),
    )
    pipeline.journal.record(_pending("0xfff", 100))
    ledger.head = 101
    ledger.emit(AGENT_ACCOUNT, 60, 101, tx_hash="0xfff")

    async with pipeline:
        await _until(lambda: len(pipeline.journal) == 0)

    assert pipeline._reconcile_task is None


def test_sweep_is_off_without_interval(ledger, backend_client):
    pipeline = RegistrationPipeline(
        ledger=ledger,
        resolver=IdentityResolver(backend_client),
        submitter=LedgerTransactionSubmitter(ledger),
        persistence=ContractPersistenceClient(backend_client),
        journal=RegistrationJournal(),
    )
    assert pipeline.start_reconciliation() is None


async def test_sweep_loop_survives_ledger_drop(ledger, backend, backend_client):
    journal = RegistrationJournal()
    journal.record(_pending("0x999", 100))
    ledger.head = 101
    ledger.emit(AGENT_ACCOUNT, 70, 101, tx_hash="0x999")

    calls = {"n": 0}
    real = ledger.block_number

    async def flaky_head():
        calls["n"] += 1
        if calls["n"] == 1:
            raise aiohttp.ServerDisconnectedError()
        return await real()

    ledger.block_number = flaky_head
    task = asyncio.create_task(
        Reconciler(ledger, ContractPersistenceClient(backend_client), journal).run(0.01)
    )
    try:
        await _until(lambda: len(journal) == 0)
    finally:
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    assert calls["n"] >= 2
    assert backend.applied_writes == 1
