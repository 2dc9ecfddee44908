import httpx

from app.core.security import create_identity_token
from app.models.enums import BuildingType, ContractType
from app.registration.backend import BackendClient
from app.registration.identity import IdentityResolver
from app.registration.persistence import ContractPersistenceClient
from app.registration.pipeline import RegistrationPipeline
from app.registration.state_machine import RegistrationState as S
from app.registration.submitter import LedgerTransactionSubmitter
from app.registration.types import ConfirmationEvent, ContractDraft

from conftest import AGENT_ACCOUNT, AGENT_WALLET, BUYER_ACCOUNT, SELLER_ACCOUNT


async def test_registration_against_real_backend(api, client, register_user, ledger):
    register_user("agent@x.com", AGENT_WALLET, AGENT_ACCOUNT)
    register_user("seller@x.com", "0x" + "1" * 40, SELLER_ACCOUNT)
    register_user("buyer@x.com", "0x" + "2" * 40, BUYER_ACCOUNT)
    token = create_identity_token("agent", email="agent@x.com", eth_address=AGENT_WALLET)

    ledger.confirm_index = 7
    navigated = []

    async with BackendClient(
        "http://testserver/api/v1",
        token=token,
        transport=httpx.ASGITransport(app=api),
    ) as backend:
        pipeline = RegistrationPipeline(
            ledger=ledger,
            resolver=IdentityResolver(backend),
            submitter=LedgerTransactionSubmitter(ledger),
            persistence=ContractPersistenceClient(backend),
            confirmation_timeout=1.0,
            poll_interval=0.01,
            on_complete=navigated.append,
        )
        draft = ContractDraft(
            building_type=BuildingType.apartment,
            building_name="Gwanggyo",
            contract_type=ContractType.DEPOSIT_LEASE,
        )
        contract = await pipeline.register(draft, seller="seller@x.com", buyer="buyer@x.com")

        # redelivery after completion goes nowhere
        await pipeline.handle_confirmation(draft, ConfirmationEvent(7, 1001))

    assert pipeline.state == S.COMPLETED
    assert navigated == [contract]
    assert [r.as_args() for r in ledger.sent] == [(AGENT_ACCOUNT, SELLER_ACCOUNT, BUYER_ACCOUNT, 2)]

    rows = client.get("/api/v1/contracts").json()["data"]
    assert len(rows) == 1
    assert rows[0]["contractIndex"] == 7
    assert rows[0]["sellerAddress"] == SELLER_ACCOUNT
