import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")

import asyncio
import json
import uuid
from collections import defaultdict
from typing import Dict, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# FORCE model registration
import app.models  # noqa

from app.core.config import get_settings
from app.db.base import Base
from app.db.session import get_db
from app.main import create_app
from app.registration.backend import BackendClient
from app.registration.types import ConfirmationEvent, LedgerTransactionRequest

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)

AGENT_WALLET = "0x" + "a" * 40
AGENT_ACCOUNT = "0x" + "a1" * 20
SELLER_ACCOUNT = "0x" + "b2" * 20
BUYER_ACCOUNT = "0x" + "c3" * 20


# ─────────────────────────────────────────────
# BACKEND (FastAPI + in-memory SQLite)
# ─────────────────────────────────────────────

@pytest.fixture(scope="function")
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def api(db, tmp_path):
    settings = get_settings()
    settings.upload_dir = str(tmp_path / "uploads")

    app = create_app()

    def override_get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    return app


@pytest.fixture
def client(api):
    return TestClient(api)


@pytest.fixture
def register_user(client):
    def _register(email: str, eth_address: str, account_address: Optional[str], password: str = "pass123"):
        r = client.post(
            "/api/v1/auth/register",
            json={
                "email": email,
                "password": password,
                "name": email.split("@")[0],
                "ethAddress": eth_address,
                "accountAddress": account_address,
            },
        )
        assert r.status_code == 201, r.text
        return r.json()["data"]

    return _register


@pytest.fixture
def auth_headers(client, register_user):
    register_user("agent@x.com", AGENT_WALLET, AGENT_ACCOUNT)
    r = client.post("/api/v1/auth/login", json={"email": "agent@x.com", "password": "pass123"})
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['access_token']}"}


# ─────────────────────────────────────────────
# PIPELINE FAKES
# ─────────────────────────────────────────────

class FakeLedger:
    """
    In-memory LedgerClient. Each accepted transaction mines one block; when
    ``confirm_index`` is set, that block carries an UpdateContract event on the
    agent account.
    """

    def __init__(self, *, wallet: str = AGENT_WALLET, head: int = 1000):
        self.wallet = wallet
        self.head = head
        self.sent: List[LedgerTransactionRequest] = []
        self.senders: List[str] = []
        self.events: Dict[str, List[ConfirmationEvent]] = defaultdict(list)
        self.queries: List[tuple] = []
        self.send_error: Optional[Exception] = None
        self.confirm_index: Optional[int] = None
        self.redeliver = False
        self.send_attempts = 0

    async def default_account(self) -> str:
        return self.wallet

    async def block_number(self) -> int:
        return self.head

    async def send_create_contract(self, request, *, sender):
        self.send_attempts += 1
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(request)
        self.senders.append(sender)
        tx_hash = "0x%064x" % len(self.sent)
        if self.confirm_index is not None:
            self.head += 1
            self.emit(request.agent_address, self.confirm_index, self.head, tx_hash)
        return tx_hash

    def emit(self, account: str, contract_index: int, block_number: int, tx_hash: Optional[str] = None, log_index: int = 0):
        self.events[account.lower()].append(
            ConfirmationEvent(contract_index, block_number, tx_hash, log_index)
        )

    async def get_update_contract_events(self, account_address, from_block, to_block):
        self.queries.append((account_address, from_block, to_block))
        lo = 0 if self.redeliver else from_block
        return [e for e in self.events[account_address.lower()] if lo <= e.block_number <= to_block]


class FakeBackend:
    """httpx.MockTransport handler standing in for the REST backend."""

    BASE_URL = "http://backend.test/api/v1"

    def __init__(self, identities: Optional[Dict[str, str]] = None):
        self.identities = dict(identities or {})
        self.delays: Dict[str, float] = {}
        self.lookups: List[str] = []
        self.contracts: Dict[int, dict] = {}
        self.posts: List[dict] = []
        self.fail_next_posts = 0
        self.down = False

    async def handler(self, request: httpx.Request) -> httpx.Response:
        if self.down:
            raise httpx.ConnectError("backend down", request=request)

        path = request.url.path
        if path.endswith("/users/account-address"):
            ident = request.url.params.get("email") or request.url.params.get("ethAddress")
            self.lookups.append(ident)
            await asyncio.sleep(self.delays.get(ident, 0))
            addr = self.identities.get(ident)
            if addr is None:
                return httpx.Response(404, json={"detail": "Identity not found."})
            return httpx.Response(200, json={"data": {"email": ident, "ethAddress": "0x0", "accountAddress": addr}})

        if path.endswith("/users/emails"):
            q = request.url.params.get("q", "")
            return httpx.Response(200, json={"data": sorted(i for i in self.identities if "@" in i and q in i)})

        if path.endswith("/contracts") and request.method == "POST":
            body = json.loads(request.content)
            self.posts.append(body)
            if self.fail_next_posts:
                self.fail_next_posts -= 1
                return httpx.Response(503, json={"detail": "unavailable"})
            idx = body["contractIndex"]
            if idx in self.contracts:
                return httpx.Response(409, json={"detail": f"Contract {idx} already exists."})
            record = {"id": str(uuid.uuid4()), "createdAtIso": "2026-10-19T00:00:00+00:00", **body}
            self.contracts[idx] = record
            return httpx.Response(201, json={"data": record})

        if "/contracts/by-index/" in path:
            idx = int(path.rsplit("/", 1)[1])
            if idx not in self.contracts:
                return httpx.Response(404, json={"detail": "Contract not found."})
            return httpx.Response(200, json={"data": self.contracts[idx]})

        if path.endswith("/contracts/photo"):
            return httpx.Response(200, json={"path": "uploads/photo.jpg"})

        return httpx.Response(404, json={"detail": "Not Found"})

    def client(self) -> BackendClient:
        return BackendClient(self.BASE_URL, transport=httpx.MockTransport(self.handler), backoff=0)

    @property
    def applied_writes(self) -> int:
        return len(self.contracts)


@pytest.fixture
def ledger():
    return FakeLedger()


@pytest.fixture
def backend():
    return FakeBackend(
        {
            AGENT_WALLET: AGENT_ACCOUNT,
            "seller@x.com": SELLER_ACCOUNT,
            "buyer@x.com": BUYER_ACCOUNT,
        }
    )


@pytest.fixture
async def backend_client(backend):
    client = backend.client()
    yield client
    await client.close()
