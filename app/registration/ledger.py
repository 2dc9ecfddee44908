"""
Ledger access for the registration pipeline.

Components receive a ``LedgerClient`` explicitly instead of reaching for a
process-wide wallet provider, so tests can hand in an in-memory ledger.
"""
from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Protocol

import aiohttp
from web3 import AsyncHTTPProvider, AsyncWeb3
from web3.exceptions import Web3Exception

from app.core.config import Settings
from app.registration.abi import ACCOUNT_ABI, FACTORY_ABI
from app.registration.types import ConfirmationEvent, LedgerTransactionRequest

logger = logging.getLogger(__name__)

# connection-level failures talking to the node (AsyncHTTPProvider runs on aiohttp)
LEDGER_TRANSPORT_ERRORS = (OSError, asyncio.TimeoutError, aiohttp.ClientError)

# a read that fails with any of these is retried on the next poll
LEDGER_READ_ERRORS = LEDGER_TRANSPORT_ERRORS + (Web3Exception,)


class LedgerClient(Protocol):
    async def default_account(self) -> str:
        """Wallet address currently connected (the signing identity)."""

    async def block_number(self) -> int:
        """Current chain head."""

    async def send_create_contract(self, request: LedgerTransactionRequest, *, sender: str) -> str:
        """Broadcast createContractByAccountAddress; returns the transaction hash."""

    async def get_update_contract_events(
        self, account_address: str, from_block: int, to_block: int
    ) -> List[ConfirmationEvent]:
        """UpdateContract events emitted by account_address in [from_block, to_block]."""


class Web3LedgerClient:
    """
    LedgerClient backed by a JSON-RPC node (or a wallet-exposed RPC) via web3.py.
    """

    def __init__(self, rpc_url: str, factory_address: str, *, w3: Optional[AsyncWeb3] = None):
        self._w3 = w3 or AsyncWeb3(AsyncHTTPProvider(rpc_url))
        self._factory = self._w3.eth.contract(
            address=AsyncWeb3.to_checksum_address(factory_address), abi=FACTORY_ABI
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Web3LedgerClient":
        if not settings.factory_contract_address:
            raise ValueError("factory_contract_address is not configured")
        return cls(settings.ledger_rpc_url, settings.factory_contract_address)

    async def default_account(self) -> str:
        accounts = await self._w3.eth.accounts
        if not accounts:
            raise LookupError("Wallet exposes no accounts; is it unlocked and connected?")
        return accounts[0]

    async def block_number(self) -> int:
        return int(await self._w3.eth.block_number)

    async def send_create_contract(self, request: LedgerTransactionRequest, *, sender: str) -> str:
        agent, seller, buyer, contract_type = request.as_args()
        fn = self._factory.functions.createContractByAccountAddress(
            AsyncWeb3.to_checksum_address(agent),
            AsyncWeb3.to_checksum_address(seller),
            AsyncWeb3.to_checksum_address(buyer),
            contract_type,
        )
        tx_hash = await fn.transact({"from": AsyncWeb3.to_checksum_address(sender)})
        return AsyncWeb3.to_hex(tx_hash)

    async def get_update_contract_events(
        self, account_address: str, from_block: int, to_block: int
    ) -> List[ConfirmationEvent]:
        account = self._w3.eth.contract(
            address=AsyncWeb3.to_checksum_address(account_address), abi=ACCOUNT_ABI
        )
        logs = await account.events.UpdateContract.get_logs(from_block=from_block, to_block=to_block)
        logger.debug(
            "[ledger] UpdateContract account=%s blocks=%s..%s hits=%s",
            account_address, from_block, to_block, len(logs),
        )
        return [
            ConfirmationEvent(
                contract_index=int(log["args"]["contractIndex"]),
                block_number=int(log["blockNumber"]),
                transaction_hash=AsyncWeb3.to_hex(log["transactionHash"]),
                log_index=int(log["logIndex"]),
            )
            for log in logs
        ]
