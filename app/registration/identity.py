from __future__ import annotations

import asyncio
import logging
from typing import List, Tuple

from app.registration.backend import BackendClient, detail_of
from app.registration.errors import IdentityNotFound, NetworkError, RegistrationError

logger = logging.getLogger(__name__)


class IdentityResolver:
    """
    Maps an email or wallet address to the user's ledger account address.

    Every call hits the registry; nothing is cached.
    """

    def __init__(self, backend: BackendClient, *, retries: int = 0):
        self._backend = backend
        self._retries = retries

    async def resolve(self, identifier: str) -> str:
        identifier = identifier.strip()
        if not identifier:
            raise IdentityNotFound(identifier)
        params = {"email": identifier} if "@" in identifier else {"ethAddress": identifier}

        response = await self._backend.request(
            "GET", "/users/account-address", params=params, retries=self._retries
        )
        if response.status_code == 404:
            raise IdentityNotFound(identifier)
        if response.status_code != 200:
            raise NetworkError(f"identity lookup for {identifier!r}: {response.status_code} {detail_of(response)}")

        address = response.json()["data"].get("accountAddress")
        if not address:
            raise IdentityNotFound(identifier)
        logger.debug("[identity] %s -> %s", identifier, address)
        return address

    async def resolve_parties(self, agent_wallet: str, seller: str, buyer: str) -> Tuple[str, str, str]:
        """
        Resolves agent (by wallet), seller and buyer concurrently.
        All three must succeed; the first failure is raised once every lookup has settled.
        """
        results = await asyncio.gather(
            self.resolve(agent_wallet),
            self.resolve(seller),
            self.resolve(buyer),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, RegistrationError):
                raise result
            if isinstance(result, BaseException):
                raise NetworkError(f"identity lookup failed: {result}", cause=result)
        agent, seller_addr, buyer_addr = results
        return agent, seller_addr, buyer_addr

    async def search_emails(self, partial: str) -> List[str]:
        response = await self._backend.request(
            "GET", "/users/emails", params={"q": partial}, retries=self._retries
        )
        if response.status_code != 200:
            raise NetworkError(f"email search failed: {response.status_code} {detail_of(response)}")
        return list(response.json()["data"])
