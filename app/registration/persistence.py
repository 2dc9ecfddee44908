from __future__ import annotations

import logging

from app.registration.backend import BackendClient, detail_of
from app.registration.errors import (
    NetworkError,
    PersistenceConflict,
    RegistrationError,
    ValidationError,
)
from app.registration.types import ContractDraft, PersistedContract

logger = logging.getLogger(__name__)


class ContractPersistenceClient:
    """
    Writes the confirmed contract to the backend store.

    The write is keyed by contract_index, so retrying on NetworkError is safe
    and a 409 means an earlier delivery already stored it.
    """

    def __init__(self, backend: BackendClient, *, retries: int = 0):
        self._backend = backend
        self._retries = retries

    async def create(self, draft: ContractDraft) -> PersistedContract:
        if draft.contract_index is None:
            raise ValidationError("contract_index is unassigned; the ledger has not confirmed the contract")
        missing = draft.missing_fields()
        if missing:
            raise ValidationError(f"Draft is missing required fields: {', '.join(missing)}")

        try:
            contract = await self._post(draft)
        except PersistenceConflict as conflict:
            logger.info("[persist] contract_index=%s already stored, treating as success", conflict.contract_index)
            existing = await self.get_by_index(conflict.contract_index)
            return existing.model_copy(update={"replayed": True})

        logger.info("[persist] stored contract_index=%s id=%s", contract.contract_index, contract.id)
        return contract

    async def _post(self, draft: ContractDraft) -> PersistedContract:
        response = await self._backend.request(
            "POST", "/contracts", json=draft.to_payload(), retries=self._retries
        )
        if response.status_code in (200, 201):
            return PersistedContract.model_validate(response.json()["data"])
        if response.status_code == 409:
            raise PersistenceConflict(draft.contract_index)
        if response.status_code in (400, 422):
            raise ValidationError(f"Backend rejected contract: {detail_of(response)}")
        raise RegistrationError(f"Unexpected backend response {response.status_code}: {detail_of(response)}")

    async def get_by_index(self, contract_index: int) -> PersistedContract:
        response = await self._backend.request(
            "GET", f"/contracts/by-index/{contract_index}", retries=self._retries
        )
        if response.status_code != 200:
            raise NetworkError(
                f"Could not read back contract {contract_index}: {response.status_code} {detail_of(response)}"
            )
        return PersistedContract.model_validate(response.json()["data"])

    async def upload_photo(self, filename: str, content: bytes, content_type: str = "image/jpeg") -> str:
        # not retried: each upload stores a new file
        response = await self._backend.request(
            "POST", "/contracts/photo", files={"thumbnail": (filename, content, content_type)}
        )
        if response.status_code == 400:
            raise ValidationError(detail_of(response))
        if response.status_code != 200:
            raise RegistrationError(f"Photo upload failed: {response.status_code} {detail_of(response)}")
        return response.json()["path"]
