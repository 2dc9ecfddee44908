"""
Async HTTP access to the contract backend (identity registry + contract store).
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

import httpx

from app.core.config import Settings
from app.registration.errors import NetworkError

logger = logging.getLogger(__name__)


class BackendClient:
    """
    Thin wrapper around ``httpx.AsyncClient``.

    Transport failures and 5xx responses become ``NetworkError``; callers pass
    ``retries`` only for operations that are safe to repeat.
    """

    def __init__(
        self,
        base_url: str,
        *,
        token: Optional[str] = None,
        timeout: float = 10.0,
        backoff: float = 0.5,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._backoff = backoff
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> "BackendClient":
        return cls(
            settings.backend_base_url,
            token=settings.backend_token,
            timeout=settings.http_timeout_seconds,
            backoff=settings.retry_backoff_seconds,
            **kwargs,
        )

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict[str, Any]] = None,
        json: Optional[dict[str, Any]] = None,
        files: Optional[dict[str, Any]] = None,
        retries: int = 0,
    ) -> httpx.Response:
        last_error: Optional[Exception] = None

        for attempt in range(retries + 1):
            try:
                response = await self._client.request(method, path, params=params, json=json, files=files)
            except httpx.TransportError as e:
                last_error = e
                logger.warning("[backend] %s %s transport error attempt=%s: %s", method, path, attempt + 1, e)
            else:
                if response.status_code < 500:
                    return response
                last_error = httpx.HTTPStatusError(
                    f"server error {response.status_code}", request=response.request, response=response
                )
                logger.warning("[backend] %s %s status=%s attempt=%s", method, path, response.status_code, attempt + 1)

            if attempt < retries:
                await asyncio.sleep(self._backoff * (2 ** attempt))

        raise NetworkError(f"{method} {path} failed: {last_error}", cause=last_error)

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "BackendClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


def detail_of(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict) and "detail" in body:
        return str(body["detail"])
    return str(body)
