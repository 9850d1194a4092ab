"""Favorites store backed by the provider API's ``/api/favorites`` endpoint."""

from __future__ import annotations

from dataclasses import asdict
from typing import Any

import httpx
import structlog

from streamfinder.domain.entities.candidate import FavoriteRecord
from streamfinder.domain.entities.errors import ProviderTimeoutError, TransportError

log = structlog.get_logger(__name__)

_FAVORITES_PATH = "/api/favorites"


def favorite_key(source_key: str, title_id: str) -> str:
    return f"{source_key}+{title_id}"


class HttpxFavoritesStore:
    """Implements ``FavoritesPort`` from domain.ports.favorites."""

    def __init__(
        self,
        *,
        base_url: str,
        http_client: httpx.AsyncClient,
        timeout_seconds: float = 10.0,
    ) -> None:
        self._url = f"{base_url.rstrip('/')}{_FAVORITES_PATH}"
        self._http = http_client
        self._timeout = timeout_seconds

    async def _request(self, method: str, **kwargs: Any) -> Any:
        try:
            resp = await self._http.request(
                method, self._url, timeout=self._timeout, **kwargs
            )
        except httpx.TimeoutException as exc:
            raise ProviderTimeoutError("favorites request timed out") from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"favorites request failed: {exc}") from exc

        if resp.status_code == 401:
            raise TransportError("unauthorized")
        if resp.is_error:
            raise TransportError(f"HTTP error! status: {resp.status_code}")
        try:
            return resp.json()
        except ValueError as exc:
            raise TransportError("invalid JSON from favorites endpoint") from exc

    async def is_favorited(self, source_key: str, title_id: str) -> bool:
        data = await self._request(
            "GET", params={"key": favorite_key(source_key, title_id)}
        )
        return bool(data)

    async def toggle(
        self, source_key: str, title_id: str, record: FavoriteRecord
    ) -> bool:
        key = favorite_key(source_key, title_id)
        if await self.is_favorited(source_key, title_id):
            await self._request("DELETE", params={"key": key})
            log.info("favorite_removed", key=key)
            return False
        await self._request("POST", json={"key": key, "favorite": asdict(record)})
        log.info("favorite_added", key=key)
        return True
