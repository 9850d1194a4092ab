"""Provider API client, async httpx implementation."""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from streamfinder.domain.entities.candidate import (
    Candidate,
    QualityInfo,
    SourceDescriptor,
)
from streamfinder.domain.entities.errors import ProviderTimeoutError, TransportError

log = structlog.get_logger(__name__)

_SEARCH_PATH = "/api/search"
_SEARCH_ONE_PATH = "/api/search/one"
_RESOURCES_PATH = "/api/search/resources"


def _str_or_none(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


def _parse_quality(raw: Any) -> QualityInfo | None:
    if not isinstance(raw, dict) or not raw.get("quality"):
        return None
    try:
        ping = float(raw.get("pingTime") or 0)
    except (TypeError, ValueError):
        ping = 0.0
    return QualityInfo(
        quality=str(raw["quality"]),
        load_speed=str(raw.get("loadSpeed") or ""),
        ping_ms=ping,
    )


def parse_candidate(item: dict[str, Any]) -> Candidate | None:
    """Map one search payload item onto a Candidate.

    Items without a source key or title are dropped (returns None).
    """
    source_key = item.get("source")
    title = item.get("title")
    if not source_key or not title:
        return None
    episodes = item.get("episodes") or []
    return Candidate(
        source_key=str(source_key),
        source_name=str(item.get("source_name") or source_key),
        title=str(title),
        episodes=tuple(str(e) for e in episodes if e),
        title_id=str(item.get("id") or ""),
        year=str(item.get("year") or ""),
        classification=_str_or_none(item.get("class")),
        poster=str(item.get("poster") or ""),
        description=_str_or_none(item.get("desc")),
        type_name=_str_or_none(item.get("type_name")),
        quality_info=_parse_quality(item.get("videoInfo")),
    )


class HttpxProviderClient:
    """Async client for the content-provider search API.

    Implements ``ProviderClientPort`` from domain.ports.provider_client.
    Every failure is raised as ``TransportError``; deadlines exceeded at
    the HTTP layer raise ``ProviderTimeoutError``.
    """

    def __init__(
        self,
        *,
        base_url: str,
        http_client: httpx.AsyncClient,
        timeout_seconds: float = 10.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._http = http_client
        self._timeout = timeout_seconds

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _get_json(self, path: str, **params: str) -> Any:
        url = f"{self._base_url}{path}"
        try:
            resp = await self._http.get(url, params=params, timeout=self._timeout)
        except httpx.TimeoutException as exc:
            raise ProviderTimeoutError(f"request to {path} timed out") from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"request to {path} failed: {exc}") from exc

        if resp.status_code == 401:
            log.error("provider_api_unauthorized", path=path, status=401)
            raise TransportError("unauthorized")
        if resp.is_error:
            raise TransportError(f"HTTP error! status: {resp.status_code}")
        try:
            return resp.json()
        except ValueError as exc:
            raise TransportError(f"invalid JSON from {path}") from exc

    @staticmethod
    def _parse_results(data: Any) -> list[Candidate]:
        items = data.get("results") if isinstance(data, dict) else None
        if not isinstance(items, list):
            raise TransportError("search response has no results list")
        candidates = []
        for item in items:
            if not isinstance(item, dict):
                continue
            candidate = parse_candidate(item)
            if candidate is not None:
                candidates.append(candidate)
        return candidates

    # ------------------------------------------------------------------
    # Public API (ProviderClientPort)
    # ------------------------------------------------------------------

    async def search_one(self, query: str, source_key: str) -> list[Candidate]:
        data = await self._get_json(_SEARCH_ONE_PATH, q=query, resourceId=source_key)
        results = self._parse_results(data)
        log.debug("provider_search_one", source=source_key, results=len(results))
        return results

    async def search_all(self, query: str) -> list[Candidate]:
        data = await self._get_json(_SEARCH_PATH, q=query)
        results = self._parse_results(data)
        log.debug("provider_search_all", results=len(results))
        return results

    async def list_providers(self) -> list[SourceDescriptor]:
        data = await self._get_json(_RESOURCES_PATH)
        if not isinstance(data, list):
            raise TransportError("resource catalog is not a list")
        return [
            SourceDescriptor(
                key=str(site["key"]),
                name=str(site.get("name") or site["key"]),
                api=str(site.get("api") or ""),
                detail=_str_or_none(site.get("detail")),
            )
            for site in data
            if isinstance(site, dict) and site.get("key")
        ]
