"""Composition root: builds the search orchestrator and its adapters."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

import httpx
import structlog

from streamfinder.application.aggregator import ResultAggregator
from streamfinder.application.failover import FailoverSelector
from streamfinder.application.use_cases.detail_search import SearchOrchestrator
from streamfinder.infrastructure.config.schema import AppConfig
from streamfinder.infrastructure.favorites.api_store import HttpxFavoritesStore
from streamfinder.infrastructure.metrics import MetricsCollector
from streamfinder.infrastructure.probe.hls_probe import HlsResolutionProbe
from streamfinder.infrastructure.provider.client import HttpxProviderClient
from streamfinder.infrastructure.ranking.video_scorer import VideoScorer
from streamfinder.infrastructure.sources import ConfigSourceFilter

log = structlog.get_logger(__name__)


@dataclass
class AppContainer:
    """Resources owned by one application run."""

    config: AppConfig
    http_client: httpx.AsyncClient
    metrics: MetricsCollector
    orchestrator: SearchOrchestrator


def build_orchestrator(
    config: AppConfig,
    http_client: httpx.AsyncClient,
    metrics: MetricsCollector | None = None,
) -> SearchOrchestrator:
    """Wire the orchestrator against the configured provider API."""
    return SearchOrchestrator(
        provider=HttpxProviderClient(
            base_url=config.api_base_url,
            http_client=http_client,
            timeout_seconds=config.api_timeout_seconds,
        ),
        source_filter=ConfigSourceFilter(config.sources),
        selector=FailoverSelector(VideoScorer(config.ranking)),
        config=config.search,
        aggregator=ResultAggregator(),
        probe=(
            HlsResolutionProbe(
                http_client=http_client,
                timeout_seconds=config.search.probe_timeout_seconds,
            )
            if config.search.probe_enabled
            else None
        ),
        favorites=HttpxFavoritesStore(
            base_url=config.api_base_url,
            http_client=http_client,
            timeout_seconds=config.api_timeout_seconds,
        ),
        metrics=metrics,
    )


@asynccontextmanager
async def lifespan(
    config: AppConfig,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AsyncIterator[AppContainer]:
    """Create the shared HTTP client and orchestrator; close them on exit."""
    http_client = httpx.AsyncClient(
        transport=transport,
        timeout=httpx.Timeout(config.api_timeout_seconds),
        headers={"User-Agent": config.api_user_agent},
        follow_redirects=True,
    )
    log.info(
        "http_client_initialized",
        base_url=config.api_base_url,
        timeout=config.api_timeout_seconds,
    )
    metrics = MetricsCollector()
    container = AppContainer(
        config=config,
        http_client=http_client,
        metrics=metrics,
        orchestrator=build_orchestrator(config, http_client, metrics),
    )
    log.info("app_startup_complete")

    try:
        yield container
    finally:
        await container.orchestrator.aclose()
        await http_client.aclose()
        log.info("http_client_closed")
        log.info("app_shutdown_complete")
