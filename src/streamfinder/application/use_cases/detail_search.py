"""Detail search use case.

Title query -> preferred-source fast path or parallel provider fan-out
-> incremental merge -> resolution probe -> favorite check.
Failover selection runs later, on demand, against the settled session.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import replace
from typing import Protocol, TypeVar

import structlog

from streamfinder.application.aggregator import MergeMode, ResultAggregator
from streamfinder.application.failover import FailoverSelector
from streamfinder.application.session import CancellationToken, Session
from streamfinder.domain.entities.candidate import (
    Candidate,
    FavoriteRecord,
    SourceDescriptor,
    SourceSummary,
)
from streamfinder.domain.entities.errors import (
    NoResultsFoundError,
    NoSourcesConfiguredError,
    ProviderTimeoutError,
    SearchCancelled,
    SearchError,
    SearchFailedError,
    TransportError,
)
from streamfinder.domain.entities.session import SessionPhase, SessionSnapshot
from streamfinder.domain.ports.favorites import FavoritesPort
from streamfinder.domain.ports.provider_client import ProviderClientPort
from streamfinder.domain.ports.resolution_probe import ResolutionProbePort
from streamfinder.domain.ports.source_filter import SourceFilterPort

# ---------------------------------------------------------------------------
# Protocols: what this use case needs from its dependencies.
# Infrastructure components satisfy these via structural subtyping.
# ---------------------------------------------------------------------------


class _SearchConfig(Protocol):
    """Configuration values consumed by SearchOrchestrator."""

    provider_timeout_seconds: float
    probe_timeout_seconds: float
    max_concurrent_providers: int
    max_concurrent_probes: int
    probe_enabled: bool


class _MetricsRecorder(Protocol):
    """Records session, provider search and probe metrics."""

    def record_session(self) -> None: ...

    def record_provider_search(
        self,
        name: str,
        duration_ns: int,
        result_count: int,
        *,
        success: bool,
        timed_out: bool = False,
    ) -> None: ...

    def record_probe(self, duration_ns: int, *, resolved: bool) -> None: ...


T = TypeVar("T")

log = structlog.get_logger(__name__)

# Metrics/log name for the all-sources search endpoint.
_ALL_SOURCES = "all"


def _exact_matches(query: str, candidates: list[Candidate]) -> list[Candidate]:
    """Keep only candidates whose title equals the query exactly."""
    return [c for c in candidates if c.title == query]


def _elapsed_ms(t0_ns: int) -> float:
    return round((time.perf_counter_ns() - t0_ns) / 1_000_000, 2)


class SearchOrchestrator:
    """Resolve a title into a continuously refined set of candidates.

    Owns at most one active Session. Every new query cancels the previous
    session before any new call is issued; all completions of a cancelled
    session are discarded without touching shared state.

    Flow:
        A. Preferred source known: search it alone, show its result at
           once and reconcile all sources in the background; fall back to
           a synchronous all-sources search when it yields nothing.
        B. Otherwise: list providers, filter by configuration, fan out one
           search per provider and merge each response as it arrives.
        Both: probe unmeasured candidates, select a default, check favorite.
    """

    def __init__(
        self,
        *,
        provider: ProviderClientPort,
        source_filter: SourceFilterPort,
        selector: FailoverSelector,
        config: _SearchConfig,
        aggregator: ResultAggregator | None = None,
        probe: ResolutionProbePort | None = None,
        favorites: FavoritesPort | None = None,
        metrics: _MetricsRecorder | None = None,
    ) -> None:
        self._provider = provider
        self._source_filter = source_filter
        self._selector = selector
        self._aggregator = aggregator or ResultAggregator()
        self._probe = probe
        self._favorites = favorites
        self._metrics = metrics
        self._provider_timeout = config.provider_timeout_seconds
        self._probe_timeout = config.probe_timeout_seconds
        self._max_concurrent_providers = config.max_concurrent_providers
        self._max_concurrent_probes = config.max_concurrent_probes
        self._probe_enabled = config.probe_enabled
        self._epoch = 0
        self._session: Session | None = None

    # ------------------------------------------------------------------
    # Caller API
    # ------------------------------------------------------------------

    def start_search(
        self,
        query: str,
        preferred_source: str | None = None,
        known_title_id: str | None = None,
    ) -> asyncio.Task[None]:
        """Start a new session, superseding any in-flight search.

        Must be called from within a running event loop. The returned task
        never raises for search failures or cancellation; outcomes are read
        from ``snapshot()``.
        """
        self._cancel_session("superseded")

        self._epoch += 1
        session = Session(
            query=query,
            token=CancellationToken(self._epoch),
            preferred_source=preferred_source,
            known_title_id=known_title_id,
        )
        self._session = session
        if self._metrics is not None:
            self._metrics.record_session()

        log.info(
            "detail_search_start",
            epoch=session.epoch,
            query=query,
            preferred_source=preferred_source,
            title_id=known_title_id,
        )
        session.task = asyncio.get_running_loop().create_task(
            self._run(session), name=f"detail-search-{session.epoch}"
        )
        return session.task

    def cancel_active_search(self) -> None:
        """Abort the active session; its late completions become no-ops."""
        self._cancel_session("aborted")

    async def aclose(self) -> None:
        """Abort the active session and wait until its tasks have finished."""
        session = self._session
        self._cancel_session("shutdown")
        if session is None:
            return
        pending = [t for t in (session.task, session.background) if t is not None]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        log.debug("detail_search_drained", epoch=session.epoch, tasks=len(pending))

    async def select_displayed_candidate(self, candidate: Candidate) -> None:
        """Make *candidate* the displayed detail and refresh its favorite flag.

        Raises:
            ValueError: when the candidate's source is not in the results.
        """
        session = self._session
        current = session.results.get(candidate.source_key) if session else None
        if session is None or current is None:
            raise ValueError(
                f"source {candidate.source_key!r} is not part of the current results"
            )
        session.detail = current
        try:
            await self._check_favorite(session)
        except SearchCancelled:
            return

    async def toggle_favorite(self) -> bool:
        """Flip the favorite state of the displayed candidate.

        Returns the new state (False when nothing is displayed).
        """
        session = self._session
        if session is None or session.detail is None or self._favorites is None:
            return False
        detail = session.detail
        record = FavoriteRecord(
            cover=detail.poster,
            title=detail.title,
            source_name=detail.source_name,
            total_episodes=len(detail.episodes),
            search_title=session.query,
            year=detail.year,
        )
        is_favorited = await self._favorites.toggle(
            detail.source_key, self._title_id(session, detail), record
        )
        if self._session is session:
            session.is_favorited = is_favorited
        log.info(
            "favorite_toggled", source=detail.source_key, favorited=is_favorited
        )
        return is_favorited

    def report_playback_failure(
        self,
        source_key: str,
        episode_index: int,
        reason: str = "",
    ) -> Candidate | None:
        """Exclude *source_key* and return the best alternative, or None.

        None means no alternative exists for this episode; the caller must
        surface an error instead of retrying.
        """
        session = self._session
        if session is None:
            log.warning("failover_without_session", source=source_key)
            return None
        result = self._selector.select(
            session.results.values(),
            session.failed_sources,
            source_key,
            episode_index,
            reason,
        )
        session.failed_sources = result.failed_sources
        return result.candidate

    # ------------------------------------------------------------------
    # Read-only accessors
    # ------------------------------------------------------------------

    def snapshot(self) -> SessionSnapshot:
        if self._session is None:
            return SessionSnapshot(query=None, phase=SessionPhase.IDLE)
        return self._session.snapshot()

    @property
    def results(self) -> tuple[Candidate, ...]:
        return self.snapshot().results

    @property
    def detail(self) -> Candidate | None:
        return self._session.detail if self._session else None

    @property
    def loading(self) -> bool:
        return self._session.loading if self._session else False

    @property
    def error(self) -> SearchError | None:
        return self._session.error if self._session else None

    @property
    def failed_sources(self) -> frozenset[str]:
        return self._session.failed_sources if self._session else frozenset()

    @property
    def phase(self) -> SessionPhase:
        return self._session.phase if self._session else SessionPhase.IDLE

    def episodes_for(self, source_key: str) -> tuple[str, ...]:
        """Episode locators of one source (empty when unknown)."""
        if self._session is None:
            return ()
        candidate = self._session.results.get(source_key)
        return candidate.episodes if candidate else ()

    def sources(self) -> list[SourceSummary]:
        """One summary row per candidate, in arrival order."""
        return [
            SourceSummary(
                source_key=c.source_key,
                source_name=c.source_name,
                resolution=c.resolution,
                quality_info=c.quality_info,
            )
            for c in self.results
        ]

    # ------------------------------------------------------------------
    # Session plumbing
    # ------------------------------------------------------------------

    def _is_current(self, session: Session) -> bool:
        return session is self._session and not session.token.cancelled

    def _cancel_session(self, reason: str) -> None:
        session = self._session
        if session is None or session.token.cancelled:
            return
        session.token.cancel()
        session.phase = SessionPhase.CANCELLED
        session.loading = False
        log.info(
            "detail_search_cancelled",
            epoch=session.epoch,
            query=session.query,
            reason=reason,
        )

    def _fail(self, session: Session, error: SearchError) -> None:
        if not self._is_current(session):
            return
        session.error = error
        session.loading = False
        log.error(
            "detail_search_failed",
            epoch=session.epoch,
            query=session.query,
            error=str(error),
            error_type=type(error).__name__,
        )

    def _clear_loading(self, session: Session, source: str) -> None:
        if not session.loading:
            return
        session.loading = False
        if session.phase is SessionPhase.SEARCHING:
            session.phase = SessionPhase.PARTIAL
        log.info(
            "first_results_ready",
            epoch=session.epoch,
            source=source,
            results=len(session.results),
        )

    def _apply_batch(
        self, session: Session, batch: list[Candidate], mode: MergeMode
    ) -> list[Candidate]:
        if not self._is_current(session):
            log.debug("stale_results_discarded", epoch=session.epoch, count=len(batch))
            return []
        return self._aggregator.merge(session, batch, mode)

    @staticmethod
    def _title_id(session: Session, candidate: Candidate) -> str:
        return candidate.title_id or session.known_title_id or ""

    async def _guarded(
        self,
        session: Session,
        factory: Callable[[], Awaitable[T]],
        timeout: float,
        what: str,
    ) -> T:
        """Run one collaborator call under the session token and a deadline."""
        session.token.raise_if_cancelled()
        try:
            return await session.token.run(asyncio.wait_for(factory(), timeout=timeout))
        except TimeoutError as exc:
            raise ProviderTimeoutError(f"{what} timed out after {timeout:g}s") from exc

    # ------------------------------------------------------------------
    # Session run
    # ------------------------------------------------------------------

    async def _run(self, session: Session) -> None:
        t0 = time.perf_counter_ns()
        try:
            if session.preferred_source:
                await self._search_preferred(session)
            else:
                await self._search_standard(session)
            await self._finish(session)
        except SearchCancelled:
            log.info("detail_search_aborted", epoch=session.epoch, query=session.query)
        except SearchError as exc:
            self._fail(session, exc)
        except asyncio.CancelledError:
            session.token.cancel()
            raise
        except Exception as exc:
            log.exception(
                "detail_search_unexpected_error",
                epoch=session.epoch,
                query=session.query,
            )
            self._fail(session, SearchFailedError(f"search failed: {exc}"))
        finally:
            if self._is_current(session):
                session.loading = False
                session.all_sources_loaded = True
                session.phase = SessionPhase.SETTLED
            log.info(
                "detail_search_complete",
                epoch=session.epoch,
                query=session.query,
                results=len(session.results),
                error=str(session.error) if session.error else None,
                duration_ms=_elapsed_ms(t0),
            )

    async def _provider_search(
        self,
        session: Session,
        name: str,
        factory: Callable[[], Awaitable[list[Candidate]]],
    ) -> list[Candidate]:
        """Call one search endpoint and return its candidates.

        Failures are logged here and re-raised; cancellation is silent.
        """
        t0 = time.perf_counter_ns()
        results: list[Candidate] = []
        success = False
        timed_out = False
        cancelled = False
        try:
            results = await self._guarded(
                session, factory, self._provider_timeout, f"search {name}"
            )
            success = True
        except SearchCancelled:
            cancelled = True
            raise
        except ProviderTimeoutError:
            timed_out = True
            log.warning(
                "provider_search_timeout",
                provider=name,
                timeout=self._provider_timeout,
            )
            raise
        except Exception:
            log.warning("provider_search_error", provider=name, exc_info=True)
            raise
        finally:
            if self._metrics is not None and not cancelled:
                self._metrics.record_provider_search(
                    name,
                    time.perf_counter_ns() - t0,
                    len(results),
                    success=success,
                    timed_out=timed_out,
                )

        log.debug(
            "provider_search_done",
            provider=name,
            results=len(results),
            duration_ms=_elapsed_ms(t0),
        )
        return results

    async def _search_preferred(self, session: Session) -> None:
        """Protocol A: preferred source first, all-sources fallback."""
        source = session.preferred_source or ""
        failed = False
        try:
            results = await self._provider_search(
                session,
                source,
                lambda: self._provider.search_one(session.query, source),
            )
        except SearchCancelled:
            raise
        except Exception:
            results = []
            failed = True

        if results:
            log.info(
                "preferred_source_hit",
                source=source,
                query=session.query,
                results=len(results),
            )
            self._apply_batch(session, results, MergeMode.REPLACE)
            self._clear_loading(session, source)
            session.background = asyncio.create_task(
                self._reconcile(session), name=f"detail-reconcile-{session.epoch}"
            )
            return

        log.warning(
            "preferred_source_fallback",
            source=source,
            query=session.query,
            reason="error" if failed else "no_results",
        )
        try:
            results = await self._provider_search(
                session,
                _ALL_SOURCES,
                lambda: self._provider.search_all(session.query),
            )
        except SearchCancelled:
            raise
        except Exception as exc:
            raise SearchFailedError(f"search failed: {exc}") from exc

        matches = _exact_matches(session.query, results)
        log.info("fallback_search_done", query=session.query, matches=len(matches))
        if not matches:
            raise NoResultsFoundError(session.query)
        self._apply_batch(session, matches, MergeMode.REPLACE)
        self._clear_loading(session, _ALL_SOURCES)

    async def _reconcile(self, session: Session) -> None:
        """Background all-sources search; appends sources not yet present."""
        try:
            results = await self._provider_search(
                session,
                _ALL_SOURCES,
                lambda: self._provider.search_all(session.query),
            )
            matches = _exact_matches(session.query, results)
            added = self._apply_batch(session, matches, MergeMode.APPEND)
            log.info(
                "background_search_merged",
                epoch=session.epoch,
                matches=len(matches),
                added=len(added),
            )
            await self._enrich(session, added)
        except SearchCancelled:
            return
        except Exception:
            # Preferred source already succeeded; keep what we have.
            log.info("background_search_skipped", epoch=session.epoch)

    async def _search_standard(self, session: Session) -> None:
        """Protocol B: fan out over every enabled provider."""
        try:
            providers = await self._guarded(
                session,
                self._provider.list_providers,
                self._provider_timeout,
                "provider catalog",
            )
        except SearchCancelled:
            raise
        except Exception as exc:
            log.warning("provider_catalog_failed", exc_info=True)
            raise SearchFailedError(f"failed to load sources: {exc}") from exc

        enabled = [p for p in providers if self._source_filter.is_enabled(p.key)]
        log.info(
            "provider_catalog_loaded",
            total=len(providers),
            enabled=len(enabled),
        )
        if not enabled:
            raise NoSourcesConfiguredError()

        semaphore = asyncio.Semaphore(self._max_concurrent_providers)

        async def _search_one(provider: SourceDescriptor) -> int:
            async with semaphore:
                try:
                    results = await self._provider_search(
                        session,
                        provider.key,
                        lambda: self._provider.search_one(session.query, provider.key),
                    )
                except SearchCancelled:
                    raise
                except Exception:
                    return 0
            if not results:
                log.info(
                    "provider_no_results", provider=provider.name, query=session.query
                )
                return 0
            self._apply_batch(session, results, MergeMode.APPEND)
            self._clear_loading(session, provider.key)
            return len(results)

        outcomes = await asyncio.gather(
            *(_search_one(p) for p in enabled), return_exceptions=True
        )
        session.token.raise_if_cancelled()

        total = sum(o for o in outcomes if isinstance(o, int))
        log.info(
            "fan_out_settled",
            providers=len(enabled),
            total_results=total,
            sources=len(session.results),
        )
        if not session.results:
            raise NoResultsFoundError(session.query)

    async def _finish(self, session: Session) -> None:
        await self._enrich(session, list(session.results.values()))
        await self._check_favorite(session)
        if session.background is not None:
            await session.background
        session.token.raise_if_cancelled()
        if not session.results:
            raise NoResultsFoundError(session.query)

    async def _enrich(self, session: Session, candidates: list[Candidate]) -> None:
        """Attach a resolution label to every candidate lacking one.

        Measured candidates take their quality label; the rest are probed
        on their first episode, best-effort.
        """
        to_probe: list[Candidate] = []
        for c in candidates:
            if c.needs_probe:
                if c.episodes:
                    to_probe.append(c)
            elif c.resolution is None and c.quality_info is not None:
                if self._is_current(session):
                    self._aggregator.refresh(
                        session, replace(c, resolution=c.quality_info.quality)
                    )

        if not to_probe or self._probe is None or not self._probe_enabled:
            return

        probe = self._probe
        semaphore = asyncio.Semaphore(self._max_concurrent_probes)

        async def _probe_one(candidate: Candidate) -> None:
            async with semaphore:
                t0 = time.perf_counter_ns()
                label: str | None = None
                try:
                    label = await self._guarded(
                        session,
                        lambda: probe.estimate(candidate.episodes[0]),
                        self._probe_timeout,
                        f"probe {candidate.source_key}",
                    )
                except SearchCancelled:
                    raise
                except Exception as exc:
                    log.info(
                        "resolution_probe_failed",
                        source=candidate.source_key,
                        error=str(exc) or type(exc).__name__,
                    )
                if self._metrics is not None:
                    self._metrics.record_probe(
                        time.perf_counter_ns() - t0, resolved=label is not None
                    )
            log.debug(
                "resolution_probe_done",
                source=candidate.source_key,
                resolution=label,
                duration_ms=_elapsed_ms(t0),
            )
            if label is None or not self._is_current(session):
                return
            current = session.results.get(candidate.source_key)
            if current is not None and current.resolution is None:
                self._aggregator.refresh(session, replace(current, resolution=label))

        await asyncio.gather(*(_probe_one(c) for c in to_probe), return_exceptions=True)
        session.token.raise_if_cancelled()

    async def _check_favorite(self, session: Session) -> None:
        """Best-effort favorite lookup for the displayed candidate."""
        detail = session.detail
        if detail is None:
            log.warning("no_detail_after_search", query=session.query)
            return
        if self._favorites is None:
            return
        favorites = self._favorites
        title_id = self._title_id(session, detail)
        try:
            is_favorited = await self._guarded(
                session,
                lambda: favorites.is_favorited(detail.source_key, title_id),
                self._provider_timeout,
                "favorite check",
            )
        except SearchCancelled:
            raise
        except Exception:
            log.warning(
                "favorite_check_failed", source=detail.source_key, exc_info=True
            )
            return
        if (
            self._is_current(session)
            and session.detail is not None
            and session.detail.source_key == detail.source_key
        ):
            session.is_favorited = is_favorited
