"""Search session state and its cancellation token.

A Session is owned by exactly one orchestrator and mutated only from the
event loop thread. Every collaborator call is awaited through the
session's token so that a superseded session's work is provably inert.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from dataclasses import dataclass, field
from typing import TypeVar

from streamfinder.domain.entities.candidate import Candidate
from streamfinder.domain.entities.errors import SearchCancelled, SearchError
from streamfinder.domain.entities.session import SessionPhase, SessionSnapshot

T = TypeVar("T")


class CancellationToken:
    """Epoch-tagged cancellation flag for one search session."""

    def __init__(self, epoch: int) -> None:
        self.epoch = epoch
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise SearchCancelled(self.epoch)

    async def run(self, aw: Awaitable[T]) -> T:
        """Await *aw* unless the token fires first.

        On cancellation the inner task is cancelled and awaited, then
        ``SearchCancelled`` is raised; a result that completes after
        cancellation is discarded.
        """
        self.raise_if_cancelled()
        task = asyncio.ensure_future(aw)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()
            if not task.done():
                task.cancel()

        if self._event.is_set():
            if not task.done():
                # Let the cancelled call unwind before the session moves on.
                await asyncio.wait({task})
            if not task.cancelled():
                # Late completion: retrieve to silence "never retrieved".
                task.exception()
            raise SearchCancelled(self.epoch)
        return task.result()


@dataclass
class Session:
    """Mutable state of one search attempt."""

    query: str
    token: CancellationToken
    preferred_source: str | None = None
    known_title_id: str | None = None
    results: dict[str, Candidate] = field(default_factory=dict)
    detail: Candidate | None = None
    loading: bool = True
    error: SearchError | None = None
    all_sources_loaded: bool = False
    is_favorited: bool = False
    failed_sources: frozenset[str] = frozenset()
    phase: SessionPhase = SessionPhase.SEARCHING
    task: asyncio.Task[None] | None = None
    background: asyncio.Task[None] | None = None

    @property
    def epoch(self) -> int:
        return self.token.epoch

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            query=self.query,
            phase=self.phase,
            results=tuple(self.results.values()),
            detail=self.detail,
            loading=self.loading,
            error=self.error,
            all_sources_loaded=self.all_sources_loaded,
            is_favorited=self.is_favorited,
            failed_sources=self.failed_sources,
        )
