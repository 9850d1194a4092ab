"""Read-only session views.

Pure value objects without framework dependencies or I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from streamfinder.domain.entities.candidate import Candidate
from streamfinder.domain.entities.errors import SearchError


class SessionPhase(Enum):
    """Search session lifecycle.

    ``idle -> searching -> partial -> settled``; any non-terminal phase
    moves to ``cancelled`` when a newer session starts or the caller aborts.
    """

    IDLE = "idle"
    SEARCHING = "searching"
    PARTIAL = "partial"  # first results merged, loading cleared
    SETTLED = "settled"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class SessionSnapshot:
    """Immutable view of the active session for callers."""

    query: str | None
    phase: SessionPhase
    results: tuple[Candidate, ...] = ()
    detail: Candidate | None = None
    loading: bool = False
    error: SearchError | None = None
    all_sources_loaded: bool = False
    is_favorited: bool = False
    failed_sources: frozenset[str] = frozenset()

    @property
    def error_message(self) -> str | None:
        return str(self.error) if self.error is not None else None


@dataclass(frozen=True)
class FailoverResult:
    """Outcome of one failover selection.

    ``candidate`` is None when no alternative exists (exhausted).
    """

    candidate: Candidate | None
    failed_sources: frozenset[str]

    @property
    def exhausted(self) -> bool:
        return self.candidate is None
