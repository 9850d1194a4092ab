"""Pick a replacement source when playback on the current one fails."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol

import structlog

from streamfinder.domain.entities.candidate import (
    Candidate,
    QualityInfo,
    ScoredCandidate,
)
from streamfinder.domain.entities.session import FailoverResult

log = structlog.get_logger(__name__)


class _VideoScorer(Protocol):
    """Scores measured candidates and ranks resolution labels."""

    def score(self, info: QualityInfo) -> float: ...

    def resolution_priority(self, resolution: str | None) -> int: ...


def _rank_key(scored: ScoredCandidate) -> tuple[int, float, int]:
    # Measured candidates outrank unmeasured ones; measured compare by score,
    # unmeasured by resolution priority.
    if scored.score is not None:
        return (1, scored.score, 0)
    return (0, 0.0, scored.priority)


class FailoverSelector:
    """Select the best remaining candidate for an episode.

    The failed-source set is treated as a persistent value: each call
    returns a new frozenset that contains the previous one.
    """

    def __init__(self, scorer: _VideoScorer) -> None:
        self._scorer = scorer

    def score(self, candidate: Candidate) -> ScoredCandidate:
        return ScoredCandidate(
            candidate=candidate,
            score=(
                self._scorer.score(candidate.quality_info)
                if candidate.quality_info is not None
                else None
            ),
            priority=self._scorer.resolution_priority(candidate.resolution),
        )

    def select(
        self,
        candidates: Iterable[Candidate],
        failed_sources: frozenset[str],
        failed_source: str,
        episode_index: int,
        reason: str = "",
    ) -> FailoverResult:
        """Record *failed_source* and return the best viable alternative.

        Args:
            candidates: Session results in arrival order.
            failed_sources: Sources already excluded in this session.
            failed_source: Source whose playback just failed.
            episode_index: Zero-based episode being watched.
            reason: Human-readable failure reason (diagnostics only).
        """
        excluded = failed_sources | {failed_source}
        log.warning(
            "source_failed",
            source=failed_source,
            reason=reason,
            failed_total=len(excluded),
        )

        available = [
            c
            for c in candidates
            if c.source_key != failed_source
            and c.source_key not in excluded
            and c.has_episode(episode_index)
        ]
        if not available:
            log.error(
                "failover_exhausted",
                source=failed_source,
                episode=episode_index + 1,
                failed_sources=sorted(excluded),
            )
            return FailoverResult(candidate=None, failed_sources=excluded)

        # sorted() is stable: equal ranks keep arrival order.
        ranked = sorted(
            (self.score(c) for c in available), key=_rank_key, reverse=True
        )
        best = ranked[0]
        log.info(
            "failover_selected",
            source=best.candidate.source_key,
            source_name=best.candidate.source_name,
            score=best.score,
            resolution=best.candidate.resolution,
            candidates=len(ranked),
            episode=episode_index + 1,
        )
        return FailoverResult(candidate=best.candidate, failed_sources=excluded)
