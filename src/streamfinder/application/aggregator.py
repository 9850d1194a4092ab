"""Merge candidate batches into a session's result set."""

from __future__ import annotations

from enum import Enum

import structlog

from streamfinder.application.session import Session
from streamfinder.domain.entities.candidate import Candidate

log = structlog.get_logger(__name__)


class MergeMode(Enum):
    REPLACE = "replace"  # batch becomes the whole result set
    APPEND = "append"  # only unseen source keys are added


class ResultAggregator:
    """Keeps ``source_key`` unique within a session's results.

    Existing candidates are never mutated: APPEND leaves them
    reference-identical and ``refresh`` swaps in a new object.
    """

    def merge(
        self,
        session: Session,
        batch: list[Candidate],
        mode: MergeMode,
    ) -> list[Candidate]:
        """Merge *batch* and return the candidates that were added."""
        if mode is MergeMode.REPLACE:
            merged: dict[str, Candidate] = {}
            for c in batch:
                merged.setdefault(c.source_key, c)
            session.results = merged
            added = list(merged.values())
            if session.detail is not None and (
                merged.get(session.detail.source_key) is not session.detail
            ):
                session.detail = None
        else:
            added = []
            for c in batch:
                if c.source_key in session.results:
                    continue
                session.results[c.source_key] = c
                added.append(c)

        if session.detail is None and session.results:
            session.detail = next(iter(session.results.values()))

        log.debug(
            "results_merged",
            epoch=session.epoch,
            mode=mode.value,
            incoming=len(batch),
            added=len(added),
            total=len(session.results),
        )
        return added

    def refresh(self, session: Session, candidate: Candidate) -> bool:
        """Replace the entry with the same source key by *candidate*.

        Position is preserved and the selection follows the new object.
        Returns False when the source key is not part of the result set.
        """
        current = session.results.get(candidate.source_key)
        if current is None:
            return False
        session.results[candidate.source_key] = candidate
        if session.detail is current:
            session.detail = candidate
        return True
