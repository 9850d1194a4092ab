"""Domain entities for provider search results.

Pure value objects without framework dependencies or I/O.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class SourceDescriptor:
    """Identity of a content provider as listed by the provider catalog."""

    key: str  # Stable provider id, e.g. "heimuer"
    name: str  # Display name
    api: str = ""  # Provider API endpoint
    detail: str | None = None


@dataclass(frozen=True)
class QualityInfo:
    """Playback measurement reported for a candidate.

    ``load_speed`` is a human label such as ``"1.2 MB/s"`` or ``"500 KB/s"``;
    sentinel labels (``"unknown"``, ``"measuring"``) mean no measurement yet.
    """

    quality: str  # "4K", "1080p", "720p", ...
    load_speed: str
    ping_ms: float


@dataclass(frozen=True)
class Candidate:
    """One provider's offering for a title query."""

    source_key: str
    source_name: str
    title: str
    episodes: tuple[str, ...] = ()
    title_id: str = ""
    year: str = ""
    classification: str | None = None
    poster: str = ""
    description: str | None = None
    type_name: str | None = None
    quality_info: QualityInfo | None = None
    resolution: str | None = None  # Probe result or quality_info.quality

    def has_episode(self, index: int) -> bool:
        """Return True when an episode locator exists at *index*."""
        return 0 <= index < len(self.episodes)

    @property
    def needs_probe(self) -> bool:
        return self.quality_info is None and self.resolution is None


@dataclass(frozen=True)
class ScoredCandidate:
    """Transient pairing of a candidate with its failover rank."""

    candidate: Candidate
    score: float | None  # VideoScorer score, None when unmeasured
    priority: int = 0  # Resolution-label priority fallback


@dataclass(frozen=True)
class SourceSummary:
    """Per-source summary row (key, name, resolution, measurement)."""

    source_key: str
    source_name: str
    resolution: str | None = None
    quality_info: QualityInfo | None = None


@dataclass(frozen=True)
class FavoriteRecord:
    """Payload stored by the favorites collaborator."""

    cover: str
    title: str
    source_name: str
    total_episodes: int
    search_title: str
    year: str = ""
