"""Video source scoring for failover ranking.

Scores a candidate's playback measurement by resolution, load speed and
network latency. All weights come from RankingConfig.
"""

from __future__ import annotations

import re

from streamfinder.domain.entities.candidate import QualityInfo
from streamfinder.infrastructure.config.schema import RankingConfig

# "1.2 MB/s", "500KB/s"
_SPEED_RE = re.compile(r"^([\d.]+)\s*(KB/s|MB/s)$")


class VideoScorer:
    """Weighted score: quality (40%) + load speed (40%) + ping (20%).

    Each component is on a 0-100 scale; the final score is rounded to two
    decimals. Pure and deterministic for identical inputs.

    With default config: 1080p at 2.5 MB/s and 100 ms ping scores
    0.4*75 + 0.4*50 + 0.2*94.74 = 68.95.
    """

    def __init__(self, config: RankingConfig | None = None) -> None:
        config = config or RankingConfig()
        self._quality_scores = config.quality_scores
        self._default_quality_score = config.default_quality_score
        self._quality_weight = config.quality_weight
        self._speed_ceiling = config.speed_ceiling_kbps
        self._unknown_speed_score = config.unknown_speed_score
        self._speed_sentinels = frozenset(config.speed_sentinels)
        self._speed_weight = config.speed_weight
        self._ping_best = config.ping_best_ms
        self._ping_worst = config.ping_worst_ms
        self._ping_weight = config.ping_weight
        self._resolution_priorities = config.resolution_priorities

    def quality_score(self, quality: str) -> float:
        return self._quality_scores.get(quality, self._default_quality_score)

    def speed_score(self, load_speed: str) -> float:
        """Map a speed label to 0-100, linear up to the ceiling."""
        if load_speed in self._speed_sentinels:
            return self._unknown_speed_score
        m = _SPEED_RE.match(load_speed.strip())
        if not m:
            return self._unknown_speed_score
        try:
            value = float(m.group(1))
        except ValueError:
            # "1.2.3 MB/s" passes the pattern but not float()
            return self._unknown_speed_score
        kbps = value * 1024 if m.group(2) == "MB/s" else value
        return min(kbps / self._speed_ceiling, 1.0) * 100

    def ping_score(self, ping_ms: float | None) -> float:
        """100 at or below the best ping, 0 at or above the worst."""
        if ping_ms is None or ping_ms <= 0:
            return 0.0
        if ping_ms <= self._ping_best:
            return 100.0
        if ping_ms >= self._ping_worst:
            return 0.0
        return (self._ping_worst - ping_ms) / (self._ping_worst - self._ping_best) * 100

    def score(self, info: QualityInfo) -> float:
        """Calculate the combined score for one measurement."""
        total = (
            self.quality_score(info.quality) * self._quality_weight
            + self.speed_score(info.load_speed) * self._speed_weight
            + self.ping_score(info.ping_ms) * self._ping_weight
        )
        return round(total, 2)

    def resolution_priority(self, resolution: str | None) -> int:
        """Fallback rank for unmeasured candidates (1080 > 720 > 480 > 360)."""
        if not resolution:
            return 0
        for marker, priority in self._resolution_priorities.items():
            if marker in resolution:
                return priority
        return 0
