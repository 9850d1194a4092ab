"""Zero-impact in-memory performance metrics.

All counters are plain Python integers manipulated inside the single-threaded
async event loop; no locks and no I/O.

``time.perf_counter_ns()`` is used for timing (monotonic, nanosecond
resolution, near-zero overhead).
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field


def _avg_ms(total_ns: int, count: int) -> float:
    return round(total_ns / count / 1_000_000, 1) if count else 0.0


@dataclass
class ProviderStats:
    """Accumulated statistics for a single provider."""

    searches: int = 0
    successes: int = 0
    failures: int = 0
    timeouts: int = 0
    total_results: int = 0
    total_duration_ns: int = 0

    def snapshot(self) -> dict[str, object]:
        """Return a JSON-serializable summary."""
        return {
            "searches": self.searches,
            "successes": self.successes,
            "failures": self.failures,
            "timeouts": self.timeouts,
            "total_results": self.total_results,
            "avg_duration_ms": _avg_ms(self.total_duration_ns, self.searches),
        }


@dataclass
class ProbeStats:
    """Accumulated statistics for resolution probes."""

    runs: int = 0
    resolved: int = 0
    failed: int = 0
    total_duration_ns: int = 0

    def snapshot(self) -> dict[str, object]:
        return {
            "runs": self.runs,
            "resolved": self.resolved,
            "failed": self.failed,
            "avg_duration_ms": _avg_ms(self.total_duration_ns, self.runs),
        }


@dataclass
class MetricsCollector:
    """Central in-memory metrics collector.

    Thread-safety is not required: the async event loop is
    single-threaded, so plain integer increments are atomic enough.
    """

    _providers: dict[str, ProviderStats] = field(default_factory=dict)
    _probe: ProbeStats = field(default_factory=ProbeStats)
    _sessions: int = 0
    _start_ns: int = field(default_factory=time.perf_counter_ns)

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def record_session(self) -> None:
        self._sessions += 1

    def record_provider_search(
        self,
        name: str,
        duration_ns: int,
        result_count: int,
        *,
        success: bool,
        timed_out: bool = False,
    ) -> None:
        """Record one provider search invocation."""
        stats = self._providers.get(name)
        if stats is None:
            stats = ProviderStats()
            self._providers[name] = stats

        stats.searches += 1
        stats.total_duration_ns += duration_ns

        if success:
            stats.successes += 1
            stats.total_results += result_count
        else:
            stats.failures += 1
            if timed_out:
                stats.timeouts += 1

    def record_probe(self, duration_ns: int, *, resolved: bool) -> None:
        """Record one resolution probe."""
        self._probe.runs += 1
        self._probe.total_duration_ns += duration_ns
        if resolved:
            self._probe.resolved += 1
        else:
            self._probe.failed += 1

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------

    def snapshot(self) -> dict[str, object]:
        """Return a JSON-serializable snapshot of all metrics."""
        uptime_ns = time.perf_counter_ns() - self._start_ns
        return {
            "uptime_seconds": round(uptime_ns / 1_000_000_000, 1),
            "sessions": self._sessions,
            "providers": {
                name: stats.snapshot()
                for name, stats in sorted(self._providers.items())
            },
            "probe": self._probe.snapshot(),
        }
