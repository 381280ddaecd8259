"""Metrics collection for API usage and per-record outcomes."""

from abc import ABC, abstractmethod
from collections import Counter, defaultdict
from typing import Any

import structlog

logger = structlog.get_logger(__name__)


class MetricsBackend(ABC):
    """Abstract base class for metrics backends."""

    @abstractmethod
    def increment(self, name: str, value: int = 1, tags: dict[str, str] | None = None) -> None:
        pass

    @abstractmethod
    def gauge(self, name: str, value: float, tags: dict[str, str] | None = None) -> None:
        pass

    @abstractmethod
    def timing(self, name: str, value: float, tags: dict[str, str] | None = None) -> None:
        pass


class LoggerBackend(MetricsBackend):
    """
    In-memory backend that aggregates stats for the run report.
    """

    def __init__(self) -> None:
        self.counters: Counter[str] = Counter()
        self.gauges: dict[str, float] = {}
        self.timings: dict[str, list[float]] = defaultdict(list)

    def increment(self, name: str, value: int = 1, tags: dict[str, str] | None = None) -> None:
        self.counters[self._format_key(name, tags)] += value

    def gauge(self, name: str, value: float, tags: dict[str, str] | None = None) -> None:
        # Last value wins
        self.gauges[self._format_key(name, tags)] = value

    def timing(self, name: str, value: float, tags: dict[str, str] | None = None) -> None:
        self.timings[self._format_key(name, tags)].append(value)

    def _format_key(self, name: str, tags: dict[str, str] | None) -> str:
        if not tags:
            return name
        tag_str = ",".join(f"{k}={v}" for k, v in sorted(tags.items()))
        return f"{name}[{tag_str}]"

    def get_summary(self) -> dict[str, Any]:
        """Return counters, gauges and timing aggregates."""
        summary: dict[str, Any] = {
            "counters": dict(self.counters),
            "gauges": dict(self.gauges),
            "timings": {},
        }
        for name, values in self.timings.items():
            if values:
                summary["timings"][name] = {
                    "count": len(values),
                    "avg": sum(values) / len(values),
                    "min": min(values),
                    "max": max(values),
                }
        return summary

    def reset(self) -> None:
        self.counters.clear()
        self.gauges.clear()
        self.timings.clear()


class MetricsCollector:
    """
    Central collector for migration metrics.
    """

    def __init__(self, backend: str = "logger") -> None:
        """
        Initialize Metrics Collector.

        Args:
            backend: Backend type to use. Only "logger" is supported.
        """
        self.backend: LoggerBackend
        if backend != "logger":
            logger.warning("Unknown metrics backend, defaulting to 'logger'", backend=backend)
        self.backend = LoggerBackend()

    def count_request(self, operation: str) -> None:
        """Record one GraphQL request."""
        self.backend.increment("graphql_requests_total", tags={"operation": operation})

    def record_latency(self, duration_ms: float) -> None:
        """Record GraphQL request latency."""
        self.backend.timing("graphql_latency_ms", duration_ms)

    def count_throttle(self) -> None:
        """Record a throttled response."""
        self.backend.increment("graphql_throttled_total")

    def update_available_cost(self, available: float) -> None:
        """Track the remaining query cost budget."""
        self.backend.gauge("graphql_available_cost", available)

    def count_outcome(self, phase: str, outcome: str) -> None:
        """Record a per-record outcome (created, updated, skipped, failed)."""
        self.backend.increment("record_outcome_total", tags={"phase": phase, "outcome": outcome})

    def count_resolution(self, kind: str, outcome: str) -> None:
        """Record a reference resolution (resolved, unresolved, passthrough)."""
        self.backend.increment(
            "reference_resolution_total", tags={"kind": kind, "outcome": outcome}
        )

    def get_summary(self) -> dict[str, Any]:
        return self.backend.get_summary()


# Singleton instance
_GLOBAL_COLLECTOR: MetricsCollector | None = None


def get_global_collector() -> MetricsCollector:
    """Get or create the global metrics collector."""
    global _GLOBAL_COLLECTOR
    if _GLOBAL_COLLECTOR is None:
        _GLOBAL_COLLECTOR = MetricsCollector()
    return _GLOBAL_COLLECTOR
