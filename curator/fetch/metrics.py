"""Metrics collection for the article fetch layer."""

import threading
from dataclasses import dataclass, field
from typing import ClassVar

from curator.fetch.models import FetchFailureReason


@dataclass
class FetchMetrics:
    """Metrics for article fetch operations.

    Singleton shared by fetch worker threads; every mutation holds a lock.
    """

    fetch_attempts_total: int = 0
    fetch_success_total: int = 0
    fetch_failures_total: dict[str, int] = field(default_factory=dict)
    fetch_bytes_total: int = 0
    fetch_duration_ms_total: float = 0.0
    robots_fetches_total: int = 0
    robots_cache_hits_total: int = 0

    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    _instance: ClassVar["FetchMetrics | None"] = None

    @classmethod
    def get_instance(cls) -> "FetchMetrics":
        """Get singleton metrics instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        cls._instance = None

    def record_attempt(self) -> None:
        """Record a candidate entering the fetcher."""
        with self._lock:
            self.fetch_attempts_total += 1

    def record_success(self, bytes_received: int, duration_ms: float) -> None:
        """Record a successful fetch.

        Args:
            bytes_received: Body size in bytes.
            duration_ms: Time spent on the article.
        """
        with self._lock:
            self.fetch_success_total += 1
            self.fetch_bytes_total += bytes_received
            self.fetch_duration_ms_total += duration_ms

    def record_failure(self, reason: FetchFailureReason) -> None:
        """Record a failed fetch.

        Args:
            reason: Classification of the failure.
        """
        with self._lock:
            key = reason.value
            self.fetch_failures_total[key] = self.fetch_failures_total.get(key, 0) + 1

    def record_robots_fetch(self) -> None:
        """Record a robots.txt download."""
        with self._lock:
            self.robots_fetches_total += 1

    def record_robots_cache_hit(self) -> None:
        """Record a robots.txt cache hit."""
        with self._lock:
            self.robots_cache_hits_total += 1

    def to_dict(self) -> dict[str, int | float | dict[str, int]]:
        """Convert metrics to dictionary.

        Returns:
            Dictionary of metric name to value.
        """
        with self._lock:
            return {
                "fetch_attempts_total": self.fetch_attempts_total,
                "fetch_success_total": self.fetch_success_total,
                "fetch_failures_total": dict(self.fetch_failures_total),
                "fetch_bytes_total": self.fetch_bytes_total,
                "fetch_duration_ms_total": self.fetch_duration_ms_total,
                "robots_fetches_total": self.robots_fetches_total,
                "robots_cache_hits_total": self.robots_cache_hits_total,
            }
