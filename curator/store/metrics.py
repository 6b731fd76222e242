"""Metrics collection for the discovery store."""

from dataclasses import dataclass, field
from typing import ClassVar


@dataclass
class StoreMetrics:
    """Metrics for discovery store operations.

    Attributes:
        articles_inserted_total: Articles inserted by curation.
        duplicates_total: Candidates rejected as duplicates.
        discovery_update_failures_total: Interest statistics updates rolled back.
        affinity_updates_total: Topic affinity rows written.
        interactions_total: Interaction events appended.
        scores_written_total: Article rows scored by the ranker.
        briefings_pruned_total: Briefings removed by retention.
        db_tx_duration_ms: Cumulative transaction duration in milliseconds.
        db_tx_count: Number of committed transactions.
    """

    articles_inserted_total: int = 0
    duplicates_total: int = 0
    discovery_update_failures_total: int = 0
    affinity_updates_total: int = 0
    interactions_total: int = 0
    scores_written_total: int = 0
    briefings_pruned_total: int = 0
    db_tx_duration_ms: float = 0.0
    db_tx_count: int = 0

    _instance: ClassVar["StoreMetrics | None"] = None

    @classmethod
    def get_instance(cls) -> "StoreMetrics":
        """Get singleton metrics instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        cls._instance = None

    def record_inserts(self, count: int) -> None:
        """Record inserted articles."""
        self.articles_inserted_total += count

    def record_duplicates(self, count: int) -> None:
        """Record duplicate candidates."""
        self.duplicates_total += count

    def record_discovery_update_failure(self) -> None:
        """Record a rolled-back discovery statistics update."""
        self.discovery_update_failures_total += 1

    def record_affinity_updates(self, count: int) -> None:
        """Record affinity rows written."""
        self.affinity_updates_total += count

    def record_interaction(self) -> None:
        """Record an appended interaction."""
        self.interactions_total += 1

    def record_scores(self, count: int) -> None:
        """Record scored article rows."""
        self.scores_written_total += count

    def record_briefings_pruned(self, count: int) -> None:
        """Record pruned briefings."""
        self.briefings_pruned_total += count

    def record_tx_duration(self, duration_ms: float) -> None:
        """Record transaction duration.

        Args:
            duration_ms: Duration in milliseconds.
        """
        self.db_tx_duration_ms += duration_ms
        self.db_tx_count += 1

    @property
    def avg_tx_duration_ms(self) -> float:
        """Average committed transaction duration in milliseconds."""
        if self.db_tx_count == 0:
            return 0.0
        return self.db_tx_duration_ms / self.db_tx_count

    def to_dict(self) -> dict[str, float | int]:
        """Convert metrics to dictionary.

        Returns:
            Dictionary of metric name to value.
        """
        return {
            "articles_inserted_total": self.articles_inserted_total,
            "duplicates_total": self.duplicates_total,
            "discovery_update_failures_total": self.discovery_update_failures_total,
            "affinity_updates_total": self.affinity_updates_total,
            "interactions_total": self.interactions_total,
            "scores_written_total": self.scores_written_total,
            "briefings_pruned_total": self.briefings_pruned_total,
            "db_tx_duration_ms": self.db_tx_duration_ms,
            "db_tx_count": self.db_tx_count,
        }


@dataclass
class TransactionContext:
    """Context for a single transaction with timing.

    Attributes:
        tx_id: Unique transaction identifier.
        start_time_ns: Start time in nanoseconds.
        operation: The operation being performed.
    """

    tx_id: str
    start_time_ns: int
    operation: str
    affected_rows: int = field(default=0)

    def add_affected_rows(self, rows: int) -> None:
        """Add to the affected row count."""
        self.affected_rows += rows
