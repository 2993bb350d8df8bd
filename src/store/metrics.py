"""Metrics collection for the digest store."""

from dataclasses import dataclass, field
from typing import ClassVar


@dataclass
class StoreMetrics:
    """Metrics for digest store operations.

    Attributes:
        documents_upserted_total: Documents inserted or refreshed.
        track_matches_upserted_total: Track matches inserted or replaced.
        judgments_upserted_total: Relevance judgments inserted or replaced.
        deliveries_recorded_total: New daily ledger rows.
        deliveries_ignored_total: Daily ledger rows already present.
        weekly_recorded_total: New weekly ledger rows.
        db_tx_duration_ms: Cumulative transaction duration in milliseconds.
        db_tx_count: Number of committed transactions.
        db_tx_failed_count: Number of rolled back transactions.
    """

    documents_upserted_total: int = 0
    track_matches_upserted_total: int = 0
    judgments_upserted_total: int = 0
    deliveries_recorded_total: int = 0
    deliveries_ignored_total: int = 0
    weekly_recorded_total: int = 0
    db_tx_duration_ms: float = 0.0
    db_tx_count: int = 0
    db_tx_failed_count: int = 0

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

    def record_documents(self, count: int = 1) -> None:
        """Record upserted documents."""
        self.documents_upserted_total += count

    def record_track_matches(self, count: int = 1) -> None:
        """Record upserted track matches."""
        self.track_matches_upserted_total += count

    def record_judgments(self, count: int = 1) -> None:
        """Record upserted judgments."""
        self.judgments_upserted_total += count

    def record_deliveries(self, recorded: int, ignored: int) -> None:
        """Record a daily ledger write.

        Args:
            recorded: Rows newly inserted.
            ignored: Rows skipped because they already existed.
        """
        self.deliveries_recorded_total += recorded
        self.deliveries_ignored_total += ignored

    def record_weekly(self, count: int = 1) -> None:
        """Record new weekly ledger rows."""
        self.weekly_recorded_total += count

    def record_tx_duration(self, duration_ms: float) -> None:
        """Record a committed transaction.

        Args:
            duration_ms: Duration in milliseconds.
        """
        self.db_tx_duration_ms += duration_ms
        self.db_tx_count += 1

    def record_tx_failure(self) -> None:
        """Record a rolled back transaction."""
        self.db_tx_failed_count += 1

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
            "documents_upserted_total": self.documents_upserted_total,
            "track_matches_upserted_total": self.track_matches_upserted_total,
            "judgments_upserted_total": self.judgments_upserted_total,
            "deliveries_recorded_total": self.deliveries_recorded_total,
            "deliveries_ignored_total": self.deliveries_ignored_total,
            "weekly_recorded_total": self.weekly_recorded_total,
            "db_tx_duration_ms": self.db_tx_duration_ms,
            "db_tx_count": self.db_tx_count,
            "db_tx_failed_count": self.db_tx_failed_count,
        }


@dataclass
class TransactionContext:
    """Context for a single transaction with timing.

    Attributes:
        tx_id: Unique transaction identifier.
        start_time_ns: Start time in nanoseconds.
        operation: The operation being performed.
        affected_rows: Rows changed inside the transaction.
    """

    tx_id: str
    start_time_ns: int
    operation: str
    affected_rows: int = field(default=0)

    def add_affected_rows(self, rows: int) -> None:
        """Add to the affected row count.

        Args:
            rows: Number of rows affected.
        """
        self.affected_rows += rows
