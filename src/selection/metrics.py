"""Metrics collection for digest selection."""

from dataclasses import dataclass
from typing import ClassVar


@dataclass
class SelectionMetrics:
    """Metrics for selection passes.

    Attributes:
        candidates_in: Candidate pairs considered by the last pass.
        items_out: Documents selected by the last pass.
        dropped_dedup_total: Pairs dropped by the dedup window.
        dropped_floor_total: Pairs dropped by the relevance floor.
        dropped_cap_total: Pairs dropped by per-track or global caps.
        missing_documents_total: Matches selected without a document record.
        selection_duration_ms: Duration of the last pass.
    """

    candidates_in: int = 0
    items_out: int = 0
    dropped_dedup_total: int = 0
    dropped_floor_total: int = 0
    dropped_cap_total: int = 0
    missing_documents_total: int = 0
    selection_duration_ms: float = 0.0

    _instance: ClassVar["SelectionMetrics | None"] = None

    @classmethod
    def get_instance(cls) -> "SelectionMetrics":
        """Get singleton metrics instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        cls._instance = None

    def record_pass(self, candidates_in: int, items_out: int) -> None:
        """Record the sizes of a selection pass.

        Args:
            candidates_in: Number of candidate pairs.
            items_out: Number of selected documents.
        """
        self.candidates_in = candidates_in
        self.items_out = items_out

    def record_drops(self, dedup: int, floor: int, cap: int) -> None:
        """Record dropped candidates by reason."""
        self.dropped_dedup_total += dedup
        self.dropped_floor_total += floor
        self.dropped_cap_total += cap

    def record_missing_documents(self, count: int) -> None:
        """Record selected matches lacking a document record."""
        self.missing_documents_total += count

    def record_duration(self, duration_ms: float) -> None:
        """Record selection duration.

        Args:
            duration_ms: Duration in milliseconds.
        """
        self.selection_duration_ms = duration_ms

    def to_dict(self) -> dict[str, float | int]:
        """Convert metrics to dictionary.

        Returns:
            Dictionary of metric name to value.
        """
        return {
            "candidates_in": self.candidates_in,
            "items_out": self.items_out,
            "dropped_dedup_total": self.dropped_dedup_total,
            "dropped_floor_total": self.dropped_floor_total,
            "dropped_cap_total": self.dropped_cap_total,
            "missing_documents_total": self.missing_documents_total,
            "selection_duration_ms": self.selection_duration_ms,
        }
