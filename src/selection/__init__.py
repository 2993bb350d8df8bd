"""Daily digest selection: fused ranking, dedup window and caps."""

from src.selection.dedup import dedup_window_start, filter_delivered, recently_delivered
from src.selection.links import DocumentLinks, resolve_links
from src.selection.metrics import SelectionMetrics
from src.selection.models import (
    Candidate,
    DailySelection,
    DroppedEntry,
    JudgmentTier,
    SelectedDocument,
    SelectionOptions,
)
from src.selection.quota import TrackQuota, apply_quotas_pure
from src.selection.ranking import (
    build_candidates,
    passes_relevance_floor,
    rank_candidates,
    rank_key,
)
from src.selection.selector import DailySelector, select_daily_pure


__all__ = [
    "Candidate",
    "DailySelection",
    "DailySelector",
    "DocumentLinks",
    "DroppedEntry",
    "JudgmentTier",
    "SelectedDocument",
    "SelectionMetrics",
    "SelectionOptions",
    "TrackQuota",
    "apply_quotas_pure",
    "build_candidates",
    "dedup_window_start",
    "filter_delivered",
    "passes_relevance_floor",
    "rank_candidates",
    "rank_key",
    "recently_delivered",
    "resolve_links",
    "select_daily_pure",
]
