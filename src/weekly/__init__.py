"""Weekly deep dive: ISO week calendar, shortlist, pick, related list and summary."""

from src.weekly.calendar import as_utc, iso_week, parse_iso_week, week_date_range
from src.weekly.models import (
    WEEKLY_SECTIONS,
    DeepDiveStatus,
    RelatedDocument,
    RelatedDocuments,
    SummaryDocument,
    TrackWeekStats,
    WeeklyCandidate,
    WeeklyPlan,
    WeeklyPoolEntry,
    WeeklySummary,
)
from src.weekly.shortlist import (
    WeeklySelector,
    build_weekly_pool,
    rank_weekly_pool,
    related_documents,
    select_weekly_pick,
    select_weekly_shortlist,
)
from src.weekly.summary import summarize_week, track_week_stats, weekly_summary


__all__ = [
    "WEEKLY_SECTIONS",
    "DeepDiveStatus",
    "RelatedDocument",
    "RelatedDocuments",
    "SummaryDocument",
    "TrackWeekStats",
    "WeeklyCandidate",
    "WeeklyPlan",
    "WeeklyPoolEntry",
    "WeeklySelector",
    "WeeklySummary",
    "as_utc",
    "build_weekly_pool",
    "iso_week",
    "parse_iso_week",
    "rank_weekly_pool",
    "related_documents",
    "select_weekly_pick",
    "select_weekly_shortlist",
    "summarize_week",
    "track_week_stats",
    "week_date_range",
    "weekly_summary",
]
