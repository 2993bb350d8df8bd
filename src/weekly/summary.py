"""Weekly overview: per-track activity, top documents and deep-dive status."""

from collections.abc import Callable, Iterable, Mapping

import structlog

from src.selection.links import DocumentLinks, resolve_links
from src.store.models import Document, RelevanceJudgment, TrackMatch, WeeklyDelivery
from src.store.store import StateStore
from src.weekly.calendar import as_utc, week_date_range
from src.weekly.models import (
    DeepDiveStatus,
    SummaryDocument,
    TrackWeekStats,
    WeeklySummary,
)
from src.weekly.shortlist import build_weekly_pool, rank_weekly_pool


logger = structlog.get_logger()

DEFAULT_TOP_DOCUMENTS = 5


def track_week_stats(
    matches: Iterable[TrackMatch],
    judgments: Mapping[str, RelevanceJudgment],
) -> list[TrackWeekStats]:
    """Fold matches into per-track stats.

    Returns:
        Stats ordered by document count, then top score, both descending,
        then track name.
    """
    by_track: dict[str, dict[str, int]] = {}
    for m in matches:
        scores = by_track.setdefault(m.track_name, {})
        scores[m.document_id] = max(scores.get(m.document_id, 0), m.score)

    stats = []
    for track, scores in by_track.items():
        judged = [judgments[d].relevance for d in scores if d in judgments]
        stats.append(
            TrackWeekStats(
                track_name=track,
                count=len(scores),
                top_score=max(scores.values()),
                top_relevance=max(judged) if judged else None,
            )
        )
    return sorted(stats, key=lambda s: (-s.count, -s.top_score, s.track_name))


def summarize_week(
    matches: Iterable[TrackMatch],
    documents: Mapping[str, Document],
    judgments: Mapping[str, RelevanceJudgment],
    weekly_deliveries: Iterable[WeeklyDelivery],
    week_iso: str,
    top_n: int = DEFAULT_TOP_DOCUMENTS,
    link_resolver: Callable[[str | None], DocumentLinks] = resolve_links,
) -> WeeklySummary:
    """Summarize one ISO week of matches.

    Unlike the deep-dive pool, documents picked in earlier weeks still
    count here. Top documents need a document record to show a title.

    Args:
        matches: Track matches.
        documents: Documents keyed by ID.
        judgments: Judgments keyed by document ID.
        weekly_deliveries: Weekly ledger rows.
        week_iso: ISO week, e.g. '2026-W07'.
        top_n: Maximum number of top documents.
        link_resolver: Resolves display links from a sidecar path.

    Returns:
        The week's summary.

    Raises:
        ValueError: If week_iso is malformed.
    """
    start, end = week_date_range(week_iso)
    in_week = [m for m in matches if start <= as_utc(m.matched_at) <= end]

    ranked = [
        e
        for e in rank_weekly_pool(build_weekly_pool(in_week, documents, judgments, week_iso))
        if e.document is not None
    ]
    top = [
        SummaryDocument(
            document_id=e.document_id,
            title=e.document.title,
            relevance=e.relevance,
            score=e.score,
            tracks=list(e.tracks),
            abs_url=link_resolver(e.document.meta_path).abs_url,
        )
        for e in ranked[: max(top_n, 0)]
        if e.document is not None
    ]

    deep_dive = DeepDiveStatus()
    sent = [d for d in weekly_deliveries if d.week_iso == week_iso]
    if sent:
        picked = documents.get(sent[0].document_id)
        deep_dive = DeepDiveStatus(
            sent=True,
            document_id=sent[0].document_id,
            title=picked.title if picked is not None else None,
        )

    return WeeklySummary(
        week_iso=week_iso,
        start=start.date(),
        end=end.date(),
        total_documents=len({m.document_id for m in in_week}),
        track_stats=track_week_stats(in_week, judgments),
        top_documents=top,
        deep_dive=deep_dive,
    )


def weekly_summary(
    store: StateStore,
    week_iso: str,
    top_n: int = DEFAULT_TOP_DOCUMENTS,
    link_resolver: Callable[[str | None], DocumentLinks] = resolve_links,
) -> WeeklySummary:
    """Summarize one ISO week from a store snapshot."""
    snapshot = store.load_snapshot()
    summary = summarize_week(
        snapshot.track_matches,
        snapshot.documents,
        snapshot.judgments,
        snapshot.weekly_deliveries,
        week_iso,
        top_n=top_n,
        link_resolver=link_resolver,
    )
    logger.info(
        "weekly_summary_complete",
        component="weekly",
        run_id=store.run_id,
        week_iso=week_iso,
        total_documents=summary.total_documents,
        tracks=len(summary.track_stats),
        deep_dive_sent=summary.deep_dive.sent,
    )
    return summary
