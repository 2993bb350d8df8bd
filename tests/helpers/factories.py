"""Builders for store records used across tests."""

from datetime import date, datetime, timedelta

from src.config.schemas.tracks import TrackConfig
from src.store.models import (
    DeliveryRecord,
    Document,
    RelevanceJudgment,
    TrackMatch,
    WeeklyDelivery,
)
from tests.helpers.time import FIXED_NOW


def make_track(
    name: str = "agents",
    phrases: list[str] | None = None,
    keywords: list[str] | None = None,
    exclude: list[str] | None = None,
    threshold: int = 0,
    max_per_day: int | None = None,
    enabled: bool = True,
    categories: list[str] | None = None,
) -> TrackConfig:
    """Create a test TrackConfig."""
    return TrackConfig(
        name=name,
        enabled=enabled,
        categories=categories or [],
        phrases=phrases if phrases is not None else [],
        keywords=keywords if keywords is not None else ["agent"],
        exclude=exclude or [],
        threshold=threshold,
        max_per_day=max_per_day,
    )


def make_document(
    document_id: str = "2602.00001",
    title: str = "Test Paper",
    abstract: str = "An abstract.",
    updated_at: datetime | None = None,
    meta_path: str | None = None,
    categories: list[str] | None = None,
) -> Document:
    """Create a test Document."""
    return Document(
        document_id=document_id,
        title=title,
        abstract=abstract,
        authors=["A. Author"],
        categories=categories or ["cs.CL"],
        published_at=FIXED_NOW - timedelta(days=1),
        updated_at=updated_at or FIXED_NOW,
        meta_path=meta_path,
    )


def make_match(
    document_id: str = "2602.00001",
    track_name: str = "agents",
    score: int = 1,
    matched_at: datetime | None = None,
    matched_terms: list[str] | None = None,
) -> TrackMatch:
    """Create a test TrackMatch."""
    return TrackMatch(
        document_id=document_id,
        track_name=track_name,
        score=score,
        matched_terms=matched_terms or ["agent"],
        matched_at=matched_at or FIXED_NOW,
    )


def make_judgment(
    document_id: str = "2602.00001",
    relevance: int = 3,
    reasoning: str = "",
    model: str = "test-judge",
) -> RelevanceJudgment:
    """Create a test RelevanceJudgment."""
    return RelevanceJudgment(
        document_id=document_id,
        relevance=relevance,
        reasoning=reasoning,
        model=model,
        scored_at=FIXED_NOW,
    )


def make_delivery(
    document_id: str = "2602.00001",
    digest_date: date | None = None,
    track_name: str = "agents",
) -> DeliveryRecord:
    """Create a test DeliveryRecord."""
    return DeliveryRecord(
        document_id=document_id,
        digest_date=digest_date or FIXED_NOW.date(),
        track_name=track_name,
        sent_at=FIXED_NOW,
    )


def make_weekly_delivery(
    week_iso: str = "2026-W06",
    document_id: str = "2602.00001",
) -> WeeklyDelivery:
    """Create a test WeeklyDelivery."""
    return WeeklyDelivery(
        week_iso=week_iso, document_id=document_id, sent_at=FIXED_NOW
    )
