"""Data models for the digest store relations."""

from datetime import UTC, date, datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Document(BaseModel):
    """An ingested paper.

    Immutable once ingested, except that re-discovery refreshes the
    version timestamp through an upsert on document_id.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    document_id: Annotated[str, Field(min_length=1, description="Stable identifier")]
    title: str = Field(default="", description="Paper title")
    abstract: str = Field(default="", description="Abstract or summary text")
    authors: list[str] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)
    published_at: datetime | None = Field(default=None)
    updated_at: datetime = Field(default_factory=_utcnow)
    meta_path: str | None = Field(
        default=None, description="JSON sidecar holding display links"
    )


class TrackMatch(BaseModel):
    """Result of matching one document against one track.

    Keyed by (document_id, track_name); re-matching replaces the score,
    terms and timestamp.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    document_id: Annotated[str, Field(min_length=1)]
    track_name: Annotated[str, Field(min_length=1)]
    score: Annotated[int, Field(ge=0)]
    matched_terms: list[str] = Field(default_factory=list)
    matched_at: datetime = Field(default_factory=_utcnow)


class RelevanceJudgment(BaseModel):
    """External relevance judgment for a document (at most one per document)."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    document_id: Annotated[str, Field(min_length=1)]
    relevance: Annotated[int, Field(ge=1, le=5, description="1 (off-topic) .. 5")]
    reasoning: str = ""
    model: str = Field(default="unknown", description="Label of the judging oracle")
    scored_at: datetime = Field(default_factory=_utcnow)


class DeliveryRecord(BaseModel):
    """One document delivered in a daily digest under one track."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    document_id: Annotated[str, Field(min_length=1)]
    digest_date: date
    track_name: Annotated[str, Field(min_length=1)]
    sent_at: datetime = Field(default_factory=_utcnow)


class WeeklyDelivery(BaseModel):
    """A document delivered as the weekly deep dive."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    week_iso: Annotated[str, Field(pattern=r"^\d{4}-W\d{2}$")]
    document_id: Annotated[str, Field(min_length=1)]
    sent_at: datetime = Field(default_factory=_utcnow)
    sections: list[str] = Field(default_factory=list)


class Run(BaseModel):
    """Run tracking record."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    run_id: Annotated[str, Field(min_length=1, description="Unique run identifier")]
    kind: Annotated[str, Field(min_length=1, description="Run kind, e.g. 'ingest'")]
    started_at: datetime = Field(default_factory=_utcnow)
    finished_at: datetime | None = Field(default=None)
    success: bool | None = Field(default=None)
    error_summary: str | None = Field(default=None)
    stats: dict[str, int] = Field(default_factory=dict)


class StoreSnapshot(BaseModel):
    """Materialized copy of every relation a selection pass reads.

    Selection is a pure function of one snapshot plus options.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    documents: dict[str, Document] = Field(default_factory=dict)
    track_matches: list[TrackMatch] = Field(default_factory=list)
    judgments: dict[str, RelevanceJudgment] = Field(default_factory=dict)
    deliveries: list[DeliveryRecord] = Field(default_factory=list)
    weekly_deliveries: list[WeeklyDelivery] = Field(default_factory=list)

    @field_validator("track_matches")
    @classmethod
    def validate_unique_pairs(cls, v: list[TrackMatch]) -> list[TrackMatch]:
        """Ensure (document_id, track_name) pairs are unique."""
        pairs = {(m.document_id, m.track_name) for m in v}
        if len(pairs) != len(v):
            msg = "Duplicate (document_id, track_name) pair in track matches"
            raise ValueError(msg)
        return v
