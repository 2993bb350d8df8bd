"""Data models for the weekly deep dive."""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from src.store.models import Document, RelevanceJudgment


WEEKLY_SECTIONS: tuple[str, ...] = (
    "header",
    "tldr",
    "key_ideas",
    "how_it_works",
    "why_it_matters",
    "related",
)


@dataclass
class WeeklyPoolEntry:
    """One document of a week's candidate pool, aggregated over tracks.

    Attributes:
        document_id: Document identifier.
        document: Document record, None if missing.
        score: Highest keyword score across the document's tracks.
        matched_at: Most recent match timestamp inside the week.
        tracks: Matched tracks, best-scoring first.
        judgment: Relevance judgment, if any.
    """

    document_id: str
    document: Document | None
    score: int
    matched_at: datetime
    tracks: list[str] = field(default_factory=list)
    judgment: RelevanceJudgment | None = None

    @property
    def relevance(self) -> int | None:
        """Get the judgment value, None when unjudged."""
        return self.judgment.relevance if self.judgment is not None else None


class WeeklyCandidate(BaseModel):
    """A ranked weekly candidate."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    rank: Annotated[int, Field(ge=1)]
    document_id: Annotated[str, Field(min_length=1)]
    title: str | None = None
    authors: list[str] = Field(default_factory=list)
    abstract: str | None = None
    score: Annotated[int, Field(ge=0)]
    tracks: list[str] = Field(default_factory=list)
    relevance: int | None = None
    abs_url: str | None = None
    pdf_url: str | None = None


class RelatedDocument(BaseModel):
    """A document listed next to the weekly pick."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    document_id: Annotated[str, Field(min_length=1)]
    title: str | None = None
    score: Annotated[int, Field(ge=0)]
    tracks: list[str] = Field(default_factory=list)
    relevance: int | None = None


class RelatedDocuments(BaseModel):
    """Related documents with the count left out for display.

    Attributes:
        items: At most `limit` related documents, best first.
        remaining: Related documents beyond `items`.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    items: list[RelatedDocument] = Field(default_factory=list)
    remaining: Annotated[int, Field(ge=0)] = 0


class WeeklyPlan(BaseModel):
    """Everything a caller needs to render one week's deep dive.

    Attributes:
        week_iso: ISO week, e.g. '2026-W07'.
        already_sent: Whether the week's deep dive was already delivered.
        shortlist: Ranked candidates offered for the human pick.
        pick: The chosen document, None for a quiet week.
        related: Other documents of the week, excluding the pick.
        sections: Section names of the deep-dive message.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    week_iso: Annotated[str, Field(pattern=r"^\d{4}-W\d{2}$")]
    already_sent: bool = False
    shortlist: list[WeeklyCandidate] = Field(default_factory=list)
    pick: WeeklyCandidate | None = None
    related: RelatedDocuments = Field(default_factory=RelatedDocuments)
    sections: list[str] = Field(default_factory=lambda: list(WEEKLY_SECTIONS))

    @property
    def is_quiet_week(self) -> bool:
        """Check whether the week had no candidates at all."""
        return self.pick is None


class TrackWeekStats(BaseModel):
    """One track's activity over a week.

    Attributes:
        track_name: Track name.
        count: Distinct documents matched to the track.
        top_score: Highest keyword score in the track.
        top_relevance: Highest judgment among those documents, if any.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    track_name: Annotated[str, Field(min_length=1)]
    count: Annotated[int, Field(ge=0)]
    top_score: Annotated[int, Field(ge=0)]
    top_relevance: int | None = None


class SummaryDocument(BaseModel):
    """A highlighted document of the weekly summary."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    document_id: Annotated[str, Field(min_length=1)]
    title: str
    relevance: int | None = None
    score: Annotated[int, Field(ge=0)]
    tracks: list[str] = Field(default_factory=list)
    abs_url: str | None = None


class DeepDiveStatus(BaseModel):
    """Whether the week's deep dive went out, and which document."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    sent: bool = False
    document_id: str | None = None
    title: str | None = None


class WeeklySummary(BaseModel):
    """Overview of one ISO week.

    Attributes:
        week_iso: ISO week, e.g. '2026-W07'.
        start: Monday of the week.
        end: Sunday of the week.
        total_documents: Distinct documents matched during the week.
        track_stats: Per-track breakdown, busiest first.
        top_documents: Best documents of the week by the fused ranking.
        deep_dive: Delivery status of the week's deep dive.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    week_iso: Annotated[str, Field(pattern=r"^\d{4}-W\d{2}$")]
    start: date
    end: date
    total_documents: Annotated[int, Field(ge=0)] = 0
    track_stats: list[TrackWeekStats] = Field(default_factory=list)
    top_documents: list[SummaryDocument] = Field(default_factory=list)
    deep_dive: DeepDiveStatus = Field(default_factory=DeepDiveStatus)
