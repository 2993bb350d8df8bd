"""Data models for daily digest selection."""

from dataclasses import dataclass
from datetime import date, datetime
from enum import IntEnum
from typing import TYPE_CHECKING, Annotated

from pydantic import BaseModel, ConfigDict, Field

from src.store.models import Document, RelevanceJudgment, TrackMatch


if TYPE_CHECKING:
    from src.config.effective import EffectiveConfig


class JudgmentTier(IntEnum):
    """Partition of candidates by presence of a relevance judgment.

    Lower values rank first: every judged candidate precedes every
    unjudged one, whatever the judgment value.
    """

    JUDGED = 0
    UNJUDGED = 1


@dataclass(frozen=True)
class Candidate:
    """A (document, track) pair eligible for selection.

    Attributes:
        match: The persisted track match.
        document: The matched document, None if its record is missing.
        judgment: The document's relevance judgment, if any.
    """

    match: TrackMatch
    document: Document | None = None
    judgment: RelevanceJudgment | None = None

    @property
    def document_id(self) -> str:
        """Get the candidate's document ID."""
        return self.match.document_id

    @property
    def track_name(self) -> str:
        """Get the candidate's track name."""
        return self.match.track_name

    @property
    def tier(self) -> JudgmentTier:
        """Get the judgment tier."""
        return JudgmentTier.UNJUDGED if self.judgment is None else JudgmentTier.JUDGED

    @property
    def relevance(self) -> int | None:
        """Get the judgment value, None when unjudged."""
        return self.judgment.relevance if self.judgment is not None else None


@dataclass
class DroppedEntry:
    """Record of a candidate left out of a digest.

    Attributes:
        document_id: ID of the dropped document.
        track_name: Track the candidate belonged to.
        drop_reason: Why the candidate was dropped.
    """

    document_id: str
    track_name: str
    drop_reason: str


class SelectionOptions(BaseModel):
    """Limits applied by one selection pass.

    Attributes:
        max_items_per_digest: Global cap across every track.
        max_per_track: Default per-track cap.
        dedup_days: Trailing window in days, inclusive of both ends.
        relevance_floor: Judged documents below this value are left out.
            None, the default, keeps every judged document.
        track_caps: Per-track overrides of max_per_track.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_items_per_digest: Annotated[int, Field(ge=0)]
    max_per_track: Annotated[int, Field(ge=0)]
    dedup_days: Annotated[int, Field(ge=0)] = 7
    relevance_floor: Annotated[int | None, Field(ge=1, le=5)] = None
    track_caps: dict[str, int] = Field(default_factory=dict)

    def cap_for(self, track_name: str) -> int:
        """Get the per-track cap for a track."""
        return self.track_caps.get(track_name, self.max_per_track)

    @classmethod
    def from_config(cls, config: "EffectiveConfig") -> "SelectionOptions":
        """Build options from the effective configuration.

        Args:
            config: Effective configuration of the run.

        Returns:
            Options with per-track caps taken from the track definitions.
        """
        limits = config.app.limits
        return cls(
            max_items_per_digest=config.max_items_per_digest,
            max_per_track=limits.max_per_track_per_day,
            dedup_days=limits.dedup_days,
            relevance_floor=limits.relevance_floor,
            track_caps=config.tracks.track_caps(),
        )


class SelectedDocument(BaseModel):
    """A document placed in a digest under one track.

    Title, abstract and links are None when the document record or its
    metadata sidecar is unavailable.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    document_id: Annotated[str, Field(min_length=1)]
    track_name: Annotated[str, Field(min_length=1)]
    rank: Annotated[int, Field(ge=1, description="1-based position within the track")]
    title: str | None = None
    abstract: str | None = None
    updated_at: datetime | None = None
    score: Annotated[int, Field(ge=0, description="Keyword track-match score")]
    matched_terms: list[str] = Field(default_factory=list)
    relevance: int | None = None
    reasoning: str | None = None
    matched_at: datetime
    abs_url: str | None = None
    pdf_url: str | None = None


class DailySelection(BaseModel):
    """Result of a daily selection pass.

    Attributes:
        digest_date: Calendar date the digest is for.
        by_track: Track name to ranked documents, in visitation order.
            Tracks without items are absent.
        tracks_with_items: Number of non-empty tracks.
        items: Total number of selected documents.
        candidates_in: Number of (document, track) pairs considered.
        candidate_count: Distinct documents still eligible after dedup and
            the relevance floor, before any cap.
        dropped_dedup: Pairs dropped because the document was delivered
            inside the dedup window.
        dropped_floor: Pairs dropped by the relevance floor.
        dropped_cap: Pairs dropped by the per-track or global cap.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    digest_date: date
    by_track: dict[str, list[SelectedDocument]] = Field(default_factory=dict)
    tracks_with_items: Annotated[int, Field(ge=0)] = 0
    items: Annotated[int, Field(ge=0)] = 0
    candidates_in: Annotated[int, Field(ge=0)] = 0
    candidate_count: Annotated[int, Field(ge=0)] = 0
    dropped_dedup: Annotated[int, Field(ge=0)] = 0
    dropped_floor: Annotated[int, Field(ge=0)] = 0
    dropped_cap: Annotated[int, Field(ge=0)] = 0

    @property
    def is_empty(self) -> bool:
        """Check whether nothing was selected."""
        return self.items == 0

    def delivery_entries(self) -> list[tuple[str, str]]:
        """Get (document_id, track_name) pairs for the delivery ledger."""
        return [
            (doc.document_id, track)
            for track, docs in self.by_track.items()
            for doc in docs
        ]

    def filter_tracks(self, needle: str) -> "DailySelection":
        """Keep only tracks whose name contains needle, ignoring case.

        Candidate and drop counts still describe the whole pass.
        """
        wanted = needle.lower()
        by_track = {
            track: docs for track, docs in self.by_track.items() if wanted in track.lower()
        }
        return DailySelection(
            digest_date=self.digest_date,
            by_track=by_track,
            tracks_with_items=len(by_track),
            items=sum(len(docs) for docs in by_track.values()),
            candidates_in=self.candidates_in,
            candidate_count=self.candidate_count,
            dropped_dedup=self.dropped_dedup,
            dropped_floor=self.dropped_floor,
            dropped_cap=self.dropped_cap,
        )
