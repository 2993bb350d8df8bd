"""Data models exchanged with the external relevance judge."""

from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from src.store.models import RelevanceJudgment


DEFAULT_JUDGE_MODEL = "unknown"


class UnscoredDocument(BaseModel):
    """A matched document still waiting for a relevance judgment.

    Attributes:
        document_id: Document identifier.
        title: Document title.
        abstract: Document abstract.
        keyword_score: Highest track-match score across all tracks.
        tracks: Every track the document matched.
        updated_at: Document version timestamp.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    document_id: Annotated[str, Field(min_length=1)]
    title: str
    abstract: str
    keyword_score: Annotated[int, Field(ge=0)]
    tracks: list[str] = Field(default_factory=list)
    updated_at: datetime


class ScorePlan(BaseModel):
    """Work list handed to the external judge."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    documents: list[UnscoredDocument] = Field(default_factory=list)
    already_scored: Annotated[int, Field(ge=0)] = 0


class JudgmentInput(BaseModel):
    """One judgment as submitted by the external judge."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    document_id: Annotated[str, Field(min_length=1)]
    relevance: Annotated[int, Field(ge=1, le=5)]
    reasoning: str = ""
    model: str | None = None


class JudgmentBatch(BaseModel):
    """A batch of judgments, recorded atomically."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    scores: list[JudgmentInput] = Field(default_factory=list)

    def to_judgments(
        self, scored_at: datetime, default_model: str = DEFAULT_JUDGE_MODEL
    ) -> list[RelevanceJudgment]:
        """Convert the batch into store judgments.

        Args:
            scored_at: Timestamp stamped on every judgment.
            default_model: Judge label used when an entry has none.

        Returns:
            Judgments in submission order.
        """
        return [
            RelevanceJudgment(
                document_id=s.document_id,
                relevance=s.relevance,
                reasoning=s.reasoning,
                model=s.model or default_model,
                scored_at=scored_at,
            )
            for s in self.scores
        ]
