"""Fused ranking of keyword matches and relevance judgments.

The ranking key is a tagged comparison rather than a numeric fusion:

1. Judged before unjudged; judged candidates by judgment value, descending.
2. Keyword track-match score, descending.
3. Match timestamp, most recent first.
4. Document ID, ascending, so that equal keys still sort deterministically.

An unjudged document never outranks a judged one, even a judged-1 document
with a lower keyword score.
"""

from collections.abc import Iterable, Mapping
from datetime import datetime

from src.selection.models import Candidate, JudgmentTier
from src.store.models import Document, RelevanceJudgment, TrackMatch


RankKey = tuple[int, int, int, float, str]


def fused_key(
    relevance: int | None, score: int, matched_at: datetime, document_id: str
) -> RankKey:
    """Build the ascending sort key for one ranked item.

    Args:
        relevance: Judgment value, None when unjudged.
        score: Keyword track-match score.
        matched_at: Match timestamp.
        document_id: Document identifier.

    Returns:
        Tuple usable with sorted(), highest-ranked first.
    """
    if relevance is None:
        return (JudgmentTier.UNJUDGED, 0, -score, -matched_at.timestamp(), document_id)
    return (JudgmentTier.JUDGED, -relevance, -score, -matched_at.timestamp(), document_id)


def rank_key(candidate: Candidate) -> RankKey:
    """Sort key placing the highest-ranked candidate first."""
    return fused_key(
        candidate.relevance,
        candidate.match.score,
        candidate.match.matched_at,
        candidate.document_id,
    )


def rank_candidates(candidates: Iterable[Candidate]) -> list[Candidate]:
    """Sort candidates by the fused ranking key, highest first."""
    return sorted(candidates, key=rank_key)


def build_candidates(
    matches: Iterable[TrackMatch],
    documents: Mapping[str, Document],
    judgments: Mapping[str, RelevanceJudgment],
) -> list[Candidate]:
    """Join track matches with their documents and judgments.

    A match whose document record is missing is kept with document=None.

    Args:
        matches: Track matches.
        documents: Documents keyed by ID.
        judgments: Judgments keyed by document ID.

    Returns:
        One candidate per match, in input order.
    """
    return [
        Candidate(
            match=m,
            document=documents.get(m.document_id),
            judgment=judgments.get(m.document_id),
        )
        for m in matches
    ]


def passes_relevance_floor(candidate: Candidate, floor: int | None) -> bool:
    """Check a candidate against the relevance floor.

    Unjudged candidates always pass; the floor only applies to judgments.

    Args:
        candidate: Candidate to check.
        floor: Minimum judgment value, or None to disable.

    Returns:
        True if the candidate may be delivered.
    """
    if floor is None or candidate.relevance is None:
        return True
    return candidate.relevance >= floor
