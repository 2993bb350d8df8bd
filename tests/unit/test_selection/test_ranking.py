"""Unit tests for fused ranking."""

from datetime import timedelta

from src.selection.models import Candidate, JudgmentTier
from src.selection.ranking import (
    build_candidates,
    fused_key,
    passes_relevance_floor,
    rank_candidates,
)
from tests.helpers.factories import make_document, make_judgment, make_match
from tests.helpers.time import FIXED_NOW


def _candidate(
    document_id: str,
    score: int = 1,
    relevance: int | None = None,
    hours_ago: int = 0,
) -> Candidate:
    """Create a Candidate with an optional judgment."""
    return Candidate(
        match=make_match(
            document_id=document_id,
            score=score,
            matched_at=FIXED_NOW - timedelta(hours=hours_ago),
        ),
        document=make_document(document_id=document_id),
        judgment=(
            make_judgment(document_id=document_id, relevance=relevance)
            if relevance is not None
            else None
        ),
    )


class TestFusedKey:
    """Tests for the tagged ranking key."""

    def test_judged_tier_first(self) -> None:
        """The key starts with the judgment tier."""
        judged = fused_key(1, 0, FIXED_NOW, "a")
        unjudged = fused_key(None, 100, FIXED_NOW, "a")

        assert judged[0] == JudgmentTier.JUDGED
        assert unjudged[0] == JudgmentTier.UNJUDGED
        assert judged < unjudged

    def test_document_id_breaks_ties(self) -> None:
        """Otherwise identical keys order by document ID."""
        assert fused_key(3, 2, FIXED_NOW, "a") < fused_key(3, 2, FIXED_NOW, "b")


class TestRankCandidates:
    """Tests for rank_candidates."""

    def test_judgment_dominates_keyword_score(self) -> None:
        """Judged 5, 4, 3 precede an unjudged document with a higher score."""
        candidates = [
            _candidate("unjudged", score=50),
            _candidate("j3", score=1, relevance=3),
            _candidate("j5", score=1, relevance=5),
            _candidate("j4", score=2, relevance=4),
        ]

        ranked = rank_candidates(candidates)

        assert [c.document_id for c in ranked] == ["j5", "j4", "j3", "unjudged"]

    def test_judged_one_precedes_unjudged(self) -> None:
        """Even the lowest judgment outranks every unjudged document."""
        ranked = rank_candidates(
            [_candidate("unjudged", score=9), _candidate("j1", score=1, relevance=1)]
        )
        assert [c.document_id for c in ranked] == ["j1", "unjudged"]

    def test_higher_judgment_beats_higher_score(self) -> None:
        """Judged-4 precedes judged-2 even when the judged-2 score is far higher."""
        ranked = rank_candidates(
            [
                _candidate("j2", score=429, relevance=2),
                _candidate("j4", score=5, relevance=4),
            ]
        )
        assert [c.document_id for c in ranked] == ["j4", "j2"]

    def test_score_breaks_equal_judgments(self) -> None:
        """Among equal judgments the higher keyword score wins."""
        ranked = rank_candidates(
            [
                _candidate("low", score=1, relevance=4),
                _candidate("high", score=3, relevance=4),
            ]
        )
        assert [c.document_id for c in ranked] == ["high", "low"]

    def test_recency_breaks_equal_scores(self) -> None:
        """Among equal scores the most recent match wins."""
        ranked = rank_candidates(
            [_candidate("old", hours_ago=5), _candidate("new", hours_ago=1)]
        )
        assert [c.document_id for c in ranked] == ["new", "old"]

    def test_unjudged_ordered_by_score(self) -> None:
        """Unjudged documents are ranked by keyword score."""
        ranked = rank_candidates(
            [
                _candidate("a", score=1),
                _candidate("b", score=4),
                _candidate("c", score=2),
            ]
        )
        assert [c.document_id for c in ranked] == ["b", "c", "a"]

    def test_deterministic(self) -> None:
        """Ranking does not depend on input order."""
        candidates = [_candidate(f"d{i}", score=i % 3) for i in range(9)]
        forward = rank_candidates(candidates)
        backward = rank_candidates(list(reversed(candidates)))

        assert [c.document_id for c in forward] == [c.document_id for c in backward]


class TestBuildCandidates:
    """Tests for joining matches with documents and judgments."""

    def test_joins_by_document_id(self) -> None:
        """Each match picks up its document and judgment."""
        doc = make_document(document_id="a")
        judgment = make_judgment(document_id="a", relevance=4)
        candidates = build_candidates(
            [make_match(document_id="a"), make_match(document_id="b")],
            {"a": doc},
            {"a": judgment},
        )

        assert candidates[0].document == doc
        assert candidates[0].relevance == 4
        assert candidates[0].tier == JudgmentTier.JUDGED
        assert candidates[1].document is None
        assert candidates[1].relevance is None
        assert candidates[1].tier == JudgmentTier.UNJUDGED


class TestRelevanceFloor:
    """Tests for passes_relevance_floor."""

    def test_below_floor_rejected(self) -> None:
        """Judgments below the floor do not pass."""
        assert not passes_relevance_floor(_candidate("a", relevance=2), 3)

    def test_at_floor_passes(self) -> None:
        """The floor is inclusive."""
        assert passes_relevance_floor(_candidate("a", relevance=3), 3)

    def test_unjudged_always_passes(self) -> None:
        """The floor only applies to judged documents."""
        assert passes_relevance_floor(_candidate("a"), 5)

    def test_disabled_floor(self) -> None:
        """A None floor keeps every judgment."""
        assert passes_relevance_floor(_candidate("a", relevance=1), None)
