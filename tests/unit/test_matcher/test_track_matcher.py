"""Unit tests for track keyword matching."""

from datetime import timedelta

import pytest

from src.matcher.track_matcher import (
    KEYWORD_WEIGHT,
    PHRASE_WEIGHT,
    TrackMatcher,
    match_track,
    normalize_text,
)
from tests.helpers.factories import make_document, make_track
from tests.helpers.time import FIXED_NOW


class TestNormalizeText:
    """Tests for text normalization."""

    def test_lowercases_and_collapses_whitespace(self) -> None:
        """Runs of whitespace become one space and case is folded."""
        assert normalize_text("  Tool\tUse \n\n Agents ") == "tool use agents"

    def test_empty(self) -> None:
        """Empty text stays empty."""
        assert normalize_text("") == ""


class TestMatchTrack:
    """Tests for match_track scoring."""

    def test_phrase_scores_three(self) -> None:
        """A phrase hit is worth three points."""
        track = make_track(phrases=["tool use"], keywords=[])
        result = match_track(track, "Better Tool  Use for LLMs", "")

        assert result.score == PHRASE_WEIGHT
        assert result.matched_terms == ["tool use"]

    def test_keyword_is_whole_word(self) -> None:
        """Keyword 'rag' matches 'RAG is cool' but not 'Ragtime music'."""
        track = make_track(keywords=["rag"])

        assert match_track(track, "RAG is cool", "").score == KEYWORD_WEIGHT
        assert match_track(track, "Ragtime music", "").score == 0

    def test_keyword_boundary_is_non_alphanumeric(self) -> None:
        """Punctuation and hyphens count as word boundaries."""
        track = make_track(keywords=["rag"])

        assert match_track(track, "A rag-based pipeline", "").score == 1
        assert match_track(track, "(RAG)", "").score == 1
        assert match_track(track, "rag2vec", "").score == 0

    def test_keyword_with_regex_characters(self) -> None:
        """Keywords are matched literally."""
        track = make_track(keywords=["c++"])

        assert match_track(track, "Agents written in C++ today", "").score == 1
        assert match_track(track, "Agents written in c today", "").score == 0

    def test_phrases_and_keywords_add_up(self) -> None:
        """Score is the sum of every phrase and keyword hit."""
        track = make_track(
            phrases=["tool use", "function calling"], keywords=["agent", "llm"]
        )
        result = match_track(
            track,
            "LLM agent with tool use",
            "We study function calling.",
        )

        assert result.score == 2 * PHRASE_WEIGHT + 2 * KEYWORD_WEIGHT
        assert result.matched_terms == ["tool use", "function calling", "agent", "llm"]

    def test_title_and_body_are_joined(self) -> None:
        """A phrase can span the title and the body."""
        track = make_track(phrases=["tool use"], keywords=[])
        result = match_track(track, "Learning tool", "use in agents")
        assert result.score == PHRASE_WEIGHT

    def test_exclusion_dominates(self) -> None:
        """An exclusion hit zeroes the score even when terms match."""
        track = make_track(
            phrases=["tool use"], keywords=["agent"], exclude=["reinforcement"]
        )
        result = match_track(
            track, "Agent tool use", "A Reinforcement learning study."
        )

        assert result.score == 0
        assert result.matched_terms == []

    def test_empty_terms_are_skipped(self) -> None:
        """Blank phrases, keywords and exclusions never match."""
        track = make_track(phrases=["  "], keywords=["agent", ""], exclude=[""])
        result = match_track(track, "An agent", "")

        assert result.score == 1
        assert result.matched_terms == ["agent"]

    def test_duplicate_terms_reported_once(self) -> None:
        """Matched terms are deduplicated in insertion order."""
        track = make_track(phrases=["agent"], keywords=["agent"])
        result = match_track(track, "An agent", "")

        assert result.score == PHRASE_WEIGHT + KEYWORD_WEIGHT
        assert result.matched_terms == ["agent"]

    def test_empty_input_scores_zero(self) -> None:
        """Empty title and body score zero."""
        track = make_track(phrases=["tool use"], keywords=["agent"])
        result = match_track(track, "", "")

        assert result.score == 0
        assert result.matched_terms == []

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("agents", 0),
            ("agent", 1),
            ("AGENT.", 1),
            ("multi-agent", 1),
            ("reagent", 0),
        ],
    )
    def test_keyword_boundaries(self, text: str, expected: int) -> None:
        """Whole-word semantics for a single keyword."""
        track = make_track(keywords=["agent"])
        assert match_track(track, text, "").score == expected


class TestTrackMatcher:
    """Tests for the run-level TrackMatcher."""

    def test_skips_disabled_tracks(self) -> None:
        """Disabled tracks never produce matches."""
        tracks = [
            make_track(name="on", keywords=["agent"]),
            make_track(name="off", keywords=["agent"], enabled=False),
        ]
        matcher = TrackMatcher(tracks)

        matches = matcher.match_document(make_document(title="An agent"), FIXED_NOW)

        assert matcher.track_count == 1
        assert [m.track_name for m in matches] == ["on"]

    def test_threshold_filters_weak_matches(self) -> None:
        """Matches below the track threshold are not emitted."""
        matcher = TrackMatcher([make_track(keywords=["agent", "tool"], threshold=2)])

        assert matcher.match_document(make_document(title="An agent"), FIXED_NOW) == []
        matches = matcher.match_document(
            make_document(title="An agent using a tool"), FIXED_NOW
        )
        assert len(matches) == 1
        assert matches[0].score == 2

    def test_zero_score_never_emitted(self) -> None:
        """A zero threshold still requires a positive score."""
        matcher = TrackMatcher([make_track(keywords=["agent"], threshold=0)])
        doc = make_document(title="Protein folding")
        assert matcher.match_document(doc, FIXED_NOW) == []

    def test_category_filter(self) -> None:
        """Tracks with categories only match documents in one of them."""
        matcher = TrackMatcher([make_track(keywords=["agent"], categories=["cs.AI"])])

        outside = make_document(title="An agent", categories=["cs.CL"])
        inside = make_document(title="An agent", categories=["cs.CL", "cs.AI"])

        assert matcher.match_document(outside, FIXED_NOW) == []
        assert len(matcher.match_document(inside, FIXED_NOW)) == 1

    def test_match_fields(self) -> None:
        """Emitted matches carry the document, track, terms and timestamp."""
        matcher = TrackMatcher([make_track(name="agents", phrases=["tool use"])])
        doc = make_document(document_id="2602.11111", title="Tool use for agents")

        (match,) = matcher.match_document(doc, FIXED_NOW)

        assert match.document_id == "2602.11111"
        assert match.track_name == "agents"
        assert match.score == PHRASE_WEIGHT
        assert match.matched_terms == ["tool use"]
        assert match.matched_at == FIXED_NOW

    def test_match_documents_shares_timestamp(self) -> None:
        """Every match of one batch carries the same timestamp."""
        matcher = TrackMatcher([make_track(keywords=["agent"])])
        docs = [
            make_document(document_id="a", title="An agent"),
            make_document(document_id="b", title="Another agent"),
        ]
        now = FIXED_NOW + timedelta(hours=1)

        matches = matcher.match_documents(docs, now)

        assert [m.document_id for m in matches] == ["a", "b"]
        assert {m.matched_at for m in matches} == {now}
