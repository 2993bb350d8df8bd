"""Unit tests for per-track and global caps."""

from datetime import timedelta

from src.selection.models import Candidate
from src.selection.quota import TrackQuota, apply_quotas_pure
from tests.helpers.factories import make_judgment, make_match
from tests.helpers.time import FIXED_NOW


def _candidate(
    document_id: str,
    track_name: str,
    score: int = 1,
    relevance: int | None = None,
) -> Candidate:
    """Create a Candidate for a track."""
    return Candidate(
        match=make_match(
            document_id=document_id,
            track_name=track_name,
            score=score,
            matched_at=FIXED_NOW - timedelta(minutes=1),
        ),
        judgment=(
            make_judgment(document_id=document_id, relevance=relevance)
            if relevance is not None
            else None
        ),
    )


def _two_tracks_of_three() -> list[Candidate]:
    """Two tracks, each offering three eligible documents."""
    return [
        _candidate("a1", "alpha", score=6),
        _candidate("a2", "alpha", score=5),
        _candidate("a3", "alpha", score=4),
        _candidate("b1", "beta", score=3),
        _candidate("b2", "beta", score=2),
        _candidate("b3", "beta", score=1),
    ]


class TestTrackQuota:
    """Tests for TrackQuota.apply."""

    def test_cap_fairness(self) -> None:
        """Global cap 4 with per-track cap 2 yields two documents per track."""
        groups, dropped = apply_quotas_pure(
            _two_tracks_of_three(), max_items_per_digest=4, max_per_track=2
        )

        assert sum(len(v) for v in groups.values()) == 4
        assert [c.document_id for c in groups["alpha"]] == ["a1", "a2"]
        assert [c.document_id for c in groups["beta"]] == ["b1", "b2"]
        assert {d.document_id for d in dropped} == {"a3", "b3"}
        assert all(d.drop_reason == "max_per_track (2)" for d in dropped)

    def test_global_cap_truncates_and_empties_later_tracks(self) -> None:
        """Once the global cap is hit, later tracks are dropped entirely."""
        candidates = [
            *_two_tracks_of_three(),
            _candidate("c1", "gamma", score=1),
        ]

        groups, dropped = apply_quotas_pure(
            candidates, max_items_per_digest=3, max_per_track=2
        )

        assert list(groups) == ["alpha", "beta"]
        assert [c.document_id for c in groups["beta"]] == ["b1"]
        global_drops = {
            d.document_id
            for d in dropped
            if d.drop_reason == "max_items_per_digest (3)"
        }
        assert global_drops == {"b2", "c1"}

    def test_empty_tracks_are_absent(self) -> None:
        """A zero global cap returns no tracks at all."""
        groups, _ = apply_quotas_pure(
            _two_tracks_of_three(), max_items_per_digest=0, max_per_track=2
        )
        assert groups == {}

    def test_per_track_override(self) -> None:
        """Track caps override the default per-track cap."""
        groups, _ = apply_quotas_pure(
            _two_tracks_of_three(),
            max_items_per_digest=10,
            max_per_track=2,
            track_caps={"alpha": 1, "beta": 3},
        )

        assert len(groups["alpha"]) == 1
        assert len(groups["beta"]) == 3

    def test_tracks_ranked_within_group(self) -> None:
        """Each track's list follows the fused ranking."""
        candidates = [
            _candidate("unjudged", "alpha", score=9),
            _candidate("judged", "alpha", score=1, relevance=3),
        ]
        groups, _ = apply_quotas_pure(
            candidates, max_items_per_digest=5, max_per_track=5
        )
        assert [c.document_id for c in groups["alpha"]] == ["judged", "unjudged"]

    def test_first_seen_order_follows_ranking(self) -> None:
        """Without an explicit order, the track of the best candidate goes first."""
        candidates = [
            _candidate("a1", "alpha", score=1),
            _candidate("b1", "beta", score=1, relevance=5),
        ]
        groups, _ = apply_quotas_pure(
            candidates, max_items_per_digest=1, max_per_track=2
        )
        assert list(groups) == ["beta"]

    def test_explicit_track_order(self) -> None:
        """An explicit order decides which track gets the room first."""
        groups, _ = apply_quotas_pure(
            _two_tracks_of_three(),
            max_items_per_digest=2,
            max_per_track=2,
            track_order=["beta", "alpha"],
        )
        assert list(groups) == ["beta"]
        assert [c.document_id for c in groups["beta"]] == ["b1", "b2"]

    def test_dropped_entries_reset_per_apply(self) -> None:
        """Each apply call starts a fresh dropped list."""
        quota = TrackQuota(run_id="test", max_items_per_digest=1, max_per_track=1)
        quota.apply(_two_tracks_of_three())
        first = len(quota.dropped_entries)
        quota.apply(_two_tracks_of_three())

        assert len(quota.dropped_entries) == first


class TestVisitationOrder:
    """Tests for TrackQuota.visitation_order."""

    def test_no_explicit_order(self) -> None:
        """First-seen order is used as is."""
        assert TrackQuota.visitation_order(["b", "a"], None) == ["b", "a"]

    def test_explicit_then_remaining(self) -> None:
        """Listed tracks come first, unlisted ones follow as first seen."""
        order = TrackQuota.visitation_order(["c", "a", "b"], ["b", "x", "b"])
        assert order == ["b", "c", "a"]
