"""Per-track and global caps for daily digests."""

from collections.abc import Sequence

import structlog

from src.selection.models import Candidate, DroppedEntry
from src.selection.ranking import rank_candidates


logger = structlog.get_logger()


class TrackQuota:
    """Applies the per-track and global caps to ranked candidates.

    Enforces:
    - per-track cap: at most cap_for(track) items per track
    - global cap: at most max_items_per_digest items in total

    Tracks are visited in an explicit order when one is given; any track
    missing from it follows, in order of first appearance in the ranked
    candidates (that is, by each track's best candidate). Once the global
    cap is reached, every later track is emptied.
    """

    def __init__(
        self,
        run_id: str,
        max_items_per_digest: int,
        max_per_track: int,
        track_caps: dict[str, int] | None = None,
    ) -> None:
        """Initialize the quota.

        Args:
            run_id: Run identifier for logging.
            max_items_per_digest: Global cap.
            max_per_track: Default per-track cap.
            track_caps: Per-track overrides of max_per_track.
        """
        self._max_items = max_items_per_digest
        self._max_per_track = max_per_track
        self._track_caps = track_caps or {}
        self._log = logger.bind(
            component="selection",
            subcomponent="quota",
            run_id=run_id,
        )
        self._dropped: list[DroppedEntry] = []

    @property
    def dropped_entries(self) -> list[DroppedEntry]:
        """Get list of dropped entries."""
        return self._dropped

    def apply(
        self,
        candidates: Sequence[Candidate],
        track_order: Sequence[str] | None = None,
    ) -> dict[str, list[Candidate]]:
        """Group candidates by track and apply both caps.

        Args:
            candidates: Eligible candidates, in any order.
            track_order: Optional explicit track visitation order.

        Returns:
            Track name to kept candidates, in visitation order. Tracks
            left empty are absent.
        """
        self._dropped = []

        groups = self._group_by_track(rank_candidates(candidates))
        capped = self._apply_per_track_caps(groups)
        order = self.visitation_order(list(groups), track_order)
        result = self._apply_global_cap(capped, order)

        self._log.info(
            "quota_filtering_complete",
            input_count=len(candidates),
            kept_count=sum(len(v) for v in result.values()),
            dropped_count=len(self._dropped),
            tracks_with_items=len(result),
        )

        return result

    @staticmethod
    def visitation_order(
        seen_order: list[str], track_order: Sequence[str] | None
    ) -> list[str]:
        """Resolve the order in which tracks are visited.

        Args:
            seen_order: Tracks in order of first appearance.
            track_order: Optional explicit order.

        Returns:
            Explicitly ordered tracks first, then the rest as first seen.
        """
        if not track_order:
            return list(seen_order)
        present = set(seen_order)
        explicit = [t for t in dict.fromkeys(track_order) if t in present]
        listed = set(explicit)
        return explicit + [t for t in seen_order if t not in listed]

    def _group_by_track(
        self, ranked: list[Candidate]
    ) -> dict[str, list[Candidate]]:
        """Group ranked candidates by track, keeping rank order."""
        groups: dict[str, list[Candidate]] = {}
        for c in ranked:
            groups.setdefault(c.track_name, []).append(c)
        return groups

    def _apply_per_track_caps(
        self, groups: dict[str, list[Candidate]]
    ) -> dict[str, list[Candidate]]:
        """Keep the top cap_for(track) candidates of each track."""
        capped: dict[str, list[Candidate]] = {}
        for track, items in groups.items():
            cap = self._track_caps.get(track, self._max_per_track)
            capped[track] = items[:cap]
            for c in items[cap:]:
                self._record_drop(c, f"max_per_track ({cap})")
        return capped

    def _apply_global_cap(
        self, capped: dict[str, list[Candidate]], order: list[str]
    ) -> dict[str, list[Candidate]]:
        """Visit tracks in order, truncating once the global cap is hit."""
        result: dict[str, list[Candidate]] = {}
        total = 0

        for track in order:
            items = capped.get(track, [])
            room = max(self._max_items - total, 0)
            kept = items[:room]
            for c in items[room:]:
                self._record_drop(c, f"max_items_per_digest ({self._max_items})")
            total += len(kept)
            if kept:
                result[track] = kept

        return result

    def _record_drop(self, candidate: Candidate, reason: str) -> None:
        """Record a dropped candidate."""
        self._dropped.append(
            DroppedEntry(
                document_id=candidate.document_id,
                track_name=candidate.track_name,
                drop_reason=reason,
            )
        )


def apply_quotas_pure(
    candidates: Sequence[Candidate],
    max_items_per_digest: int,
    max_per_track: int,
    track_caps: dict[str, int] | None = None,
    track_order: Sequence[str] | None = None,
    run_id: str = "pure",
) -> tuple[dict[str, list[Candidate]], list[DroppedEntry]]:
    """Pure function API for quota filtering.

    Args:
        candidates: Eligible candidates.
        max_items_per_digest: Global cap.
        max_per_track: Default per-track cap.
        track_caps: Per-track overrides.
        track_order: Optional explicit track visitation order.
        run_id: Run identifier.

    Returns:
        Tuple of (track groups, dropped entries).
    """
    quota = TrackQuota(
        run_id=run_id,
        max_items_per_digest=max_items_per_digest,
        max_per_track=max_per_track,
        track_caps=track_caps,
    )
    groups = quota.apply(candidates, track_order)
    return groups, quota.dropped_entries
