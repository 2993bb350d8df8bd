"""Weekly shortlist, pick and related-documents selection."""

import json
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path

import structlog

from src.selection.links import DocumentLinks, resolve_links
from src.selection.ranking import fused_key
from src.store.models import (
    Document,
    RelevanceJudgment,
    TrackMatch,
    WeeklyDelivery,
)
from src.store.store import StateStore
from src.weekly.calendar import as_utc, week_date_range
from src.weekly.models import (
    RelatedDocument,
    RelatedDocuments,
    WeeklyCandidate,
    WeeklyPlan,
    WeeklyPoolEntry,
)


logger = structlog.get_logger()

DEFAULT_RELATED_LIMIT = 5
# The pick may name any of this many top candidates, not only the shortlist.
PICK_POOL_SIZE = 10


def build_weekly_pool(
    matches: Iterable[TrackMatch],
    documents: Mapping[str, Document],
    judgments: Mapping[str, RelevanceJudgment],
    week_iso: str,
    weekly_deliveries: Iterable[WeeklyDelivery] = (),
) -> list[WeeklyPoolEntry]:
    """Aggregate a week's track matches into one entry per document.

    Only matches stamped inside the ISO week count. Documents already
    delivered as the deep dive of an earlier week are left out.

    Args:
        matches: Track matches.
        documents: Documents keyed by ID.
        judgments: Judgments keyed by document ID.
        week_iso: ISO week, e.g. '2026-W07'.
        weekly_deliveries: Weekly ledger rows.

    Returns:
        Pool entries, unranked.

    Raises:
        ValueError: If week_iso is malformed.
    """
    start, end = week_date_range(week_iso)
    blocked = {d.document_id for d in weekly_deliveries if d.week_iso < week_iso}

    rows = [
        m
        for m in matches
        if start <= as_utc(m.matched_at) <= end and m.document_id not in blocked
    ]
    rows.sort(key=lambda m: (-m.score, -as_utc(m.matched_at).timestamp(), m.track_name))

    pool: dict[str, WeeklyPoolEntry] = {}
    for m in rows:
        matched_at = as_utc(m.matched_at)
        entry = pool.get(m.document_id)
        if entry is None:
            pool[m.document_id] = WeeklyPoolEntry(
                document_id=m.document_id,
                document=documents.get(m.document_id),
                score=m.score,
                matched_at=matched_at,
                tracks=[m.track_name],
                judgment=judgments.get(m.document_id),
            )
            continue
        if m.track_name not in entry.tracks:
            entry.tracks.append(m.track_name)
        entry.score = max(entry.score, m.score)
        entry.matched_at = max(entry.matched_at, matched_at)

    return list(pool.values())


def rank_weekly_pool(pool: Iterable[WeeklyPoolEntry]) -> list[WeeklyPoolEntry]:
    """Sort a pool by the fused ranking key, highest first."""
    return sorted(
        pool,
        key=lambda e: fused_key(e.relevance, e.score, e.matched_at, e.document_id),
    )


def _to_candidate(
    entry: WeeklyPoolEntry, rank: int, links: DocumentLinks
) -> WeeklyCandidate:
    doc = entry.document
    return WeeklyCandidate(
        rank=rank,
        document_id=entry.document_id,
        title=doc.title if doc is not None else None,
        authors=list(doc.authors) if doc is not None else [],
        abstract=doc.abstract if doc is not None else None,
        score=entry.score,
        tracks=list(entry.tracks),
        relevance=entry.relevance,
        abs_url=links.abs_url,
        pdf_url=links.pdf_url,
    )


def select_weekly_shortlist(
    pool: Iterable[WeeklyPoolEntry],
    top_n: int,
    link_resolver: Callable[[str | None], DocumentLinks] = resolve_links,
) -> list[WeeklyCandidate]:
    """Rank a week's pool and keep the best candidates.

    Args:
        pool: Pool entries.
        top_n: Maximum number of candidates.
        link_resolver: Resolves display links from a sidecar path.

    Returns:
        At most top_n candidates with 1-based ranks; empty for an empty pool.
    """
    ranked = rank_weekly_pool(pool)[: max(top_n, 0)]
    return [
        _to_candidate(
            entry,
            rank,
            link_resolver(entry.document.meta_path if entry.document else None),
        )
        for rank, entry in enumerate(ranked, start=1)
    ]


def _read_pick(pick_path: Path) -> str | None:
    """Read the picked document ID, or None when the file is unusable."""
    try:
        data = json.loads(pick_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning(
            "pick_file_unreadable",
            component="weekly",
            pick_path=str(pick_path),
            error=str(e),
        )
        return None

    if not isinstance(data, dict):
        return None
    picked = data.get("document_id") or data.get("arxivId")
    return picked if isinstance(picked, str) and picked else None


def select_weekly_pick(
    shortlist: list[WeeklyCandidate],
    pick_path: Path | str | None = None,
) -> WeeklyCandidate | None:
    """Choose the deep-dive document of the week.

    A pick file ({"document_id": ...}) naming a shortlisted document wins;
    otherwise the top candidate is chosen.

    Args:
        shortlist: Ranked candidates.
        pick_path: Optional path of the user's pick file.

    Returns:
        The chosen candidate (rank 1), or None for an empty shortlist.
    """
    if not shortlist:
        return None

    if pick_path is not None and Path(pick_path).exists():
        picked = _read_pick(Path(pick_path))
        for candidate in shortlist:
            if candidate.document_id == picked:
                return candidate.model_copy(update={"rank": 1})
        if picked is not None:
            logger.info(
                "pick_not_in_shortlist",
                component="weekly",
                document_id=picked,
            )

    return shortlist[0]


def related_documents(
    pool: Iterable[WeeklyPoolEntry],
    exclude_id: str | None,
    limit: int = DEFAULT_RELATED_LIMIT,
) -> RelatedDocuments:
    """List the rest of the week's pool next to the pick.

    Args:
        pool: Pool entries.
        exclude_id: Document chosen as the pick, if any.
        limit: Maximum number of listed documents.

    Returns:
        Up to `limit` related documents, best first, and the overflow count.
    """
    others = [e for e in rank_weekly_pool(pool) if e.document_id != exclude_id]
    shown = others[: max(limit, 0)]
    return RelatedDocuments(
        items=[
            RelatedDocument(
                document_id=e.document_id,
                title=e.document.title if e.document is not None else None,
                score=e.score,
                tracks=list(e.tracks),
                relevance=e.relevance,
            )
            for e in shown
        ],
        remaining=len(others) - len(shown),
    )


class WeeklySelector:
    """Builds the weekly deep-dive plan from the store."""

    def __init__(
        self,
        store: StateStore,
        shortlist_size: int = 3,
        related_max: int = DEFAULT_RELATED_LIMIT,
        link_resolver: Callable[[str | None], DocumentLinks] = resolve_links,
    ) -> None:
        """Initialize the selector.

        Args:
            store: Connected digest store.
            shortlist_size: Candidates offered for the human pick.
            related_max: Related documents listed next to the pick.
            link_resolver: Resolves display links from a sidecar path.
        """
        self._store = store
        self._shortlist_size = shortlist_size
        self._related_max = related_max
        self._link_resolver = link_resolver
        self._log = logger.bind(component="weekly", run_id=store.run_id)

    def pool(self, week_iso: str) -> list[WeeklyPoolEntry]:
        """Build the week's candidate pool from a store snapshot."""
        snapshot = self._store.load_snapshot()
        return build_weekly_pool(
            snapshot.track_matches,
            snapshot.documents,
            snapshot.judgments,
            week_iso,
            snapshot.weekly_deliveries,
        )

    def plan(self, week_iso: str, pick_path: Path | str | None = None) -> WeeklyPlan:
        """Plan the week's deep dive.

        Args:
            week_iso: ISO week, e.g. '2026-W07'.
            pick_path: Optional path of the user's pick file.

        Returns:
            Shortlist, pick and related documents for the week.
        """
        pool = self.pool(week_iso)
        shortlist = select_weekly_shortlist(pool, self._shortlist_size, self._link_resolver)
        pick_pool = select_weekly_shortlist(
            pool, max(PICK_POOL_SIZE, self._shortlist_size), self._link_resolver
        )
        pick = select_weekly_pick(pick_pool, pick_path)
        related = related_documents(
            pool, pick.document_id if pick else None, self._related_max
        )

        plan = WeeklyPlan(
            week_iso=week_iso,
            already_sent=self._store.has_weekly_been_sent(week_iso),
            shortlist=shortlist,
            pick=pick,
            related=related,
        )

        self._log.info(
            "weekly_plan_complete",
            week_iso=week_iso,
            pool_size=len(pool),
            shortlist_size=len(shortlist),
            pick=pick.document_id if pick else None,
            related=len(related.items),
            related_remaining=related.remaining,
            already_sent=plan.already_sent,
        )
        return plan
