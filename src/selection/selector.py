"""Daily digest selection orchestrator."""

import time
from collections.abc import Callable, Iterable, Mapping, Sequence
from datetime import UTC, date, datetime

import structlog

from src.selection.dedup import filter_delivered, recently_delivered
from src.selection.links import DocumentLinks, resolve_links
from src.selection.metrics import SelectionMetrics
from src.selection.models import (
    Candidate,
    DailySelection,
    SelectedDocument,
    SelectionOptions,
)
from src.selection.quota import TrackQuota
from src.selection.ranking import build_candidates, passes_relevance_floor
from src.store.models import DeliveryRecord, Document, RelevanceJudgment, TrackMatch
from src.store.store import StateStore


logger = structlog.get_logger()

LinkResolver = Callable[[str | None], DocumentLinks]


class DailySelector:
    """Selects the documents of one daily digest.

    Flow:
        snapshot -> candidates -> dedup window -> relevance floor
        -> per-track cap -> global cap -> DailySelection

    Selection only reads; recording the delivery is left to the caller
    once the digest has actually been sent.
    """

    def __init__(
        self,
        store: StateStore | None = None,
        run_id: str = "selection",
        link_resolver: LinkResolver = resolve_links,
        metrics: SelectionMetrics | None = None,
    ) -> None:
        """Initialize the selector.

        Args:
            store: Store to read the snapshot from. Only needed by select().
            run_id: Run identifier for logging.
            link_resolver: Resolves display links from a sidecar path.
            metrics: Optional metrics instance.
        """
        self._store = store
        self._run_id = run_id
        self._link_resolver = link_resolver
        self._metrics = metrics or SelectionMetrics.get_instance()
        self._log = logger.bind(component="selection", run_id=run_id)

    def select(
        self,
        options: SelectionOptions,
        today: date | None = None,
        track_order: Sequence[str] | None = None,
    ) -> DailySelection:
        """Select today's digest from the store.

        Args:
            options: Selection limits.
            today: Digest date (defaults to the current UTC date).
            track_order: Optional explicit track visitation order.

        Returns:
            The daily selection.

        Raises:
            ValueError: If the selector has no store.
        """
        if self._store is None:
            msg = "DailySelector.select() requires a store"
            raise ValueError(msg)

        snapshot = self._store.load_snapshot()
        return self.select_from(
            matches=snapshot.track_matches,
            documents=snapshot.documents,
            judgments=snapshot.judgments,
            deliveries=snapshot.deliveries,
            options=options,
            today=today or datetime.now(UTC).date(),
            track_order=track_order,
        )

    def select_from(
        self,
        matches: Iterable[TrackMatch],
        documents: Mapping[str, Document],
        judgments: Mapping[str, RelevanceJudgment],
        deliveries: Iterable[DeliveryRecord],
        options: SelectionOptions,
        today: date,
        track_order: Sequence[str] | None = None,
    ) -> DailySelection:
        """Select a digest from materialized relations.

        Args:
            matches: Track matches.
            documents: Documents keyed by ID.
            judgments: Judgments keyed by document ID.
            deliveries: Daily ledger rows.
            options: Selection limits.
            today: Digest date.
            track_order: Optional explicit track visitation order.

        Returns:
            The daily selection.
        """
        start = time.perf_counter()

        candidates = build_candidates(matches, documents, judgments)
        self._log.info(
            "selection_started",
            digest_date=today.isoformat(),
            candidates_in=len(candidates),
        )

        delivered_ids = recently_delivered(deliveries, today, options.dedup_days)
        after_dedup, dedup_dropped = filter_delivered(candidates, delivered_ids)

        eligible = [
            c for c in after_dedup if passes_relevance_floor(c, options.relevance_floor)
        ]
        floor_dropped = len(after_dedup) - len(eligible)

        quota = TrackQuota(
            run_id=self._run_id,
            max_items_per_digest=options.max_items_per_digest,
            max_per_track=options.max_per_track,
            track_caps=options.track_caps,
        )
        groups = quota.apply(eligible, track_order)

        by_track = self._build_output(groups)
        items = sum(len(v) for v in by_track.values())

        selection = DailySelection(
            digest_date=today,
            by_track=by_track,
            tracks_with_items=len(by_track),
            items=items,
            candidates_in=len(candidates),
            candidate_count=len({c.document_id for c in eligible}),
            dropped_dedup=len(dedup_dropped),
            dropped_floor=floor_dropped,
            dropped_cap=len(quota.dropped_entries),
        )

        duration_ms = (time.perf_counter() - start) * 1000
        self._metrics.record_pass(len(candidates), items)
        self._metrics.record_drops(
            dedup=selection.dropped_dedup,
            floor=selection.dropped_floor,
            cap=selection.dropped_cap,
        )
        self._metrics.record_duration(duration_ms)

        self._log.info(
            "selection_complete",
            digest_date=today.isoformat(),
            tracks_with_items=selection.tracks_with_items,
            items=items,
            dropped_dedup=selection.dropped_dedup,
            dropped_floor=selection.dropped_floor,
            dropped_cap=selection.dropped_cap,
            duration_ms=round(duration_ms, 2),
        )

        return selection

    def _build_output(
        self, groups: dict[str, list[Candidate]]
    ) -> dict[str, list[SelectedDocument]]:
        """Convert capped groups into selected documents.

        Args:
            groups: Track name to ranked candidates.

        Returns:
            Track name to selected documents, in the same order.
        """
        links_cache: dict[str, DocumentLinks] = {}
        missing = 0
        by_track: dict[str, list[SelectedDocument]] = {}

        for track, candidates in groups.items():
            selected: list[SelectedDocument] = []
            for position, c in enumerate(candidates, start=1):
                doc = c.document
                if doc is None:
                    missing += 1
                    self._log.warning(
                        "document_missing_for_match",
                        document_id=c.document_id,
                        track_name=track,
                    )

                if c.document_id not in links_cache:
                    links_cache[c.document_id] = self._link_resolver(
                        doc.meta_path if doc is not None else None
                    )
                links = links_cache[c.document_id]

                selected.append(
                    SelectedDocument(
                        document_id=c.document_id,
                        track_name=track,
                        rank=position,
                        title=doc.title if doc is not None else None,
                        abstract=doc.abstract if doc is not None else None,
                        updated_at=doc.updated_at if doc is not None else None,
                        score=c.match.score,
                        matched_terms=list(c.match.matched_terms),
                        relevance=c.relevance,
                        reasoning=c.judgment.reasoning if c.judgment is not None else None,
                        matched_at=c.match.matched_at,
                        abs_url=links.abs_url,
                        pdf_url=links.pdf_url,
                    )
                )
            by_track[track] = selected

        if missing:
            self._metrics.record_missing_documents(missing)

        return by_track


def select_daily_pure(
    matches: Iterable[TrackMatch],
    documents: Mapping[str, Document],
    judgments: Mapping[str, RelevanceJudgment],
    deliveries: Iterable[DeliveryRecord],
    options: SelectionOptions,
    today: date,
    track_order: Sequence[str] | None = None,
    link_resolver: LinkResolver = resolve_links,
    run_id: str = "pure",
) -> DailySelection:
    """Pure function API for daily selection.

    Args:
        matches: Track matches.
        documents: Documents keyed by ID.
        judgments: Judgments keyed by document ID.
        deliveries: Daily ledger rows.
        options: Selection limits.
        today: Digest date.
        track_order: Optional explicit track visitation order.
        link_resolver: Resolves display links from a sidecar path.
        run_id: Run identifier.

    Returns:
        The daily selection.
    """
    selector = DailySelector(run_id=run_id, link_resolver=link_resolver)
    return selector.select_from(
        matches=matches,
        documents=documents,
        judgments=judgments,
        deliveries=deliveries,
        options=options,
        today=today,
        track_order=track_order,
    )
