"""Per-document aggregation of matches still lacking a judgment."""

from collections.abc import Iterable, Mapping

import structlog

from src.scoring.models import ScorePlan, UnscoredDocument
from src.store.models import Document, RelevanceJudgment, TrackMatch
from src.store.store import StateStore


logger = structlog.get_logger()


def collect_unscored(
    matches: Iterable[TrackMatch],
    documents: Mapping[str, Document],
    judgments: Mapping[str, RelevanceJudgment],
) -> list[UnscoredDocument]:
    """Fold track matches into one entry per unjudged document.

    Each entry carries the highest keyword score over the document's
    tracks and every track it matched, in first-seen order. Matches whose
    document record is missing are skipped, since a judge needs the text.

    Args:
        matches: Track matches.
        documents: Documents keyed by ID.
        judgments: Judgments keyed by document ID.

    Returns:
        Entries ordered by keyword score descending, then updated_at
        descending, then document ID ascending.
    """
    best: dict[str, int] = {}
    tracks: dict[str, list[str]] = {}

    for m in matches:
        if m.document_id in judgments or m.document_id not in documents:
            continue
        best[m.document_id] = max(best.get(m.document_id, 0), m.score)
        seen = tracks.setdefault(m.document_id, [])
        if m.track_name not in seen:
            seen.append(m.track_name)

    entries = [
        UnscoredDocument(
            document_id=doc_id,
            title=documents[doc_id].title,
            abstract=documents[doc_id].abstract,
            keyword_score=score,
            tracks=tracks[doc_id],
            updated_at=documents[doc_id].updated_at,
        )
        for doc_id, score in best.items()
    ]

    def sort_key(e: UnscoredDocument) -> tuple[int, float, str]:
        return (-e.keyword_score, -e.updated_at.timestamp(), e.document_id)

    return sorted(entries, key=sort_key)


class ScoreStore:
    """Judgment access on top of the digest store."""

    def __init__(self, store: StateStore) -> None:
        """Initialize the accessor.

        Args:
            store: Connected digest store.
        """
        self._store = store
        self._log = logger.bind(component="scoring", run_id=store.run_id)

    def get_unscored(self, limit: int | None = None) -> list[UnscoredDocument]:
        """Get matched documents that have no judgment yet.

        Args:
            limit: Optional maximum number of entries.

        Returns:
            Unscored documents, best keyword evidence first.
        """
        snapshot = self._store.load_snapshot()
        entries = collect_unscored(
            snapshot.track_matches, snapshot.documents, snapshot.judgments
        )
        if limit is not None:
            entries = entries[:limit]
        self._log.info("unscored_collected", count=len(entries))
        return entries

    def plan(self, limit: int | None = None) -> ScorePlan:
        """Build the work list for the external judge."""
        return ScorePlan(
            documents=self.get_unscored(limit),
            already_scored=self._store.count_judged(),
        )

    def record(self, judgments: list[RelevanceJudgment]) -> int:
        """Record a batch of judgments atomically.

        Args:
            judgments: Judgments to store; last write wins per document.

        Returns:
            Number of judgments written.
        """
        written = self._store.upsert_judgments(judgments)
        self._log.info(
            "judgments_recorded",
            count=written,
            document_ids=[j.document_id for j in judgments],
        )
        return written

    def get_judgment(self, document_id: str) -> RelevanceJudgment | None:
        """Get a document's judgment, or None if unscored."""
        return self._store.get_judgment(document_id)

    def count_judged(self) -> int:
        """Count judged documents."""
        return self._store.count_judged()
