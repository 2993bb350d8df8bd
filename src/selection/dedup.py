"""Trailing-window deduplication against the daily delivery ledger."""

from collections.abc import Iterable
from datetime import date, timedelta

from src.selection.models import Candidate
from src.store.models import DeliveryRecord


def dedup_window_start(today: date, dedup_days: int) -> date:
    """Get the first calendar date inside the dedup window.

    The window is inclusive: with dedup_days=7 a delivery exactly seven
    days before today still blocks the document.

    Args:
        today: Digest date.
        dedup_days: Window size in whole days.

    Returns:
        today - dedup_days.
    """
    return today - timedelta(days=dedup_days)


def recently_delivered(
    deliveries: Iterable[DeliveryRecord], today: date, dedup_days: int
) -> set[str]:
    """Collect IDs of documents delivered inside the dedup window.

    Deliveries are matched by document only; the track they were filed
    under does not matter. Rows dated after today, as left by a replayed
    digest date, do not block.

    Args:
        deliveries: Daily ledger rows.
        today: Digest date.
        dedup_days: Window size in whole days.

    Returns:
        Set of blocked document IDs.
    """
    start = dedup_window_start(today, dedup_days)
    return {d.document_id for d in deliveries if start <= d.digest_date <= today}


def filter_delivered(
    candidates: Iterable[Candidate], delivered_ids: set[str]
) -> tuple[list[Candidate], list[Candidate]]:
    """Split candidates into eligible and already-delivered.

    Args:
        candidates: Candidates to filter.
        delivered_ids: Document IDs blocked by the ledger.

    Returns:
        Tuple of (kept, dropped), each in input order.
    """
    kept: list[Candidate] = []
    dropped: list[Candidate] = []
    for c in candidates:
        if c.document_id in delivered_ids:
            dropped.append(c)
        else:
            kept.append(c)
    return kept, dropped
