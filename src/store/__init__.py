"""SQLite digest store for documents, matches, judgments and ledgers.

This module provides persistent storage for:
- Ingested documents and their per-track keyword matches
- External relevance judgments (at most one per document)
- The daily and weekly delivery ledgers used for deduplication
- Run lifecycle tracking
"""

from src.store.errors import (
    ConnectionError,
    MigrationError,
    RunNotFoundError,
    StateStoreError,
)
from src.store.metrics import StoreMetrics
from src.store.models import (
    DeliveryRecord,
    Document,
    RelevanceJudgment,
    Run,
    StoreSnapshot,
    TrackMatch,
    WeeklyDelivery,
)
from src.store.state_machine import (
    RUN_KIND_DAILY,
    RUN_KIND_INGEST,
    RunState,
    RunStateError,
    RunStateMachine,
)
from src.store.store import StateStore


__all__ = [
    # Errors
    "ConnectionError",
    "MigrationError",
    "RunNotFoundError",
    "StateStoreError",
    # Metrics
    "StoreMetrics",
    # Models
    "DeliveryRecord",
    "Document",
    "RelevanceJudgment",
    "Run",
    "StoreSnapshot",
    "TrackMatch",
    "WeeklyDelivery",
    # State machine
    "RUN_KIND_DAILY",
    "RUN_KIND_INGEST",
    "RunState",
    "RunStateMachine",
    "RunStateError",
    # Store
    "StateStore",
]
