"""SQLite digest store implementation."""

import json
import sqlite3
import time
import uuid
from collections.abc import Generator, Iterable
from contextlib import contextmanager
from datetime import UTC, date, datetime
from pathlib import Path

import structlog

from src.store.errors import (
    ConnectionError as StoreConnectionError,
    RunNotFoundError,
)
from src.store.metrics import StoreMetrics, TransactionContext
from src.store.migrations import CURRENT_VERSION, MigrationManager
from src.store.models import (
    DeliveryRecord,
    Document,
    RelevanceJudgment,
    Run,
    StoreSnapshot,
    TrackMatch,
    WeeklyDelivery,
)


logger = structlog.get_logger()


def _to_iso(value: datetime) -> str:
    """Serialize a timestamp as a UTC ISO-8601 string.

    Naive timestamps are taken to be UTC. Storing one offset keeps
    lexicographic comparison in SQL equal to chronological comparison.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat()


def _from_iso(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _json_list(value: str | None) -> list[str]:
    """Decode a JSON array column, tolerating corrupt values."""
    if not value:
        return []
    try:
        decoded = json.loads(value)
    except json.JSONDecodeError:
        return []
    if not isinstance(decoded, list):
        return []
    return [str(v) for v in decoded]


class StateStore:
    """SQLite store for documents, track matches, judgments and ledgers.

    A single writer process per invocation is assumed; callers serialize
    runs (one scheduled run at a time). Uses WAL mode and applies schema
    migrations on connect.
    """

    def __init__(self, db_path: Path | str, run_id: str | None = None) -> None:
        """Initialize the store.

        Args:
            db_path: Path to SQLite database file.
            run_id: Optional run ID for logging context.
        """
        self._db_path = Path(db_path) if isinstance(db_path, str) else db_path
        self._run_id = run_id or str(uuid.uuid4())
        self._conn: sqlite3.Connection | None = None
        self._metrics = StoreMetrics.get_instance()
        self._log = logger.bind(
            component="store",
            run_id=self._run_id,
            db_path=str(self._db_path),
        )

    @property
    def db_path(self) -> Path:
        """Get the database path."""
        return self._db_path

    @property
    def run_id(self) -> str:
        """Get the current run ID."""
        return self._run_id

    @property
    def is_connected(self) -> bool:
        """Check if connected to database."""
        return self._conn is not None

    def connect(self) -> None:
        """Open connection to database and apply migrations.

        Creates the database file and parent directories if they don't exist.
        """
        if self._conn is not None:
            return

        self._db_path.parent.mkdir(parents=True, exist_ok=True)

        self._log.info("connecting_to_database")

        self._conn = sqlite3.connect(str(self._db_path))
        self._conn.row_factory = sqlite3.Row

        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA synchronous=NORMAL")
        self._conn.execute("PRAGMA foreign_keys=ON")

        migration_mgr = MigrationManager(self._conn)
        old_version = migration_mgr.get_current_version()
        applied = migration_mgr.apply_migrations()

        self._log.info(
            "database_connected",
            old_version=old_version,
            new_version=CURRENT_VERSION,
            migrations_applied=applied,
        )

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            self._log.info("database_closed")

    def __enter__(self) -> "StateStore":
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(
        self,
        exc_type: type | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Context manager exit."""
        self.close()

    def _ensure_connected(self) -> sqlite3.Connection:
        """Ensure database is connected.

        Returns:
            The database connection.

        Raises:
            StoreConnectionError: If not connected.
        """
        if self._conn is None:
            raise StoreConnectionError("Database not connected. Call connect() first.")
        return self._conn

    @contextmanager
    def _transaction(self, operation: str) -> Generator[TransactionContext]:
        """Context manager for transactions with timing and logging.

        Everything executed inside the block commits together or not at all.

        Args:
            operation: Name of the operation for logging.

        Yields:
            Transaction context with timing information.
        """
        conn = self._ensure_connected()
        tx_id = str(uuid.uuid4())[:8]
        start_ns = time.perf_counter_ns()
        ctx = TransactionContext(
            tx_id=tx_id, start_time_ns=start_ns, operation=operation
        )

        self._log.debug("transaction_started", tx_id=tx_id, op=operation)

        try:
            yield ctx
            conn.commit()
        except Exception:
            conn.rollback()
            self._metrics.record_tx_failure()
            self._log.error(
                "transaction_failed",
                tx_id=tx_id,
                op=operation,
                duration_ms=round((time.perf_counter_ns() - start_ns) / 1_000_000, 2),
            )
            raise

        duration_ms = (time.perf_counter_ns() - start_ns) / 1_000_000
        self._metrics.record_tx_duration(duration_ms)
        self._log.debug(
            "transaction_complete",
            tx_id=tx_id,
            op=operation,
            affected_rows=ctx.affected_rows,
            duration_ms=round(duration_ms, 2),
        )

    # ===== Run Lifecycle =====

    def begin_run(self, kind: str, run_id: str | None = None) -> Run:
        """Begin a new run.

        Args:
            kind: Run kind (e.g. 'ingest', 'daily').
            run_id: Optional run ID (the store's run ID if not provided).

        Returns:
            The created Run record.
        """
        run_id = run_id or self._run_id
        now = datetime.now(UTC)

        with self._transaction("begin_run") as ctx:
            conn = self._ensure_connected()
            conn.execute(
                """
                INSERT INTO runs (run_id, kind, started_at, finished_at, success,
                                  error_summary, stats_json)
                VALUES (?, ?, ?, NULL, NULL, NULL, '{}')
                """,
                (run_id, kind, now.isoformat()),
            )
            ctx.add_affected_rows(1)

        return Run(run_id=run_id, kind=kind, started_at=now)

    def end_run(
        self,
        run_id: str,
        success: bool,
        error_summary: str | None = None,
        stats: dict[str, int] | None = None,
    ) -> Run:
        """End a run.

        Args:
            run_id: The run ID to end.
            success: Whether the run succeeded.
            error_summary: Optional error summary if failed.
            stats: Optional counters recorded with the run.

        Returns:
            The updated Run record.

        Raises:
            RunNotFoundError: If the run does not exist.
        """
        now = datetime.now(UTC)

        with self._transaction("end_run") as ctx:
            conn = self._ensure_connected()
            cursor = conn.execute(
                """
                UPDATE runs
                SET finished_at = ?, success = ?, error_summary = ?, stats_json = ?
                WHERE run_id = ?
                """,
                (
                    now.isoformat(),
                    1 if success else 0,
                    error_summary,
                    json.dumps(stats or {}, sort_keys=True),
                    run_id,
                ),
            )
            ctx.add_affected_rows(cursor.rowcount)

        run = self.get_run(run_id)
        if run is None:
            raise RunNotFoundError(run_id)
        return run

    def get_run(self, run_id: str) -> Run | None:
        """Get a run by ID.

        Args:
            run_id: The run ID to look up.

        Returns:
            The Run record, or None if not found.
        """
        conn = self._ensure_connected()
        row = conn.execute("SELECT * FROM runs WHERE run_id = ?", (run_id,)).fetchone()

        if row is None:
            return None

        return Run(
            run_id=row["run_id"],
            kind=row["kind"],
            started_at=_from_iso(row["started_at"]),
            finished_at=_from_iso(row["finished_at"]) if row["finished_at"] else None,
            success=bool(row["success"]) if row["success"] is not None else None,
            error_summary=row["error_summary"],
            stats=json.loads(row["stats_json"] or "{}"),
        )

    # ===== Documents =====

    def upsert_document(self, document: Document) -> None:
        """Insert a document, or refresh it on re-discovery.

        Args:
            document: The document to store.
        """
        with self._transaction("upsert_document") as ctx:
            self._write_document(self._ensure_connected(), document)
            ctx.add_affected_rows(1)
        self._metrics.record_documents()

    def _write_document(self, conn: sqlite3.Connection, document: Document) -> None:
        conn.execute(
            """
            INSERT INTO documents (
                document_id, title, abstract, authors_json, categories_json,
                published_at, updated_at, meta_path, ingested_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(document_id) DO UPDATE SET
                title = excluded.title,
                abstract = excluded.abstract,
                authors_json = excluded.authors_json,
                categories_json = excluded.categories_json,
                published_at = excluded.published_at,
                updated_at = excluded.updated_at,
                meta_path = COALESCE(excluded.meta_path, documents.meta_path)
            """,
            (
                document.document_id,
                document.title,
                document.abstract,
                json.dumps(document.authors),
                json.dumps(document.categories),
                _to_iso(document.published_at) if document.published_at else None,
                _to_iso(document.updated_at),
                document.meta_path,
                datetime.now(UTC).isoformat(),
            ),
        )

    def get_document(self, document_id: str) -> Document | None:
        """Get a document by ID.

        Args:
            document_id: The document ID to look up.

        Returns:
            The Document, or None if not found.
        """
        conn = self._ensure_connected()
        row = conn.execute(
            "SELECT * FROM documents WHERE document_id = ?", (document_id,)
        ).fetchone()
        return self._row_to_document(row) if row is not None else None

    def get_documents(self) -> dict[str, Document]:
        """Get all documents keyed by ID."""
        conn = self._ensure_connected()
        rows = conn.execute("SELECT * FROM documents").fetchall()
        return {row["document_id"]: self._row_to_document(row) for row in rows}

    def _row_to_document(self, row: sqlite3.Row) -> Document:
        return Document(
            document_id=row["document_id"],
            title=row["title"],
            abstract=row["abstract"],
            authors=_json_list(row["authors_json"]),
            categories=_json_list(row["categories_json"]),
            published_at=_from_iso(row["published_at"]) if row["published_at"] else None,
            updated_at=_from_iso(row["updated_at"]),
            meta_path=row["meta_path"],
        )

    # ===== Track Matches =====

    def upsert_track_match(self, match: TrackMatch) -> None:
        """Insert or replace the match for (document_id, track_name).

        Args:
            match: The match to store.
        """
        self.upsert_track_matches([match])

    def upsert_track_matches(self, matches: Iterable[TrackMatch]) -> int:
        """Insert or replace several matches in one transaction.

        Args:
            matches: Matches to store.

        Returns:
            Number of rows written.
        """
        written = 0
        with self._transaction("upsert_track_matches") as ctx:
            conn = self._ensure_connected()
            for match in matches:
                conn.execute(
                    """
                    INSERT INTO track_matches (
                        document_id, track_name, score, matched_terms_json, matched_at
                    ) VALUES (?, ?, ?, ?, ?)
                    ON CONFLICT(document_id, track_name) DO UPDATE SET
                        score = excluded.score,
                        matched_terms_json = excluded.matched_terms_json,
                        matched_at = excluded.matched_at
                    """,
                    (
                        match.document_id,
                        match.track_name,
                        match.score,
                        json.dumps(match.matched_terms),
                        _to_iso(match.matched_at),
                    ),
                )
                written += 1
            ctx.add_affected_rows(written)

        self._metrics.record_track_matches(written)
        return written

    def get_track_matches(
        self,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> list[TrackMatch]:
        """Get track matches, optionally bounded by match time (inclusive).

        Args:
            since: Earliest matched_at to include.
            until: Latest matched_at to include.

        Returns:
            Matches ordered by document_id, track_name.
        """
        conn = self._ensure_connected()
        clauses: list[str] = []
        params: list[str] = []
        if since is not None:
            clauses.append("matched_at >= ?")
            params.append(_to_iso(since))
        if until is not None:
            clauses.append("matched_at <= ?")
            params.append(_to_iso(until))
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

        rows = conn.execute(
            f"SELECT * FROM track_matches {where} ORDER BY document_id, track_name",  # noqa: S608
            params,
        ).fetchall()

        return [
            TrackMatch(
                document_id=row["document_id"],
                track_name=row["track_name"],
                score=row["score"],
                matched_terms=_json_list(row["matched_terms_json"]),
                matched_at=_from_iso(row["matched_at"]),
            )
            for row in rows
        ]

    # ===== Relevance Judgments =====

    def upsert_judgment(self, judgment: RelevanceJudgment) -> None:
        """Insert or replace a document's judgment (last write wins).

        Args:
            judgment: The judgment to store.
        """
        self.upsert_judgments([judgment])

    def upsert_judgments(self, judgments: Iterable[RelevanceJudgment]) -> int:
        """Insert or replace a batch of judgments atomically.

        Either every judgment of the batch is stored or none is.

        Args:
            judgments: Judgments to store.

        Returns:
            Number of judgments written.
        """
        written = 0
        with self._transaction("upsert_judgments") as ctx:
            conn = self._ensure_connected()
            for judgment in judgments:
                conn.execute(
                    """
                    INSERT INTO relevance_judgments (
                        document_id, relevance, reasoning, model, scored_at
                    ) VALUES (?, ?, ?, ?, ?)
                    ON CONFLICT(document_id) DO UPDATE SET
                        relevance = excluded.relevance,
                        reasoning = excluded.reasoning,
                        model = excluded.model,
                        scored_at = excluded.scored_at
                    """,
                    (
                        judgment.document_id,
                        judgment.relevance,
                        judgment.reasoning,
                        judgment.model,
                        _to_iso(judgment.scored_at),
                    ),
                )
                written += 1
            ctx.add_affected_rows(written)

        self._metrics.record_judgments(written)
        return written

    def get_judgment(self, document_id: str) -> RelevanceJudgment | None:
        """Get the judgment for a document, or None if unscored."""
        conn = self._ensure_connected()
        row = conn.execute(
            "SELECT * FROM relevance_judgments WHERE document_id = ?", (document_id,)
        ).fetchone()
        return self._row_to_judgment(row) if row is not None else None

    def get_judgments(self) -> dict[str, RelevanceJudgment]:
        """Get all judgments keyed by document ID."""
        conn = self._ensure_connected()
        rows = conn.execute("SELECT * FROM relevance_judgments").fetchall()
        return {row["document_id"]: self._row_to_judgment(row) for row in rows}

    def count_judged(self) -> int:
        """Count documents that carry a judgment."""
        conn = self._ensure_connected()
        return int(conn.execute("SELECT COUNT(*) FROM relevance_judgments").fetchone()[0])

    def _row_to_judgment(self, row: sqlite3.Row) -> RelevanceJudgment:
        return RelevanceJudgment(
            document_id=row["document_id"],
            relevance=row["relevance"],
            reasoning=row["reasoning"],
            model=row["model"],
            scored_at=_from_iso(row["scored_at"]),
        )

    # ===== Daily Delivery Ledger =====

    def mark_digest_sent(
        self,
        digest_date: date,
        entries: Iterable[tuple[str, str]],
        sent_at: datetime | None = None,
    ) -> int:
        """Record the documents of a delivered daily digest.

        Called by the caller after a successful send, never by selection.
        Re-marking the same payload is a no-op.

        Args:
            digest_date: Calendar date of the digest.
            entries: (document_id, track_name) pairs that were sent.
            sent_at: Delivery timestamp (defaults to now).

        Returns:
            Number of ledger rows newly inserted.
        """
        sent_iso = _to_iso(sent_at or datetime.now(UTC))
        recorded = 0
        ignored = 0

        with self._transaction("mark_digest_sent") as ctx:
            conn = self._ensure_connected()
            for document_id, track_name in entries:
                cursor = conn.execute(
                    """
                    INSERT INTO delivery_records (document_id, digest_date, track_name, sent_at)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT(document_id, digest_date, track_name) DO NOTHING
                    """,
                    (document_id, digest_date.isoformat(), track_name, sent_iso),
                )
                if cursor.rowcount > 0:
                    recorded += 1
                else:
                    ignored += 1
            ctx.add_affected_rows(recorded)

        self._metrics.record_deliveries(recorded, ignored)
        self._log.info(
            "digest_marked_sent",
            digest_date=digest_date.isoformat(),
            recorded=recorded,
            ignored=ignored,
        )
        return recorded

    def has_digest_been_sent(self, digest_date: date) -> bool:
        """Check whether any document was delivered on a date."""
        conn = self._ensure_connected()
        row = conn.execute(
            "SELECT 1 FROM delivery_records WHERE digest_date = ? LIMIT 1",
            (digest_date.isoformat(),),
        ).fetchone()
        return row is not None

    def get_delivery_records(self, since: date | None = None) -> list[DeliveryRecord]:
        """Get daily ledger rows, optionally from a date onwards.

        Args:
            since: Earliest digest_date to include.

        Returns:
            Ledger rows ordered by digest_date, document_id, track_name.
        """
        conn = self._ensure_connected()
        if since is None:
            rows = conn.execute(
                "SELECT * FROM delivery_records "
                "ORDER BY digest_date, document_id, track_name"
            ).fetchall()
        else:
            rows = conn.execute(
                "SELECT * FROM delivery_records WHERE digest_date >= ? "
                "ORDER BY digest_date, document_id, track_name",
                (since.isoformat(),),
            ).fetchall()

        return [
            DeliveryRecord(
                document_id=row["document_id"],
                digest_date=date.fromisoformat(row["digest_date"]),
                track_name=row["track_name"],
                sent_at=_from_iso(row["sent_at"]),
            )
            for row in rows
        ]

    # ===== Weekly Delivery Ledger =====

    def mark_weekly_sent(
        self,
        week_iso: str,
        document_id: str,
        sections: list[str] | None = None,
        sent_at: datetime | None = None,
    ) -> bool:
        """Record the weekly deep-dive document for an ISO week.

        Safe to call twice with the same payload.

        Args:
            week_iso: ISO week string, e.g. '2026-W07'.
            document_id: The document delivered.
            sections: Rendered section names, for the record.
            sent_at: Delivery timestamp (defaults to now).

        Returns:
            True if a new ledger row was written.
        """
        record = WeeklyDelivery(
            week_iso=week_iso,
            document_id=document_id,
            sections=sections or [],
            sent_at=sent_at or datetime.now(UTC),
        )

        with self._transaction("mark_weekly_sent") as ctx:
            conn = self._ensure_connected()
            cursor = conn.execute(
                """
                INSERT INTO weekly_deliveries (week_iso, document_id, sent_at, sections_json)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(week_iso, document_id) DO NOTHING
                """,
                (
                    record.week_iso,
                    record.document_id,
                    _to_iso(record.sent_at),
                    json.dumps(record.sections),
                ),
            )
            inserted = cursor.rowcount > 0
            ctx.add_affected_rows(cursor.rowcount)

        if inserted:
            self._metrics.record_weekly()
        self._log.info(
            "weekly_marked_sent",
            week_iso=week_iso,
            document_id=document_id,
            inserted=inserted,
        )
        return inserted

    def has_weekly_been_sent(self, week_iso: str) -> bool:
        """Check whether a deep dive was delivered for an ISO week."""
        conn = self._ensure_connected()
        row = conn.execute(
            "SELECT 1 FROM weekly_deliveries WHERE week_iso = ? LIMIT 1", (week_iso,)
        ).fetchone()
        return row is not None

    def get_weekly_deliveries(self) -> list[WeeklyDelivery]:
        """Get every weekly ledger row ordered by week."""
        conn = self._ensure_connected()
        rows = conn.execute(
            "SELECT * FROM weekly_deliveries ORDER BY week_iso, document_id"
        ).fetchall()
        return [
            WeeklyDelivery(
                week_iso=row["week_iso"],
                document_id=row["document_id"],
                sent_at=_from_iso(row["sent_at"]),
                sections=_json_list(row["sections_json"]),
            )
            for row in rows
        ]

    # ===== Snapshot =====

    def load_snapshot(self) -> StoreSnapshot:
        """Materialize every relation a selection pass reads.

        Returns:
            Snapshot of documents, matches, judgments and both ledgers.
        """
        snapshot = StoreSnapshot(
            documents=self.get_documents(),
            track_matches=self.get_track_matches(),
            judgments=self.get_judgments(),
            deliveries=self.get_delivery_records(),
            weekly_deliveries=self.get_weekly_deliveries(),
        )

        self._log.debug(
            "snapshot_loaded",
            documents=len(snapshot.documents),
            track_matches=len(snapshot.track_matches),
            judgments=len(snapshot.judgments),
            deliveries=len(snapshot.deliveries),
        )
        return snapshot

    # ===== Stats =====

    def get_stats(self) -> dict[str, int]:
        """Get row counts for all tables.

        Returns:
            Dictionary mapping table name to row count.
        """
        conn = self._ensure_connected()

        stats: dict[str, int] = {}
        for table in (
            "documents",
            "track_matches",
            "relevance_judgments",
            "delivery_records",
            "weekly_deliveries",
            "runs",
        ):
            cursor = conn.execute(f"SELECT COUNT(*) FROM {table}")  # noqa: S608
            stats[table] = cursor.fetchone()[0]

        return stats

    def get_schema_version(self) -> int:
        """Get current schema version."""
        conn = self._ensure_connected()
        return MigrationManager(conn).get_current_version()
