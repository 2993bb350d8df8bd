"""SQLite schema migrations for the digest store."""

import sqlite3
from dataclasses import dataclass
from datetime import UTC, datetime

import structlog

from src.store.errors import MigrationError


logger = structlog.get_logger()

CURRENT_VERSION = 3


@dataclass(frozen=True)
class Migration:
    """A database migration.

    Attributes:
        version: Target version after applying this migration.
        description: Human-readable description.
        up_sql: SQL to apply the migration.
        down_sql: SQL to rollback the migration.
    """

    version: int
    description: str
    up_sql: str
    down_sql: str


MIGRATIONS: list[Migration] = [
    Migration(
        version=1,
        description="Documents, track matches and runs",
        up_sql="""
CREATE TABLE IF NOT EXISTS documents (
    document_id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    abstract TEXT NOT NULL,
    authors_json TEXT NOT NULL,
    categories_json TEXT NOT NULL,
    published_at TEXT,
    updated_at TEXT NOT NULL,
    meta_path TEXT,
    ingested_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_documents_updated_at ON documents(updated_at);

-- No foreign key to documents: a match without its document is a data
-- error the selection pass recovers from.
CREATE TABLE IF NOT EXISTS track_matches (
    document_id TEXT NOT NULL,
    track_name TEXT NOT NULL,
    score INTEGER NOT NULL CHECK (score >= 0),
    matched_terms_json TEXT NOT NULL,
    matched_at TEXT NOT NULL,
    PRIMARY KEY (document_id, track_name)
);
CREATE INDEX IF NOT EXISTS idx_track_matches_track ON track_matches(track_name);
CREATE INDEX IF NOT EXISTS idx_track_matches_matched_at ON track_matches(matched_at);

CREATE TABLE IF NOT EXISTS runs (
    run_id TEXT PRIMARY KEY,
    kind TEXT NOT NULL,
    started_at TEXT NOT NULL,
    finished_at TEXT,
    success INTEGER,
    error_summary TEXT,
    stats_json TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_runs_started_at ON runs(started_at);
""",
        down_sql="""
DROP INDEX IF EXISTS idx_runs_started_at;
DROP TABLE IF EXISTS runs;
DROP INDEX IF EXISTS idx_track_matches_matched_at;
DROP INDEX IF EXISTS idx_track_matches_track;
DROP TABLE IF EXISTS track_matches;
DROP INDEX IF EXISTS idx_documents_updated_at;
DROP TABLE IF EXISTS documents;
""",
    ),
    Migration(
        version=2,
        description="External relevance judgments",
        up_sql="""
CREATE TABLE IF NOT EXISTS relevance_judgments (
    document_id TEXT PRIMARY KEY,
    relevance INTEGER NOT NULL CHECK (relevance BETWEEN 1 AND 5),
    reasoning TEXT NOT NULL,
    model TEXT NOT NULL,
    scored_at TEXT NOT NULL
);
""",
        down_sql="""
DROP TABLE IF EXISTS relevance_judgments;
""",
    ),
    Migration(
        version=3,
        description="Daily and weekly delivery ledgers",
        up_sql="""
CREATE TABLE IF NOT EXISTS delivery_records (
    document_id TEXT NOT NULL,
    digest_date TEXT NOT NULL,
    track_name TEXT NOT NULL,
    sent_at TEXT NOT NULL,
    PRIMARY KEY (document_id, digest_date, track_name)
);
CREATE INDEX IF NOT EXISTS idx_delivery_records_digest_date ON delivery_records(digest_date);

CREATE TABLE IF NOT EXISTS weekly_deliveries (
    week_iso TEXT NOT NULL,
    document_id TEXT NOT NULL,
    sent_at TEXT NOT NULL,
    sections_json TEXT NOT NULL,
    PRIMARY KEY (week_iso, document_id)
);
""",
        down_sql="""
DROP TABLE IF EXISTS weekly_deliveries;
DROP INDEX IF EXISTS idx_delivery_records_digest_date;
DROP TABLE IF EXISTS delivery_records;
""",
    ),
]


def get_migrations_to_apply(current_version: int) -> list[Migration]:
    """Get migrations that need to be applied.

    Args:
        current_version: The current schema version.

    Returns:
        List of migrations to apply in order.
    """
    return [m for m in MIGRATIONS if m.version > current_version]


class MigrationManager:
    """Manages SQLite schema migrations."""

    VERSION_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL,
    description TEXT
);
"""

    def __init__(self, connection: sqlite3.Connection) -> None:
        """Initialize the migration manager.

        Args:
            connection: SQLite connection to manage.
        """
        self._conn = connection
        self._log = logger.bind(component="store", operation="migration")

    def ensure_version_table(self) -> None:
        """Ensure the schema_version table exists."""
        self._conn.execute(self.VERSION_TABLE_SQL)
        self._conn.commit()

    def get_current_version(self) -> int:
        """Get the current schema version.

        Returns:
            Current version number, or 0 if no migrations applied.
        """
        self.ensure_version_table()
        cursor = self._conn.execute("SELECT MAX(version) FROM schema_version")
        row = cursor.fetchone()
        return row[0] if row[0] is not None else 0

    def apply_migrations(self) -> list[int]:
        """Apply all pending migrations.

        Returns:
            List of version numbers that were applied.

        Raises:
            MigrationError: If a migration fails to apply.
        """
        current = self.get_current_version()
        pending = get_migrations_to_apply(current)

        if not pending:
            self._log.debug("no_migrations_pending", current_version=current)
            return []

        applied: list[int] = []

        for migration in pending:
            self._log.info(
                "applying_migration",
                version=migration.version,
                description=migration.description,
            )

            try:
                self._conn.executescript(migration.up_sql)
                self._conn.execute(
                    """
                    INSERT INTO schema_version (version, applied_at, description)
                    VALUES (?, ?, ?)
                    """,
                    (
                        migration.version,
                        datetime.now(UTC).isoformat(),
                        migration.description,
                    ),
                )
                self._conn.commit()
            except sqlite3.Error as e:
                self._log.error(
                    "migration_failed",
                    version=migration.version,
                    error=str(e),
                )
                self._conn.rollback()
                raise MigrationError(migration.version, str(e)) from e

            applied.append(migration.version)
            self._log.info("migration_applied", version=migration.version)

        return applied

    def rollback_to(self, target_version: int) -> list[int]:
        """Rollback to a specific version.

        Args:
            target_version: The version to rollback to.

        Returns:
            List of version numbers that were rolled back, newest first.

        Raises:
            ValueError: If target version is negative.
        """
        if target_version < 0:
            msg = f"Invalid target version: {target_version}"
            raise ValueError(msg)

        rolled_back: list[int] = []

        for migration in reversed(MIGRATIONS):
            if migration.version <= target_version:
                break
            if migration.version > self.get_current_version():
                continue

            self._log.info(
                "rolling_back_migration",
                version=migration.version,
                description=migration.description,
            )
            self._conn.executescript(migration.down_sql)
            self._conn.execute(
                "DELETE FROM schema_version WHERE version = ?", (migration.version,)
            )
            self._conn.commit()
            rolled_back.append(migration.version)

        return rolled_back
