"""Unit tests for schema migrations."""

import sqlite3
from collections.abc import Generator

import pytest

from src.store.migrations import (
    CURRENT_VERSION,
    MIGRATIONS,
    MigrationManager,
    get_migrations_to_apply,
)


def _table_exists(conn: sqlite3.Connection, name: str) -> bool:
    cursor = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name=?", (name,)
    )
    return cursor.fetchone() is not None


def _columns(conn: sqlite3.Connection, table: str) -> set[str]:
    return {row[1] for row in conn.execute(f"PRAGMA table_info({table})")}


@pytest.fixture
def temp_db() -> Generator[sqlite3.Connection]:
    """Create a temporary in-memory database."""
    conn = sqlite3.connect(":memory:")
    yield conn
    conn.close()


class TestMigrationConstants:
    """Tests for migration constants."""

    def test_migrations_in_order(self) -> None:
        """Migrations are numbered 1..N in ascending order."""
        versions = [m.version for m in MIGRATIONS]
        assert versions == list(range(1, len(MIGRATIONS) + 1))

    def test_migrations_have_up_and_down(self) -> None:
        """Every migration can be applied and rolled back."""
        for migration in MIGRATIONS:
            assert migration.up_sql.strip()
            assert migration.down_sql.strip()

    def test_current_version_matches_latest_migration(self) -> None:
        """CURRENT_VERSION tracks the last migration."""
        assert MIGRATIONS[-1].version == CURRENT_VERSION


class TestGetMigrationsToApply:
    """Tests for get_migrations_to_apply."""

    def test_from_zero(self) -> None:
        """A fresh database needs every migration."""
        assert get_migrations_to_apply(0) == MIGRATIONS

    def test_from_current(self) -> None:
        """Nothing is pending at the current version."""
        assert get_migrations_to_apply(CURRENT_VERSION) == []

    def test_from_intermediate(self) -> None:
        """Only later migrations are pending."""
        pending = get_migrations_to_apply(1)
        assert [m.version for m in pending] == list(range(2, CURRENT_VERSION + 1))


class TestMigrationManager:
    """Tests for MigrationManager."""

    def test_version_zero_when_empty(self, temp_db: sqlite3.Connection) -> None:
        """An empty database is at version 0 with a version table."""
        manager = MigrationManager(temp_db)

        assert manager.get_current_version() == 0
        assert _table_exists(temp_db, "schema_version")

    def test_apply_migrations_idempotent(self, temp_db: sqlite3.Connection) -> None:
        """Applying twice only runs the migrations once."""
        manager = MigrationManager(temp_db)

        assert manager.apply_migrations() == [m.version for m in MIGRATIONS]
        assert manager.apply_migrations() == []
        assert manager.get_current_version() == CURRENT_VERSION

    def test_tables_created(self, temp_db: sqlite3.Connection) -> None:
        """Every relation of the store exists after migrating."""
        MigrationManager(temp_db).apply_migrations()

        for table in (
            "documents",
            "track_matches",
            "relevance_judgments",
            "delivery_records",
            "weekly_deliveries",
            "runs",
        ):
            assert _table_exists(temp_db, table), table

    def test_rollback_to_zero(self, temp_db: sqlite3.Connection) -> None:
        """Rolling back to 0 drops every table, newest migration first."""
        manager = MigrationManager(temp_db)
        manager.apply_migrations()

        rolled_back = manager.rollback_to(0)

        assert rolled_back == [m.version for m in reversed(MIGRATIONS)]
        assert manager.get_current_version() == 0
        assert not _table_exists(temp_db, "documents")
        assert not _table_exists(temp_db, "delivery_records")

    def test_rollback_partial(self, temp_db: sqlite3.Connection) -> None:
        """Rolling back to 2 drops only the ledgers."""
        manager = MigrationManager(temp_db)
        manager.apply_migrations()

        assert manager.rollback_to(2) == [3]
        assert manager.get_current_version() == 2
        assert _table_exists(temp_db, "relevance_judgments")
        assert not _table_exists(temp_db, "weekly_deliveries")

    def test_rollback_invalid_version_raises(self, temp_db: sqlite3.Connection) -> None:
        """Negative targets are rejected."""
        manager = MigrationManager(temp_db)
        manager.apply_migrations()

        with pytest.raises(ValueError, match="Invalid target version"):
            manager.rollback_to(-1)


class TestMigrationSQL:
    """Tests for migration SQL correctness."""

    def test_documents_schema(self, temp_db: sqlite3.Connection) -> None:
        """The documents table carries text, timestamps and the sidecar path."""
        MigrationManager(temp_db).apply_migrations()

        assert {
            "document_id",
            "title",
            "abstract",
            "authors_json",
            "categories_json",
            "published_at",
            "updated_at",
            "meta_path",
        } <= _columns(temp_db, "documents")

    def test_track_match_key(self, temp_db: sqlite3.Connection) -> None:
        """A (document, track) pair can only be stored once."""
        MigrationManager(temp_db).apply_migrations()
        row = ("a", "agents", 1, "[]", "2026-02-12T09:00:00+00:00")
        temp_db.execute("INSERT INTO track_matches VALUES (?, ?, ?, ?, ?)", row)

        with pytest.raises(sqlite3.IntegrityError):
            temp_db.execute("INSERT INTO track_matches VALUES (?, ?, ?, ?, ?)", row)

    def test_relevance_check_constraint(self, temp_db: sqlite3.Connection) -> None:
        """Judgment values outside 1..5 are rejected by the schema."""
        MigrationManager(temp_db).apply_migrations()

        with pytest.raises(sqlite3.IntegrityError):
            temp_db.execute(
                "INSERT INTO relevance_judgments VALUES (?, ?, ?, ?, ?)",
                ("a", 6, "", "judge", "2026-02-12T09:00:00+00:00"),
            )

    def test_delivery_key(self, temp_db: sqlite3.Connection) -> None:
        """The daily ledger is keyed by document, date and track."""
        MigrationManager(temp_db).apply_migrations()
        sql = "INSERT INTO delivery_records VALUES (?, ?, ?, ?)"
        sent = "2026-02-12T09:00:00+00:00"

        temp_db.execute(sql, ("a", "2026-02-12", "agents", sent))
        temp_db.execute(sql, ("a", "2026-02-12", "rag", sent))
        with pytest.raises(sqlite3.IntegrityError):
            temp_db.execute(sql, ("a", "2026-02-12", "agents", sent))
