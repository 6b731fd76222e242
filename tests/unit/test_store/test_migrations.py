"""Tests for schema migrations."""

import sqlite3

import pytest

from curator.store.migrations import (
    CURRENT_VERSION,
    MIGRATIONS,
    MigrationManager,
    get_migrations_to_apply,
)


def _table_names(conn: sqlite3.Connection) -> set[str]:
    rows = conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
    return {row[0] for row in rows}


class TestMigrationManager:
    """Tests for MigrationManager."""

    def test_fresh_database_starts_at_zero(self) -> None:
        """Test an empty database reports version 0."""
        conn = sqlite3.connect(":memory:")
        assert MigrationManager(conn).get_current_version() == 0

    def test_apply_all(self) -> None:
        """Test all migrations apply in order."""
        conn = sqlite3.connect(":memory:")
        manager = MigrationManager(conn)

        applied = manager.apply_migrations()

        assert applied == [m.version for m in MIGRATIONS]
        assert manager.get_current_version() == CURRENT_VERSION
        assert {"interests", "articles", "briefings", "workflow_runs"} <= _table_names(
            conn
        )

    def test_apply_twice_is_noop(self) -> None:
        """Test re-applying does nothing."""
        conn = sqlite3.connect(":memory:")
        manager = MigrationManager(conn)
        manager.apply_migrations()

        assert manager.apply_migrations() == []

    def test_rollback_to_first_version(self) -> None:
        """Test rolling back drops the later tables."""
        conn = sqlite3.connect(":memory:")
        manager = MigrationManager(conn)
        manager.apply_migrations()

        manager.rollback_to(1)

        assert manager.get_current_version() == 1
        tables = _table_names(conn)
        assert "workflow_runs" not in tables
        assert "interests" in tables

    def test_rollback_negative_target(self) -> None:
        """Test a negative target is rejected."""
        conn = sqlite3.connect(":memory:")
        with pytest.raises(ValueError, match="Invalid target version"):
            MigrationManager(conn).rollback_to(-1)


class TestGetMigrationsToApply:
    """Tests for get_migrations_to_apply function."""

    def test_pending_only(self) -> None:
        """Test only migrations newer than the current version are returned."""
        assert [m.version for m in get_migrations_to_apply(1)] == [2]
        assert get_migrations_to_apply(CURRENT_VERSION) == []
