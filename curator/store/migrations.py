"""SQLite schema migrations for the discovery store."""

import sqlite3
from dataclasses import dataclass
from datetime import UTC, datetime

import structlog

from curator.store.errors import MigrationError


logger = structlog.get_logger()

CURRENT_VERSION = 2


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
        description="Discovery schema: interests, articles, topics and briefings",
        up_sql="""
CREATE TABLE IF NOT EXISTS interests (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE COLLATE NOCASE,
    created_at TEXT NOT NULL,
    last_new_article_at TEXT,
    discovery_count INTEGER NOT NULL DEFAULT 0 CHECK (discovery_count >= 0),
    avg_discovery_interval_seconds REAL NOT NULL DEFAULT 0
        CHECK (avg_discovery_interval_seconds >= 0),
    last_search_attempt_at TEXT
);

CREATE TABLE IF NOT EXISTS articles (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    url TEXT NOT NULL UNIQUE,
    title TEXT NOT NULL,
    description TEXT,
    source TEXT,
    published_at TEXT,
    thumbnail_url TEXT,
    fetched_at TEXT NOT NULL,
    cluster_id TEXT,
    significance_score REAL,
    personalization_score REAL,
    interest_score REAL
);
CREATE INDEX IF NOT EXISTS idx_articles_fetched_at ON articles(fetched_at);
CREATE INDEX IF NOT EXISTS idx_articles_cluster_id ON articles(cluster_id);

CREATE TABLE IF NOT EXISTS topics (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE COLLATE NOCASE,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS article_topics (
    article_id INTEGER NOT NULL REFERENCES articles(id) ON DELETE CASCADE,
    topic_id INTEGER NOT NULL REFERENCES topics(id) ON DELETE CASCADE,
    relevance_score REAL NOT NULL CHECK (relevance_score BETWEEN 0 AND 1),
    UNIQUE (article_id, topic_id)
);
CREATE INDEX IF NOT EXISTS idx_article_topics_topic ON article_topics(topic_id);

CREATE TABLE IF NOT EXISTS topic_affinities (
    topic_id INTEGER NOT NULL UNIQUE REFERENCES topics(id) ON DELETE CASCADE,
    affinity_score REAL NOT NULL CHECK (affinity_score BETWEEN -2 AND 2),
    interaction_count INTEGER NOT NULL DEFAULT 0,
    last_updated TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS interactions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    article_id INTEGER NOT NULL REFERENCES articles(id) ON DELETE CASCADE,
    interaction_type TEXT NOT NULL
        CHECK (interaction_type IN ('click', 'like', 'dislike')),
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_interactions_article ON interactions(article_id);

CREATE TABLE IF NOT EXISTS briefings (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    created_at TEXT NOT NULL,
    topics_json TEXT NOT NULL DEFAULT '[]',
    articles_json TEXT NOT NULL DEFAULT '[]',
    summary_json TEXT
);
CREATE INDEX IF NOT EXISTS idx_briefings_created_at ON briefings(created_at);

CREATE TABLE IF NOT EXISTS briefing_articles (
    briefing_id INTEGER NOT NULL REFERENCES briefings(id) ON DELETE CASCADE,
    article_id INTEGER NOT NULL REFERENCES articles(id) ON DELETE CASCADE,
    position INTEGER NOT NULL,
    UNIQUE (briefing_id, article_id)
);
""",
        down_sql="""
DROP TABLE IF EXISTS briefing_articles;
DROP INDEX IF EXISTS idx_briefings_created_at;
DROP TABLE IF EXISTS briefings;
DROP INDEX IF EXISTS idx_interactions_article;
DROP TABLE IF EXISTS interactions;
DROP TABLE IF EXISTS topic_affinities;
DROP INDEX IF EXISTS idx_article_topics_topic;
DROP TABLE IF EXISTS article_topics;
DROP TABLE IF EXISTS topics;
DROP INDEX IF EXISTS idx_articles_cluster_id;
DROP INDEX IF EXISTS idx_articles_fetched_at;
DROP TABLE IF EXISTS articles;
DROP TABLE IF EXISTS interests;
""",
    ),
    Migration(
        version=2,
        description="Interest categories and workflow run records",
        up_sql="""
CREATE TABLE IF NOT EXISTS categories (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE COLLATE NOCASE,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS interest_categories (
    interest_id INTEGER NOT NULL REFERENCES interests(id) ON DELETE CASCADE,
    category_id INTEGER NOT NULL REFERENCES categories(id) ON DELETE CASCADE,
    UNIQUE (interest_id, category_id)
);

CREATE TABLE IF NOT EXISTS workflow_runs (
    run_id TEXT PRIMARY KEY,
    started_at TEXT NOT NULL,
    finished_at TEXT,
    status TEXT NOT NULL CHECK (status IN ('running', 'completed', 'failed')),
    scheduled_count INTEGER NOT NULL DEFAULT 0,
    search_results_count INTEGER NOT NULL DEFAULT 0,
    new_articles_saved INTEGER NOT NULL DEFAULT 0,
    duplicates_filtered INTEGER NOT NULL DEFAULT 0,
    ranked_count INTEGER NOT NULL DEFAULT 0,
    scraping_success_count INTEGER NOT NULL DEFAULT 0,
    error_message TEXT,
    duration_ms REAL
);
CREATE INDEX IF NOT EXISTS idx_workflow_runs_started_at ON workflow_runs(started_at);
""",
        down_sql="""
DROP INDEX IF EXISTS idx_workflow_runs_started_at;
DROP TABLE IF EXISTS workflow_runs;
DROP TABLE IF EXISTS interest_categories;
DROP TABLE IF EXISTS categories;
""",
    ),
]


def get_migrations_to_apply(current_version: int) -> list[Migration]:
    """Get migrations that need to be applied, in order."""
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
        row = self._conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
        return row[0] if row[0] is not None else 0

    def apply_migrations(self) -> list[int]:
        """Apply all pending migrations.

        Returns:
            List of version numbers that were applied.

        Raises:
            MigrationError: If a migration's SQL fails.
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
                self._conn.rollback()
                self._log.error(
                    "migration_failed", version=migration.version, error=str(e)
                )
                raise MigrationError(migration.version, str(e)) from e

            applied.append(migration.version)
            self._log.info("migration_applied", version=migration.version)

        return applied

    def rollback_to(self, target_version: int) -> list[int]:
        """Roll the schema back to a target version.

        Args:
            target_version: The version to roll back to.

        Returns:
            Version numbers that were rolled back, newest first.

        Raises:
            ValueError: If the target version is negative.
            MigrationError: If a rollback's SQL fails.
        """
        if target_version < 0:
            msg = f"Invalid target version: {target_version}"
            raise ValueError(msg)

        by_version = {m.version: m for m in MIGRATIONS}
        rolled_back: list[int] = []

        current = self.get_current_version()
        while current > target_version:
            migration = by_version[current]
            self._log.info("rolling_back_migration", version=migration.version)
            try:
                self._conn.executescript(migration.down_sql)
                self._conn.execute(
                    "DELETE FROM schema_version WHERE version = ?",
                    (migration.version,),
                )
                self._conn.commit()
            except sqlite3.Error as e:
                self._conn.rollback()
                self._log.error(
                    "rollback_failed", version=migration.version, error=str(e)
                )
                raise MigrationError(migration.version, str(e)) from e

            rolled_back.append(migration.version)
            current = self.get_current_version()

        return rolled_back
