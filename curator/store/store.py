"""SQLite discovery store implementation."""

import json
import sqlite3
import time
import uuid
from collections.abc import Generator, Sequence
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any

import structlog

from curator.store.errors import (
    ArticleNotFoundError,
    BriefingNotFoundError,
    InterestNotFoundError,
    RunNotFoundError,
    StoreConnectionError,
)
from curator.store.metrics import StoreMetrics, TransactionContext
from curator.store.migrations import CURRENT_VERSION, MigrationManager
from curator.store.models import (
    AFFINITY_MAX,
    AFFINITY_MIN,
    AffinityUpdate,
    Article,
    ArticleScore,
    Briefing,
    Category,
    CurationWrite,
    DiscoveryUpdate,
    Interaction,
    InteractionType,
    Interest,
    LinkedTopic,
    NewArticle,
    RunCounts,
    RunStatus,
    TopicAffinity,
    TopicLink,
    WorkflowRun,
)


logger = structlog.get_logger()


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _placeholders(count: int) -> str:
    return ", ".join("?" * count)


class DiscoveryStore:
    """SQLite store for interests, articles, topics, affinities and briefings.

    Implements every repository protocol in ``curator.store.repositories``.
    Each public write runs in its own transaction; batch writes commit or
    roll back as a unit. Uses WAL mode and enforces foreign keys.
    """

    def __init__(self, db_path: Path | str, run_id: str | None = None) -> None:
        """Initialize the store.

        Args:
            db_path: Path to SQLite database file. ``":memory:"`` is accepted.
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
    def is_connected(self) -> bool:
        """Check if connected to database."""
        return self._conn is not None

    def connect(self) -> None:
        """Open the connection and apply pending migrations.

        Creates the database file and parent directories if they don't exist.

        Raises:
            StoreConnectionError: If SQLite cannot open the file.
        """
        if self._conn is not None:
            return

        in_memory = str(self._db_path) == ":memory:"
        if not in_memory:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)

        self._log.info("connecting_to_database")

        try:
            # Fetch workers read from their own threads; writes stay on the caller.
            self._conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        except sqlite3.Error as e:
            raise StoreConnectionError(f"Cannot open {self._db_path}: {e}") from e

        self._conn.row_factory = sqlite3.Row
        if not in_memory:
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

    def __enter__(self) -> "DiscoveryStore":
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
        """Return the open connection.

        Raises:
            StoreConnectionError: If not connected.
        """
        if self._conn is None:
            raise StoreConnectionError("Database not connected. Call connect() first.")
        return self._conn

    @contextmanager
    def _transaction(self, operation: str) -> Generator[TransactionContext]:
        """Context manager for transactions with timing and logging.

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
            duration_ms = (time.perf_counter_ns() - start_ns) / 1_000_000
            self._log.error(
                "transaction_failed",
                tx_id=tx_id,
                op=operation,
                duration_ms=round(duration_ms, 2),
            )
            raise

        duration_ms = (time.perf_counter_ns() - start_ns) / 1_000_000
        self._metrics.record_tx_duration(duration_ms)
        self._log.info(
            "transaction_complete",
            tx_id=tx_id,
            op=operation,
            affected_rows=ctx.affected_rows,
            duration_ms=round(duration_ms, 2),
        )

    @staticmethod
    @contextmanager
    def _savepoint(conn: sqlite3.Connection, name: str) -> Generator[None]:
        """Nest a savepoint inside the current transaction.

        On error the savepoint's changes are undone and the error re-raised;
        the enclosing transaction stays open.
        """
        conn.execute(f"SAVEPOINT {name}")
        try:
            yield
        except Exception:
            conn.execute(f"ROLLBACK TO SAVEPOINT {name}")
            conn.execute(f"RELEASE SAVEPOINT {name}")
            raise
        conn.execute(f"RELEASE SAVEPOINT {name}")

    # ===== Row mapping =====

    @staticmethod
    def _row_to_interest(row: sqlite3.Row) -> Interest:
        return Interest(
            id=row["id"],
            name=row["name"],
            created_at=datetime.fromisoformat(row["created_at"]),
            last_new_article_at=_parse(row["last_new_article_at"]),
            discovery_count=row["discovery_count"],
            avg_discovery_interval_seconds=row["avg_discovery_interval_seconds"],
            last_search_attempt_at=_parse(row["last_search_attempt_at"]),
        )

    @staticmethod
    def _row_to_article(row: sqlite3.Row) -> Article:
        return Article(
            id=row["id"],
            url=row["url"],
            title=row["title"],
            description=row["description"],
            source=row["source"],
            published_at=_parse(row["published_at"]),
            thumbnail_url=row["thumbnail_url"],
            fetched_at=datetime.fromisoformat(row["fetched_at"]),
            cluster_id=row["cluster_id"],
            significance_score=row["significance_score"],
            personalization_score=row["personalization_score"],
            interest_score=row["interest_score"],
        )

    @staticmethod
    def _row_to_affinity(row: sqlite3.Row) -> TopicAffinity:
        return TopicAffinity(
            topic_id=row["topic_id"],
            topic_name=row["name"],
            affinity_score=row["affinity_score"],
            interaction_count=row["interaction_count"],
            last_updated=datetime.fromisoformat(row["last_updated"]),
        )

    @staticmethod
    def _row_to_briefing(row: sqlite3.Row) -> Briefing:
        return Briefing(
            id=row["id"],
            title=row["title"],
            created_at=datetime.fromisoformat(row["created_at"]),
            topics=json.loads(row["topics_json"]),
            articles=json.loads(row["articles_json"]),
            summary=json.loads(row["summary_json"]) if row["summary_json"] else None,
        )

    @staticmethod
    def _row_to_run(row: sqlite3.Row) -> WorkflowRun:
        return WorkflowRun(
            run_id=row["run_id"],
            started_at=datetime.fromisoformat(row["started_at"]),
            finished_at=_parse(row["finished_at"]),
            status=RunStatus(row["status"]),
            counts=RunCounts(
                scheduled_count=row["scheduled_count"],
                search_results_count=row["search_results_count"],
                new_articles_saved=row["new_articles_saved"],
                duplicates_filtered=row["duplicates_filtered"],
                ranked_count=row["ranked_count"],
                scraping_success_count=row["scraping_success_count"],
            ),
            error_message=row["error_message"],
            duration_ms=row["duration_ms"],
        )

    # ===== Interests =====

    def add_interest(self, name: str, now: datetime) -> Interest:
        """Add an interest, or return the existing one with the same name.

        Args:
            name: Interest name (case-insensitive unique).
            now: Creation timestamp.

        Returns:
            The stored interest.

        Raises:
            ValueError: If the name is blank.
        """
        name = " ".join(name.split())
        if not name:
            msg = "Interest name must not be blank"
            raise ValueError(msg)

        with self._transaction("add_interest") as ctx:
            conn = self._ensure_connected()
            cursor = conn.execute(
                "INSERT OR IGNORE INTO interests (name, created_at) VALUES (?, ?)",
                (name, now.isoformat()),
            )
            ctx.add_affected_rows(cursor.rowcount)
            row = conn.execute(
                "SELECT * FROM interests WHERE name = ?", (name,)
            ).fetchone()

        return self._row_to_interest(row)

    def remove_interest(self, name: str) -> None:
        """Delete an interest; category links cascade.

        Raises:
            InterestNotFoundError: If no interest has this name.
        """
        with self._transaction("remove_interest") as ctx:
            conn = self._ensure_connected()
            cursor = conn.execute("DELETE FROM interests WHERE name = ?", (name,))
            if cursor.rowcount == 0:
                raise InterestNotFoundError(name)
            ctx.add_affected_rows(cursor.rowcount)

    def list_interests(self) -> list[Interest]:
        """List all interests in creation order."""
        conn = self._ensure_connected()
        rows = conn.execute("SELECT * FROM interests ORDER BY id").fetchall()
        return [self._row_to_interest(row) for row in rows]

    def get_interests(self, interest_ids: Sequence[int]) -> dict[int, Interest]:
        """Fetch interests by id. Missing ids are absent from the result."""
        if not interest_ids:
            return {}
        conn = self._ensure_connected()
        ids = list(dict.fromkeys(interest_ids))
        rows = conn.execute(
            f"SELECT * FROM interests WHERE id IN ({_placeholders(len(ids))})",
            ids,
        ).fetchall()
        return {row["id"]: self._row_to_interest(row) for row in rows}

    def mark_search_attempts(self, interest_ids: Sequence[int], now: datetime) -> int:
        """Stamp ``last_search_attempt_at`` on the given interests in one transaction.

        Returns:
            Number of interests stamped.
        """
        if not interest_ids:
            return 0
        ids = list(dict.fromkeys(interest_ids))
        with self._transaction("mark_search_attempts") as ctx:
            conn = self._ensure_connected()
            cursor = conn.execute(
                f"""
                UPDATE interests SET last_search_attempt_at = ?
                WHERE id IN ({_placeholders(len(ids))})
                """,
                [now.isoformat(), *ids],
            )
            ctx.add_affected_rows(cursor.rowcount)
        return ctx.affected_rows

    def reset_search_attempts(self) -> int:
        """Clear every interest's search attempt stamp.

        Returns:
            Number of interests that had a stamp.
        """
        with self._transaction("reset_search_attempts") as ctx:
            conn = self._ensure_connected()
            cursor = conn.execute(
                """
                UPDATE interests SET last_search_attempt_at = NULL
                WHERE last_search_attempt_at IS NOT NULL
                """
            )
            ctx.add_affected_rows(cursor.rowcount)
        return ctx.affected_rows

    # ===== Categories =====

    def add_category(self, name: str, now: datetime) -> Category:
        """Add a category, or return the existing one with the same name.

        Raises:
            ValueError: If the name is blank.
        """
        name = " ".join(name.split())
        if not name:
            msg = "Category name must not be blank"
            raise ValueError(msg)

        with self._transaction("add_category") as ctx:
            conn = self._ensure_connected()
            cursor = conn.execute(
                "INSERT OR IGNORE INTO categories (name, created_at) VALUES (?, ?)",
                (name, now.isoformat()),
            )
            ctx.add_affected_rows(cursor.rowcount)

        return self._get_category(name)

    def assign_category(
        self, interest_name: str, category_name: str, now: datetime
    ) -> Category:
        """Link an interest to a category, creating the category if needed.

        Raises:
            InterestNotFoundError: If the interest does not exist.
        """
        conn = self._ensure_connected()
        interest_row = conn.execute(
            "SELECT id FROM interests WHERE name = ?", (interest_name,)
        ).fetchone()
        if interest_row is None:
            raise InterestNotFoundError(interest_name)

        category = self.add_category(category_name, now)
        with self._transaction("assign_category") as ctx:
            cursor = conn.execute(
                """
                INSERT OR IGNORE INTO interest_categories (interest_id, category_id)
                VALUES (?, ?)
                """,
                (interest_row["id"], category.id),
            )
            ctx.add_affected_rows(cursor.rowcount)

        return self._get_category(category.name)

    def _get_category(self, name: str) -> Category:
        conn = self._ensure_connected()
        row = conn.execute(
            "SELECT * FROM categories WHERE name = ?", (name,)
        ).fetchone()
        members = conn.execute(
            """
            SELECT i.name FROM interest_categories ic
            JOIN interests i ON i.id = ic.interest_id
            WHERE ic.category_id = ?
            ORDER BY i.name
            """,
            (row["id"],),
        ).fetchall()
        return Category(
            id=row["id"],
            name=row["name"],
            created_at=datetime.fromisoformat(row["created_at"]),
            interest_names=[m["name"] for m in members],
        )

    def list_categories(self) -> list[Category]:
        """List categories with their member interest names."""
        conn = self._ensure_connected()
        rows = conn.execute("SELECT name FROM categories ORDER BY name").fetchall()
        return [self._get_category(row["name"]) for row in rows]

    # ===== Articles =====

    def existing_urls(self, urls: Sequence[str]) -> set[str]:
        """Return the subset of ``urls`` already stored."""
        if not urls:
            return set()
        conn = self._ensure_connected()
        unique = list(dict.fromkeys(urls))
        rows = conn.execute(
            f"SELECT url FROM articles WHERE url IN ({_placeholders(len(unique))})",
            unique,
        ).fetchall()
        return {row["url"] for row in rows}

    def save_curation_batch(
        self,
        articles: Sequence[NewArticle],
        discovery_updates: Sequence[DiscoveryUpdate],
        now: datetime,
    ) -> CurationWrite:
        """Insert new articles and apply discovery statistics in one transaction.

        An article insert failure rolls back the whole batch. A statistics
        update failure for one interest rolls back only that update and is
        reported in ``failed_interest_ids``.

        Args:
            articles: Deduplicated articles to insert.
            discovery_updates: New statistics per interest.
            now: Value written to ``fetched_at``.

        Returns:
            The inserted articles and per-interest update outcomes.
        """
        saved: list[Article] = []
        updated: list[int] = []
        failed: list[int] = []

        with self._transaction("save_curation_batch") as ctx:
            conn = self._ensure_connected()
            for article in articles:
                cursor = conn.execute(
                    """
                    INSERT INTO articles (
                        url, title, description, source, published_at,
                        thumbnail_url, fetched_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        article.url,
                        article.title,
                        article.description,
                        article.source,
                        _iso(article.published_at),
                        article.thumbnail_url,
                        now.isoformat(),
                    ),
                )
                saved.append(
                    Article(
                        id=cursor.lastrowid,
                        url=article.url,
                        title=article.title,
                        description=article.description,
                        source=article.source,
                        published_at=article.published_at,
                        thumbnail_url=article.thumbnail_url,
                        fetched_at=now,
                    )
                )
            ctx.add_affected_rows(len(saved))

            for update in discovery_updates:
                try:
                    with self._savepoint(conn, "discovery_update"):
                        cursor = conn.execute(
                            """
                            UPDATE interests SET
                                last_new_article_at = ?,
                                discovery_count = ?,
                                avg_discovery_interval_seconds = ?
                            WHERE id = ?
                            """,
                            (
                                update.last_new_article_at.isoformat(),
                                update.discovery_count,
                                update.avg_discovery_interval_seconds,
                                update.interest_id,
                            ),
                        )
                        if cursor.rowcount == 0:
                            raise InterestNotFoundError(update.interest_id)
                except (sqlite3.Error, InterestNotFoundError) as e:
                    failed.append(update.interest_id)
                    self._metrics.record_discovery_update_failure()
                    self._log.warning(
                        "discovery_update_failed",
                        interest_id=update.interest_id,
                        error=str(e),
                    )
                    continue
                updated.append(update.interest_id)
                ctx.add_affected_rows(1)

        self._metrics.record_inserts(len(saved))
        return CurationWrite(
            saved=saved, updated_interest_ids=updated, failed_interest_ids=failed
        )

    def get_article(self, article_id: int) -> Article | None:
        """Get an article by id."""
        conn = self._ensure_connected()
        row = conn.execute(
            "SELECT * FROM articles WHERE id = ?", (article_id,)
        ).fetchone()
        return self._row_to_article(row) if row is not None else None

    def get_articles(self, article_ids: Sequence[int]) -> dict[int, Article]:
        """Fetch articles by id. Missing ids are absent from the result."""
        if not article_ids:
            return {}
        conn = self._ensure_connected()
        ids = list(dict.fromkeys(article_ids))
        rows = conn.execute(
            f"SELECT * FROM articles WHERE id IN ({_placeholders(len(ids))})",
            ids,
        ).fetchall()
        return {row["id"]: self._row_to_article(row) for row in rows}

    def count_articles(self) -> int:
        """Count stored articles."""
        conn = self._ensure_connected()
        return conn.execute("SELECT COUNT(*) FROM articles").fetchone()[0]

    def save_article_scores(self, scores: Sequence[ArticleScore]) -> int:
        """Write ranking scores and cluster ids in one transaction.

        Scores for article ids that no longer exist are skipped.

        Returns:
            Number of article rows updated.
        """
        with self._transaction("save_article_scores") as ctx:
            conn = self._ensure_connected()
            for score in scores:
                cursor = conn.execute(
                    """
                    UPDATE articles SET
                        cluster_id = ?,
                        significance_score = ?,
                        personalization_score = ?,
                        interest_score = ?
                    WHERE id = ?
                    """,
                    (
                        score.cluster_id,
                        score.significance_score,
                        score.personalization_score,
                        score.interest_score,
                        score.article_id,
                    ),
                )
                if cursor.rowcount == 0:
                    self._log.warning(
                        "score_target_missing", article_id=score.article_id
                    )
                ctx.add_affected_rows(cursor.rowcount)

        self._metrics.record_scores(ctx.affected_rows)
        return ctx.affected_rows

    # ===== Topics =====

    def save_article_topics(
        self, links: dict[int, list[TopicLink]], now: datetime
    ) -> int:
        """Create topics lazily and link them to articles in one transaction.

        Re-linking an existing pair overwrites its relevance.

        Args:
            links: Topic links keyed by article id.
            now: Creation timestamp for new topics.

        Returns:
            Number of article-topic links written.
        """
        with self._transaction("save_article_topics") as ctx:
            conn = self._ensure_connected()
            for article_id, topic_links in links.items():
                for link in topic_links:
                    conn.execute(
                        "INSERT OR IGNORE INTO topics (name, created_at) VALUES (?, ?)",
                        (link.name, now.isoformat()),
                    )
                    topic_id = conn.execute(
                        "SELECT id FROM topics WHERE name = ?", (link.name,)
                    ).fetchone()["id"]
                    conn.execute(
                        """
                        INSERT INTO article_topics
                            (article_id, topic_id, relevance_score)
                        VALUES (?, ?, ?)
                        ON CONFLICT (article_id, topic_id)
                        DO UPDATE SET relevance_score = excluded.relevance_score
                        """,
                        (article_id, topic_id, link.relevance),
                    )
                    ctx.add_affected_rows(1)
        return ctx.affected_rows

    def get_linked_topics(
        self, article_ids: Sequence[int]
    ) -> dict[int, list[LinkedTopic]]:
        """Get each article's topics with relevance and current affinity.

        Returns:
            Topics keyed by article id, most relevant first. Articles with no
            topics map to an empty list.
        """
        result: dict[int, list[LinkedTopic]] = {aid: [] for aid in article_ids}
        if not article_ids:
            return result
        conn = self._ensure_connected()
        ids = list(result)
        rows = conn.execute(
            f"""
            SELECT at.article_id, t.id AS topic_id, t.name, at.relevance_score,
                   ta.affinity_score, ta.interaction_count
            FROM article_topics at
            JOIN topics t ON t.id = at.topic_id
            LEFT JOIN topic_affinities ta ON ta.topic_id = t.id
            WHERE at.article_id IN ({_placeholders(len(ids))})
            ORDER BY at.article_id, at.relevance_score DESC, t.name
            """,
            ids,
        ).fetchall()
        for row in rows:
            result[row["article_id"]].append(
                LinkedTopic(
                    topic_id=row["topic_id"],
                    name=row["name"],
                    relevance=row["relevance_score"],
                    affinity_score=row["affinity_score"],
                    interaction_count=row["interaction_count"],
                )
            )
        return result

    # ===== Affinity =====

    def record_interaction(
        self,
        article_id: int,
        interaction_type: InteractionType,
        updates: Sequence[AffinityUpdate],
        now: datetime,
    ) -> Interaction:
        """Append an interaction and apply affinity steps atomically.

        Each step is added to the stored score inside the write, so
        concurrent feedback on shared topics is never lost.

        Raises:
            ArticleNotFoundError: If the article does not exist.
        """
        with self._transaction("record_interaction") as ctx:
            conn = self._ensure_connected()
            if conn.execute(
                "SELECT 1 FROM articles WHERE id = ?", (article_id,)
            ).fetchone() is None:
                raise ArticleNotFoundError(article_id)

            cursor = conn.execute(
                """
                INSERT INTO interactions (article_id, interaction_type, created_at)
                VALUES (?, ?, ?)
                """,
                (article_id, interaction_type.value, now.isoformat()),
            )
            interaction_id = cursor.lastrowid
            ctx.add_affected_rows(1)

            for update in updates:
                conn.execute(
                    """
                    INSERT INTO topic_affinities (
                        topic_id, affinity_score, interaction_count, last_updated
                    ) VALUES (?, MIN(MAX(?, ?), ?), 1, ?)
                    ON CONFLICT (topic_id) DO UPDATE SET
                        affinity_score = MIN(
                            MAX(topic_affinities.affinity_score + ?, ?), ?
                        ),
                        interaction_count = topic_affinities.interaction_count + 1,
                        last_updated = excluded.last_updated
                    """,
                    (
                        update.topic_id,
                        update.delta,
                        AFFINITY_MIN,
                        AFFINITY_MAX,
                        now.isoformat(),
                        update.delta,
                        AFFINITY_MIN,
                        AFFINITY_MAX,
                    ),
                )
                ctx.add_affected_rows(1)

        self._metrics.record_interaction()
        self._metrics.record_affinity_updates(len(updates))
        return Interaction(
            id=interaction_id,
            article_id=article_id,
            interaction_type=interaction_type,
            created_at=now,
        )

    def list_interactions(self, article_id: int | None = None) -> list[Interaction]:
        """List interactions, oldest first, optionally for one article."""
        conn = self._ensure_connected()
        query = "SELECT * FROM interactions"
        params: tuple[Any, ...] = ()
        if article_id is not None:
            query += " WHERE article_id = ?"
            params = (article_id,)
        rows = conn.execute(query + " ORDER BY id", params).fetchall()
        return [
            Interaction(
                id=row["id"],
                article_id=row["article_id"],
                interaction_type=InteractionType(row["interaction_type"]),
                created_at=datetime.fromisoformat(row["created_at"]),
            )
            for row in rows
        ]

    def list_affinities(self) -> list[TopicAffinity]:
        """List topic affinities, strongest first."""
        conn = self._ensure_connected()
        rows = conn.execute(
            """
            SELECT ta.*, t.name FROM topic_affinities ta
            JOIN topics t ON t.id = ta.topic_id
            ORDER BY ta.affinity_score DESC, t.name
            """
        ).fetchall()
        return [self._row_to_affinity(row) for row in rows]

    def recommend_topics(
        self, min_affinity: float, min_interactions: int, limit: int
    ) -> list[TopicAffinity]:
        """Topics the user likes that are not yet interests.

        Args:
            min_affinity: Exclusive lower bound on affinity.
            min_interactions: Inclusive lower bound on interaction count.
            limit: Maximum number of topics.

        Returns:
            Matching affinities, strongest first.
        """
        conn = self._ensure_connected()
        rows = conn.execute(
            """
            SELECT ta.*, t.name FROM topic_affinities ta
            JOIN topics t ON t.id = ta.topic_id
            WHERE ta.affinity_score > ?
              AND ta.interaction_count >= ?
              AND LOWER(t.name) NOT IN (SELECT LOWER(name) FROM interests)
            ORDER BY ta.affinity_score DESC, t.name
            LIMIT ?
            """,
            (min_affinity, min_interactions, limit),
        ).fetchall()
        return [self._row_to_affinity(row) for row in rows]

    # ===== Briefings =====

    def save_briefing(
        self,
        title: str,
        topics: Sequence[str],
        articles: Sequence[Article],
        now: datetime,
    ) -> Briefing:
        """Save a briefing and its ordered article links.

        Returns:
            The stored briefing, without summary.
        """
        snapshots = [article.model_dump(mode="json") for article in articles]
        with self._transaction("save_briefing") as ctx:
            conn = self._ensure_connected()
            cursor = conn.execute(
                """
                INSERT INTO briefings (title, created_at, topics_json, articles_json)
                VALUES (?, ?, ?, ?)
                """,
                (
                    title,
                    now.isoformat(),
                    json.dumps(list(topics)),
                    json.dumps(snapshots),
                ),
            )
            briefing_id = cursor.lastrowid
            conn.executemany(
                """
                INSERT INTO briefing_articles (briefing_id, article_id, position)
                VALUES (?, ?, ?)
                """,
                [(briefing_id, a.id, pos) for pos, a in enumerate(articles)],
            )
            ctx.add_affected_rows(1 + len(articles))

        return Briefing(
            id=briefing_id,
            title=title,
            created_at=now,
            topics=list(topics),
            articles=snapshots,
        )

    def attach_summary(self, briefing_id: int, summary: dict[str, Any]) -> None:
        """Attach a summary document to a briefing.

        Raises:
            BriefingNotFoundError: If the briefing does not exist.
        """
        with self._transaction("attach_summary") as ctx:
            conn = self._ensure_connected()
            cursor = conn.execute(
                "UPDATE briefings SET summary_json = ? WHERE id = ?",
                (json.dumps(summary), briefing_id),
            )
            if cursor.rowcount == 0:
                raise BriefingNotFoundError(briefing_id)
            ctx.add_affected_rows(cursor.rowcount)

    def get_briefing(self, briefing_id: int) -> Briefing | None:
        """Get a briefing by id."""
        conn = self._ensure_connected()
        row = conn.execute(
            "SELECT * FROM briefings WHERE id = ?", (briefing_id,)
        ).fetchone()
        return self._row_to_briefing(row) if row is not None else None

    def get_briefing_articles(self, briefing_id: int) -> list[Article]:
        """Get a briefing's articles in briefing order."""
        conn = self._ensure_connected()
        rows = conn.execute(
            """
            SELECT a.* FROM briefing_articles ba
            JOIN articles a ON a.id = ba.article_id
            WHERE ba.briefing_id = ?
            ORDER BY ba.position
            """,
            (briefing_id,),
        ).fetchall()
        return [self._row_to_article(row) for row in rows]

    def list_briefings(self, limit: int = 30) -> list[Briefing]:
        """List the newest briefings first."""
        conn = self._ensure_connected()
        rows = conn.execute(
            "SELECT * FROM briefings ORDER BY created_at DESC, id DESC LIMIT ?",
            (limit,),
        ).fetchall()
        return [self._row_to_briefing(row) for row in rows]

    def prune_briefings(self, keep: int) -> int:
        """Delete all but the newest ``keep`` briefings.

        Returns:
            Number of briefings deleted.

        Raises:
            ValueError: If keep is negative.
        """
        if keep < 0:
            msg = f"keep must be non-negative, got {keep}"
            raise ValueError(msg)

        with self._transaction("prune_briefings") as ctx:
            conn = self._ensure_connected()
            cursor = conn.execute(
                """
                DELETE FROM briefings WHERE id NOT IN (
                    SELECT id FROM briefings ORDER BY created_at DESC, id DESC LIMIT ?
                )
                """,
                (keep,),
            )
            ctx.add_affected_rows(cursor.rowcount)

        self._metrics.record_briefings_pruned(ctx.affected_rows)
        if ctx.affected_rows:
            self._log.info("briefings_pruned", deleted=ctx.affected_rows, kept=keep)
        return ctx.affected_rows

    # ===== Workflow runs =====

    def begin_run(self, run_id: str, now: datetime) -> WorkflowRun:
        """Record the start of a pipeline run."""
        with self._transaction("begin_run") as ctx:
            conn = self._ensure_connected()
            conn.execute(
                """
                INSERT INTO workflow_runs (run_id, started_at, status)
                VALUES (?, ?, ?)
                """,
                (run_id, now.isoformat(), RunStatus.RUNNING.value),
            )
            ctx.add_affected_rows(1)
        return WorkflowRun(run_id=run_id, started_at=now)

    def end_run(
        self,
        run_id: str,
        status: RunStatus,
        counts: RunCounts,
        now: datetime,
        error_message: str | None = None,
    ) -> WorkflowRun:
        """Record the end of a pipeline run with its counters.

        Raises:
            RunNotFoundError: If the run was never begun.
        """
        run = self.get_run(run_id)
        if run is None:
            raise RunNotFoundError(run_id)
        duration_ms = (now - run.started_at).total_seconds() * 1000

        with self._transaction("end_run") as ctx:
            conn = self._ensure_connected()
            cursor = conn.execute(
                """
                UPDATE workflow_runs SET
                    finished_at = ?, status = ?,
                    scheduled_count = ?, search_results_count = ?,
                    new_articles_saved = ?, duplicates_filtered = ?,
                    ranked_count = ?, scraping_success_count = ?,
                    error_message = ?, duration_ms = ?
                WHERE run_id = ?
                """,
                (
                    now.isoformat(),
                    status.value,
                    counts.scheduled_count,
                    counts.search_results_count,
                    counts.new_articles_saved,
                    counts.duplicates_filtered,
                    counts.ranked_count,
                    counts.scraping_success_count,
                    error_message,
                    duration_ms,
                    run_id,
                ),
            )
            ctx.add_affected_rows(cursor.rowcount)

        return run.model_copy(
            update={
                "finished_at": now,
                "status": status,
                "counts": counts,
                "error_message": error_message,
                "duration_ms": duration_ms,
            }
        )

    def get_run(self, run_id: str) -> WorkflowRun | None:
        """Get a run record by id."""
        conn = self._ensure_connected()
        row = conn.execute(
            "SELECT * FROM workflow_runs WHERE run_id = ?", (run_id,)
        ).fetchone()
        return self._row_to_run(row) if row is not None else None

    def list_runs(self, limit: int = 20) -> list[WorkflowRun]:
        """List the most recent runs first."""
        conn = self._ensure_connected()
        rows = conn.execute(
            "SELECT * FROM workflow_runs ORDER BY started_at DESC LIMIT ?", (limit,)
        ).fetchall()
        return [self._row_to_run(row) for row in rows]
