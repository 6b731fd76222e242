"""Domain exceptions for the discovery store.

Infrastructure failures (connection, migration) and domain lookups that miss
(article, interest, briefing) share one base class so callers can stop a run
on any persistence error with a single handler.
"""


class StoreError(Exception):
    """Base exception for all discovery store errors."""


class StoreConnectionError(StoreError):
    """Raised when the database connection is missing or unusable."""

    def __init__(self, message: str = "Database not connected") -> None:
        """Initialize the connection error.

        Args:
            message: Human-readable error message.
        """
        super().__init__(message)


class ArticleNotFoundError(StoreError):
    """Raised when an article id does not exist."""

    def __init__(self, article_id: int) -> None:
        """Initialize the error with the missing article id.

        Args:
            article_id: The article id that was not found.
        """
        self.article_id = article_id
        super().__init__(f"Article not found: {article_id}")


class InterestNotFoundError(StoreError):
    """Raised when an interest cannot be found by id or name."""

    def __init__(self, interest: int | str) -> None:
        """Initialize the error with the missing interest key.

        Args:
            interest: The interest id or name that was not found.
        """
        self.interest = interest
        super().__init__(f"Interest not found: {interest}")


class BriefingNotFoundError(StoreError):
    """Raised when a briefing id does not exist."""

    def __init__(self, briefing_id: int) -> None:
        """Initialize the error with the missing briefing id.

        Args:
            briefing_id: The briefing id that was not found.
        """
        self.briefing_id = briefing_id
        super().__init__(f"Briefing not found: {briefing_id}")


class MigrationError(StoreError):
    """Raised when a schema migration cannot be applied or rolled back."""

    def __init__(self, version: int, message: str) -> None:
        """Initialize the migration error.

        Args:
            version: The migration version that failed.
            message: Human-readable error message.
        """
        self.version = version
        super().__init__(f"Migration {version} failed: {message}")


class RunNotFoundError(StoreError):
    """Raised when a workflow run record does not exist."""

    def __init__(self, run_id: str) -> None:
        """Initialize the error with the missing run id.

        Args:
            run_id: The run id that was not found.
        """
        self.run_id = run_id
        super().__init__(f"Run not found: {run_id}")
