"""Error types for external collaborators (search and LLM stages)."""


class CollaboratorError(Exception):
    """Base exception for collaborator failures.

    Pipeline stages recover from these with deterministic fallbacks.
    """


class SearchError(CollaboratorError):
    """Search provider request failed.

    Attributes:
        query: Search query that failed.
        status_code: HTTP status code, if the provider answered.
    """

    def __init__(
        self, message: str, query: str = "", status_code: int | None = None
    ) -> None:
        super().__init__(message)
        self.query = query
        self.status_code = status_code


class ClusteringError(CollaboratorError):
    """Clusterer returned no usable grouping."""


class TopicExtractionError(CollaboratorError):
    """Topic extractor returned no usable topics."""


class SummarizationError(CollaboratorError):
    """Summarizer could not produce a briefing summary."""
