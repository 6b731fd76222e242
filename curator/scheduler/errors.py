"""Scheduler errors."""

from curator.config.errors import ConfigurationError


class NoInterestsError(ConfigurationError):
    """Raised when a run is started with no interests configured."""

    def __init__(self) -> None:
        """Initialize the error."""
        super().__init__("No interests configured; add one before running")
