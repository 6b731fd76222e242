"""Configuration errors."""


class ConfigurationError(Exception):
    """Raised when the pipeline cannot be configured.

    Covers missing collaborator credentials and invalid configuration files.
    Always raised before the pipeline writes anything.
    """

    def __init__(self, message: str, file_path: str | None = None) -> None:
        """Initialize the error.

        Args:
            message: Human-readable error message.
            file_path: Configuration file that failed, if any.
        """
        self.file_path = file_path
        if file_path:
            message = f"{file_path}: {message}"
        super().__init__(message)
