"""Domain-specific error types for the LLM module."""


class LlmApiError(Exception):
    """Gemini API call failure.

    Attributes:
        status_code: HTTP status code from the API response, 0 if none.
    """

    def __init__(self, message: str, status_code: int = 0) -> None:
        super().__init__(message)
        self.status_code = status_code


class LlmProcessingError(Exception):
    """Model output could not be parsed into the expected shape."""
