"""Factory for the configured LLM client."""

import structlog

from curator.config.errors import ConfigurationError
from curator.config.schemas import LlmConfig
from curator.llm.gemini_client import GeminiApiKeyClient
from curator.llm.protocols import LlmClient


logger = structlog.get_logger()


def create_llm_client(
    api_key: str | None, config: LlmConfig | None = None
) -> LlmClient:
    """Create the Gemini client.

    Args:
        api_key: Gemini API key.
        config: LLM settings. Defaults apply when None.

    Returns:
        A ready client.

    Raises:
        ConfigurationError: If the API key is missing.
    """
    if not api_key:
        msg = "GEMINI_API_KEY is not set"
        raise ConfigurationError(msg)

    config = config or LlmConfig()
    logger.info("llm_client_created", component="llm", model=config.model)
    return GeminiApiKeyClient(
        api_key=api_key,
        model=config.model,
        min_request_interval=config.min_request_interval_seconds,
    )
