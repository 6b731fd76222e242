"""LLM client and response parsing helpers."""

from curator.llm.errors import LlmApiError, LlmProcessingError
from curator.llm.factory import create_llm_client
from curator.llm.gemini_client import GeminiApiKeyClient
from curator.llm.json_utils import parse_json_array, parse_json_object
from curator.llm.protocols import LlmClient


__all__ = [
    "GeminiApiKeyClient",
    "LlmApiError",
    "LlmClient",
    "LlmProcessingError",
    "create_llm_client",
    "parse_json_array",
    "parse_json_object",
]
