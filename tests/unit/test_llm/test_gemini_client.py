"""Unit tests for the Gemini API key client."""

from unittest.mock import MagicMock, patch

import httpx
import pytest

from curator.config.errors import ConfigurationError
from curator.config.schemas import LlmConfig
from curator.llm.errors import LlmApiError
from curator.llm.factory import create_llm_client
from curator.llm.gemini_client import GeminiApiKeyClient
from curator.llm.protocols import LlmClient


def _response(status_code: int, payload: dict[str, object] | None = None) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload or {}
    return response


def _text_payload(*texts: str) -> dict[str, object]:
    return {
        "candidates": [{"content": {"parts": [{"text": t} for t in texts]}}],
    }


def _client(sleeps: list[float] | None = None) -> GeminiApiKeyClient:
    recorded = sleeps if sleeps is not None else []
    return GeminiApiKeyClient(
        api_key="test-key", min_request_interval=0.0, sleep=recorded.append
    )


class TestGeminiApiKeyClient:
    """Tests for GeminiApiKeyClient."""

    @patch("curator.llm.gemini_client.httpx.post")
    def test_success_joins_parts(self, mock_post: MagicMock) -> None:
        """Should return the concatenated text parts."""
        mock_post.return_value = _response(200, _text_payload("[1, ", "2]"))

        assert _client().generate_content("prompt") == "[1, 2]"

    @patch("curator.llm.gemini_client.httpx.post")
    def test_request_shape(self, mock_post: MagicMock) -> None:
        """Should send the key header, prompt and system instruction."""
        mock_post.return_value = _response(200, _text_payload("ok"))

        _client().generate_content("the prompt", system_instruction="be brief")

        args, kwargs = mock_post.call_args
        assert args[0].endswith("/gemini-2.5-flash:generateContent")
        assert kwargs["headers"]["x-goog-api-key"] == "test-key"
        body = kwargs["json"]
        assert body["contents"][0]["parts"][0]["text"] == "the prompt"
        assert body["systemInstruction"]["parts"][0]["text"] == "be brief"

    @patch("curator.llm.gemini_client.httpx.post")
    def test_retries_rate_limit_then_succeeds(self, mock_post: MagicMock) -> None:
        """Should back off on 429 and retry."""
        mock_post.side_effect = [
            _response(429),
            _response(503),
            _response(200, _text_payload("done")),
        ]
        sleeps: list[float] = []

        assert _client(sleeps).generate_content("prompt") == "done"
        assert mock_post.call_count == 3
        assert len(sleeps) == 2
        assert 2.0 <= sleeps[0] < 3.0
        assert 4.0 <= sleeps[1] < 5.0

    @patch("curator.llm.gemini_client.httpx.post")
    def test_retries_exhausted(self, mock_post: MagicMock) -> None:
        """Should raise after the last retry."""
        mock_post.return_value = _response(429)

        with pytest.raises(LlmApiError, match="429") as exc_info:
            _client().generate_content("prompt")

        assert exc_info.value.status_code == 429
        assert mock_post.call_count == 4

    @patch("curator.llm.gemini_client.httpx.post")
    def test_non_retryable_status(self, mock_post: MagicMock) -> None:
        """Should fail immediately on a client error."""
        mock_post.return_value = _response(400)

        with pytest.raises(LlmApiError, match="400"):
            _client().generate_content("prompt")
        assert mock_post.call_count == 1

    @patch("curator.llm.gemini_client.httpx.post")
    def test_network_error(self, mock_post: MagicMock) -> None:
        """Should wrap transport failures."""
        mock_post.side_effect = httpx.ConnectError("Connection refused")

        with pytest.raises(LlmApiError, match="request failed"):
            _client().generate_content("prompt")

    @patch("curator.llm.gemini_client.httpx.post")
    def test_no_candidates(self, mock_post: MagicMock) -> None:
        """Should raise when the response has no candidates."""
        mock_post.return_value = _response(200, {"candidates": []})

        with pytest.raises(LlmApiError, match="No candidates"):
            _client().generate_content("prompt")

    @patch("curator.llm.gemini_client.httpx.post")
    def test_empty_text(self, mock_post: MagicMock) -> None:
        """Should raise when the candidate has no text."""
        mock_post.return_value = _response(200, _text_payload(""))

        with pytest.raises(LlmApiError, match="Empty text"):
            _client().generate_content("prompt")

    @patch("curator.llm.gemini_client.httpx.post")
    def test_html_body_with_ok_status(self, mock_post: MagicMock) -> None:
        """Should wrap a body that is not JSON, such as a proxy error page."""
        response = _response(200)
        response.json.side_effect = ValueError("Expecting value: line 1 column 1")
        mock_post.return_value = response

        with pytest.raises(LlmApiError, match="non-JSON") as exc_info:
            _client().generate_content("prompt")

        assert exc_info.value.status_code == 200

    @patch("curator.llm.gemini_client.httpx.post")
    @pytest.mark.parametrize(
        "payload",
        [
            ["not", "an", "object"],
            {"candidates": ["plain string"]},
            {"candidates": [{"content": {"parts": "text"}}]},
        ],
    )
    def test_unexpected_payload_shape(
        self, mock_post: MagicMock, payload: object
    ) -> None:
        """Should wrap JSON that does not look like a generateContent answer."""
        response = _response(200)
        response.json.return_value = payload
        mock_post.return_value = response

        with pytest.raises(LlmApiError):
            _client().generate_content("prompt")


class TestCreateLlmClient:
    """Tests for create_llm_client function."""

    def test_missing_key(self) -> None:
        """Should refuse to build a client without a key."""
        with pytest.raises(ConfigurationError, match="GEMINI_API_KEY"):
            create_llm_client(None)

    def test_uses_configured_model(self) -> None:
        """Should pass the configured model through."""
        client = create_llm_client("key", LlmConfig(model="gemini-2.5-pro"))

        assert isinstance(client, GeminiApiKeyClient)
        assert isinstance(client, LlmClient)
        assert client.model == "gemini-2.5-pro"
