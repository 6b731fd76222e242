"""Gemini ``generateContent`` client authenticated with an API key."""

import random
import time
from collections.abc import Callable
from http import HTTPStatus
from typing import Any

import httpx
import structlog

from curator.llm.errors import LlmApiError


logger = structlog.get_logger()

_ENDPOINT = (
    "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
)

_MAX_RETRIES = 3
_BACKOFF_BASE_SECONDS = 2.0
_REQUEST_TIMEOUT = 60.0
_TEMPERATURE = 0.2
_TRANSIENT_STATUSES = frozenset(
    {HTTPStatus.TOO_MANY_REQUESTS, HTTPStatus.SERVICE_UNAVAILABLE}
)


def _request_body(prompt: str, system_instruction: str | None) -> dict[str, Any]:
    body: dict[str, Any] = {
        "contents": [{"role": "user", "parts": [{"text": prompt}]}],
        "generationConfig": {"temperature": _TEMPERATURE},
    }
    if system_instruction:
        body["systemInstruction"] = {"parts": [{"text": system_instruction}]}
    return body


def _answer_text(response: httpx.Response) -> str:
    """Pull the first candidate's text out of a successful response.

    Raises:
        LlmApiError: If the body is not JSON or not shaped like an answer.
    """
    try:
        payload = response.json()
    except ValueError as e:
        msg = f"Gemini API returned a non-JSON body: {e}"
        raise LlmApiError(msg, status_code=response.status_code) from e

    try:
        candidates = payload.get("candidates") or []
        if not candidates:
            msg = "No candidates in Gemini API response"
            raise LlmApiError(msg)
        parts = (candidates[0].get("content") or {}).get("parts") or []
        text = "".join(str(part.get("text") or "") for part in parts)
    except (AttributeError, KeyError, IndexError, TypeError) as e:
        msg = f"Malformed Gemini API response: {e}"
        raise LlmApiError(msg, status_code=response.status_code) from e

    if not text:
        msg = "Empty text in Gemini API response"
        raise LlmApiError(msg)
    return text


class GeminiApiKeyClient:
    """Blocking client for one Gemini model.

    Requests are spaced by ``min_request_interval`` seconds. Responses
    with status 429 or 503 are retried with exponential backoff plus
    jitter; every other failure surfaces as :class:`LlmApiError`.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.5-flash",
        min_request_interval: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the client.

        Args:
            api_key: Gemini API key.
            model: Gemini model identifier.
            min_request_interval: Minimum seconds between requests.
            sleep: Sleep function used for spacing and backoff.
        """
        self._api_key = api_key
        self.model = model
        self._min_interval = min_request_interval
        self._sleep = sleep
        self._previous_send = 0.0
        self._log = logger.bind(component="llm", subcomponent="gemini_api_key")

    def generate_content(
        self,
        prompt: str,
        system_instruction: str | None = None,
    ) -> str:
        """Ask the model for a completion.

        Args:
            prompt: User prompt text.
            system_instruction: Optional system instruction.

        Returns:
            Text of the first candidate, all parts joined.

        Raises:
            LlmApiError: On transport failure, a non-retryable status,
                exhausted retries or an unusable response body.
        """
        body = _request_body(prompt, system_instruction)
        attempt = 0
        while True:
            response = self._send(body)
            if response.status_code == HTTPStatus.OK:
                return _answer_text(response)

            status = response.status_code
            if status not in _TRANSIENT_STATUSES or attempt >= _MAX_RETRIES:
                msg = f"Gemini API returned {status}"
                raise LlmApiError(msg, status_code=status)

            delay = _BACKOFF_BASE_SECONDS * 2**attempt
            delay += random.uniform(0, 1)  # noqa: S311
            attempt += 1
            self._log.warning(
                "gemini_retryable_error",
                status=status,
                attempt=attempt,
                retry_delay=round(delay, 1),
            )
            self._sleep(delay)

    def _send(self, body: dict[str, Any]) -> httpx.Response:
        """POST one request after honoring the minimum interval."""
        waited = time.monotonic() - self._previous_send
        if waited < self._min_interval:
            self._sleep(self._min_interval - waited)
        self._previous_send = time.monotonic()

        try:
            return httpx.post(
                _ENDPOINT.format(model=self.model),
                headers={
                    "x-goog-api-key": self._api_key,
                    "Content-Type": "application/json",
                },
                json=body,
                timeout=_REQUEST_TIMEOUT,
            )
        except httpx.HTTPError as e:
            msg = f"Gemini API request failed: {e}"
            raise LlmApiError(msg) from e
