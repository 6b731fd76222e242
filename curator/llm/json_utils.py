"""Shared JSON parsing utilities for LLM response handling.

Provides robust parsing of JSON arrays and objects from LLM output,
handling markdown fences, invalid escape sequences, and extra text
around the JSON payload.
"""

from __future__ import annotations

import json
import re
from typing import Any

from curator.llm.errors import LlmProcessingError


def fix_escape_sequences(text: str) -> str:
    """Fix invalid JSON escape sequences in LLM output.

    LLMs sometimes produce backslash sequences like ``\\_`` that are
    invalid in JSON strings. This replaces lone backslashes with
    double-backslashes where they don't form a valid JSON escape.
    """
    return re.sub(r'(?<!\\)\\(?!["\\/bfnrtu])', r"\\\\", text)


def strip_markdown_fences(text: str) -> str:
    """Strip markdown code fences from LLM response text."""
    text = text.strip()
    if text.startswith("```"):
        first_newline = text.find("\n")
        if first_newline != -1:
            text = text[first_newline + 1 :]
        if text.endswith("```"):
            text = text[: -len("```")]
        text = text.strip()
    return text


def extract_first_json_block(text: str, opener: str, closer: str) -> str | None:
    """Extract the first balanced ``opener ... closer`` block from text.

    Brackets inside JSON strings are ignored.

    Args:
        text: Raw text potentially containing a JSON value.
        opener: ``[`` or ``{``.
        closer: ``]`` or ``}``.

    Returns:
        The block, or None if no balanced pair is found.
    """
    start = text.find(opener)
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        char = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == opener:
            depth += 1
        elif char == closer:
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    return None


def json_candidates(text: str, opener: str = "[", closer: str = "]") -> list[str]:
    """Candidate JSON strings to try, full text first."""
    text = strip_markdown_fences(text)
    candidates = [text]
    extracted = extract_first_json_block(text, opener, closer)
    if extracted and extracted != text:
        candidates.append(extracted)
    return candidates


def _loads_lenient(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass
    try:
        return json.loads(fix_escape_sequences(text))
    except json.JSONDecodeError:
        return None


def parse_json_array(text: str) -> list[Any]:
    """Parse the first JSON array in an LLM answer.

    Raises:
        LlmProcessingError: If no JSON array can be parsed.
    """
    for candidate in json_candidates(text, "[", "]"):
        value = _loads_lenient(candidate)
        if isinstance(value, list):
            return value
    msg = "No JSON array found in model output"
    raise LlmProcessingError(msg)


def parse_json_object(text: str) -> dict[str, Any]:
    """Parse the first JSON object in an LLM answer.

    Raises:
        LlmProcessingError: If no JSON object can be parsed.
    """
    for candidate in json_candidates(text, "{", "}"):
        value = _loads_lenient(candidate)
        if isinstance(value, dict):
            return value
    msg = "No JSON object found in model output"
    raise LlmProcessingError(msg)
