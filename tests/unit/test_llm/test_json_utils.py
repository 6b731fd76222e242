"""Tests for lenient JSON parsing of model output."""

import pytest

from curator.llm.errors import LlmProcessingError
from curator.llm.json_utils import (
    extract_first_json_block,
    fix_escape_sequences,
    parse_json_array,
    parse_json_object,
    strip_markdown_fences,
)


class TestStripMarkdownFences:
    """Tests for strip_markdown_fences function."""

    def test_strips_json_fence(self) -> None:
        """Test a fenced block is unwrapped."""
        assert strip_markdown_fences('```json\n[1, 2]\n```') == "[1, 2]"

    def test_plain_text_untouched(self) -> None:
        """Test unfenced text is only trimmed."""
        assert strip_markdown_fences("  [1]  ") == "[1]"


class TestExtractFirstJsonBlock:
    """Tests for extract_first_json_block function."""

    def test_nested_block(self) -> None:
        """Test nested brackets are balanced."""
        text = 'Here you go: [[1], {"a": [2]}] thanks'
        assert extract_first_json_block(text, "[", "]") == '[[1], {"a": [2]}]'

    def test_brackets_inside_strings_ignored(self) -> None:
        """Test brackets inside string values do not close the block."""
        text = 'x {"title": "a } b", "n": 1} y'
        assert extract_first_json_block(text, "{", "}") == '{"title": "a } b", "n": 1}'

    def test_unbalanced(self) -> None:
        """Test an unterminated block gives None."""
        assert extract_first_json_block("[1, 2", "[", "]") is None


class TestFixEscapeSequences:
    """Tests for fix_escape_sequences function."""

    def test_invalid_escape_doubled(self) -> None:
        """Test a lone backslash before an invalid escape is doubled."""
        assert fix_escape_sequences(r'"snake\_case"') == r'"snake\\_case"'

    def test_valid_escapes_kept(self) -> None:
        """Test valid JSON escapes are left alone."""
        assert fix_escape_sequences(r'"line\nbreak \"q\""') == r'"line\nbreak \"q\""'


class TestParseJsonArray:
    """Tests for parse_json_array function."""

    def test_fenced_array(self) -> None:
        """Test an array inside a markdown fence parses."""
        assert parse_json_array('```json\n[{"name": "AI"}]\n```') == [{"name": "AI"}]

    def test_array_with_prose(self) -> None:
        """Test surrounding prose is ignored."""
        assert parse_json_array("Topics: [1, 2, 3]. Done.") == [1, 2, 3]

    def test_invalid_escape_recovered(self) -> None:
        """Test invalid escapes are repaired."""
        assert parse_json_array(r'["a\_b"]') == ["a\\_b"]

    def test_object_rejected(self) -> None:
        """Test a JSON object is not accepted as an array."""
        with pytest.raises(LlmProcessingError, match="No JSON array"):
            parse_json_array('{"a": 1}')

    def test_garbage(self) -> None:
        """Test text without JSON raises."""
        with pytest.raises(LlmProcessingError):
            parse_json_array("I cannot help with that.")


class TestParseJsonObject:
    """Tests for parse_json_object function."""

    def test_object_with_prose(self) -> None:
        """Test an object embedded in prose parses."""
        text = 'Sure! {"title": "Morning Brief", "subtitle": "x"} Enjoy.'
        assert parse_json_object(text)["title"] == "Morning Brief"

    def test_array_rejected(self) -> None:
        """Test an array is not accepted as an object."""
        with pytest.raises(LlmProcessingError, match="No JSON object"):
            parse_json_object("[1, 2]")
