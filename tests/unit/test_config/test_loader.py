"""Tests for the YAML configuration loader."""

from pathlib import Path

import pytest

from curator.config.errors import ConfigurationError
from curator.config.loader import load_config
from curator.config.schemas import CuratorConfig, RankingConfig


class TestLoadConfig:
    """Tests for load_config function."""

    def test_none_returns_defaults(self) -> None:
        """Test no path gives the default configuration."""
        config = load_config(None)
        assert config == CuratorConfig()
        assert config.scheduler.cooldown_multiplier == 3.0
        assert config.search.freshness == "pd"
        assert config.retention.keep_briefings == 30

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test a missing file raises with the path in the message."""
        path = tmp_path / "absent.yaml"

        with pytest.raises(ConfigurationError, match="not found") as exc_info:
            load_config(path)

        assert exc_info.value.file_path == str(path)
        assert str(exc_info.value).startswith(str(path))

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        """Test unparsable YAML raises ConfigurationError."""
        path = tmp_path / "curator.yaml"
        path.write_text("scheduler: [unclosed\n", encoding="utf-8")

        with pytest.raises(ConfigurationError, match="invalid YAML"):
            load_config(path)

    def test_top_level_must_be_mapping(self, tmp_path: Path) -> None:
        """Test a YAML list at the top level is rejected."""
        path = tmp_path / "curator.yaml"
        path.write_text("- one\n- two\n", encoding="utf-8")

        with pytest.raises(ConfigurationError, match="mapping"):
            load_config(path)

    def test_empty_file_gives_defaults(self, tmp_path: Path) -> None:
        """Test an empty file loads the defaults."""
        path = tmp_path / "curator.yaml"
        path.write_text("", encoding="utf-8")

        assert load_config(path) == CuratorConfig()

    def test_sections_loaded(self, tmp_path: Path) -> None:
        """Test values from each section override the defaults."""
        path = tmp_path / "curator.yaml"
        path.write_text(
            "scheduler:\n"
            "  cooldown_multiplier: 2.0\n"
            "search:\n"
            "  max_qps: 5\n"
            "  freshness: pw\n"
            "fetch:\n"
            "  max_workers: 2\n"
            "retention:\n"
            "  keep_briefings: 7\n",
            encoding="utf-8",
        )

        config = load_config(path)

        assert config.scheduler.cooldown_multiplier == 2.0
        assert config.search.max_qps == 5.0
        assert config.search.freshness == "pw"
        assert config.fetch.max_workers == 2
        assert config.retention.keep_briefings == 7
        assert config.ranking == RankingConfig()

    def test_validation_error_names_field(self, tmp_path: Path) -> None:
        """Test a schema violation reports the offending field."""
        path = tmp_path / "curator.yaml"
        path.write_text("search:\n  max_qps: 0\n", encoding="utf-8")

        with pytest.raises(ConfigurationError, match=r"search\.max_qps"):
            load_config(path)

    def test_unknown_key_rejected(self, tmp_path: Path) -> None:
        """Test unknown keys are rejected."""
        path = tmp_path / "curator.yaml"
        path.write_text("scheduler:\n  cooldown: 3\n", encoding="utf-8")

        with pytest.raises(ConfigurationError, match="cooldown"):
            load_config(path)

    def test_ranking_blend_must_sum_to_one(self, tmp_path: Path) -> None:
        """Test the personalized blend weights are validated together."""
        path = tmp_path / "curator.yaml"
        path.write_text(
            "ranking:\n  personalization_weight: 0.5\n  significance_weight: 0.3\n",
            encoding="utf-8",
        )

        with pytest.raises(ConfigurationError, match="must be 1.0"):
            load_config(path)
