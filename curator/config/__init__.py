"""Pipeline configuration loading and schemas."""

from curator.config.errors import ConfigurationError
from curator.config.loader import load_config
from curator.config.schemas import (
    CurationConfig,
    CuratorConfig,
    LlmConfig,
    RankingConfig,
    RetentionConfig,
    SchedulerConfig,
    SearchConfig,
)


__all__ = [
    "ConfigurationError",
    "CurationConfig",
    "CuratorConfig",
    "LlmConfig",
    "RankingConfig",
    "RetentionConfig",
    "SchedulerConfig",
    "SearchConfig",
    "load_config",
]
