"""YAML configuration loader."""

from pathlib import Path

import structlog
import yaml
from pydantic import ValidationError

from curator.config.errors import ConfigurationError
from curator.config.schemas import CuratorConfig


logger = structlog.get_logger()


def _format_validation_error(error: ValidationError) -> str:
    """Flatten pydantic errors into one readable line per field."""
    parts = []
    for detail in error.errors():
        location = ".".join(str(part) for part in detail["loc"])
        parts.append(f"{location}: {detail['msg']}")
    return "; ".join(parts)


def load_config(path: Path | None = None) -> CuratorConfig:
    """Load and validate the curator configuration.

    Args:
        path: Path to a YAML file. None returns the default configuration.

    Returns:
        Validated, immutable configuration.

    Raises:
        ConfigurationError: If the file is missing, unparsable, or invalid.
    """
    log = logger.bind(component="config")

    if path is None:
        log.debug("config_defaults_used")
        return CuratorConfig()

    try:
        content = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise ConfigurationError("configuration file not found", str(path)) from e

    try:
        parsed = yaml.safe_load(content) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"invalid YAML: {e}", str(path)) from e

    if not isinstance(parsed, dict):
        raise ConfigurationError("top-level YAML value must be a mapping", str(path))

    try:
        config = CuratorConfig.model_validate(parsed)
    except ValidationError as e:
        raise ConfigurationError(_format_validation_error(e), str(path)) from e

    log.info("config_loaded", path=str(path), sections=sorted(parsed))
    return config
