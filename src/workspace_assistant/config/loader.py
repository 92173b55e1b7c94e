"""Shared YAML loading utilities for configuration files."""

from pathlib import Path
from typing import Any

import structlog
import yaml

log = structlog.get_logger(__name__)


class ConfigLoadError(Exception):
    """Base exception for configuration loading errors."""

    pass


def load_yaml_file(
    file_path: Path, error_class: type[Exception] = ConfigLoadError
) -> dict[str, Any]:
    """Load and parse a YAML mapping.

    Args:
        file_path: Path to the YAML file.
        error_class: Exception class to raise on errors.

    Returns:
        Parsed mapping. Empty files yield an empty dict.

    Raises:
        error_class: If the file is missing, unreadable, not YAML, or not a mapping.
    """
    try:
        with file_path.open("r", encoding="utf-8") as f:
            content = yaml.safe_load(f)
    except FileNotFoundError:
        raise error_class(f"Configuration file not found: {file_path}") from None
    except yaml.YAMLError as e:
        raise error_class(f"Failed to parse YAML file {file_path}: {e}") from None
    except OSError as e:
        raise error_class(f"Unable to read {file_path}: {e}") from None

    if content is None:
        log.debug("yaml_file_empty", file_path=str(file_path))
        return {}
    if not isinstance(content, dict):
        raise error_class(
            f"Expected a mapping at the top of {file_path}, got {type(content).__name__}"
        )
    return content
