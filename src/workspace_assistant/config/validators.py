"""Custom validators shared by the settings model."""

from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

# src/workspace_assistant/config -> project root
PROJECT_ROOT = Path(__file__).parent.parent.parent.parent


def validate_log_level(value: str) -> str:
    """Validate log level is one of the standard levels.

    Args:
        value: Log level string.

    Returns:
        Validated, uppercased log level.

    Raises:
        ValueError: If log level is not valid.
    """
    valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
    if value.upper() not in valid_levels:
        raise ValueError(f"log_level must be one of {valid_levels}, got {value}")
    return value.upper()


def validate_log_format(value: str) -> str:
    """Validate log format is 'json' or 'console'.

    Raises:
        ValueError: If log format is not valid.
    """
    valid_formats = {"json", "console"}
    if value.lower() not in valid_formats:
        raise ValueError(f"log_format must be one of {valid_formats}, got {value}")
    return value.lower()


def validate_timezone(value: str) -> str:
    """Validate an IANA timezone name (e.g. "Europe/Berlin").

    Raises:
        ValueError: If the zone is unknown.
    """
    try:
        ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone: {value}") from e
    return value


def validate_base_url(value: str) -> str:
    """Validate an http(s) base URL and strip any trailing slash.

    Raises:
        ValueError: If the scheme is not http or https.
    """
    if not value.startswith(("http://", "https://")):
        raise ValueError(f"URL must start with http:// or https://, got {value}")
    return value.rstrip("/")


def resolve_path(value: Path | str) -> Path:
    """Resolve relative paths against the project root.

    Args:
        value: Path value (string or Path).

    Returns:
        Absolute path.
    """
    path = Path(value)
    if not path.is_absolute():
        path = PROJECT_ROOT / path
    return path.resolve()
