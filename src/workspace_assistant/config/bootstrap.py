"""Bootstrap configuration helpers (pre-settings).

Logging has to be configured before the settings singleton exists, so the
few values it needs are read straight from the environment here.

Keep this module free of telemetry imports to avoid circular imports.
"""

from __future__ import annotations

import os
from pathlib import Path

from workspace_assistant.config.validators import resolve_path, validate_log_level


def get_bootstrap_log_level(default: str = "INFO") -> str:
    """Get logging level from environment without importing settings.

    Args:
        default: Default log level if not set or invalid.

    Returns:
        Uppercased, validated log level string.
    """
    value = os.getenv("ASSISTANT_LOG_LEVEL", default)
    try:
        return validate_log_level(value)
    except ValueError:
        return validate_log_level(default)


def get_bootstrap_log_dir(default: str = "telemetry/logs") -> Path:
    """Get the log directory from environment without importing settings.

    Args:
        default: Directory used when ``ASSISTANT_LOG_DIR`` is unset.

    Returns:
        Absolute log directory path.
    """
    return resolve_path(os.getenv("ASSISTANT_LOG_DIR", default))
