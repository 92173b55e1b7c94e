"""Environment variable file loader with priority-based loading."""

import os
from enum import Enum
from pathlib import Path

from dotenv import load_dotenv

from workspace_assistant.config.validators import PROJECT_ROOT
from workspace_assistant.telemetry import get_logger

log = get_logger(__name__)


class Environment(str, Enum):
    """Application environment types."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TEST = "test"


def get_environment() -> Environment:
    """Detect current environment from the APP_ENV environment variable.

    Environment detection must happen before settings are loaded, so this is
    the one place that reads ``os.environ`` directly.

    Returns:
        Environment enum value ("prod"/"stage" aliases accepted, default development).
    """
    app_env = os.getenv("APP_ENV", "").lower()

    if app_env in ("production", "prod"):
        return Environment.PRODUCTION
    if app_env in ("staging", "stage"):
        return Environment.STAGING
    if app_env == "test":
        return Environment.TEST
    return Environment.DEVELOPMENT


def load_env_files(project_root: Path | None = None) -> list[str]:
    """Load .env files in priority order.

    Priority order (highest to lowest):
    1. `.env.{environment}.local`
    2. `.env.{environment}`
    3. `.env.local`
    4. `.env`

    Explicit environment variables always win over file values.

    Args:
        project_root: Directory holding the .env files. Defaults to the project root.

    Returns:
        Relative names of the files that were loaded, lowest priority first.
    """
    root = project_root or PROJECT_ROOT
    env_name = get_environment().value

    # Highest priority first: load_dotenv(override=False) keeps the first value seen.
    candidates = [
        root / f".env.{env_name}.local",
        root / f".env.{env_name}",
        root / ".env.local",
        root / ".env",
    ]

    loaded_files: list[str] = []
    for env_file in candidates:
        if env_file.exists():
            load_dotenv(env_file, override=False)
            loaded_files.append(env_file.name)

    loaded_files.reverse()
    if loaded_files:
        log.info("env_files_loaded", environment=env_name, files=loaded_files)
    else:
        log.debug("no_env_files_found", environment=env_name, project_root=str(root))
    return loaded_files
