"""Unified configuration management for the workspace assistant.

Single source of truth for configuration: environment variables (with .env
file support), the YAML action policy, and defaults.
"""

from workspace_assistant.config.env_loader import Environment, get_environment
from workspace_assistant.config.loader import ConfigLoadError
from workspace_assistant.config.settings import AppConfig, get_settings, load_app_config

# load_action_policy is imported from config.policy_loader (it pulls in governance).

# Singleton instance
settings = get_settings()

__all__ = [
    "settings",
    "AppConfig",
    "get_settings",
    "load_app_config",
    "Environment",
    "get_environment",
    "ConfigLoadError",
]
