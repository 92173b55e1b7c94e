"""Application configuration settings.

This module provides the AppConfig class and settings singleton.
"""

from pathlib import Path

import structlog
from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from workspace_assistant.config.env_loader import Environment, get_environment, load_env_files
from workspace_assistant.config.validators import (
    resolve_path,
    validate_base_url,
    validate_log_format,
    validate_log_level,
    validate_timezone,
)

log = structlog.get_logger(__name__)


class AppConfig(BaseSettings):
    """Unified application configuration.

    Values come from ``ASSISTANT_``-prefixed environment variables (after .env
    files are loaded by ``env_loader``) and fall back to the defaults below.
    """

    model_config = SettingsConfigDict(
        env_prefix="ASSISTANT_",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Environment
    environment: Environment = Field(
        default_factory=get_environment, description="Current environment"
    )
    debug: bool = Field(default=False, description="Debug mode flag")

    # Application
    project_name: str = Field(default="Workspace Assistant", description="Project name")
    version: str = Field(default="0.1.0", description="Application version")

    # Telemetry
    log_dir: Path = Field(default=Path("telemetry/logs"), description="Log directory path")
    log_level: str = Field(
        default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    log_format: str = Field(default="json", description="Log format (json or console)")

    # LLM client (OpenAI-compatible chat completions)
    llm_base_url: str = Field(
        default="http://localhost:8000/v1", description="Base URL for the chat completions API"
    )
    llm_model: str = Field(default="gpt-4o-mini", description="Model identifier sent to the API")
    llm_api_key: SecretStr | None = Field(default=None, description="Bearer token for the API")
    llm_timeout_seconds: float = Field(default=60.0, gt=0, description="Read timeout per call")
    llm_max_retries: int = Field(default=2, ge=0, description="Retries on timeout/429/5xx")
    llm_temperature: float | None = Field(
        default=0.2, ge=0.0, le=2.0, description="Sampling temperature (None = backend default)"
    )
    llm_max_tokens: int | None = Field(default=1024, ge=1, description="Completion token cap")

    # Capability registry / assembly
    internal_tools_enabled: bool = Field(default=True, description="Offer internal tools")
    external_tools_enabled: bool = Field(
        default=True, description="Offer external integration tools when connected"
    )
    external_resolution_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        le=30,
        description="Hard timeout for connection lookup and tool schema fetches",
    )
    external_max_tools: int = Field(
        default=20, ge=1, description="Maximum external tools offered to the model per request"
    )

    # Executor
    tool_max_concurrency: int = Field(
        default=4, ge=1, description="Concurrent tool calls per request"
    )
    tool_timeout_seconds: float = Field(default=30.0, gt=0, description="Timeout per tool call")

    # Audit
    audit_log_path: Path = Field(
        default=Path("telemetry/audit/tool_audit.jsonl"),
        description="Append-only JSONL file for external tool audit records",
    )
    audit_timeout_seconds: float = Field(
        default=2.0, gt=0, description="Upper bound on a single audit write"
    )

    # Confirmation gate
    pending_action_ttl_seconds: int = Field(
        default=600, ge=1, description="How long a proposed high-impact action awaits confirmation"
    )
    action_policy_path: Path = Field(
        default=Path("config/action_policy.yaml"), description="Confirmation policy file"
    )

    # Conversation
    conversation_max_history_messages: int = Field(
        default=20, ge=0, description="History entries forwarded to the model"
    )
    workspace_timezone: str = Field(
        default="UTC", description="IANA timezone for today/tomorrow/week windows"
    )

    # Collaborators
    workspace_store_url: str = Field(
        default="http://localhost:7000", description="Workspace query service base URL"
    )
    integration_gateway_url: str = Field(
        default="http://localhost:7100", description="External integration gateway base URL"
    )
    integration_gateway_api_key: SecretStr | None = Field(
        default=None, description="API key for the integration gateway"
    )

    # Service
    service_host: str = Field(default="0.0.0.0", description="Service host address")
    service_port: int = Field(default=9000, description="Service port number")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        return validate_log_level(v)

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Validate log format."""
        return validate_log_format(v)

    @field_validator("workspace_timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Validate timezone name."""
        return validate_timezone(v)

    @field_validator("llm_base_url", "workspace_store_url", "integration_gateway_url")
    @classmethod
    def validate_urls(cls, v: str) -> str:
        """Validate collaborator base URLs."""
        return validate_base_url(v)

    @field_validator("log_dir", "audit_log_path", "action_policy_path", mode="before")
    @classmethod
    def resolve_paths(cls, v: Path | str) -> Path:
        """Resolve relative paths to absolute."""
        return resolve_path(v)


_settings: AppConfig | None = None


def load_app_config() -> AppConfig:
    """Load and validate application configuration.

    Returns:
        Validated AppConfig instance.

    Raises:
        ValidationError: If configuration validation fails.
    """
    log.info("loading_app_config", environment=get_environment().value)
    load_env_files()

    try:
        config = AppConfig()
    except Exception as e:
        log.error("app_config_load_failed", error=str(e), error_type=type(e).__name__)
        raise

    log.info(
        "app_config_loaded",
        environment=config.environment.value,
        debug=config.debug,
        log_level=config.log_level,
        llm_model=config.llm_model,
        external_tools_enabled=config.external_tools_enabled,
    )
    return config


def get_settings() -> AppConfig:
    """Get the application settings singleton."""
    global _settings
    if _settings is None:
        _settings = load_app_config()
    return _settings
