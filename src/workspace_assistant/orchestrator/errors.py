"""Error taxonomy and user-facing error payloads.

Failures are classified into a small set of categories; each category maps
to a user-safe message and a concrete next step. Raw exception text is only
inspected, never returned.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from workspace_assistant.llm_client.types import (
    LLMClientError,
    LLMConnectionError,
    LLMContextTooLarge,
    LLMInvalidResponse,
    LLMRateLimit,
    LLMServerError,
    LLMTimeout,
)


class ErrorCategory(str, Enum):
    """Failure categories surfaced to clients and monitoring."""

    RATE_LIMIT = "rate_limit"
    TOOL_FAILURE = "tool_failure"
    CONTEXT_TOO_LARGE = "context_too_large"
    AUTHENTICATION = "authentication"
    MODEL_UNAVAILABLE = "model_unavailable"
    UNKNOWN = "unknown"


USER_MESSAGES: dict[ErrorCategory, str] = {
    ErrorCategory.RATE_LIMIT: "Service is busy. Please wait a moment and try again.",
    ErrorCategory.TOOL_FAILURE: (
        "An integration couldn't complete that. Try again or use workspace-only questions."
    ),
    ErrorCategory.CONTEXT_TOO_LARGE: (
        "That request was too long. Try a shorter message or start a new chat."
    ),
    ErrorCategory.AUTHENTICATION: "Please reconnect the integration in Settings and try again.",
    ErrorCategory.MODEL_UNAVAILABLE: (
        "The assistant is temporarily unavailable. Please try again in a moment."
    ),
    ErrorCategory.UNKNOWN: "Something went wrong. Please try again.",
}

NEXT_STEPS: dict[ErrorCategory, str] = {
    ErrorCategory.RATE_LIMIT: "Wait a few seconds, then resend your message.",
    ErrorCategory.TOOL_FAILURE: "Retry, or ask about workspace content only.",
    ErrorCategory.CONTEXT_TOO_LARGE: "Shorten the message or start a new conversation.",
    ErrorCategory.AUTHENTICATION: "Reconnect the integration in Settings.",
    ErrorCategory.MODEL_UNAVAILABLE: "Try again in a moment.",
    ErrorCategory.UNKNOWN: "Try again. If the problem persists, contact support.",
}

_RECOVERABLE = {
    ErrorCategory.RATE_LIMIT,
    ErrorCategory.TOOL_FAILURE,
    ErrorCategory.CONTEXT_TOO_LARGE,
    ErrorCategory.MODEL_UNAVAILABLE,
}


class ActionableError(BaseModel):
    """Machine-readable error with a user-safe message and next step."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    code: str
    message: str
    next_step: str
    recoverable: bool = True
    fallback_response: str | None = Field(
        None, description="Text the client can show in place of an answer"
    )


def categorize_error(error: BaseException | str) -> ErrorCategory:
    """Classify a failure.

    LLM client exception types are checked first; other errors fall back to
    message heuristics.

    Args:
        error: Exception (or message) to classify.

    Returns:
        ErrorCategory.
    """
    if isinstance(error, LLMRateLimit):
        return ErrorCategory.RATE_LIMIT
    if isinstance(error, LLMContextTooLarge):
        return ErrorCategory.CONTEXT_TOO_LARGE
    if isinstance(error, (LLMTimeout, LLMConnectionError, LLMServerError, LLMInvalidResponse)):
        return ErrorCategory.MODEL_UNAVAILABLE

    message = str(error).lower()
    if any(marker in message for marker in ("rate limit", "rate_limit", "too many requests", "429")):
        return ErrorCategory.RATE_LIMIT
    if any(marker in message for marker in ("tool", "integration", "execute")):
        return ErrorCategory.TOOL_FAILURE
    if any(marker in message for marker in ("context length", "context window", "too long", "maximum context")):
        return ErrorCategory.CONTEXT_TOO_LARGE
    if any(marker in message for marker in ("unauthorized", "auth", "reconnect", "credentials")):
        return ErrorCategory.AUTHENTICATION
    if isinstance(error, LLMClientError):
        return ErrorCategory.MODEL_UNAVAILABLE
    return ErrorCategory.UNKNOWN


def format_user_friendly_error(error: BaseException | str) -> str:
    """User-safe message for ``error``."""
    return USER_MESSAGES[categorize_error(error)]


def build_recoverable_fallback(reason: str | None = None) -> str:
    """Text returned when external integrations failed but workspace help remains."""
    reason_line = f" Reason: {reason}." if reason else ""
    return (
        "I hit a temporary issue with external integrations, but I can still help with "
        f"workspace tasks.{reason_line} Try again in a moment or reconnect the integration."
    )


def build_actionable_error(
    category: ErrorCategory, reason: str | None = None, code: str | None = None
) -> ActionableError:
    """Build the error payload attached to a failed response.

    Args:
        category: Failure category.
        reason: Optional machine-readable reason for the fallback text.
        code: Override for the error code (default: the category value).

    Returns:
        ActionableError.
    """
    recoverable = category in _RECOVERABLE
    return ActionableError(
        code=code or category.value,
        message=USER_MESSAGES[category],
        next_step=NEXT_STEPS[category],
        recoverable=recoverable,
        fallback_response=build_recoverable_fallback(reason) if recoverable else None,
    )
