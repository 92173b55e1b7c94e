"""Security utilities for preventing information disclosure."""

import re

REDACTED = "[REDACTED]"
MAX_ERROR_MESSAGE_LENGTH = 280

_BEARER_PATTERN = re.compile(r"(Bearer\s+)[^\s]+", re.IGNORECASE)
_SECRET_ASSIGNMENT_PATTERN = re.compile(
    r"((?:api[_-]?key|token|secret|password|authorization|cookie)\s*[:=]\s*)[\"']?[^\"',\s}]+",
    re.IGNORECASE,
)


def redact_secrets(text: str, max_length: int = MAX_ERROR_MESSAGE_LENGTH) -> str:
    """Redact bearer tokens and ``key=value`` secrets, then truncate.

    Used for error strings that end up in logs, audit records, or tool results.

    Args:
        text: Free text that may embed credentials.
        max_length: Maximum length of the returned string.

    Returns:
        Redacted, truncated text.
    """
    text = _BEARER_PATTERN.sub(lambda m: f"{m.group(1)}{REDACTED}", text)
    text = _SECRET_ASSIGNMENT_PATTERN.sub(lambda m: f"{m.group(1)}{REDACTED}", text)
    return text[:max_length]


def sanitize_error_message(error: Exception) -> str:
    """Create a user-friendly error message without exposing internal details.

    The exception text is only inspected to pick a category; it is never
    returned, so paths, addresses and credentials cannot leak to the client.

    Args:
        error: The exception that occurred.

    Returns:
        A short, user-safe message.
    """
    error_type = type(error).__name__
    error_str = str(error).lower()

    if "RateLimit" in error_type or "rate limit" in error_str or "429" in error_str:
        return "Too many requests. Please wait a moment and try again."
    if "Timeout" in error_type or "timeout" in error_str or "timed out" in error_str:
        return "The request took too long to process. Please try again."
    if "Connection" in error_type or "connection" in error_str:
        return "A required service is temporarily unreachable. Please try again in a moment."
    if "Permission" in error_type or "forbidden" in error_str or "unauthorized" in error_str:
        return "Permission denied for this operation."
    if "Validation" in error_type or "validation" in error_str:
        return "The request had an invalid format. Please check your input and try again."
    if "NotFound" in error_type or "not found" in error_str:
        return "The requested resource was not found."
    return "An error occurred while processing your request. Please try again."
