"""Audit payload sanitization.

Argument snapshots are stored for accountability, so secrets and oversized
values are stripped before anything is persisted.
"""

import re
from typing import Any

REDACTED = "[REDACTED]"
TRUNCATED = "[TRUNCATED]"
MAX_DEPTH = 6
MAX_STRING_LENGTH = 2000

SENSITIVE_KEY_PATTERN = re.compile(
    r"(^|_|-)(token|secret|password|passphrase|api[_-]?key|authorization|cookie|credential"
    r"|private[_-]?key|access[_-]?token|refresh[_-]?token|client[_-]?secret)(_|-|$)",
    re.IGNORECASE,
)
_BEARER_PATTERN = re.compile(r"Bearer\s+[A-Za-z0-9._~+/=-]+", re.IGNORECASE)
_INLINE_SECRET_PATTERN = re.compile(
    r"(token|secret|password|api[_-]?key)\s*[:=]\s*[^\s,;&\"']+", re.IGNORECASE
)
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def is_sensitive_key(key: str) -> bool:
    """Whether an argument key names a credential (camelCase keys included)."""
    normalized = _CAMEL_BOUNDARY.sub("_", key)
    return bool(SENSITIVE_KEY_PATTERN.search(normalized))


def _sanitize_string(value: str) -> str:
    value = _BEARER_PATTERN.sub(f"Bearer {REDACTED}", value)
    value = _INLINE_SECRET_PATTERN.sub(lambda m: f"{m.group(1)}={REDACTED}", value)
    if len(value) > MAX_STRING_LENGTH:
        value = value[:MAX_STRING_LENGTH] + "..."
    return value


def sanitize_audit_payload(value: Any, depth: int = 0) -> Any:
    """Recursively sanitize a value for the audit store.

    Args:
        value: Arbitrary JSON-like value.
        depth: Current nesting depth.

    Returns:
        A copy with sensitive keys redacted, inline secrets masked, long
        strings capped and structures deeper than MAX_DEPTH truncated.
    """
    if depth > MAX_DEPTH:
        return TRUNCATED
    if isinstance(value, str):
        return _sanitize_string(value)
    if isinstance(value, dict):
        return {
            str(key): REDACTED
            if is_sensitive_key(str(key))
            else sanitize_audit_payload(item, depth + 1)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple, set)):
        return [sanitize_audit_payload(item, depth + 1) for item in value]
    if value is None or isinstance(value, (bool, int, float)):
        return value
    return _sanitize_string(str(value))

