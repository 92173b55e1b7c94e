"""Conversation history sanitization."""

import re
from typing import Any

ALLOWED_ROLES = frozenset({"user", "assistant"})
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


def sanitize_history(history: Any, max_messages: int | None = None) -> list[dict[str, str]]:
    """Keep well-formed user/assistant turns, most recent last.

    Control characters are stripped, content is trimmed, empty turns are
    dropped and only the newest ``max_messages`` turns are kept.

    Args:
        history: Client-supplied history (anything; non-lists yield []).
        max_messages: Cap (defaults from settings).

    Returns:
        Sanitized list of ``{"role", "content"}`` dicts.
    """
    if max_messages is None:
        from workspace_assistant.config import settings  # noqa: PLC0415

        max_messages = settings.conversation_max_history_messages
    if not isinstance(history, list):
        return []

    cleaned: list[dict[str, str]] = []
    for entry in history:
        if not isinstance(entry, dict):
            continue
        role = entry.get("role")
        content = entry.get("content")
        if role not in ALLOWED_ROLES or not isinstance(content, str):
            continue
        content = _CONTROL_CHARS.sub("", content).strip()
        if content:
            cleaned.append({"role": role, "content": content})

    if max_messages <= 0:
        return []
    return cleaned[-max_messages:]
