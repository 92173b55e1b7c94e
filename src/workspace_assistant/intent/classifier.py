"""Heuristic intent classification.

Keyword/pattern rules decide whether a request needs external integrations
and which apps it names. The classifier is advisory: downstream stages still
verify live connections before exposing any external tool.
"""

import re
from typing import Any

from workspace_assistant.intent.types import ExternalApp, Intent, IntentMode
from workspace_assistant.telemetry import INTENT_CLASSIFICATION_FAILED, INTENT_CLASSIFIED, get_logger

log = get_logger(__name__)

APP_PATTERNS: dict[ExternalApp, re.Pattern[str]] = {
    ExternalApp.GMAIL: re.compile(
        r"\b(gmail|send\s+(an\s+)?email|email\s+to|in\s+gmail|my\s+inbox|draft\s+(an\s+)?email)\b",
        re.IGNORECASE,
    ),
    ExternalApp.GITHUB: re.compile(
        r"\b(github|github\s+(repo|issue|pr|commit)|in\s+github|on\s+github)\b",
        re.IGNORECASE,
    ),
    ExternalApp.SLACK: re.compile(
        r"\b(slack|slack\s+(message|channel)|in\s+slack|on\s+slack|send\s+to\s+slack)\b",
        re.IGNORECASE,
    ),
    ExternalApp.NOTION: re.compile(
        r"\b(notion|notion\s+(page|database)|in\s+notion|on\s+notion|my\s+notion)\b",
        re.IGNORECASE,
    ),
    ExternalApp.CLICKUP: re.compile(
        r"\b(clickup|clickup\s+(task|project)|in\s+clickup|on\s+clickup|my\s+clickup)\b",
        re.IGNORECASE,
    ),
    ExternalApp.LINEAR: re.compile(
        r"\b(linear|linear\s+(issue|ticket)|in\s+linear|on\s+linear|my\s+linear)\b",
        re.IGNORECASE,
    ),
}

INTERNAL_SIGNAL_PATTERN = re.compile(
    r"\b(workspace|channel|message|calendar|meeting|task|board|card|note|summary|search"
    r"|assigned|today|tomorrow|next\s+week)s?\b",
    re.IGNORECASE,
)


def _detect_apps(text: str) -> list[ExternalApp]:
    """Return referenced apps ordered by their first mention in ``text``."""
    positions: list[tuple[int, ExternalApp]] = []
    for app, pattern in APP_PATTERNS.items():
        match = pattern.search(text)
        if match:
            positions.append((match.start(), app))
    return [app for _, app in sorted(positions, key=lambda item: item[0])]


def classify(
    utterance: Any, history: list[dict[str, Any]] | None = None, trace_id: str | None = None
) -> Intent:
    """Classify a user utterance.

    Never raises: empty or malformed input, and any internal failure, yield
    the internal default intent.

    Args:
        utterance: Raw user message. Non-string values are treated as empty.
        history: Prior conversation turns. Accepted for interface parity; app
            detection only looks at the current utterance so a follow-up
            without an app keyword stays internal.
        trace_id: Optional trace id for log correlation.

    Returns:
        The request's Intent.
    """
    if not isinstance(utterance, str) or not utterance.strip():
        intent = Intent.internal_default("Empty or non-text input")
        log.info(INTENT_CLASSIFIED, mode=intent.mode.value, apps=[], trace_id=trace_id)
        return intent

    try:
        apps = _detect_apps(utterance)
        has_internal_signal = bool(INTERNAL_SIGNAL_PATTERN.search(utterance))

        if apps and has_internal_signal:
            mode = IntentMode.HYBRID
        elif apps:
            mode = IntentMode.EXTERNAL
        else:
            mode = IntentMode.INTERNAL

        if apps:
            app_names = ", ".join(app.display_name for app in apps)
            reasoning = f"Referenced external apps: {app_names}"
            if has_internal_signal:
                reasoning += "; also needs workspace data"
        else:
            reasoning = "No external application referenced"

        intent = Intent(
            mode=mode,
            requires_external_tools=bool(apps),
            requested_apps=apps,
            reasoning=reasoning,
        )
    except Exception as e:
        log.warning(
            INTENT_CLASSIFICATION_FAILED,
            error_type=type(e).__name__,
            trace_id=trace_id,
            exc_info=True,
        )
        return Intent.internal_default("Classification failed; defaulted to internal")

    log.info(
        INTENT_CLASSIFIED,
        mode=intent.mode.value,
        apps=[app.value for app in intent.requested_apps],
        history_length=len(history or []),
        trace_id=trace_id,
    )
    return intent
