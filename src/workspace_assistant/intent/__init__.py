"""Intent classification for incoming assistant requests."""

from workspace_assistant.intent.classifier import APP_PATTERNS, classify
from workspace_assistant.intent.types import ExternalApp, Intent, IntentMode

__all__ = ["APP_PATTERNS", "classify", "ExternalApp", "Intent", "IntentMode"]
