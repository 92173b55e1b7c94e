"""Pydantic models for the action (confirmation) policy.

These models mirror ``config/action_policy.yaml``. A policy that fails
validation is rejected at load time with an actionable error.
"""

import re

from pydantic import BaseModel, Field, field_validator


class ActionPolicy(BaseModel):
    """Rules deciding which external tool calls need explicit user confirmation.

    Verb lists are matched as whole words against the tool name after
    ``_``/``-`` are turned into spaces (``SLACK_DELETE_CHANNEL`` -> ``slack delete channel``).
    """

    high_impact_verbs: list[str] = Field(
        default_factory=lambda: [
            "send",
            "delete",
            "archive",
            "merge",
            "permission",
            "permissions",
            "grant",
            "revoke",
            "remove",
            "invite",
            "share",
            "transfer",
            "publish",
        ],
        description="Verbs that make an external call irreversible or third-party visible",
    )
    critical_verbs: list[str] = Field(
        default_factory=lambda: ["delete", "revoke", "permission", "permissions", "transfer"],
        description="Subset of high-impact verbs reported as critical risk",
    )
    write_verbs: list[str] = Field(
        default_factory=lambda: ["create", "update", "post", "add", "edit", "move", "assign"],
        description="Verbs of external writes that run without confirmation (medium risk)",
    )
    always_confirm_tools: list[str] = Field(
        default_factory=list, description="Exact tool names that always require confirmation"
    )
    never_confirm_tools: list[str] = Field(
        default_factory=list, description="Exact tool names exempt from confirmation"
    )
    resource_argument_keys: list[str] = Field(
        default_factory=lambda: [
            "to",
            "recipient",
            "recipient_email",
            "email",
            "channel",
            "channel_id",
            "repo",
            "repository",
            "issue_id",
            "page_id",
            "user",
            "user_id",
        ],
        description="Argument keys whose values describe the affected resource",
    )
    confirm_pattern: str = Field(
        default=r"^\s*(confirm|confirmed|i confirm|approve|approved|proceed|go ahead|yes[,\s]+proceed)\b",
        description="Regex for an explicit confirmation reply",
    )
    cancel_pattern: str = Field(
        default=r"^\s*(cancel|stop|abort|never\s*mind|do\s*not\s*proceed|don'?t\s*proceed)\b",
        description="Regex for an explicit cancellation reply",
    )
    confirm_keywords: list[str] = Field(
        default_factory=lambda: [
            "yes",
            "yep",
            "yeah",
            "sure",
            "ok",
            "okay",
            "do it",
            "confirm",
            "approve",
            "proceed",
            "go ahead",
        ],
        description="Keywords accepted as confirmation in short replies",
    )
    cancel_keywords: list[str] = Field(
        default_factory=lambda: ["no", "nope", "cancel", "stop", "abort", "don't", "never mind"],
        description="Keywords accepted as cancellation in short replies (cancel wins)",
    )
    short_reply_max_words: int = Field(
        default=6, ge=1, description="Keyword matching only applies to replies this short"
    )

    @field_validator("confirm_pattern", "cancel_pattern")
    @classmethod
    def validate_pattern(cls, v: str) -> str:
        """Reject patterns that do not compile."""
        try:
            re.compile(v)
        except re.error as e:
            raise ValueError(f"invalid regular expression {v!r}: {e}") from e
        return v

    @field_validator(
        "high_impact_verbs",
        "critical_verbs",
        "write_verbs",
        "confirm_keywords",
        "cancel_keywords",
    )
    @classmethod
    def normalize_words(cls, v: list[str]) -> list[str]:
        """Lowercase and strip word lists, dropping blanks."""
        return [word.strip().lower() for word in v if word and word.strip()]
