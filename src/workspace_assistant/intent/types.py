"""Intent types shared by the classifier, assembler and response metadata."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class ExternalApp(str, Enum):
    """Third-party applications the assistant can act on."""

    GMAIL = "GMAIL"
    GITHUB = "GITHUB"
    SLACK = "SLACK"
    NOTION = "NOTION"
    CLICKUP = "CLICKUP"
    LINEAR = "LINEAR"

    @property
    def display_name(self) -> str:
        """Human-readable app name for prompts and messages."""
        return {
            ExternalApp.GMAIL: "Gmail",
            ExternalApp.GITHUB: "GitHub",
            ExternalApp.SLACK: "Slack",
            ExternalApp.NOTION: "Notion",
            ExternalApp.CLICKUP: "ClickUp",
            ExternalApp.LINEAR: "Linear",
        }[self]

    @classmethod
    def from_str(cls, value: str) -> "ExternalApp | None":
        """Map a toolkit slug or app name (any case) to an ExternalApp.

        Args:
            value: e.g. "gmail", "GMAIL", "github".

        Returns:
            Matching ExternalApp, or None for unknown apps.
        """
        normalized = value.strip().upper()
        for app in cls:
            if app.value == normalized:
                return app
        return None


class IntentMode(str, Enum):
    """Which capability classes a request needs."""

    INTERNAL = "internal"
    EXTERNAL = "external"
    HYBRID = "hybrid"


class Intent(BaseModel):
    """Structured classification of one user utterance.

    Produced once per request and never mutated afterwards.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    mode: IntentMode = Field(IntentMode.INTERNAL, description="Capability mode")
    requires_external_tools: bool = Field(False, description="Whether external apps are needed")
    requested_apps: list[ExternalApp] = Field(
        default_factory=list, description="Apps referenced, in order of first mention"
    )
    reasoning: str = Field("", description="Why this classification was chosen")

    @model_validator(mode="after")
    def check_consistency(self) -> "Intent":
        """Keep mode, flag and app list in agreement."""
        if self.requires_external_tools and self.mode == IntentMode.INTERNAL:
            raise ValueError("requires_external_tools implies mode != internal")
        if self.requires_external_tools != bool(self.requested_apps):
            raise ValueError("requires_external_tools must be true exactly when apps are requested")
        return self

    @classmethod
    def internal_default(cls, reasoning: str = "No external application referenced") -> "Intent":
        """The intent used for empty input and classification failures."""
        return cls(
            mode=IntentMode.INTERNAL,
            requires_external_tools=False,
            requested_apps=[],
            reasoning=reasoning,
        )
