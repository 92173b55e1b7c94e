"""Tests for the heuristic intent classifier."""

import pytest
from pydantic import ValidationError

from workspace_assistant.intent import classify
from workspace_assistant.intent.types import ExternalApp, Intent, IntentMode


class TestInternalRequests:
    """Requests without an external app keyword."""

    @pytest.mark.parametrize(
        "message",
        [
            "what are my tasks due today",
            "Summarize the #design channel",
            "What meetings do I have tomorrow?",
            "hello there",
        ],
    )
    def test_no_external_keyword_is_internal(self, message: str) -> None:
        intent = classify(message)

        assert intent.mode == IntentMode.INTERNAL
        assert intent.requires_external_tools is False
        assert intent.requested_apps == []

    @pytest.mark.parametrize("value", ["", "   ", None, 42, {"text": "gmail"}])
    def test_empty_or_non_text_input_defaults_to_internal(self, value) -> None:
        intent = classify(value)

        assert intent.mode == IntentMode.INTERNAL
        assert intent.requires_external_tools is False


class TestExternalRequests:
    """Requests naming connected apps."""

    def test_email_request_is_external_gmail(self) -> None:
        intent = classify("send an email to alice@example.com saying hi")

        assert intent.mode == IntentMode.EXTERNAL
        assert intent.requires_external_tools is True
        assert intent.requested_apps == [ExternalApp.GMAIL]

    def test_app_plus_workspace_signal_is_hybrid(self) -> None:
        intent = classify("delete the #general channel in slack")

        assert intent.mode == IntentMode.HYBRID
        assert intent.requested_apps == [ExternalApp.SLACK]

    def test_apps_are_ordered_by_first_mention(self) -> None:
        intent = classify("copy the Linear ticket into Notion and post it on GitHub")

        assert intent.requested_apps == [ExternalApp.LINEAR, ExternalApp.NOTION, ExternalApp.GITHUB]

    def test_matching_is_case_insensitive(self) -> None:
        assert classify("open my CLICKUP list").requested_apps == [ExternalApp.CLICKUP]

    def test_history_does_not_leak_apps_into_follow_up(self) -> None:
        history = [{"role": "user", "content": "check my gmail"}]

        intent = classify("and what about today?", history)

        assert intent.mode == IntentMode.INTERNAL


class TestIntentModel:
    """Consistency rules of the Intent model."""

    def test_flag_without_apps_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Intent(mode=IntentMode.EXTERNAL, requires_external_tools=True, requested_apps=[])

    def test_internal_mode_cannot_require_external_tools(self) -> None:
        with pytest.raises(ValidationError):
            Intent(
                mode=IntentMode.INTERNAL,
                requires_external_tools=True,
                requested_apps=[ExternalApp.GMAIL],
            )

    def test_camel_case_serialization(self) -> None:
        dumped = classify("check github").model_dump(mode="json", by_alias=True)

        assert dumped["requiresExternalTools"] is True
        assert dumped["requestedApps"] == ["GITHUB"]

    def test_display_name_and_lookup(self) -> None:
        assert ExternalApp.from_str("github") is ExternalApp.GITHUB
        assert ExternalApp.from_str("dropbox") is None
        assert ExternalApp.CLICKUP.display_name == "ClickUp"
