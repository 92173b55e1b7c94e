"""Tests for the response envelope shape shared by both paths."""

import pytest

from workspace_assistant.intent.types import ExternalApp, Intent, IntentMode
from workspace_assistant.orchestrator import (
    ErrorCategory,
    ExecutionPath,
    InternalOnlyAssistantPath,
    ResponseEnvelope,
    RichAssistantPath,
    build_actionable_error,
    build_envelope,
    build_error_envelope,
)
from workspace_assistant.orchestrator.envelope import with_fallback
from workspace_assistant.tools import ToolAssembler
from workspace_assistant.tools.types import ToolCallResult, ToolOrigin

TOP_LEVEL_KEYS = {
    "success",
    "response",
    "sources",
    "actions",
    "toolResults",
    "assistantType",
    "composioToolsUsed",
    "connectedApps",
    "metadata",
    "error",
}
METADATA_KEYS = {"schemaVersion", "assistantType", "executionPath", "intent", "tools", "fallback"}


def _result(name: str, origin: ToolOrigin, success: bool = True) -> ToolCallResult:
    return ToolCallResult(
        call_id=f"call_{name}",
        tool_name=name,
        success=success,
        output={"ok": True} if success else None,
        error=None if success else "failed",
        origin=origin,
        latency_ms=5.0,
    )


class TestEnvelopeShape:
    """Every field is present on the wire for every path."""

    def test_default_envelope_has_every_field(self) -> None:
        wire = ResponseEnvelope().to_wire()

        assert set(wire) == TOP_LEVEL_KEYS
        assert set(wire["metadata"]) == METADATA_KEYS
        assert wire["metadata"]["schemaVersion"] == "v1"
        assert wire["error"] is None
        assert wire["sources"] == []
        assert wire["metadata"]["fallback"] == {"attempted": False, "reason": None}

    @pytest.mark.parametrize("path", list(ExecutionPath))
    def test_paths_share_one_shape(self, path: ExecutionPath) -> None:
        envelope = build_envelope(
            response="done",
            execution_path=path,
            intent=Intent.internal_default(),
            external_enabled=path is ExecutionPath.RICH,
        )

        wire = envelope.to_wire()

        assert set(wire) == TOP_LEVEL_KEYS
        assert set(wire["metadata"]["tools"]) == {
            "internalEnabled",
            "externalEnabled",
            "externalUsed",
            "connectedApps",
        }
        assert wire["metadata"]["executionPath"] == path.value

    def test_error_envelope_shape(self) -> None:
        error = build_actionable_error(ErrorCategory.MODEL_UNAVAILABLE, reason="model_invocation_failed")

        wire = build_error_envelope(error, fallback_reason="model_invocation_failed").to_wire()

        assert set(wire) == TOP_LEVEL_KEYS
        assert wire["success"] is False
        assert wire["response"] == error.fallback_response
        assert set(wire["error"]) == {"code", "message", "nextStep", "recoverable", "fallbackResponse"}

    def test_wire_round_trip(self) -> None:
        envelope = build_envelope(
            response="hi",
            execution_path=ExecutionPath.RICH,
            intent=Intent(
                mode=IntentMode.HYBRID,
                requires_external_tools=True,
                requested_apps=[ExternalApp.SLACK],
                reasoning="test",
            ),
            tool_results=[_result("SLACK_LIST_CHANNELS", ToolOrigin.EXTERNAL)],
            connected_apps=[ExternalApp.SLACK],
            external_enabled=True,
        )

        restored = ResponseEnvelope.model_validate(envelope.to_wire())

        assert restored.to_wire() == envelope.to_wire()
        assert restored.tool_results[0].origin is ToolOrigin.EXTERNAL


class TestDerivedFields:
    """Top-level and metadata fields agree with the tool results."""

    def test_rich_envelope_with_external_results(self) -> None:
        envelope = build_envelope(
            response="ok",
            execution_path=ExecutionPath.RICH,
            intent=None,
            tool_results=[
                _result("get_my_cards", ToolOrigin.INTERNAL),
                _result("SLACK_LIST_CHANNELS", ToolOrigin.EXTERNAL),
                _result("SLACK_FETCH_HISTORY", ToolOrigin.EXTERNAL, success=False),
            ],
            connected_apps=[ExternalApp.SLACK, ExternalApp.GMAIL],
            external_enabled=True,
        )

        assert envelope.assistant_type.value == "integrated"
        assert envelope.metadata.assistant_type is envelope.assistant_type
        assert envelope.composio_tools_used is True
        assert envelope.metadata.tools.external_used is True
        assert envelope.connected_apps == ["SLACK", "GMAIL"]
        assert envelope.metadata.tools.connected_apps == envelope.connected_apps
        assert [source.text for source in envelope.sources] == [
            "get_my_cards executed",
            "SLACK_LIST_CHANNELS executed",
        ]
        assert envelope.metadata.intent.mode is IntentMode.INTERNAL

    def test_internal_envelope_is_workspace_type(self) -> None:
        envelope = build_envelope(
            response="ok", execution_path=ExecutionPath.INTERNAL_ONLY, intent=None
        )

        assert envelope.assistant_type.value == "workspace"
        assert envelope.composio_tools_used is False

    def test_with_fallback_carries_results_first(self) -> None:
        base = build_envelope(
            response="fallback answer",
            execution_path=ExecutionPath.INTERNAL_ONLY,
            intent=None,
            tool_results=[_result("get_my_cards", ToolOrigin.INTERNAL)],
        )
        carried = [_result("GMAIL_FETCH_EMAILS", ToolOrigin.EXTERNAL)]

        envelope = with_fallback(
            base,
            attempted=True,
            reason="model_invocation_failed_after_tool_execution",
            carried_results=carried,
            note="Before the interruption, these operations completed: GMAIL_FETCH_EMAILS.",
        )

        assert [result.tool_name for result in envelope.tool_results] == [
            "GMAIL_FETCH_EMAILS",
            "get_my_cards",
        ]
        assert envelope.composio_tools_used is True
        assert envelope.metadata.tools.external_used is True
        assert envelope.metadata.fallback.attempted is True
        assert envelope.response.startswith("fallback answer\n\nBefore the interruption")
        assert len(envelope.sources) == 2
        assert base.metadata.fallback.attempted is False


@pytest.mark.asyncio
@pytest.mark.parametrize("path_name", ["rich", "internal"])
async def test_assistant_paths_share_the_contract(
    path_name: str, registry, executor, gate, scripted_model, make_ctx
) -> None:
    model = scripted_model([scripted_model.reply("Here you go.")])
    assembler = ToolAssembler(registry)
    if path_name == "rich":
        path = RichAssistantPath(model, assembler, executor, gate)
    else:
        path = InternalOnlyAssistantPath(model, assembler, executor)
    ctx = make_ctx()
    ctx.intent = Intent.internal_default()

    wire = (await path.run(ctx)).to_wire()

    assert set(wire) == TOP_LEVEL_KEYS
    assert set(wire["metadata"]) == METADATA_KEYS
    assert wire["response"] == "Here you go."
    assert wire["metadata"]["executionPath"] == path.execution_path.value
    assert wire["assistantType"] == path.assistant_type.value
