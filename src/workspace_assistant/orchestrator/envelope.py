"""Response envelope: the single response shape of both execution paths.

Every field is always present on the wire; empty values are ``[]``,
``false`` or ``null``, never omitted.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from workspace_assistant.intent.types import ExternalApp, Intent
from workspace_assistant.orchestrator.errors import ActionableError
from workspace_assistant.orchestrator.types import AssistantType, ExecutionPath
from workspace_assistant.tools.types import ToolCallResult, ToolOrigin

SCHEMA_VERSION = "v1"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Source(_CamelModel):
    """Something the response drew on."""

    id: str
    type: str
    text: str


class Action(_CamelModel):
    """A follow-up the client can offer (e.g. confirming a pending action)."""

    type: str
    label: str
    payload: dict[str, Any] = Field(default_factory=dict)


class ToolsMetadata(_CamelModel):
    internal_enabled: bool = False
    external_enabled: bool = False
    external_used: bool = False
    connected_apps: list[str] = Field(default_factory=list)


class FallbackMetadata(_CamelModel):
    attempted: bool = False
    reason: str | None = None


class ResponseMetadata(_CamelModel):
    """Execution metadata attached to every response."""

    schema_version: Literal["v1"] = SCHEMA_VERSION
    assistant_type: AssistantType = AssistantType.WORKSPACE
    execution_path: ExecutionPath = ExecutionPath.INTERNAL_ONLY
    intent: Intent = Field(default_factory=Intent.internal_default)
    tools: ToolsMetadata = Field(default_factory=ToolsMetadata)
    fallback: FallbackMetadata = Field(default_factory=FallbackMetadata)


class ResponseEnvelope(_CamelModel):
    """Uniform response of the assistant."""

    success: bool = True
    response: str = ""
    sources: list[Source] = Field(default_factory=list)
    actions: list[Action] = Field(default_factory=list)
    tool_results: list[ToolCallResult] = Field(default_factory=list)
    assistant_type: AssistantType = AssistantType.WORKSPACE
    composio_tools_used: bool = Field(
        False, description="Whether any external integration tool was invoked"
    )
    connected_apps: list[str] = Field(default_factory=list)
    metadata: ResponseMetadata = Field(default_factory=ResponseMetadata)
    error: ActionableError | None = None

    def to_wire(self) -> dict[str, Any]:
        """JSON-ready dict with camelCase keys and every field present."""
        return self.model_dump(mode="json", by_alias=True)


def build_sources(results: list[ToolCallResult]) -> list[Source]:
    """One source per successfully executed tool."""
    return [
        Source(id=f"tool-{index}", type="tool", text=f"{result.tool_name} executed")
        for index, result in enumerate(result for result in results if result.success)
    ]


def build_envelope(
    *,
    response: str,
    execution_path: ExecutionPath,
    intent: Intent | None,
    tool_results: list[ToolCallResult] | None = None,
    connected_apps: list[ExternalApp] | None = None,
    internal_enabled: bool = True,
    external_enabled: bool = False,
    actions: list[Action] | None = None,
    fallback_attempted: bool = False,
    fallback_reason: str | None = None,
    success: bool = True,
    error: ActionableError | None = None,
) -> ResponseEnvelope:
    """Assemble a ResponseEnvelope with consistent top-level and metadata fields.

    Args:
        response: Final user-facing text.
        execution_path: Path that produced the response.
        intent: The request's intent (internal default when missing).
        tool_results: Executed tool results.
        connected_apps: Apps with an active connection.
        internal_enabled: Whether internal tools were offered.
        external_enabled: Whether external tools were offered.
        actions: Client actions (e.g. a confirmation request).
        fallback_attempted: Whether the rich path failed and this is the fallback.
        fallback_reason: Machine-readable reason for degraded service.
        success: False only for error envelopes.
        error: Actionable error for error envelopes.

    Returns:
        ResponseEnvelope.
    """
    results = list(tool_results or [])
    external_used = any(result.origin is ToolOrigin.EXTERNAL for result in results)
    apps = [app.value for app in connected_apps or []]
    assistant_type = (
        AssistantType.INTEGRATED if execution_path is ExecutionPath.RICH else AssistantType.WORKSPACE
    )
    return ResponseEnvelope(
        success=success,
        response=response,
        sources=build_sources(results),
        actions=list(actions or []),
        tool_results=results,
        assistant_type=assistant_type,
        composio_tools_used=external_used,
        connected_apps=apps,
        metadata=ResponseMetadata(
            assistant_type=assistant_type,
            execution_path=execution_path,
            intent=intent or Intent.internal_default(),
            tools=ToolsMetadata(
                internal_enabled=internal_enabled,
                external_enabled=external_enabled,
                external_used=external_used,
                connected_apps=apps,
            ),
            fallback=FallbackMetadata(attempted=fallback_attempted, reason=fallback_reason),
        ),
        error=error,
    )


def with_fallback(
    envelope: ResponseEnvelope,
    *,
    attempted: bool,
    reason: str | None,
    carried_results: list[ToolCallResult] | None = None,
    note: str | None = None,
) -> ResponseEnvelope:
    """Copy of ``envelope`` annotated as a fallback response.

    Tool results that ran on a failed path are carried in front of the
    envelope's own results, and the derived fields are recomputed so the
    envelope stays internally consistent.

    Args:
        envelope: Envelope produced by the fallback path.
        attempted: Whether a richer path was attempted and failed.
        reason: Machine-readable fallback reason. When None, the envelope's own
            reason is kept.
        carried_results: Results from the failed path.
        note: Text appended to the response (e.g. a partial-results summary).

    Returns:
        New ResponseEnvelope.
    """
    results = list(carried_results or []) + list(envelope.tool_results)
    external_used = any(result.origin is ToolOrigin.EXTERNAL for result in results)
    response = f"{envelope.response}\n\n{note}" if note else envelope.response
    reason = reason or envelope.metadata.fallback.reason
    metadata = envelope.metadata.model_copy(
        update={
            "fallback": FallbackMetadata(attempted=attempted, reason=reason),
            "tools": envelope.metadata.tools.model_copy(update={"external_used": external_used}),
        }
    )
    return envelope.model_copy(
        update={
            "response": response,
            "tool_results": results,
            "sources": build_sources(results),
            "composio_tools_used": external_used,
            "metadata": metadata,
        }
    )


def build_error_envelope(
    error: ActionableError,
    intent: Intent | None = None,
    fallback_reason: str | None = None,
    tool_results: list[ToolCallResult] | None = None,
) -> ResponseEnvelope:
    """Envelope returned when no path could produce an answer."""
    return build_envelope(
        response=error.fallback_response or error.message,
        execution_path=ExecutionPath.INTERNAL_ONLY,
        intent=intent,
        tool_results=tool_results,
        internal_enabled=False,
        external_enabled=False,
        fallback_attempted=True,
        fallback_reason=fallback_reason,
        success=False,
        error=error,
    )
