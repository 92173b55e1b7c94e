"""Type definitions for the capability registry and tool execution.

Tool definitions form a tagged union on ``origin``: internal tools are static
and read from the workspace store with injected identity; external tools are
resolved per request from the user's active third-party connections.
"""

import json
from enum import Enum
from typing import Annotated, Any, Awaitable, Callable, Literal, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from workspace_assistant.intent.types import ExternalApp

# Closed executor interface: one dict of (already prepared) arguments in, a result out.
ToolExecutorFn = Callable[[dict[str, Any]], Awaitable[Any]]


class ToolOrigin(str, Enum):
    """Where a tool's capability lives."""

    INTERNAL = "internal"
    EXTERNAL = "external"


class ContextRequirement(str, Enum):
    """Identity values the assembler injects into internal tool arguments."""

    WORKSPACE_ID = "workspace_id"
    USER_ID = "user_id"

    @property
    def argument_name(self) -> str:
        """Argument key used when calling the workspace store."""
        return "workspaceId" if self is ContextRequirement.WORKSPACE_ID else "userId"


CONTEXT_ARGUMENT_NAMES = frozenset(req.argument_name for req in ContextRequirement)


class ToolParameter(BaseModel):
    """Parameter definition for an internal tool."""

    name: str = Field(..., description="Parameter name")
    type: Literal["string", "number", "integer", "boolean", "object", "array"] = Field(
        ..., description="Parameter type"
    )
    description: str = Field(..., description="Parameter description for the model")
    required: bool = Field(False, description="Whether the parameter is required")
    default: Any | None = Field(None, description="Default value if not supplied")
    json_schema: dict[str, Any] | None = Field(
        None, description="Full JSON schema for complex nested types"
    )

    def to_json_schema(self) -> dict[str, Any]:
        """JSON schema fragment for this parameter."""
        if self.json_schema:
            return self.json_schema
        schema: dict[str, Any] = {"type": self.type, "description": self.description}
        if self.default is not None:
            schema["default"] = self.default
        return schema


class _ToolDefinitionBase(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    name: str = Field(..., min_length=1, description="Unique tool name")
    description: str = Field(..., description="Description shown to the model")
    executor: ToolExecutorFn = Field(..., exclude=True, repr=False)

    def parameters_schema(self) -> dict[str, Any]:
        """JSON schema of the model-visible parameters."""
        return {"type": "object", "properties": {}}

    def parameter_names(self) -> set[str]:
        """Names of the parameters the tool declares."""
        return set(self.parameters_schema().get("properties", {}).keys())

    def to_llm_schema(self) -> dict[str, Any]:
        """Tool definition in OpenAI function-calling format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters_schema(),
            },
        }


class InternalToolDefinition(_ToolDefinitionBase):
    """Static tool backed by a workspace store query."""

    origin: Literal[ToolOrigin.INTERNAL] = ToolOrigin.INTERNAL
    operation: str = Field(..., description="Workspace store operation the tool runs")
    parameters: list[ToolParameter] = Field(default_factory=list)
    context_requirements: frozenset[ContextRequirement] = Field(
        default_factory=frozenset, description="Identity fields injected at call time"
    )

    def parameters_schema(self) -> dict[str, Any]:
        """JSON schema of the model-visible parameters (context fields excluded)."""
        return {
            "type": "object",
            "properties": {param.name: param.to_json_schema() for param in self.parameters},
            "required": [param.name for param in self.parameters if param.required],
            "additionalProperties": False,
        }


class ExternalToolDefinition(_ToolDefinitionBase):
    """Tool exposed by a connected third-party app, resolved per request."""

    origin: Literal[ToolOrigin.EXTERNAL] = ToolOrigin.EXTERNAL
    app_name: ExternalApp = Field(..., description="App the tool acts on")
    toolkit: str | None = Field(None, description="Gateway toolkit slug")
    parameter_schema: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}},
        description="Raw JSON schema published by the integration",
    )

    def parameters_schema(self) -> dict[str, Any]:
        """The published schema, normalized to an object schema."""
        schema = dict(self.parameter_schema or {})
        schema.setdefault("type", "object")
        schema.setdefault("properties", {})
        return schema


ToolDefinition = Annotated[
    Union[InternalToolDefinition, ExternalToolDefinition], Field(discriminator="origin")
]


class ToolCallRequest(BaseModel):
    """A tool invocation proposed by one model turn."""

    call_id: str = Field(..., min_length=1, description="Unique within one model turn")
    tool_name: str = Field(..., description="Requested tool name")
    arguments: dict[str, Any] = Field(default_factory=dict, description="Parsed arguments")
    argument_error: str | None = Field(
        None, description="Set when the model's argument JSON could not be parsed"
    )

    @classmethod
    def from_llm_tool_call(cls, call_id: str, name: str, raw_arguments: str) -> "ToolCallRequest":
        """Build a request from a model tool call with JSON-string arguments.

        Args:
            call_id: Model-assigned call id.
            name: Tool name.
            raw_arguments: JSON object string.

        Returns:
            ToolCallRequest; invalid JSON or non-object JSON sets ``argument_error``.
        """
        try:
            parsed = json.loads(raw_arguments or "{}")
        except (json.JSONDecodeError, TypeError) as e:
            return cls(
                call_id=call_id,
                tool_name=name,
                arguments={},
                argument_error=f"Invalid arguments JSON: {e}",
            )
        if not isinstance(parsed, dict):
            return cls(
                call_id=call_id,
                tool_name=name,
                arguments={},
                argument_error="Tool arguments must be a JSON object",
            )
        return cls(call_id=call_id, tool_name=name, arguments=parsed)

    def to_llm_tool_call(self) -> dict[str, Any]:
        """Assistant-message tool call entry for the follow-up model turn."""
        return {
            "id": self.call_id,
            "type": "function",
            "function": {"name": self.tool_name, "arguments": json.dumps(self.arguments)},
        }


class ToolCallResult(BaseModel):
    """Outcome of one ToolCallRequest."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    call_id: str
    tool_name: str
    success: bool
    output: Any = None
    error: str | None = None
    origin: ToolOrigin | None = None
    latency_ms: float = Field(0.0, ge=0)

    def to_tool_message(self) -> dict[str, Any]:
        """Tool-role message fed back to the model."""
        if self.success:
            content = self.output if isinstance(self.output, str) else json.dumps(
                self.output, default=str
            )
        else:
            content = json.dumps({"error": self.error or "Tool execution failed"})
        return {"role": "tool", "tool_call_id": self.call_id, "name": self.tool_name, "content": content}
