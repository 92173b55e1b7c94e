"""Type definitions for the LLM client module.

- ToolCall / LLMResponse: normalized response structures
- ChatModel: the protocol the orchestrator depends on
- Error classes: hierarchy of LLM client errors
"""

from typing import Any, Protocol

from typing_extensions import TypedDict

from workspace_assistant.telemetry.trace import TraceContext


class ToolCall(TypedDict):
    """Tool call requested by the model.

    Attributes:
        id: Call identifier, unique within one model turn.
        name: Name of the tool to call.
        arguments: JSON string containing tool arguments.
    """

    id: str
    name: str
    arguments: str  # JSON string


class LLMResponse(TypedDict):
    """Normalized response from a chat completions call.

    Attributes:
        role: Response role (typically "assistant").
        content: Natural language content from the model.
        tool_calls: Tool calls the model wants executed.
        usage: Token usage information.
        raw: Raw response body for debugging.
    """

    role: str
    content: str
    tool_calls: list[ToolCall]
    usage: dict[str, Any]
    raw: dict[str, Any]


class ChatModel(Protocol):
    """Anything that can run one chat turn with optional tools."""

    async def respond(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        system_prompt: str | None = None,
        trace_ctx: TraceContext | None = None,
    ) -> LLMResponse:
        """Run one model turn."""
        ...


# Error hierarchy


class LLMClientError(Exception):
    """Base exception for all LLM client errors."""

    pass


class LLMTimeout(LLMClientError):
    """Raised when an LLM request times out."""

    pass


class LLMConnectionError(LLMClientError):
    """Raised when connection to the LLM server fails."""

    pass


class LLMRateLimit(LLMClientError):
    """Raised when the LLM server returns a rate limit error."""

    pass


class LLMServerError(LLMClientError):
    """Raised when the LLM server returns an error (5xx)."""

    pass


class LLMContextTooLarge(LLMClientError):
    """Raised when the prompt exceeds the model's context window."""

    pass


class LLMInvalidResponse(LLMClientError):
    """Raised when the LLM server returns an invalid or unexpected response."""

    pass
