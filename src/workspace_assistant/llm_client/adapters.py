"""Request/response adapters for the OpenAI-compatible chat completions API."""

import json
from typing import Any

from workspace_assistant.llm_client.types import LLMInvalidResponse, LLMResponse, ToolCall


def adapt_chat_completions_response(response_data: dict[str, Any]) -> LLMResponse:
    """Adapt a chat completions response body to LLMResponse.

    Tool call arguments that are not valid JSON are passed through as-is;
    the executor reports them as failed calls rather than dropping them.

    Args:
        response_data: Raw response body.

    Returns:
        Normalized LLMResponse.

    Raises:
        LLMInvalidResponse: If the body has no choices or an unexpected shape.
    """
    try:
        choices = response_data.get("choices") or []
        if not choices:
            raise LLMInvalidResponse("Response has no choices")

        message = choices[0].get("message") or {}
        content = message.get("content") or ""

        tool_calls: list[ToolCall] = []
        for index, tc in enumerate(message.get("tool_calls") or []):
            if not isinstance(tc, dict):
                continue
            function = tc.get("function") or {}
            arguments = function.get("arguments", "{}")
            if isinstance(arguments, dict):
                arguments = json.dumps(arguments)
            tool_calls.append(
                ToolCall(
                    # Some backends omit ids; synthesize one so results stay correlatable.
                    id=tc.get("id") or f"call_{index}",
                    name=function.get("name", ""),
                    arguments=arguments or "{}",
                )
            )

        usage = response_data.get("usage") or {
            "prompt_tokens": 0,
            "completion_tokens": 0,
            "total_tokens": 0,
        }

        return LLMResponse(
            role=message.get("role", "assistant"),
            content=content,
            tool_calls=tool_calls,
            usage=usage,
            raw=response_data,
        )
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        raise LLMInvalidResponse(f"Invalid response format: {e}") from e


def build_chat_completions_request(
    messages: list[dict[str, Any]],
    model: str,
    tools: list[dict[str, Any]] | None = None,
    tool_choice: str | dict[str, Any] | None = None,
    max_tokens: int | None = None,
    temperature: float | None = None,
) -> dict[str, Any]:
    """Build a chat completions request payload.

    Args:
        messages: OpenAI-style messages (system, user, assistant, tool).
        model: Model identifier.
        tools: Optional function-calling tool schemas.
        tool_choice: "auto", "none" or a specific tool. Defaults to "auto" when tools are given.
        max_tokens: Maximum tokens to generate.
        temperature: Sampling temperature.

    Returns:
        Request payload dictionary.
    """
    normalized_messages: list[dict[str, Any]] = []
    for msg in messages:
        msg_copy = dict(msg)
        # Some backends validate an index on assistant tool calls.
        if msg_copy.get("role") == "assistant" and isinstance(msg_copy.get("tool_calls"), list):
            msg_copy["tool_calls"] = [
                {"index": idx, **tc} if "index" not in tc else dict(tc)
                for idx, tc in enumerate(msg_copy["tool_calls"])
            ]
        normalized_messages.append(msg_copy)

    payload: dict[str, Any] = {"model": model, "messages": normalized_messages}

    if tools:
        payload["tools"] = tools
        payload["tool_choice"] = tool_choice or "auto"

    if max_tokens is not None:
        payload["max_tokens"] = max_tokens

    if temperature is not None:
        payload["temperature"] = temperature

    return payload
