"""LLM client module.

Provides ChatCompletionsClient for OpenAI-compatible chat completions with
error classification, retries and telemetry.
"""

from workspace_assistant.llm_client.client import ChatCompletionsClient
from workspace_assistant.llm_client.types import (
    ChatModel,
    LLMClientError,
    LLMConnectionError,
    LLMContextTooLarge,
    LLMInvalidResponse,
    LLMRateLimit,
    LLMResponse,
    LLMServerError,
    LLMTimeout,
    ToolCall,
)

__all__ = [
    "ChatCompletionsClient",
    "ChatModel",
    "LLMClientError",
    "LLMConnectionError",
    "LLMContextTooLarge",
    "LLMInvalidResponse",
    "LLMResponse",
    "LLMRateLimit",
    "LLMServerError",
    "LLMTimeout",
    "ToolCall",
]
