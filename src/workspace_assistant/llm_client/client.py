"""Chat completions client.

``ChatCompletionsClient`` calls an OpenAI-compatible ``/chat/completions``
endpoint with retries, error classification, and telemetry.
"""

import asyncio
import time
from typing import Any

import httpx

from workspace_assistant.llm_client.adapters import (
    adapt_chat_completions_response,
    build_chat_completions_request,
)
from workspace_assistant.llm_client.types import (
    LLMClientError,
    LLMConnectionError,
    LLMContextTooLarge,
    LLMInvalidResponse,
    LLMRateLimit,
    LLMResponse,
    LLMServerError,
    LLMTimeout,
)
from workspace_assistant.telemetry import get_logger
from workspace_assistant.telemetry.events import (
    MODEL_CALL_COMPLETED,
    MODEL_CALL_ERROR,
    MODEL_CALL_STARTED,
)
from workspace_assistant.telemetry.trace import TraceContext

log = get_logger(__name__)

_CONTEXT_LENGTH_MARKERS = ("context_length_exceeded", "maximum context length", "too many tokens")


class ChatCompletionsClient:
    """Client for an OpenAI-compatible chat completions API.

    Attributes:
        base_url: API base URL (e.g. "https://api.openai.com/v1").
        model: Model identifier sent with every request.
        timeout_seconds: Read timeout per request.
        max_retries: Retries for timeouts, 429 and 5xx responses.
    """

    def __init__(
        self,
        base_url: str | None = None,
        model: str | None = None,
        api_key: str | None = None,
        timeout_seconds: float | None = None,
        max_retries: int | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client; unset arguments fall back to settings.

        Args:
            base_url: API base URL. Defaults to ``settings.llm_base_url``.
            model: Model identifier. Defaults to ``settings.llm_model``.
            api_key: Bearer token. Defaults to ``settings.llm_api_key``.
            timeout_seconds: Read timeout. Defaults to ``settings.llm_timeout_seconds``.
            max_retries: Maximum retry attempts. Defaults to ``settings.llm_max_retries``.
            temperature: Sampling temperature. Defaults to ``settings.llm_temperature``.
            max_tokens: Completion cap. Defaults to ``settings.llm_max_tokens``.
            transport: Optional httpx transport (used by tests).
        """
        from workspace_assistant.config import settings  # noqa: PLC0415

        self.base_url = (base_url or settings.llm_base_url).rstrip("/")
        self.model = model or settings.llm_model
        if api_key is None and settings.llm_api_key is not None:
            api_key = settings.llm_api_key.get_secret_value()
        self._api_key = api_key
        self.timeout_seconds = timeout_seconds or settings.llm_timeout_seconds
        self.max_retries = settings.llm_max_retries if max_retries is None else max_retries
        self.temperature = settings.llm_temperature if temperature is None else temperature
        self.max_tokens = settings.llm_max_tokens if max_tokens is None else max_tokens
        self._transport = transport

    @property
    def endpoint(self) -> str:
        """Full chat completions URL."""
        if self.base_url.endswith("/v1"):
            return f"{self.base_url}/chat/completions"
        return f"{self.base_url}/v1/chat/completions"

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    async def respond(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        system_prompt: str | None = None,
        trace_ctx: TraceContext | None = None,
        tool_choice: str | dict[str, Any] | None = None,
    ) -> LLMResponse:
        """Run one chat turn.

        Args:
            messages: OpenAI-style message history (without the system prompt).
            tools: Function-calling tool schemas.
            system_prompt: Optional system prompt prepended to ``messages``.
            trace_ctx: Trace context for telemetry correlation.
            tool_choice: Tool choice override.

        Returns:
            Normalized LLMResponse.

        Raises:
            LLMTimeout: If the request timed out after all retries.
            LLMConnectionError: If the server could not be reached.
            LLMRateLimit: If rate limited after all retries.
            LLMServerError: If the server kept returning 5xx.
            LLMContextTooLarge: If the prompt exceeds the context window.
            LLMInvalidResponse: If the response body is malformed.
            LLMClientError: For any other client error.
        """
        request_messages = list(messages)
        if system_prompt:
            request_messages.insert(0, {"role": "system", "content": system_prompt})

        if trace_ctx is None:
            trace_ctx = TraceContext.new_trace()
        _, span_id = trace_ctx.new_span()

        payload = build_chat_completions_request(
            messages=request_messages,
            model=self.model,
            tools=tools,
            tool_choice=tool_choice,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
        )

        start_time = time.time()
        log.info(
            MODEL_CALL_STARTED,
            model_id=self.model,
            message_count=len(request_messages),
            tools_count=len(tools or []),
            trace_id=trace_ctx.trace_id,
            span_id=span_id,
        )

        timeout_config = httpx.Timeout(
            connect=10.0,
            read=self.timeout_seconds,
            write=10.0,
            pool=10.0,
        )

        last_error: LLMClientError | None = None
        attempt = 0
        while attempt <= self.max_retries:
            retryable = False
            try:
                async with httpx.AsyncClient(
                    timeout=timeout_config, transport=self._transport
                ) as client:
                    response = await client.post(
                        self.endpoint, json=payload, headers=self._headers()
                    )
                    response.raise_for_status()
                    response_data = response.json()

                if isinstance(response_data, dict) and response_data.get("error"):
                    error_obj = response_data["error"]
                    error_msg = (
                        error_obj.get("message", str(error_obj))
                        if isinstance(error_obj, dict)
                        else str(error_obj)
                    )
                    raise LLMClientError(f"API returned error: {error_msg}")

                llm_response = adapt_chat_completions_response(response_data)

                log.info(
                    MODEL_CALL_COMPLETED,
                    model_id=self.model,
                    latency_ms=int((time.time() - start_time) * 1000),
                    tool_calls_count=len(llm_response["tool_calls"]),
                    prompt_tokens=llm_response["usage"].get("prompt_tokens", 0),
                    completion_tokens=llm_response["usage"].get("completion_tokens", 0),
                    attempts=attempt + 1,
                    trace_id=trace_ctx.trace_id,
                    span_id=span_id,
                )
                return llm_response

            except httpx.TimeoutException:
                last_error = LLMTimeout(f"Model request timed out after {self.timeout_seconds}s")
                retryable = True

            except httpx.ConnectError as e:
                # Server is likely down; retrying only delays the fallback path.
                last_error = LLMConnectionError(f"Failed to connect to model endpoint: {e}")

            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                if status == 429:
                    last_error = LLMRateLimit("Rate limit exceeded (429)")
                    retryable = True
                elif status >= 500:
                    last_error = LLMServerError(f"Server error {status}")
                    retryable = True
                elif status == 400 and any(
                    marker in e.response.text.lower() for marker in _CONTEXT_LENGTH_MARKERS
                ):
                    last_error = LLMContextTooLarge("Prompt exceeds the model context window")
                else:
                    last_error = LLMClientError(f"HTTP error {status}")

            except httpx.RequestError as e:
                last_error = LLMConnectionError(f"Request error: {type(e).__name__}")

            except LLMClientError as e:
                last_error = e

            except ValueError as e:
                last_error = LLMInvalidResponse(f"Response body is not valid JSON: {e}")

            if not retryable or attempt >= self.max_retries:
                break

            wait_time = 2**attempt
            log.warning(
                "model_call_retry",
                attempt=attempt + 1,
                wait_time=wait_time,
                error_type=type(last_error).__name__,
                trace_id=trace_ctx.trace_id,
            )
            await asyncio.sleep(wait_time)
            attempt += 1

        log.error(
            MODEL_CALL_ERROR,
            model_id=self.model,
            error_type=type(last_error).__name__ if last_error else "UnknownError",
            error=str(last_error) if last_error else "Unknown error",
            latency_ms=int((time.time() - start_time) * 1000),
            trace_id=trace_ctx.trace_id,
            span_id=span_id,
        )
        if last_error:
            raise last_error
        raise LLMClientError("Request failed with unknown error")
