"""Tests for ChatCompletionsClient against a mocked HTTP transport."""

import asyncio
import json
from typing import Any, Callable

import httpx
import pytest

from workspace_assistant.llm_client import ChatCompletionsClient
from workspace_assistant.llm_client.types import (
    LLMClientError,
    LLMConnectionError,
    LLMContextTooLarge,
    LLMInvalidResponse,
    LLMRateLimit,
    LLMServerError,
    LLMTimeout,
)
from workspace_assistant.telemetry.trace import TraceContext

COMPLETION = {
    "id": "chatcmpl-1",
    "choices": [
        {
            "index": 0,
            "message": {
                "role": "assistant",
                "content": "",
                "tool_calls": [
                    {
                        "id": "call_abc",
                        "type": "function",
                        "function": {"name": "get_my_cards", "arguments": "{}"},
                    }
                ],
            },
        }
    ],
    "usage": {"prompt_tokens": 12, "completion_tokens": 4, "total_tokens": 16},
}


def _client(handler: Callable[[httpx.Request], httpx.Response], **kwargs: Any) -> ChatCompletionsClient:
    return ChatCompletionsClient(
        base_url="http://llm.test/v1",
        model="test-model",
        api_key="sk-test",
        timeout_seconds=5,
        max_retries=kwargs.pop("max_retries", 0),
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


class TestChatCompletionsClient:
    """Request building, response parsing and error mapping."""

    @pytest.mark.asyncio
    async def test_respond_success(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=COMPLETION)

        client = _client(handler)
        tools = [{"type": "function", "function": {"name": "get_my_cards", "parameters": {}}}]

        response = await client.respond(
            messages=[{"role": "user", "content": "my cards?"}],
            tools=tools,
            system_prompt="You are helpful.",
            trace_ctx=TraceContext.new_trace(),
        )

        assert response["tool_calls"] == [{"id": "call_abc", "name": "get_my_cards", "arguments": "{}"}]
        assert response["usage"]["prompt_tokens"] == 12

        request = seen[0]
        assert str(request.url) == "http://llm.test/v1/chat/completions"
        assert request.headers["Authorization"] == "Bearer sk-test"
        body = json.loads(request.content)
        assert body["model"] == "test-model"
        assert body["messages"][0] == {"role": "system", "content": "You are helpful."}
        assert body["tools"] == tools
        assert body["tool_choice"] == "auto"

    def test_endpoint_without_version_suffix(self) -> None:
        client = ChatCompletionsClient(base_url="http://llm.test/", model="m", max_retries=0)

        assert client.endpoint == "http://llm.test/v1/chat/completions"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("status", "body", "expected"),
        [
            (429, {"error": "slow down"}, LLMRateLimit),
            (503, {"error": "unavailable"}, LLMServerError),
            (400, {"error": {"code": "context_length_exceeded"}}, LLMContextTooLarge),
            (401, {"error": "bad key"}, LLMClientError),
        ],
    )
    async def test_http_errors(self, status: int, body: dict, expected: type) -> None:
        client = _client(lambda request: httpx.Response(status, json=body))

        with pytest.raises(expected):
            await client.respond(messages=[{"role": "user", "content": "hi"}])

    @pytest.mark.asyncio
    async def test_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(LLMTimeout):
            await _client(handler).respond(messages=[{"role": "user", "content": "hi"}])

    @pytest.mark.asyncio
    async def test_connection_refused(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(LLMConnectionError):
            await _client(handler).respond(messages=[{"role": "user", "content": "hi"}])

    @pytest.mark.asyncio
    async def test_invalid_json(self) -> None:
        client = _client(lambda request: httpx.Response(200, content=b"<html>oops</html>"))

        with pytest.raises(LLMInvalidResponse):
            await client.respond(messages=[{"role": "user", "content": "hi"}])

    @pytest.mark.asyncio
    async def test_no_choices(self) -> None:
        client = _client(lambda request: httpx.Response(200, json={"choices": []}))

        with pytest.raises(LLMInvalidResponse):
            await client.respond(messages=[{"role": "user", "content": "hi"}])

    @pytest.mark.asyncio
    async def test_error_body_with_200(self) -> None:
        client = _client(lambda request: httpx.Response(200, json={"error": {"message": "quota"}}))

        with pytest.raises(LLMClientError, match="quota"):
            await client.respond(messages=[{"role": "user", "content": "hi"}])

    @pytest.mark.asyncio
    async def test_retries_rate_limit_then_succeeds(self, monkeypatch: pytest.MonkeyPatch) -> None:
        sleeps: list[float] = []

        async def fake_sleep(seconds: float) -> None:
            sleeps.append(seconds)

        monkeypatch.setattr(asyncio, "sleep", fake_sleep)
        responses = [httpx.Response(429, json={}), httpx.Response(200, json=COMPLETION)]
        client = _client(lambda request: responses.pop(0), max_retries=2)

        response = await client.respond(messages=[{"role": "user", "content": "hi"}])

        assert response["tool_calls"][0]["name"] == "get_my_cards"
        assert sleeps == [1]

    @pytest.mark.asyncio
    async def test_connection_errors_are_not_retried(self) -> None:
        attempts: list[int] = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(1)
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(LLMConnectionError):
            await _client(handler, max_retries=3).respond(messages=[{"role": "user", "content": "hi"}])
        assert len(attempts) == 1
