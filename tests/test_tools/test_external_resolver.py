"""Tests for external capability resolution, ranking and the gateway client."""

import httpx
import pytest

from workspace_assistant.intent.types import ExternalApp
from workspace_assistant.tools import ExternalToolResolver, HttpExternalToolProvider
from workspace_assistant.tools.external import (
    REASON_APPS_NOT_CONNECTED,
    REASON_NO_ACTIVE_CONNECTIONS,
    REASON_RESOLUTION_FAILED,
    REASON_RESOLUTION_TIMEOUT,
    build_entity_id,
    rank_external_tools,
)
from workspace_assistant.tools.types import ExternalToolDefinition, ToolOrigin


async def _noop(arguments: dict) -> dict:
    return {}


def _external(name: str, description: str = "") -> ExternalToolDefinition:
    return ExternalToolDefinition(
        name=name, description=description or name, app_name=ExternalApp.GMAIL, executor=_noop
    )


class TestResolver:
    """Best-effort resolution of external tools."""

    @pytest.mark.asyncio
    async def test_zero_connections_yields_no_tools(self, resolver) -> None:
        resolution = await resolver.resolve([ExternalApp.GMAIL], "workspace_ws_1", "send an email")

        assert resolution.tools == []
        assert resolution.has_tools is False
        assert resolution.degraded is False
        assert resolution.reason == REASON_NO_ACTIVE_CONNECTIONS

    @pytest.mark.asyncio
    async def test_inactive_connections_are_ignored(self, resolver, provider) -> None:
        provider.connect(ExternalApp.GMAIL, ["GMAIL_SEND_EMAIL"], status="EXPIRED")

        resolution = await resolver.resolve([ExternalApp.GMAIL], "workspace_ws_1")

        assert resolution.reason == REASON_NO_ACTIVE_CONNECTIONS
        assert resolution.connected_apps == []

    @pytest.mark.asyncio
    async def test_requested_app_not_connected(self, resolver, provider) -> None:
        provider.connect(ExternalApp.SLACK, ["SLACK_SEND_MESSAGE"])

        resolution = await resolver.resolve([ExternalApp.GMAIL], "workspace_ws_1")

        assert resolution.tools == []
        assert resolution.connected_apps == [ExternalApp.SLACK]
        assert resolution.reason == REASON_APPS_NOT_CONNECTED

    @pytest.mark.asyncio
    async def test_tools_only_for_requested_connected_apps(self, resolver, provider) -> None:
        provider.connect(ExternalApp.SLACK, ["SLACK_SEND_MESSAGE", "SLACK_LIST_CHANNELS"])
        provider.connect(ExternalApp.GITHUB, ["GITHUB_CREATE_ISSUE"])

        resolution = await resolver.resolve([ExternalApp.SLACK], "member_m1", "post in slack")

        assert [tool.name for tool in resolution.tools] == ["SLACK_SEND_MESSAGE", "SLACK_LIST_CHANNELS"]
        assert all(tool.origin is ToolOrigin.EXTERNAL for tool in resolution.tools)
        assert all(tool.app_name is ExternalApp.SLACK for tool in resolution.tools)
        assert resolution.connected_apps == [ExternalApp.SLACK, ExternalApp.GITHUB]
        assert resolution.reason is None

    @pytest.mark.asyncio
    async def test_resolved_tool_invokes_provider_for_entity(self, resolver, provider) -> None:
        provider.connect(ExternalApp.GMAIL, ["GMAIL_SEND_EMAIL"])
        resolution = await resolver.resolve([ExternalApp.GMAIL], "member_m1")

        await resolution.tools[0].executor({"to": "a@example.com"})

        assert provider.invocations == [("GMAIL_SEND_EMAIL", {"to": "a@example.com"}, "member_m1")]

    @pytest.mark.asyncio
    async def test_gateway_failure_degrades(self, resolver, provider) -> None:
        provider.connections_error = ConnectionError("gateway down")

        resolution = await resolver.resolve([ExternalApp.GMAIL], "workspace_ws_1")

        assert resolution.tools == []
        assert resolution.degraded is True
        assert resolution.reason == REASON_RESOLUTION_FAILED

    @pytest.mark.asyncio
    async def test_timeout_degrades(self, provider) -> None:
        provider.delay_seconds = 0.5
        resolver = ExternalToolResolver(provider, timeout_seconds=0.05, max_tools=20)

        resolution = await resolver.resolve([ExternalApp.GMAIL], "workspace_ws_1")

        assert resolution.degraded is True
        assert resolution.reason == REASON_RESOLUTION_TIMEOUT

    def test_entity_id_prefers_member(self) -> None:
        assert build_entity_id("ws_1", "m_1") == "member_m_1"
        assert build_entity_id("ws_1") == "workspace_ws_1"


class TestRanking:
    """Relevance ranking and capping of external tools."""

    def test_small_sets_keep_provider_order(self) -> None:
        tools = [_external("GMAIL_LIST_LABELS"), _external("GMAIL_SEND_EMAIL")]

        assert rank_external_tools(tools, "send an email", max_tools=5) == tools

    def test_action_verb_and_keywords_win(self) -> None:
        tools = [
            _external("GMAIL_LIST_LABELS"),
            _external("GMAIL_CREATE_DRAFT", "Create a draft email"),
            _external("GMAIL_SEND_EMAIL", "Send an email message"),
        ]

        ranked = rank_external_tools(tools, "send an email to bob", max_tools=2)

        assert [tool.name for tool in ranked] == ["GMAIL_SEND_EMAIL", "GMAIL_CREATE_DRAFT"]

    def test_ties_keep_original_order(self) -> None:
        tools = [_external(f"GMAIL_TOOL_{index}") for index in range(5)]

        ranked = rank_external_tools(tools, "unrelated words", max_tools=3)

        assert [tool.name for tool in ranked] == ["GMAIL_TOOL_0", "GMAIL_TOOL_1", "GMAIL_TOOL_2"]


class TestHttpExternalToolProvider:
    """Gateway client over a mocked transport."""

    @staticmethod
    def _provider(handler) -> HttpExternalToolProvider:
        return HttpExternalToolProvider(
            base_url="http://gateway.test",
            api_key="gw-key",
            timeout_seconds=5.0,
            transport=httpx.MockTransport(handler),
        )

    @pytest.mark.asyncio
    async def test_list_connections(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/entities/member_m1/connections"
            assert request.headers["x-api-key"] == "gw-key"
            return httpx.Response(
                200,
                json={"items": [{"id": "c1", "appName": "gmail", "status": "ACTIVE", "toolkit": "gmail"}]},
            )

        connections = await self._provider(handler).list_connections("member_m1")

        assert len(connections) == 1
        assert connections[0].is_active is True
        assert connections[0].app() is ExternalApp.GMAIL

    @pytest.mark.asyncio
    async def test_list_tools_uses_lowercase_app(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/entities/member_m1/apps/slack/tools"
            return httpx.Response(200, json=[{"name": "SLACK_SEND_MESSAGE"}])

        tools = await self._provider(handler).list_tools(ExternalApp.SLACK, "member_m1")

        assert tools == [{"name": "SLACK_SEND_MESSAGE"}]

    @pytest.mark.asyncio
    async def test_invoke_returns_data(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "POST"
            return httpx.Response(200, json={"successful": True, "data": {"id": "msg_1"}})

        result = await self._provider(handler).invoke("GMAIL_SEND_EMAIL", {"to": "x"}, "member_m1")

        assert result == {"id": "msg_1"}

    @pytest.mark.asyncio
    async def test_invoke_unsuccessful_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"successful": False, "error": "quota exceeded"})

        with pytest.raises(RuntimeError, match="quota exceeded"):
            await self._provider(handler).invoke("GMAIL_SEND_EMAIL", {}, "member_m1")
