"""External (third-party) capability resolution.

External tools are resolved per request from the caller's live connections at
the integration gateway. Resolution is best-effort: an unreachable gateway, a
timeout or an empty connection list all produce an empty tool set with a
reason, never an exception.
"""

import asyncio
import re
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx

from workspace_assistant.intent.types import ExternalApp
from workspace_assistant.telemetry import (
    EXTERNAL_RESOLUTION_FAILED,
    EXTERNAL_TOOLS_RESOLVED,
    get_logger,
)
from workspace_assistant.tools.types import ExternalToolDefinition

log = get_logger(__name__)

ACTIVE_STATUS = "ACTIVE"

REASON_NO_ACTIVE_CONNECTIONS = "no_active_connections"
REASON_APPS_NOT_CONNECTED = "requested_apps_not_connected"
REASON_RESOLUTION_FAILED = "capability_resolution_failed"
REASON_RESOLUTION_TIMEOUT = "capability_resolution_timeout"

NAME_KEYWORD_SCORE = 30
DESCRIPTION_KEYWORD_SCORE = 15
ACTION_VERB_SCORE = 40
DEFAULT_MAX_TOOLS = 20

# Query verb -> tool-name fragments that satisfy it.
ACTION_VERBS: dict[str, tuple[str, ...]] = {
    "create": ("create",),
    "list": ("list", "find"),
    "get": ("get",),
    "update": ("update",),
    "delete": ("delete",),
    "send": ("send",),
}

_STOPWORDS = frozenset(
    {"the", "and", "for", "with", "from", "that", "this", "please", "can", "you", "my", "me", "all"}
)
_WORD_PATTERN = re.compile(r"[a-z0-9]+")


@dataclass(frozen=True)
class ConnectionInfo:
    """One connected account at the integration gateway."""

    connection_id: str
    app_name: str
    status: str
    toolkit: str | None = None

    @property
    def is_active(self) -> bool:
        return self.status.upper() == ACTIVE_STATUS

    def app(self) -> ExternalApp | None:
        """ExternalApp this connection belongs to, matched by toolkit slug or app name."""
        if self.toolkit:
            matched = ExternalApp.from_str(self.toolkit)
            if matched is not None:
                return matched
        return ExternalApp.from_str(self.app_name)


class ExternalToolProvider(Protocol):
    """Boundary of the third-party integration gateway."""

    async def list_connections(self, entity_id: str) -> list[ConnectionInfo]:
        """List the entity's connected accounts (any status)."""
        ...

    async def list_tools(self, app: ExternalApp, entity_id: str) -> list[dict[str, Any]]:
        """List tool descriptors (name, description, parameters) for one app."""
        ...

    async def invoke(self, tool_name: str, arguments: dict[str, Any], entity_id: str) -> Any:
        """Invoke a tool on behalf of the entity and return its output."""
        ...


def build_entity_id(workspace_id: str, member_id: str | None = None) -> str:
    """Gateway entity id: per member when known, else per workspace."""
    if member_id:
        return f"member_{member_id}"
    return f"workspace_{workspace_id}"


@dataclass
class ExternalResolution:
    """Result of resolving external tools for one request."""

    tools: list[ExternalToolDefinition] = field(default_factory=list)
    connected_apps: list[ExternalApp] = field(default_factory=list)
    degraded: bool = False
    reason: str | None = None

    @property
    def has_tools(self) -> bool:
        return bool(self.tools)


def _extract_keywords(query: str) -> list[str]:
    words = _WORD_PATTERN.findall(query.lower())
    seen: list[str] = []
    for word in words:
        if len(word) > 2 and word not in _STOPWORDS and word not in seen:
            seen.append(word)
    return seen


def _score_tool(tool: ExternalToolDefinition, query_lower: str, keywords: list[str]) -> int:
    name = tool.name.lower()
    description = tool.description.lower()
    score = 0
    for keyword in keywords:
        if keyword in name:
            score += NAME_KEYWORD_SCORE
        elif keyword in description:
            score += DESCRIPTION_KEYWORD_SCORE

    # Only the first matching verb counts.
    for verb, fragments in ACTION_VERBS.items():
        if verb in query_lower and any(fragment in name for fragment in fragments):
            score += ACTION_VERB_SCORE
            break
    return score


def rank_external_tools(
    tools: list[ExternalToolDefinition], query: str, max_tools: int = DEFAULT_MAX_TOOLS
) -> list[ExternalToolDefinition]:
    """Keep the ``max_tools`` tools most relevant to ``query``.

    Ties keep the provider's original order.

    Args:
        tools: Candidate external tools.
        query: The user's utterance.
        max_tools: Upper bound on returned tools.

    Returns:
        Tools sorted by descending relevance, truncated to ``max_tools``.
    """
    if len(tools) <= max_tools:
        return list(tools)
    query_lower = query.lower()
    keywords = _extract_keywords(query)
    scored = [(_score_tool(tool, query_lower, keywords), index, tool) for index, tool in enumerate(tools)]
    scored.sort(key=lambda item: (-item[0], item[1]))
    return [tool for _, _, tool in scored[:max_tools]]


def _make_invoker(provider: ExternalToolProvider, tool_name: str, entity_id: str):
    async def invoke(arguments: dict[str, Any]) -> Any:
        return await provider.invoke(tool_name, arguments, entity_id)

    return invoke


class ExternalToolResolver:
    """Resolves the external tools a request may use."""

    def __init__(
        self,
        provider: ExternalToolProvider,
        timeout_seconds: float | None = None,
        max_tools: int | None = None,
    ) -> None:
        """Initialize the resolver.

        Args:
            provider: Integration gateway boundary.
            timeout_seconds: Hard bound on resolution (defaults from settings).
            max_tools: Tool cap after ranking (defaults from settings).
        """
        if timeout_seconds is None or max_tools is None:
            from workspace_assistant.config import settings  # noqa: PLC0415

            timeout_seconds = timeout_seconds or settings.external_resolution_timeout_seconds
            max_tools = max_tools or settings.external_max_tools
        self.provider = provider
        self.timeout_seconds = timeout_seconds
        self.max_tools = max_tools

    async def resolve(
        self,
        requested_apps: list[ExternalApp],
        entity_id: str,
        query: str = "",
        trace_id: str | None = None,
    ) -> ExternalResolution:
        """Resolve tools for the requested apps. Never raises.

        Args:
            requested_apps: Apps named by the intent.
            entity_id: Gateway entity (see ``build_entity_id``).
            query: User utterance, used for ranking.
            trace_id: Trace id for log correlation.

        Returns:
            ExternalResolution; empty tools carry a ``reason``.
        """
        try:
            resolution = await asyncio.wait_for(
                self._resolve(requested_apps, entity_id, query), timeout=self.timeout_seconds
            )
        except asyncio.TimeoutError:
            log.warning(
                EXTERNAL_RESOLUTION_FAILED,
                reason=REASON_RESOLUTION_TIMEOUT,
                timeout_seconds=self.timeout_seconds,
                trace_id=trace_id,
            )
            return ExternalResolution(degraded=True, reason=REASON_RESOLUTION_TIMEOUT)
        except Exception as e:
            log.warning(
                EXTERNAL_RESOLUTION_FAILED,
                reason=REASON_RESOLUTION_FAILED,
                error_type=type(e).__name__,
                trace_id=trace_id,
                exc_info=True,
            )
            return ExternalResolution(degraded=True, reason=REASON_RESOLUTION_FAILED)

        log.info(
            EXTERNAL_TOOLS_RESOLVED,
            requested_apps=[app.value for app in requested_apps],
            connected_apps=[app.value for app in resolution.connected_apps],
            tools_count=len(resolution.tools),
            reason=resolution.reason,
            trace_id=trace_id,
        )
        return resolution

    async def _resolve(
        self, requested_apps: list[ExternalApp], entity_id: str, query: str
    ) -> ExternalResolution:
        connections = await self.provider.list_connections(entity_id)

        connected: list[ExternalApp] = []
        for connection in connections:
            if not connection.is_active:
                continue
            app = connection.app()
            if app is not None and app not in connected:
                connected.append(app)

        if not connected:
            return ExternalResolution(reason=REASON_NO_ACTIVE_CONNECTIONS)

        targets = [app for app in requested_apps if app in connected]
        if not targets:
            return ExternalResolution(connected_apps=connected, reason=REASON_APPS_NOT_CONNECTED)

        tools: list[ExternalToolDefinition] = []
        for app in targets:
            for descriptor in await self.provider.list_tools(app, entity_id):
                name = descriptor.get("name")
                if not name:
                    continue
                tools.append(
                    ExternalToolDefinition(
                        name=name,
                        description=descriptor.get("description") or f"{app.display_name} action",
                        app_name=app,
                        toolkit=descriptor.get("toolkit") or app.value.lower(),
                        parameter_schema=descriptor.get("parameters")
                        or {"type": "object", "properties": {}},
                        executor=_make_invoker(self.provider, name, entity_id),
                    )
                )

        return ExternalResolution(
            tools=rank_external_tools(tools, query, self.max_tools),
            connected_apps=connected,
            reason=None if tools else REASON_APPS_NOT_CONNECTED,
        )


class HttpExternalToolProvider:
    """ExternalToolProvider backed by the integration gateway's HTTP API.

    Endpoints:
        GET  /entities/{entity_id}/connections
        GET  /entities/{entity_id}/apps/{app}/tools
        POST /entities/{entity_id}/tools/{tool_name}/execute
    """

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout_seconds: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the provider, falling back to settings for unset values."""
        if base_url is None or timeout_seconds is None:
            from workspace_assistant.config import settings  # noqa: PLC0415

            base_url = base_url or settings.integration_gateway_url
            timeout_seconds = timeout_seconds or settings.tool_timeout_seconds
            if api_key is None and settings.integration_gateway_api_key is not None:
                api_key = settings.integration_gateway_api_key.get_secret_value()
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._headers = {"x-api-key": api_key} if api_key else {}
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers=self._headers,
            timeout=httpx.Timeout(self.timeout_seconds, connect=min(self.timeout_seconds, 5.0)),
            transport=self._transport,
        )

    async def list_connections(self, entity_id: str) -> list[ConnectionInfo]:
        async with self._client() as client:
            response = await client.get(f"/entities/{entity_id}/connections")
            response.raise_for_status()
            payload = response.json()

        items = payload.get("items", []) if isinstance(payload, dict) else payload
        return [
            ConnectionInfo(
                connection_id=str(item.get("id", "")),
                app_name=str(item.get("appName") or item.get("app") or ""),
                status=str(item.get("status", "")),
                toolkit=item.get("toolkit"),
            )
            for item in items
            if isinstance(item, dict)
        ]

    async def list_tools(self, app: ExternalApp, entity_id: str) -> list[dict[str, Any]]:
        async with self._client() as client:
            response = await client.get(f"/entities/{entity_id}/apps/{app.value.lower()}/tools")
            response.raise_for_status()
            payload = response.json()

        items = payload.get("items", []) if isinstance(payload, dict) else payload
        return [item for item in items if isinstance(item, dict)]

    async def invoke(self, tool_name: str, arguments: dict[str, Any], entity_id: str) -> Any:
        async with self._client() as client:
            response = await client.post(
                f"/entities/{entity_id}/tools/{tool_name}/execute",
                json={"arguments": arguments},
            )
            response.raise_for_status()
            payload = response.json()

        if isinstance(payload, dict):
            if payload.get("successful") is False or payload.get("error"):
                raise RuntimeError(f"Tool {tool_name} failed: {payload.get('error') or 'unknown error'}")
            return payload.get("data", payload)
        return payload
