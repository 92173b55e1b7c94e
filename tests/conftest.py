"""Shared fixtures: in-memory collaborators and a scripted chat model."""

import asyncio
import json
from datetime import datetime, timezone
from typing import Any

import pytest

from workspace_assistant.audit import AuditLogger, InMemoryAuditStore
from workspace_assistant.governance import ActionPolicy, ConfirmationGate, InMemoryPendingActionStore
from workspace_assistant.intent.types import ExternalApp
from workspace_assistant.orchestrator import (
    FallbackController,
    InternalOnlyAssistantPath,
    RequestContext,
    RichAssistantPath,
)
from workspace_assistant.tools import (
    ExternalToolResolver,
    ToolAssembler,
    ToolExecutor,
    build_internal_registry,
)
from workspace_assistant.tools.external import ConnectionInfo

FIXED_NOW = datetime(2026, 3, 10, 15, 30, tzinfo=timezone.utc)


class FakeWorkspaceStore:
    """WorkspaceStore recording every query."""

    def __init__(self) -> None:
        self.queries: list[tuple[str, dict[str, Any]]] = []
        self.results: dict[str, Any] = {}
        self.failures: dict[str, Exception] = {}

    async def query(self, operation: str, arguments: dict[str, Any]) -> Any:
        self.queries.append((operation, dict(arguments)))
        if operation in self.failures:
            raise self.failures[operation]
        return self.results.get(operation, {"items": []})


class FakeExternalProvider:
    """ExternalToolProvider with configurable connections, tools and outcomes."""

    def __init__(self) -> None:
        self.connections: list[ConnectionInfo] = []
        self.tools: dict[ExternalApp, list[dict[str, Any]]] = {}
        self.outputs: dict[str, Any] = {}
        self.failures: dict[str, Exception] = {}
        self.invocations: list[tuple[str, dict[str, Any], str]] = []
        self.connections_error: Exception | None = None
        self.delay_seconds = 0.0

    def connect(self, app: ExternalApp, tool_names: list[str], status: str = "ACTIVE") -> None:
        self.connections.append(
            ConnectionInfo(
                connection_id=f"conn_{app.value.lower()}",
                app_name=app.value,
                status=status,
                toolkit=app.value.lower(),
            )
        )
        self.tools[app] = [
            {
                "name": name,
                "description": name.lower().replace("_", " "),
                "parameters": {"type": "object", "properties": {}},
            }
            for name in tool_names
        ]

    async def list_connections(self, entity_id: str) -> list[ConnectionInfo]:
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)
        if self.connections_error is not None:
            raise self.connections_error
        return list(self.connections)

    async def list_tools(self, app: ExternalApp, entity_id: str) -> list[dict[str, Any]]:
        return list(self.tools.get(app, []))

    async def invoke(self, tool_name: str, arguments: dict[str, Any], entity_id: str) -> Any:
        self.invocations.append((tool_name, dict(arguments), entity_id))
        if tool_name in self.failures:
            raise self.failures[tool_name]
        return self.outputs.get(tool_name, {"ok": True})


class ScriptedModel:
    """ChatModel returning queued responses (exceptions are raised)."""

    def __init__(self, responses: list[Any] | None = None) -> None:
        self.responses = list(responses or [])
        self.calls: list[dict[str, Any]] = []

    @staticmethod
    def reply(content: str) -> dict[str, Any]:
        return {"role": "assistant", "content": content, "tool_calls": [], "usage": {}, "raw": {}}

    @staticmethod
    def tool_turn(*calls: tuple[str, str, dict[str, Any]], content: str = "") -> dict[str, Any]:
        return {
            "role": "assistant",
            "content": content,
            "tool_calls": [
                {"id": call_id, "name": name, "arguments": json.dumps(arguments)}
                for call_id, name, arguments in calls
            ],
            "usage": {},
            "raw": {},
        }

    async def respond(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        system_prompt: str | None = None,
        trace_ctx: Any = None,
    ) -> dict[str, Any]:
        self.calls.append(
            {
                "messages": [dict(message) for message in messages],
                "tools": tools,
                "system_prompt": system_prompt,
            }
        )
        if not self.responses:
            raise AssertionError("unexpected model call")
        item = self.responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


@pytest.fixture
def make_ctx():
    """Factory for RequestContext with test identities."""

    def factory(message: str = "What's on my calendar today?", **overrides: Any) -> RequestContext:
        fields: dict[str, Any] = {
            "trace_id": "trace-test-0001",
            "workspace_id": "ws_1",
            "user_id": "user_1",
            "user_message": message,
        }
        fields.update(overrides)
        return RequestContext(**fields)

    return factory


@pytest.fixture
def workspace_store() -> FakeWorkspaceStore:
    """In-memory workspace store."""
    return FakeWorkspaceStore()


@pytest.fixture
def provider() -> FakeExternalProvider:
    """In-memory integration gateway."""
    return FakeExternalProvider()


@pytest.fixture
def scripted_model():
    """The ScriptedModel class (tests queue their own responses)."""
    return ScriptedModel


@pytest.fixture
def registry(workspace_store: FakeWorkspaceStore):
    """Frozen internal registry over the fake store with a fixed clock."""
    return build_internal_registry(workspace_store, clock=lambda: FIXED_NOW)


@pytest.fixture
def audit_store() -> InMemoryAuditStore:
    """In-memory audit store."""
    return InMemoryAuditStore()


@pytest.fixture
def audit_logger(audit_store: InMemoryAuditStore) -> AuditLogger:
    """Audit logger writing to the in-memory store."""
    return AuditLogger(audit_store, timeout_seconds=1.0)


@pytest.fixture
def executor(audit_logger: AuditLogger) -> ToolExecutor:
    """Tool executor with short test timeouts."""
    return ToolExecutor(audit_logger, max_concurrency=4, timeout_seconds=2.0)


@pytest.fixture
def pending_store() -> InMemoryPendingActionStore:
    """In-memory pending-action store."""
    return InMemoryPendingActionStore()


@pytest.fixture
def gate(pending_store: InMemoryPendingActionStore) -> ConfirmationGate:
    """Confirmation gate with the default policy."""
    return ConfirmationGate(pending_store, policy=ActionPolicy(), ttl_seconds=600)


@pytest.fixture
def resolver(provider: FakeExternalProvider) -> ExternalToolResolver:
    """External resolver over the fake gateway."""
    return ExternalToolResolver(provider, timeout_seconds=1.0, max_tools=20)


@pytest.fixture
def build_controller(registry, executor, gate, resolver):
    """Factory wiring a FallbackController around a given model."""

    def factory(model: Any, external_enabled: bool = True) -> FallbackController:
        assembler = ToolAssembler(registry)
        return FallbackController(
            rich_path=RichAssistantPath(model, assembler, executor, gate),
            internal_path=InternalOnlyAssistantPath(model, assembler, executor),
            resolver=resolver,
            gate=gate,
            external_enabled=external_enabled,
        )

    return factory
