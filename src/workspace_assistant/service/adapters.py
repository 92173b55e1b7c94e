"""HTTP adapters for the workspace's own backend.

``HttpWorkspaceStore`` implements both the internal tools' query boundary
and the membership lookup used for authorization.
"""

from typing import Any, Protocol

import httpx

from workspace_assistant.service.models import WorkspaceMember
from workspace_assistant.telemetry import get_logger

log = get_logger(__name__)


class MembershipDirectory(Protocol):
    """Lookup of workspace memberships."""

    async def get_member(self, workspace_id: str, member_id: str) -> WorkspaceMember | None:
        """Return the member, or None when it does not exist in the workspace."""
        ...


class HttpWorkspaceStore:
    """WorkspaceStore and MembershipDirectory over the workspace backend API.

    Endpoints:
        POST /operations/{operation}                     body: {"arguments": {...}}
        GET  /workspaces/{workspace_id}/members/{member_id}
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout_seconds: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the store, falling back to settings for unset values."""
        if base_url is None or timeout_seconds is None:
            from workspace_assistant.config import settings  # noqa: PLC0415

            base_url = base_url or settings.workspace_store_url
            timeout_seconds = timeout_seconds or settings.tool_timeout_seconds
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout_seconds, connect=min(self.timeout_seconds, 5.0)),
            transport=self._transport,
        )

    async def query(self, operation: str, arguments: dict[str, Any]) -> Any:
        async with self._client() as client:
            response = await client.post(f"/operations/{operation}", json={"arguments": arguments})
            response.raise_for_status()
            payload = response.json()
        if isinstance(payload, dict) and "data" in payload:
            return payload["data"]
        return payload

    async def get_member(self, workspace_id: str, member_id: str) -> WorkspaceMember | None:
        async with self._client() as client:
            response = await client.get(f"/workspaces/{workspace_id}/members/{member_id}")
            if response.status_code == 404:
                return None
            response.raise_for_status()
            payload = response.json()
        member = WorkspaceMember.model_validate(payload)
        if member.workspace_id != workspace_id:
            log.warning("member_workspace_mismatch", workspace_id=workspace_id)
            return None
        return member
