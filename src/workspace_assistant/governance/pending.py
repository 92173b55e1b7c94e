"""Pending-action persistence for the confirmation gate.

A proposed high-impact action is stored server-side under the caller's
(workspace, principal) key and referenced by an opaque token. The follow-up
reply resolves it; conversation text is never re-parsed to recover what was
proposed.
"""

import asyncio
import secrets
from datetime import datetime, timedelta, timezone
from typing import Callable, Protocol

from pydantic import BaseModel, Field

from workspace_assistant.intent.types import ExternalApp
from workspace_assistant.telemetry import PENDING_ACTION_EXPIRED, get_logger
from workspace_assistant.tools.types import ToolCallRequest

log = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_token() -> str:
    """Opaque, unguessable pending-action token."""
    return secrets.token_urlsafe(16)


class PendingAction(BaseModel):
    """A high-impact action awaiting the user's decision."""

    token: str = Field(default_factory=new_token)
    workspace_id: str
    principal: str = Field(..., description="Member id when known, else user id")
    user_message: str = Field(..., description="Utterance that produced the proposal")
    assistant_content: str = ""
    calls: list[ToolCallRequest] = Field(default_factory=list)
    apps: list[ExternalApp] = Field(default_factory=list)
    risk_summary: str = ""
    created_at: datetime = Field(default_factory=_utcnow)
    expires_at: datetime

    @property
    def tool_names(self) -> list[str]:
        return [call.tool_name for call in self.calls]

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or _utcnow()) >= self.expires_at

    @classmethod
    def create(
        cls,
        workspace_id: str,
        principal: str,
        user_message: str,
        calls: list[ToolCallRequest],
        ttl_seconds: int,
        assistant_content: str = "",
        apps: list[ExternalApp] | None = None,
        risk_summary: str = "",
        now: datetime | None = None,
    ) -> "PendingAction":
        """Build a pending action expiring ``ttl_seconds`` from ``now``."""
        created = now or _utcnow()
        return cls(
            workspace_id=workspace_id,
            principal=principal,
            user_message=user_message,
            assistant_content=assistant_content,
            calls=calls,
            apps=apps or [],
            risk_summary=risk_summary,
            created_at=created,
            expires_at=created + timedelta(seconds=ttl_seconds),
        )


class PendingActionStore(Protocol):
    """Storage for at most one pending action per (workspace, principal)."""

    async def save(self, action: PendingAction) -> None:
        """Store ``action``, replacing any older one for the same key."""
        ...

    async def get(self, workspace_id: str, principal: str) -> PendingAction | None:
        """Current unexpired action, or None."""
        ...

    async def pop(
        self, workspace_id: str, principal: str, token: str | None = None
    ) -> PendingAction | None:
        """Atomically remove and return the action (only if ``token`` matches, when given)."""
        ...


class InMemoryPendingActionStore:
    """Process-local pending-action store with expiry on read."""

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        """Initialize the store.

        Args:
            clock: Optional clock returning an aware datetime (tests).
        """
        self._actions: dict[tuple[str, str], PendingAction] = {}
        self._lock = asyncio.Lock()
        self._clock = clock or _utcnow

    def _live(self, key: tuple[str, str]) -> PendingAction | None:
        action = self._actions.get(key)
        if action is not None and action.is_expired(self._clock()):
            del self._actions[key]
            log.info(
                PENDING_ACTION_EXPIRED,
                workspace_id=key[0],
                tools=action.tool_names,
            )
            return None
        return action

    async def save(self, action: PendingAction) -> None:
        async with self._lock:
            self._actions[(action.workspace_id, action.principal)] = action

    async def get(self, workspace_id: str, principal: str) -> PendingAction | None:
        async with self._lock:
            return self._live((workspace_id, principal))

    async def pop(
        self, workspace_id: str, principal: str, token: str | None = None
    ) -> PendingAction | None:
        async with self._lock:
            key = (workspace_id, principal)
            action = self._live(key)
            if action is None:
                return None
            if token is not None and token != action.token:
                return None
            del self._actions[key]
            return action

    def __len__(self) -> int:
        return len(self._actions)
