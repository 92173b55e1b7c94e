"""Audit record types."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class AuditOutcome(str, Enum):
    """Outcome of one audited external invocation."""

    SUCCESS = "success"
    ERROR = "error"


class AuditStatus(str, Enum):
    """Whether an audit record reached the store.

    ``degraded`` is a first-class status rather than a swallowed error, so
    callers can surface it in metadata or monitoring.
    """

    RECORDED = "recorded"
    DEGRADED = "degraded"


class AuditRecord(BaseModel):
    """One external tool invocation, as written to the append-only audit store."""

    model_config = ConfigDict(frozen=True)

    workspace_id: str
    member_id: str | None = None
    user_id: str | None = None
    tool_name: str
    toolkit: str | None = None
    arguments_snapshot: Any = None
    outcome: AuditOutcome
    error: str | None = None
    execution_path: str
    tool_call_id: str | None = None
    trace_id: str | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
