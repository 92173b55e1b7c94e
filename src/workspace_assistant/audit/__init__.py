"""Audit trail for external tool invocations."""

from workspace_assistant.audit.logger import (
    AuditLogger,
    AuditStore,
    InMemoryAuditStore,
    JsonlAuditStore,
)
from workspace_assistant.audit.sanitize import (
    REDACTED,
    TRUNCATED,
    sanitize_audit_payload,
)
from workspace_assistant.audit.types import AuditOutcome, AuditRecord, AuditStatus

__all__ = [
    "AuditLogger",
    "AuditOutcome",
    "AuditRecord",
    "AuditStatus",
    "AuditStore",
    "InMemoryAuditStore",
    "JsonlAuditStore",
    "REDACTED",
    "TRUNCATED",
    "sanitize_audit_payload",
]
