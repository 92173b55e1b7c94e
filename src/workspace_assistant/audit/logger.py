"""Best-effort audit logging for external tool invocations.

A failing or slow audit store never fails the request: ``AuditLogger.record``
returns ``AuditStatus.DEGRADED`` instead of raising.
"""

import asyncio
import threading
from pathlib import Path
from typing import Protocol

import orjson

from workspace_assistant.audit.types import AuditRecord, AuditStatus
from workspace_assistant.telemetry import AUDIT_RECORD_DEGRADED, AUDIT_RECORDED, get_logger

log = get_logger(__name__)


class AuditStore(Protocol):
    """Append-only audit sink."""

    async def append(self, record: AuditRecord) -> None:
        """Persist one record. May raise; the logger absorbs failures."""
        ...


class InMemoryAuditStore:
    """Audit store that keeps records in a list."""

    def __init__(self) -> None:
        self.records: list[AuditRecord] = []

    async def append(self, record: AuditRecord) -> None:
        self.records.append(record)


class JsonlAuditStore:
    """Audit store appending one JSON object per line to a file.

    Writes run in a worker thread so the event loop never blocks on disk.
    """

    def __init__(self, path: Path | str) -> None:
        """Initialize the store.

        Args:
            path: JSON-lines file; parent directories are created on first write.
        """
        self.path = Path(path)
        self._lock = threading.Lock()

    def _write(self, line: bytes) -> None:
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("ab") as handle:
                handle.write(line)

    async def append(self, record: AuditRecord) -> None:
        line = orjson.dumps(record.model_dump(mode="json"), option=orjson.OPT_APPEND_NEWLINE)
        await asyncio.to_thread(self._write, line)

    def read_all(self) -> list[AuditRecord]:
        """Load every stored record (for inspection and tests)."""
        if not self.path.exists():
            return []
        records: list[AuditRecord] = []
        with self.path.open("rb") as handle:
            for line in handle:
                if line.strip():
                    records.append(AuditRecord.model_validate(orjson.loads(line)))
        return records


class AuditLogger:
    """Writes audit records with a hard time bound."""

    def __init__(self, store: AuditStore, timeout_seconds: float | None = None) -> None:
        """Initialize the audit logger.

        Args:
            store: Destination store.
            timeout_seconds: Per-record bound (defaults from settings).
        """
        if timeout_seconds is None:
            from workspace_assistant.config import settings  # noqa: PLC0415

            timeout_seconds = settings.audit_timeout_seconds
        self.store = store
        self.timeout_seconds = timeout_seconds

    async def record(self, record: AuditRecord) -> AuditStatus:
        """Persist ``record``. Never raises.

        Returns:
            RECORDED on success, DEGRADED on store failure or timeout.
        """
        try:
            await asyncio.wait_for(self.store.append(record), timeout=self.timeout_seconds)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            log.warning(
                AUDIT_RECORD_DEGRADED,
                tool_name=record.tool_name,
                tool_call_id=record.tool_call_id,
                error_type=type(e).__name__,
                trace_id=record.trace_id,
            )
            return AuditStatus.DEGRADED

        log.debug(
            AUDIT_RECORDED,
            tool_name=record.tool_name,
            tool_call_id=record.tool_call_id,
            outcome=record.outcome.value,
            trace_id=record.trace_id,
        )
        return AuditStatus.RECORDED
