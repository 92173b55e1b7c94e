"""Tool execution layer with bounded concurrency, auditing and telemetry.

Each call of a model turn runs independently; one failing call never aborts
its siblings. Every external invocation is audited before ``execute``
returns, and the batch is shielded so caller cancellation cannot strand a
dispatched external call without its audit record.
"""

import asyncio
import time
from typing import TYPE_CHECKING, Any

from workspace_assistant.audit import (
    AuditLogger,
    AuditOutcome,
    AuditRecord,
    sanitize_audit_payload,
)
from workspace_assistant.security import redact_secrets, sanitize_error_message
from workspace_assistant.telemetry import (
    TOOL_CALL_COMPLETED,
    TOOL_CALL_FAILED,
    TOOL_CALL_STARTED,
    TOOL_RESULT_COUNT_MISMATCH,
    get_logger,
)
from workspace_assistant.tools.assembler import prepare_arguments
from workspace_assistant.tools.types import (
    ExternalToolDefinition,
    ToolCallRequest,
    ToolCallResult,
    ToolDefinition,
)

if TYPE_CHECKING:
    from workspace_assistant.orchestrator.types import RequestContext

log = get_logger(__name__)

FAILED_TOOLS_NOTE = (
    "Note: Some operations could not be completed. "
    "Please try again or check your integration settings."
)


class ToolExecutionError(Exception):
    """Raised when a tool call cannot be dispatched."""

    pass


class ToolExecutor:
    """Runs the tool calls of one model turn."""

    def __init__(
        self,
        audit_logger: AuditLogger,
        max_concurrency: int | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        """Initialize the executor.

        Args:
            audit_logger: Logger receiving one record per external call.
            max_concurrency: Per-request bound on concurrent calls.
            timeout_seconds: Per-call timeout.
        """
        if max_concurrency is None or timeout_seconds is None:
            from workspace_assistant.config import settings  # noqa: PLC0415

            max_concurrency = max_concurrency or settings.tool_max_concurrency
            timeout_seconds = timeout_seconds or settings.tool_timeout_seconds
        self.audit_logger = audit_logger
        self.max_concurrency = max_concurrency
        self.timeout_seconds = timeout_seconds

    async def execute(
        self,
        calls: list[ToolCallRequest],
        tools: dict[str, ToolDefinition],
        ctx: "RequestContext",
        execution_path: str,
    ) -> list[ToolCallResult]:
        """Execute ``calls`` against ``tools``.

        Args:
            calls: Tool calls proposed by the model.
            tools: The request's assembled tool set.
            ctx: Request context (identity injection, audit, logging).
            execution_path: Path label written to audit records.

        Returns:
            One result per distinct call id, in request order.
        """
        unique: list[ToolCallRequest] = []
        seen: set[str] = set()
        for call in calls:
            if call.call_id in seen:
                log.warning(
                    TOOL_CALL_FAILED,
                    tool_name=call.tool_name,
                    call_id=call.call_id,
                    error="duplicate_call_id",
                    trace_id=ctx.trace_id,
                )
                continue
            seen.add(call.call_id)
            unique.append(call)

        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def run(call: ToolCallRequest) -> ToolCallResult:
            async with semaphore:
                return await self._execute_one(call, tools, ctx, execution_path)

        batch = asyncio.gather(*(run(call) for call in unique))
        results = list(await asyncio.shield(batch))

        by_id = {result.call_id: result for result in results}
        ordered = [by_id[call.call_id] for call in unique if call.call_id in by_id]
        if len(ordered) != len(calls):
            log.warning(
                TOOL_RESULT_COUNT_MISMATCH,
                requested=len(calls),
                returned=len(ordered),
                trace_id=ctx.trace_id,
            )
        return ordered

    async def _execute_one(
        self,
        call: ToolCallRequest,
        tools: dict[str, ToolDefinition],
        ctx: "RequestContext",
        execution_path: str,
    ) -> ToolCallResult:
        tool = tools.get(call.tool_name)
        start = time.monotonic()

        if tool is None:
            log.warning(
                TOOL_CALL_FAILED,
                tool_name=call.tool_name,
                call_id=call.call_id,
                error="unknown_tool",
                trace_id=ctx.trace_id,
            )
            return ToolCallResult(
                call_id=call.call_id,
                tool_name=call.tool_name,
                success=False,
                error=f"Unknown tool: {call.tool_name}",
            )

        log.info(
            TOOL_CALL_STARTED,
            tool_name=call.tool_name,
            call_id=call.call_id,
            origin=tool.origin.value,
            trace_id=ctx.trace_id,
        )

        output: Any = None
        error: str | None = None
        audit_error: str | None = None
        try:
            if call.argument_error:
                raise ToolExecutionError(call.argument_error)
            arguments = prepare_arguments(tool, call.arguments, ctx)
            output = await asyncio.wait_for(tool.executor(arguments), timeout=self.timeout_seconds)
        except ToolExecutionError as e:
            error = str(e)
            audit_error = error
        except Exception as e:
            error = sanitize_error_message(e)
            audit_error = f"{type(e).__name__}: {redact_secrets(str(e))}"

        latency_ms = (time.monotonic() - start) * 1000
        result = ToolCallResult(
            call_id=call.call_id,
            tool_name=call.tool_name,
            success=error is None,
            output=output if error is None else None,
            error=error,
            origin=tool.origin,
            latency_ms=latency_ms,
        )

        if result.success:
            log.info(
                TOOL_CALL_COMPLETED,
                tool_name=call.tool_name,
                call_id=call.call_id,
                latency_ms=round(latency_ms, 2),
                trace_id=ctx.trace_id,
            )
        else:
            log.warning(
                TOOL_CALL_FAILED,
                tool_name=call.tool_name,
                call_id=call.call_id,
                error=audit_error,
                latency_ms=round(latency_ms, 2),
                trace_id=ctx.trace_id,
            )

        if isinstance(tool, ExternalToolDefinition):
            status = await self.audit_logger.record(
                AuditRecord(
                    workspace_id=ctx.workspace_id,
                    member_id=ctx.member_id,
                    user_id=ctx.user_id,
                    tool_name=call.tool_name,
                    toolkit=tool.toolkit,
                    arguments_snapshot=sanitize_audit_payload(call.arguments),
                    outcome=AuditOutcome.SUCCESS if result.success else AuditOutcome.ERROR,
                    error=audit_error,
                    execution_path=execution_path,
                    tool_call_id=call.call_id,
                    trace_id=ctx.trace_id,
                )
            )
            ctx.audit_statuses.append(status)

        return result


def summarize_failures(results: list[ToolCallResult]) -> str | None:
    """The note appended to a reply when any tool call failed."""
    if any(not result.success for result in results):
        return FAILED_TOOLS_NOTE
    return None
