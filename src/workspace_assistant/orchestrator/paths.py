"""Execution paths.

Both paths implement ``AssistantPath`` and return the same ResponseEnvelope
shape; the controller picks one per request and falls back from the rich path
to the internal-only path on failure.
"""

from typing import Protocol

from workspace_assistant.governance.confirmation import ConfirmationGate
from workspace_assistant.governance.pending import PendingAction
from workspace_assistant.intent.types import ExternalApp, IntentMode
from workspace_assistant.llm_client.types import ChatModel
from workspace_assistant.orchestrator.envelope import Action, ResponseEnvelope, build_envelope
from workspace_assistant.orchestrator.pipeline import (
    PipelineDeps,
    build_tool_results_reply,
    run_pipeline,
)
from workspace_assistant.orchestrator.prompts import (
    build_integration_unavailable_reply,
    build_internal_system_prompt,
    build_not_connected_reply,
    build_rich_system_prompt,
)
from workspace_assistant.orchestrator.types import (
    AssistantType,
    ExecutionPath,
    PathExecution,
    PipelineState,
    RequestContext,
)
from workspace_assistant.telemetry import SYNTHESIS_FAILED, get_logger
from workspace_assistant.tools.assembler import ToolAssembler
from workspace_assistant.tools.executor import ToolExecutor
from workspace_assistant.tools.types import ToolCallResult

log = get_logger(__name__)

EMPTY_REPLY = "I don't have an answer for that yet. Could you rephrase or add detail?"

REASON_MODEL_FAILED = "model_invocation_failed"
REASON_MODEL_FAILED_AFTER_TOOLS = "model_invocation_failed_after_tool_execution"
REASON_TOOL_EXECUTION_FAILED = "tool_execution_failed"
REASON_PATH_FAILED = "execution_path_failed"


class AssistantPathError(Exception):
    """Raised when a path cannot produce an answer.

    Attributes:
        reason: Machine-readable failure reason.
        tool_results: Results of tools that ran before the failure.
        cause: Underlying exception.
    """

    def __init__(
        self,
        reason: str,
        tool_results: list[ToolCallResult] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(reason)
        self.reason = reason
        self.tool_results = list(tool_results or [])
        self.cause = cause


class RichPathError(AssistantPathError):
    """Rich path failure; the controller falls back to internal-only."""

    pass


class InternalPathError(AssistantPathError):
    """Internal-only path failure; nothing left to fall back to."""

    pass


class AssistantPath(Protocol):
    """One way of answering a request."""

    execution_path: ExecutionPath
    assistant_type: AssistantType

    async def run(self, ctx: RequestContext) -> ResponseEnvelope:
        """Answer the request or raise AssistantPathError."""
        ...


def _failure_reason(run: PathExecution) -> str:
    if run.failed_at is PipelineState.SYNTHESIS:
        return REASON_MODEL_FAILED_AFTER_TOOLS
    if run.failed_at is PipelineState.MODEL_CALL:
        return REASON_MODEL_FAILED
    if run.failed_at is PipelineState.TOOL_EXECUTION:
        return REASON_TOOL_EXECUTION_FAILED
    return REASON_PATH_FAILED


def confirmation_action(pending: PendingAction) -> Action:
    """Client action carrying the pending-action token."""
    return Action(
        type="confirmation_required",
        label="Confirm action",
        payload={
            "token": pending.token,
            "tools": pending.tool_names,
            "expiresAt": pending.expires_at.isoformat(),
        },
    )


class RichAssistantPath:
    """Internal and external tools, behind the confirmation gate."""

    execution_path = ExecutionPath.RICH
    assistant_type = AssistantType.INTEGRATED

    def __init__(
        self,
        model: ChatModel,
        assembler: ToolAssembler,
        executor: ToolExecutor,
        gate: ConfirmationGate,
        internal_enabled: bool = True,
    ) -> None:
        self.model = model
        self.assembler = assembler
        self.executor = executor
        self.gate = gate
        self.internal_enabled = internal_enabled

    def _new_execution(self, ctx: RequestContext) -> PathExecution:
        external_tools = ctx.resolution.tools if ctx.resolution is not None else []
        assembled = self.assembler.assemble(
            ctx,
            internal_enabled=self.internal_enabled,
            external_enabled=True,
            external_tools=external_tools,
        )
        return PathExecution(
            ctx=ctx,
            execution_path=self.execution_path,
            tools=assembled.tools,
            system_prompt=build_rich_system_prompt(ctx.connected_apps, ctx.workspace_context),
        )

    async def _complete(self, run: PathExecution, deps: PipelineDeps) -> ResponseEnvelope:
        await run_pipeline(run, deps)
        ctx = run.ctx

        if run.state is PipelineState.FAILED:
            raise RichPathError(_failure_reason(run), run.tool_results, run.error)

        actions = []
        if run.state is PipelineState.AWAITING_CONFIRMATION and run.pending_action is not None:
            actions.append(confirmation_action(run.pending_action))

        return build_envelope(
            response=run.final_reply or EMPTY_REPLY,
            execution_path=self.execution_path,
            intent=ctx.intent,
            tool_results=run.tool_results,
            connected_apps=ctx.connected_apps,
            internal_enabled=self.internal_enabled,
            external_enabled=True,
            actions=actions,
        )

    async def run(self, ctx: RequestContext) -> ResponseEnvelope:
        """Answer with internal + external tools; raises RichPathError on failure."""
        run = self._new_execution(ctx)
        return await self._complete(run, PipelineDeps(self.model, self.executor, self.gate))

    async def resume(self, ctx: RequestContext, action: PendingAction) -> ResponseEnvelope:
        """Execute a confirmed action's original calls, then synthesize.

        The gate is not consulted again: the action was already confirmed.
        """
        run = self._new_execution(ctx)
        run.resumed_action = action
        return await self._complete(run, PipelineDeps(self.model, self.executor, gate=None))


class InternalOnlyAssistantPath:
    """Internal workspace tools only. Never touches external integrations."""

    execution_path = ExecutionPath.INTERNAL_ONLY
    assistant_type = AssistantType.WORKSPACE

    def __init__(
        self,
        model: ChatModel,
        assembler: ToolAssembler,
        executor: ToolExecutor,
        internal_enabled: bool = True,
    ) -> None:
        self.model = model
        self.assembler = assembler
        self.executor = executor
        self.internal_enabled = internal_enabled

    def _deterministic_reply(self, ctx: RequestContext, requested: list[ExternalApp]) -> str:
        resolution = ctx.resolution
        unconnected = [app for app in requested if app not in ctx.connected_apps]
        if unconnected and (resolution is None or not resolution.degraded):
            return build_not_connected_reply(unconnected)
        return build_integration_unavailable_reply(
            requested, resolution.reason if resolution is not None else None
        )

    async def run(self, ctx: RequestContext) -> ResponseEnvelope:
        """Answer with workspace tools; raises InternalPathError on failure.

        A purely external request is answered without a model call, so the
        reply can never claim an action in an app this path cannot reach.
        When the tools ran but the synthesis turn failed, the completed
        operations are reported instead of raising.
        """
        intent = ctx.intent
        requested = list(intent.requested_apps) if intent is not None else []

        if intent is not None and intent.mode is IntentMode.EXTERNAL:
            return build_envelope(
                response=self._deterministic_reply(ctx, requested),
                execution_path=self.execution_path,
                intent=intent,
                connected_apps=ctx.connected_apps,
                internal_enabled=self.internal_enabled,
                external_enabled=False,
            )

        assembled = self.assembler.assemble(
            ctx, internal_enabled=self.internal_enabled, external_enabled=False
        )
        unconnected = [app for app in requested if app not in ctx.connected_apps]
        run = PathExecution(
            ctx=ctx,
            execution_path=self.execution_path,
            tools=assembled.tools,
            system_prompt=build_internal_system_prompt(unconnected, ctx.workspace_context),
        )
        await run_pipeline(run, PipelineDeps(self.model, self.executor, gate=None))

        if run.state is PipelineState.FAILED:
            if run.failed_at is PipelineState.SYNTHESIS and run.tool_results:
                return self._tool_results_envelope(run)
            raise InternalPathError(_failure_reason(run), run.tool_results, run.error)

        return build_envelope(
            response=run.final_reply or EMPTY_REPLY,
            execution_path=self.execution_path,
            intent=intent,
            tool_results=run.tool_results,
            connected_apps=ctx.connected_apps,
            internal_enabled=self.internal_enabled,
            external_enabled=False,
        )

    def _tool_results_envelope(self, run: PathExecution) -> ResponseEnvelope:
        ctx = run.ctx
        log.warning(
            SYNTHESIS_FAILED,
            execution_path=self.execution_path.value,
            error_type=type(run.error).__name__ if run.error else None,
            tool_results=len(run.tool_results),
            trace_id=ctx.trace_id,
        )
        return build_envelope(
            response=build_tool_results_reply(run.tool_results),
            execution_path=self.execution_path,
            intent=ctx.intent,
            tool_results=run.tool_results,
            connected_apps=ctx.connected_apps,
            internal_enabled=self.internal_enabled,
            external_enabled=False,
            fallback_reason=REASON_MODEL_FAILED_AFTER_TOOLS,
        )
