"""Dual-path fallback controller: the orchestrator's public entry point.

Per request:
1. A reply to a pending confirmation is resolved first.
2. The utterance is classified; external tools are resolved only when the
   intent needs them.
3. The rich path runs when resolution produced tools, otherwise the
   internal-only path answers (with the resolution's reason attached).
4. A rich-path failure falls back to internal-only, carrying partial results.
5. If both fail, an error envelope with an actionable error is returned,
   unless rich-path operations already succeeded: those are reported instead.

``handle`` never raises.
"""

import contextlib
from typing import Any

from workspace_assistant.governance.confirmation import (
    ConfirmationGate,
    GateState,
    build_cancellation_message,
    build_reprompt_message,
)
from workspace_assistant.governance.pending import PendingAction
from workspace_assistant.intent.classifier import classify
from workspace_assistant.orchestrator.envelope import (
    ResponseEnvelope,
    build_envelope,
    build_error_envelope,
    with_fallback,
)
from workspace_assistant.orchestrator.errors import (
    ErrorCategory,
    build_actionable_error,
    categorize_error,
)
from workspace_assistant.orchestrator.paths import (
    AssistantPathError,
    InternalOnlyAssistantPath,
    RichAssistantPath,
    RichPathError,
    confirmation_action,
)
from workspace_assistant.orchestrator.prompts import build_partial_results_summary
from workspace_assistant.orchestrator.types import ExecutionPath, RequestContext
from workspace_assistant.telemetry import (
    FALLBACK_FAILED,
    FALLBACK_TRIGGERED,
    PATH_SELECTED,
    PIPELINE_FAILED,
    get_logger,
)
from workspace_assistant.tools.executor import summarize_failures
from workspace_assistant.tools.external import ExternalToolResolver
from workspace_assistant.tools.types import ToolCallResult

log = get_logger(__name__)


class FallbackController:
    """Chooses and runs an execution path for each request."""

    def __init__(
        self,
        rich_path: RichAssistantPath,
        internal_path: InternalOnlyAssistantPath,
        resolver: ExternalToolResolver,
        gate: ConfirmationGate,
        external_enabled: bool = True,
    ) -> None:
        """Initialize the controller.

        Args:
            rich_path: Internal + external path.
            internal_path: Internal-only path.
            resolver: External capability resolver.
            gate: Confirmation gate (shared with the rich path).
            external_enabled: Global switch for external integrations.
        """
        self.rich_path = rich_path
        self.internal_path = internal_path
        self.resolver = resolver
        self.gate = gate
        self.external_enabled = external_enabled

    def _span(self, ctx: RequestContext, name: str, **metadata: Any):
        if ctx.timer is None:
            return contextlib.nullcontext()
        return ctx.timer.span(name, **metadata)

    async def handle(self, ctx: RequestContext) -> ResponseEnvelope:
        """Answer one request. Never raises.

        Args:
            ctx: Request context built by the service layer.

        Returns:
            ResponseEnvelope; ``success`` is False only when no path could answer.
        """
        try:
            resolved = await self._handle_pending(ctx)
            if resolved is not None:
                return resolved
            return await self._handle_new_request(ctx)
        except Exception as e:
            log.error(
                PIPELINE_FAILED,
                error_type=type(e).__name__,
                trace_id=ctx.trace_id,
                exc_info=True,
            )
            category = categorize_error(e)
            return build_error_envelope(build_actionable_error(category), intent=ctx.intent)

    async def _handle_pending(self, ctx: RequestContext) -> ResponseEnvelope | None:
        resolution = await self.gate.resolve(ctx, ctx.user_message, ctx.confirmation_token)
        if resolution.state is GateState.NO_GATE:
            return None

        action = resolution.pending_action
        if action is None:
            return None
        ctx.intent = classify(action.user_message, trace_id=ctx.trace_id)

        if resolution.state is GateState.AWAITING_CONFIRMATION:
            return build_envelope(
                response=build_reprompt_message(action),
                execution_path=ExecutionPath.RICH,
                intent=ctx.intent,
                external_enabled=True,
                actions=[confirmation_action(action)],
            )

        if resolution.state is GateState.CANCELLED:
            return build_envelope(
                response=build_cancellation_message(action.tool_names),
                execution_path=ExecutionPath.RICH,
                intent=ctx.intent,
                external_enabled=True,
            )

        return await self._resume_confirmed(ctx, action)

    async def _resume_confirmed(self, ctx: RequestContext, action: PendingAction) -> ResponseEnvelope:
        with self._span(ctx, "capability_resolution"):
            ctx.resolution = await self.resolver.resolve(
                action.apps, ctx.entity_id, action.user_message, trace_id=ctx.trace_id
            )
        ctx.connected_apps = ctx.resolution.connected_apps

        if not ctx.resolution.has_tools:
            return await self._fallback(ctx, ctx.resolution.reason, attempted=True)

        log.info(
            PATH_SELECTED,
            execution_path=ExecutionPath.RICH.value,
            resumed=True,
            trace_id=ctx.trace_id,
        )
        try:
            return await self.rich_path.resume(ctx, action)
        except RichPathError as e:
            return await self._fallback_after_rich_failure(ctx, e)

    async def _handle_new_request(self, ctx: RequestContext) -> ResponseEnvelope:
        with self._span(ctx, "classification"):
            ctx.intent = classify(ctx.user_message, ctx.history, trace_id=ctx.trace_id)

        reason: str | None = None
        if ctx.intent.requires_external_tools:
            if not self.external_enabled:
                reason = "external_tools_disabled"
            else:
                with self._span(ctx, "capability_resolution"):
                    ctx.resolution = await self.resolver.resolve(
                        ctx.intent.requested_apps,
                        ctx.entity_id,
                        ctx.user_message,
                        trace_id=ctx.trace_id,
                    )
                ctx.connected_apps = ctx.resolution.connected_apps
                reason = ctx.resolution.reason

        if ctx.resolution is not None and ctx.resolution.has_tools:
            log.info(PATH_SELECTED, execution_path=ExecutionPath.RICH.value, trace_id=ctx.trace_id)
            try:
                return await self.rich_path.run(ctx)
            except RichPathError as e:
                return await self._fallback_after_rich_failure(ctx, e)

        return await self._fallback(ctx, reason, attempted=False)

    async def _fallback_after_rich_failure(
        self, ctx: RequestContext, error: RichPathError
    ) -> ResponseEnvelope:
        log.warning(
            FALLBACK_TRIGGERED,
            reason=error.reason,
            error_type=type(error.cause).__name__ if error.cause else None,
            partial_results=len(error.tool_results),
            trace_id=ctx.trace_id,
        )
        summary = build_partial_results_summary(
            [result.tool_name for result in error.tool_results if result.success]
        )
        return await self._fallback(
            ctx,
            error.reason,
            attempted=True,
            carried_results=error.tool_results,
            note=summary or None,
            rich_error=error,
        )

    async def _fallback(
        self,
        ctx: RequestContext,
        reason: str | None,
        attempted: bool,
        carried_results: list[ToolCallResult] | None = None,
        note: str | None = None,
        rich_error: RichPathError | None = None,
    ) -> ResponseEnvelope:
        log.info(
            PATH_SELECTED,
            execution_path=ExecutionPath.INTERNAL_ONLY.value,
            fallback_reason=reason,
            trace_id=ctx.trace_id,
        )
        try:
            envelope = await self.internal_path.run(ctx)
        except AssistantPathError as e:
            log.error(
                FALLBACK_FAILED,
                reason=e.reason,
                rich_reason=rich_error.reason if rich_error else None,
                error_type=type(e.cause).__name__ if e.cause else None,
                trace_id=ctx.trace_id,
            )
            results = list(carried_results or []) + e.tool_results
            if any(result.success for result in carried_results or []):
                return self._completed_operations_envelope(ctx, reason, results, note)
            cause = e.cause or (rich_error.cause if rich_error else None)
            category = categorize_error(cause) if cause is not None else ErrorCategory.UNKNOWN
            return build_error_envelope(
                build_actionable_error(category, reason=reason),
                intent=ctx.intent,
                fallback_reason=reason,
                tool_results=results,
            )

        if not attempted and reason is None and not carried_results:
            return envelope
        return with_fallback(
            envelope,
            attempted=attempted,
            reason=reason,
            carried_results=carried_results,
            note=note,
        )

    def _completed_operations_envelope(
        self,
        ctx: RequestContext,
        reason: str | None,
        results: list[ToolCallResult],
        note: str | None,
    ) -> ResponseEnvelope:
        """Degraded answer for when operations already ran but no path could summarize them."""
        response = note or build_partial_results_summary(
            [result.tool_name for result in results if result.success]
        )
        failures = summarize_failures(results)
        if failures:
            response = f"{response}\n\n{failures}"
        return build_envelope(
            response=response,
            execution_path=ExecutionPath.INTERNAL_ONLY,
            intent=ctx.intent,
            tool_results=results,
            connected_apps=ctx.connected_apps,
            internal_enabled=self.internal_path.internal_enabled,
            external_enabled=False,
            fallback_attempted=True,
            fallback_reason=reason,
        )
