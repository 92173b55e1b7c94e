"""Step-function state machine shared by both execution paths.

INIT -> MODEL_CALL -> [CONFIRMATION] -> TOOL_EXECUTION -> SYNTHESIS -> COMPLETED

MODEL_CALL completes directly when the model proposes no tool calls.
CONFIRMATION ends in AWAITING_CONFIRMATION when the gate holds the batch.
A resumed (already confirmed) action starts at TOOL_EXECUTION.
Any step may end in FAILED; results gathered so far stay on the execution.
"""

import contextlib
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from workspace_assistant.governance.confirmation import (
    ConfirmationGate,
    GateState,
    build_confirmation_prompt,
)
from workspace_assistant.llm_client.types import ChatModel
from workspace_assistant.orchestrator.prompts import SYNTHESIS_NUDGE
from workspace_assistant.orchestrator.types import (
    TERMINAL_STATES,
    PathExecution,
    PipelineState,
)
from workspace_assistant.telemetry import (
    STATE_TRANSITION,
    UNKNOWN_STATE,
    TraceContext,
    get_logger,
)
from workspace_assistant.tools.executor import ToolExecutor, summarize_failures
from workspace_assistant.tools.types import ExternalToolDefinition, ToolCallRequest, ToolCallResult

log = get_logger(__name__)

StepFn = Callable[[PathExecution, "PipelineDeps", TraceContext], Awaitable[PipelineState]]


@dataclass
class PipelineDeps:
    """Collaborators a pipeline run needs."""

    model: ChatModel
    executor: ToolExecutor
    gate: ConfirmationGate | None = None


def _span(run: PathExecution, name: str, **metadata: Any):
    if run.ctx.timer is None:
        return contextlib.nullcontext()
    return run.ctx.timer.span(name, **metadata)


def _fallback_reply_from_tool_results(results: list[ToolCallResult]) -> str:
    """Plain summary used when the model returns no text after tools ran."""
    succeeded = [result.tool_name for result in results if result.success]
    if not succeeded:
        return "I couldn't complete the requested operations."
    return "Completed: " + ", ".join(succeeded) + "."


def build_tool_results_reply(results: list[ToolCallResult]) -> str:
    """Reply built from tool results alone, for when the synthesis turn is unavailable.

    Lists the operations that completed and appends the failed-tools note when
    any call failed.
    """
    reply = _fallback_reply_from_tool_results(results)
    note = summarize_failures(results)
    if note:
        reply = f"{reply}\n\n{note}"
    return reply


async def step_init(run: PathExecution, deps: PipelineDeps, trace_ctx: TraceContext) -> PipelineState:
    """Build the message list, or stage a confirmed action for execution."""
    run.messages = [dict(turn) for turn in run.ctx.history]

    action = run.resumed_action
    if action is not None:
        run.messages.append({"role": "user", "content": action.user_message})
        run.pending_calls = list(action.calls)
        run.assistant_content = action.assistant_content
        run.messages.append(
            {
                "role": "assistant",
                "content": action.assistant_content or None,
                "tool_calls": [call.to_llm_tool_call() for call in action.calls],
            }
        )
        return PipelineState.TOOL_EXECUTION

    run.messages.append({"role": "user", "content": run.ctx.user_message})
    return PipelineState.MODEL_CALL


async def step_model_call(
    run: PathExecution, deps: PipelineDeps, trace_ctx: TraceContext
) -> PipelineState:
    """First model turn: text plus candidate tool calls."""
    schemas = [tool.to_llm_schema() for tool in run.tools.values()]
    try:
        with _span(run, "model_call", turn=1):
            response = await deps.model.respond(
                messages=run.messages,
                tools=schemas or None,
                system_prompt=run.system_prompt,
                trace_ctx=trace_ctx,
            )
    except Exception as e:
        run.error = e
        return PipelineState.FAILED

    run.assistant_content = response.get("content") or ""
    tool_calls = response.get("tool_calls") or []
    if not tool_calls:
        run.final_reply = run.assistant_content
        return PipelineState.COMPLETED

    run.pending_calls = [
        ToolCallRequest.from_llm_tool_call(call["id"], call["name"], call.get("arguments", "{}"))
        for call in tool_calls
    ]
    run.messages.append(
        {
            "role": "assistant",
            "content": run.assistant_content or None,
            "tool_calls": [call.to_llm_tool_call() for call in run.pending_calls],
        }
    )
    if deps.gate is not None:
        return PipelineState.CONFIRMATION
    return PipelineState.TOOL_EXECUTION


async def step_confirmation(
    run: PathExecution, deps: PipelineDeps, trace_ctx: TraceContext
) -> PipelineState:
    """Hold the whole batch when any call is high-impact."""
    if deps.gate is None:
        return PipelineState.TOOL_EXECUTION

    apps = []
    for call in run.pending_calls:
        tool = run.tools.get(call.tool_name)
        if isinstance(tool, ExternalToolDefinition) and tool.app_name not in apps:
            apps.append(tool.app_name)

    evaluation = await deps.gate.evaluate(
        run.ctx, run.pending_calls, run.tools, assistant_content=run.assistant_content, apps=apps
    )
    if evaluation.state is GateState.AWAITING_CONFIRMATION:
        run.pending_action = evaluation.pending_action
        run.final_reply = build_confirmation_prompt(evaluation.analysis)
        return PipelineState.AWAITING_CONFIRMATION
    return PipelineState.TOOL_EXECUTION


async def step_tool_execution(
    run: PathExecution, deps: PipelineDeps, trace_ctx: TraceContext
) -> PipelineState:
    """Execute the turn's calls and feed results back as tool messages."""
    try:
        with _span(run, "tool_execution", calls=len(run.pending_calls)):
            results = await deps.executor.execute(
                run.pending_calls, run.tools, run.ctx, run.execution_path.value
            )
    except Exception as e:
        run.error = e
        return PipelineState.FAILED

    run.tool_results.extend(results)
    for result in results:
        run.messages.append(result.to_tool_message())
    return PipelineState.SYNTHESIS


async def step_synthesis(
    run: PathExecution, deps: PipelineDeps, trace_ctx: TraceContext
) -> PipelineState:
    """Second model turn over the tool results; no further tool calls."""
    messages = run.messages + [{"role": "user", "content": SYNTHESIS_NUDGE}]
    try:
        with _span(run, "model_call", turn=2):
            response = await deps.model.respond(
                messages=messages,
                tools=None,
                system_prompt=run.system_prompt,
                trace_ctx=trace_ctx,
            )
    except Exception as e:
        run.error = e
        return PipelineState.FAILED

    reply = (response.get("content") or "").strip() or _fallback_reply_from_tool_results(
        run.tool_results
    )
    note = summarize_failures(run.tool_results)
    if note:
        reply = f"{reply}\n\n{note}"
    run.final_reply = reply
    return PipelineState.COMPLETED


STEP_FUNCTIONS: dict[PipelineState, StepFn] = {
    PipelineState.INIT: step_init,
    PipelineState.MODEL_CALL: step_model_call,
    PipelineState.CONFIRMATION: step_confirmation,
    PipelineState.TOOL_EXECUTION: step_tool_execution,
    PipelineState.SYNTHESIS: step_synthesis,
}


async def run_pipeline(run: PathExecution, deps: PipelineDeps) -> PathExecution:
    """Drive ``run`` through the step functions until a terminal state.

    Args:
        run: Path execution to advance.
        deps: Model, executor and (rich path only) confirmation gate.

    Returns:
        The same PathExecution in a terminal state.
    """
    trace_ctx = TraceContext(trace_id=run.ctx.trace_id)
    state = run.state

    while state not in TERMINAL_STATES:
        log.debug(
            STATE_TRANSITION,
            trace_id=run.ctx.trace_id,
            execution_path=run.execution_path.value,
            from_state=state.value,
        )
        run.state = state

        step_func = STEP_FUNCTIONS.get(state)
        if step_func is None:
            log.error(UNKNOWN_STATE, trace_id=run.ctx.trace_id, state=state.value)
            run.error = ValueError(f"Unknown state: {state}")
            run.failed_at = state
            state = PipelineState.FAILED
            break

        state = await step_func(run, deps, trace_ctx)
        if state is PipelineState.FAILED:
            run.failed_at = run.state

    run.state = state
    return run
