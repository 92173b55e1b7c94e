"""Confirmation gate for high-impact external actions.

States: NO_GATE -> AWAITING_CONFIRMATION -> CONFIRMED | CANCELLED. An unclear
reply keeps the gate in AWAITING_CONFIRMATION and re-prompts. A gated call
has no result until it is CONFIRMED, and a confirmed action is consumed
atomically so a repeated "yes" never executes it twice.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable

from pydantic import BaseModel, Field

from workspace_assistant.governance.models import ActionPolicy
from workspace_assistant.governance.pending import PendingAction, PendingActionStore
from workspace_assistant.intent.types import ExternalApp
from workspace_assistant.telemetry import (
    CONFIRMATION_CANCELLED,
    CONFIRMATION_GRANTED,
    CONFIRMATION_REQUIRED,
    CONFIRMATION_UNCLEAR,
    get_logger,
)
from workspace_assistant.tools.types import ExternalToolDefinition, ToolCallRequest, ToolDefinition

if TYPE_CHECKING:
    from workspace_assistant.orchestrator.types import RequestContext

log = get_logger(__name__)


class RiskLevel(str, Enum):
    """Risk of a batch of tool calls."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


_RISK_ORDER = [RiskLevel.LOW, RiskLevel.MEDIUM, RiskLevel.HIGH, RiskLevel.CRITICAL]


class GateState(str, Enum):
    """Confirmation gate states."""

    NO_GATE = "no_gate"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class ConfirmationDecision(str, Enum):
    """How a reply to a confirmation prompt was read."""

    CONFIRM = "confirm"
    CANCEL = "cancel"
    UNCLEAR = "unclear"


class ConfirmationAnalysis(BaseModel):
    """Risk analysis of the tool calls proposed by one model turn."""

    requires_confirmation: bool = False
    risk_level: RiskLevel = RiskLevel.LOW
    risk_summary: str = ""
    affected_actions: list[ToolCallRequest] = Field(default_factory=list)
    affected_resources: list[str] = Field(default_factory=list)


def _normalize_tool_name(name: str) -> list[str]:
    return re.sub(r"[_\-]+", " ", name).lower().split()


def _describe_call(call: ToolCallRequest, tool: ExternalToolDefinition) -> str:
    words = _normalize_tool_name(call.tool_name)
    app_words = set(tool.app_name.value.lower().split())
    action = " ".join(word for word in words if word not in app_words) or call.tool_name
    return f"{tool.app_name.display_name}: {action}"


def _extract_resources(arguments: dict[str, Any], keys: list[str]) -> list[str]:
    resources: list[str] = []
    for key in keys:
        value = arguments.get(key)
        if value is None or value == "":
            continue
        if isinstance(value, (list, tuple)):
            rendered = ", ".join(str(item) for item in value if isinstance(item, (str, int)))
        elif isinstance(value, (str, int)):
            rendered = str(value)
        else:
            continue
        if rendered:
            resources.append(f"{key}: {rendered}")
    return resources


def analyze_tool_calls(
    calls: list[ToolCallRequest],
    tools: dict[str, ToolDefinition],
    policy: ActionPolicy,
) -> ConfirmationAnalysis:
    """Decide whether a batch of tool calls needs explicit confirmation.

    Only external calls can be gated; internal tools are read-only.

    Args:
        calls: Calls proposed by the model.
        tools: The request's assembled tool set.
        policy: Action policy.

    Returns:
        ConfirmationAnalysis for the whole batch.
    """
    risk = RiskLevel.LOW
    gated: list[ToolCallRequest] = []
    descriptions: list[str] = []
    resources: list[str] = []

    high_impact = set(policy.high_impact_verbs)
    critical = set(policy.critical_verbs)
    writes = set(policy.write_verbs)

    for call in calls:
        tool = tools.get(call.tool_name)
        if not isinstance(tool, ExternalToolDefinition):
            continue

        words = set(_normalize_tool_name(call.tool_name))
        if call.tool_name in policy.never_confirm_tools:
            call_risk = RiskLevel.MEDIUM if words & writes else RiskLevel.LOW
        elif words & critical:
            call_risk = RiskLevel.CRITICAL
        elif words & high_impact or call.tool_name in policy.always_confirm_tools:
            call_risk = RiskLevel.HIGH
        elif words & writes:
            call_risk = RiskLevel.MEDIUM
        else:
            call_risk = RiskLevel.LOW

        if _RISK_ORDER.index(call_risk) > _RISK_ORDER.index(risk):
            risk = call_risk

        if call_risk in (RiskLevel.HIGH, RiskLevel.CRITICAL):
            gated.append(call)
            descriptions.append(_describe_call(call, tool))
            for resource in _extract_resources(call.arguments, policy.resource_argument_keys):
                if resource not in resources:
                    resources.append(resource)

    return ConfirmationAnalysis(
        requires_confirmation=bool(gated),
        risk_level=risk,
        risk_summary="; ".join(descriptions),
        affected_actions=gated,
        affected_resources=resources,
    )


def _contains_phrase(padded_text: str, phrase: str) -> bool:
    return f" {phrase} " in padded_text


def parse_confirmation_decision(message: str, policy: ActionPolicy) -> ConfirmationDecision:
    """Read a reply to a confirmation prompt.

    Explicit cancel phrasing is checked before explicit confirm phrasing. For
    short replies the keyword lists apply, cancel winning over confirm, so
    "yes, actually no" cancels. Anything else is unclear.

    Args:
        message: The user's reply.
        policy: Action policy with patterns and keywords.

    Returns:
        ConfirmationDecision.
    """
    text = (message or "").strip().lower()
    if not text:
        return ConfirmationDecision.UNCLEAR

    if re.search(policy.cancel_pattern, text, re.IGNORECASE):
        return ConfirmationDecision.CANCEL
    if re.search(policy.confirm_pattern, text, re.IGNORECASE):
        return ConfirmationDecision.CONFIRM

    words = re.findall(r"[a-z0-9']+", text)
    if len(words) <= policy.short_reply_max_words:
        padded = f" {' '.join(words)} "
        if any(_contains_phrase(padded, keyword) for keyword in policy.cancel_keywords):
            return ConfirmationDecision.CANCEL
        if any(_contains_phrase(padded, keyword) for keyword in policy.confirm_keywords):
            return ConfirmationDecision.CONFIRM

    return ConfirmationDecision.UNCLEAR


def build_confirmation_prompt(analysis: ConfirmationAnalysis) -> str:
    """User-facing prompt asking to confirm the gated actions."""
    lines = [
        f"**Confirmation required** (risk: {analysis.risk_level.value})",
        "",
        f"**Action:** {analysis.risk_summary}",
    ]
    if analysis.affected_resources:
        lines += ["", "**Affected resources:**"]
        lines += [f"- {resource}" for resource in analysis.affected_resources]
    lines += [
        "",
        "Please confirm to proceed or cancel to abort:",
        '- Reply "confirm" or "yes" to proceed',
        '- Reply "cancel" or "no" to abort',
    ]
    return "\n".join(lines)


def build_cancellation_message(tool_names: list[str]) -> str:
    """Message returned after the user cancels."""
    actions = ", ".join(tool_names) if tool_names else "the pending action"
    return f"**Action cancelled.** The following was not executed: {actions}.\n\nNo changes were made."


def build_reprompt_message(pending: PendingAction) -> str:
    """Message returned when the reply to a prompt was unclear."""
    summary = pending.risk_summary or ", ".join(pending.tool_names)
    return (
        f"I still need a clear answer before continuing with: {summary}.\n\n"
        'Reply "confirm" to proceed or "cancel" to abort.'
    )


@dataclass
class GateEvaluation:
    """Outcome of evaluating one model turn's tool calls."""

    state: GateState
    analysis: ConfirmationAnalysis
    pending_action: PendingAction | None = None


@dataclass
class GateResolution:
    """Outcome of resolving a reply against the stored pending action."""

    state: GateState
    decision: ConfirmationDecision | None = None
    pending_action: PendingAction | None = None


class ConfirmationGate:
    """Holds high-impact calls until the user explicitly decides."""

    def __init__(
        self,
        store: PendingActionStore,
        policy: ActionPolicy | None = None,
        ttl_seconds: int | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the gate.

        Args:
            store: Pending-action store.
            policy: Action policy (default: built-in defaults).
            ttl_seconds: Pending-action lifetime (defaults from settings).
            clock: Optional clock for pending-action timestamps (tests).
        """
        if ttl_seconds is None:
            from workspace_assistant.config import settings  # noqa: PLC0415

            ttl_seconds = settings.pending_action_ttl_seconds
        self.store = store
        self.policy = policy or ActionPolicy()
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    async def evaluate(
        self,
        ctx: "RequestContext",
        calls: list[ToolCallRequest],
        tools: dict[str, ToolDefinition],
        assistant_content: str = "",
        apps: list[ExternalApp] | None = None,
    ) -> GateEvaluation:
        """Gate a model turn's calls, persisting a pending action when needed.

        Args:
            ctx: Request context (owner of the pending action).
            calls: Calls proposed by the model.
            tools: The request's tool set.
            assistant_content: Text of the model turn that proposed the calls.
            apps: Apps the calls act on.

        Returns:
            GateEvaluation in NO_GATE or AWAITING_CONFIRMATION.
        """
        analysis = analyze_tool_calls(calls, tools, self.policy)
        if not analysis.requires_confirmation:
            return GateEvaluation(state=GateState.NO_GATE, analysis=analysis)

        action = PendingAction.create(
            workspace_id=ctx.workspace_id,
            principal=ctx.principal,
            user_message=ctx.user_message,
            calls=calls,
            ttl_seconds=self.ttl_seconds,
            assistant_content=assistant_content,
            apps=apps,
            risk_summary=analysis.risk_summary,
            now=self._clock() if self._clock else None,
        )
        await self.store.save(action)
        log.info(
            CONFIRMATION_REQUIRED,
            risk_level=analysis.risk_level.value,
            tools=[call.tool_name for call in analysis.affected_actions],
            held_calls=len(calls),
            trace_id=ctx.trace_id,
        )
        return GateEvaluation(
            state=GateState.AWAITING_CONFIRMATION, analysis=analysis, pending_action=action
        )

    async def pending_for(self, ctx: "RequestContext") -> PendingAction | None:
        """The caller's unexpired pending action, if any."""
        return await self.store.get(ctx.workspace_id, ctx.principal)

    async def resolve(
        self, ctx: "RequestContext", message: str, token: str | None = None
    ) -> GateResolution:
        """Apply the caller's reply to their pending action.

        Args:
            ctx: Request context.
            message: The reply.
            token: Pending-action token echoed by the client, if any.

        Returns:
            GateResolution. NO_GATE when nothing is pending (or it was already
            consumed), CONFIRMED/CANCELLED with the popped action, or
            AWAITING_CONFIRMATION when the reply was unclear.
        """
        pending = await self.pending_for(ctx)
        if pending is None:
            return GateResolution(state=GateState.NO_GATE)

        if token is not None and token != pending.token:
            decision = ConfirmationDecision.UNCLEAR
        else:
            decision = parse_confirmation_decision(message, self.policy)

        if decision is ConfirmationDecision.UNCLEAR:
            log.info(CONFIRMATION_UNCLEAR, tools=pending.tool_names, trace_id=ctx.trace_id)
            return GateResolution(
                state=GateState.AWAITING_CONFIRMATION, decision=decision, pending_action=pending
            )

        popped = await self.store.pop(ctx.workspace_id, ctx.principal, token=pending.token)
        if popped is None:
            # Consumed by a concurrent reply.
            return GateResolution(state=GateState.NO_GATE, decision=decision)

        if decision is ConfirmationDecision.CONFIRM:
            log.info(CONFIRMATION_GRANTED, tools=popped.tool_names, trace_id=ctx.trace_id)
            return GateResolution(state=GateState.CONFIRMED, decision=decision, pending_action=popped)

        log.info(CONFIRMATION_CANCELLED, tools=popped.tool_names, trace_id=ctx.trace_id)
        return GateResolution(state=GateState.CANCELLED, decision=decision, pending_action=popped)
