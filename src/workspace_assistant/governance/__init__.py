"""Governance: action policy, confirmation gate and pending actions.

This module provides:
- The action policy model (which external calls need confirmation)
- Risk analysis and confirmation reply parsing
- The confirmation gate state machine
- Pending-action persistence
"""

from workspace_assistant.governance.confirmation import (
    ConfirmationAnalysis,
    ConfirmationDecision,
    ConfirmationGate,
    GateEvaluation,
    GateResolution,
    GateState,
    RiskLevel,
    analyze_tool_calls,
    build_cancellation_message,
    build_confirmation_prompt,
    build_reprompt_message,
    parse_confirmation_decision,
)
from workspace_assistant.governance.models import ActionPolicy
from workspace_assistant.governance.pending import (
    InMemoryPendingActionStore,
    PendingAction,
    PendingActionStore,
)

__all__ = [
    "ActionPolicy",
    "ConfirmationAnalysis",
    "ConfirmationDecision",
    "ConfirmationGate",
    "GateEvaluation",
    "GateResolution",
    "GateState",
    "InMemoryPendingActionStore",
    "PendingAction",
    "PendingActionStore",
    "RiskLevel",
    "analyze_tool_calls",
    "build_cancellation_message",
    "build_confirmation_prompt",
    "build_reprompt_message",
    "parse_confirmation_decision",
]
