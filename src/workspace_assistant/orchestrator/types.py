"""Core types for the orchestrator.

- AssistantType / ExecutionPath: which path produced a response
- PipelineState: states of the rich-path state machine
- RequestContext: per-request identity and scope, passed explicitly
- PathExecution: mutable state container driven through pipeline steps
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from workspace_assistant.audit.types import AuditStatus
from workspace_assistant.intent.types import ExternalApp, Intent
from workspace_assistant.telemetry import RequestTimer
from workspace_assistant.tools.external import ExternalResolution, build_entity_id

if TYPE_CHECKING:
    from workspace_assistant.governance.pending import PendingAction
    from workspace_assistant.tools.types import ToolCallRequest, ToolCallResult, ToolDefinition


class AssistantType(str, Enum):
    """Client-facing assistant flavor."""

    WORKSPACE = "workspace"  # internal tools only
    INTEGRATED = "integrated"  # internal + connected apps


class ExecutionPath(str, Enum):
    """Which execution path produced the response."""

    RICH = "rich"
    INTERNAL_ONLY = "internal-only"


class PipelineState(str, Enum):
    """State machine states for one path execution."""

    INIT = "init"
    MODEL_CALL = "model_call"
    CONFIRMATION = "confirmation"
    TOOL_EXECUTION = "tool_execution"
    SYNTHESIS = "synthesis"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATES = frozenset(
    {PipelineState.COMPLETED, PipelineState.FAILED, PipelineState.AWAITING_CONFIRMATION}
)


@dataclass
class RequestContext:
    """Identity and scope of one assistant request.

    Built once by the service layer from the authenticated caller and handed
    to every stage explicitly. Internal tool arguments take their workspace
    and user ids from here, never from the model.

    Attributes:
        trace_id: Correlation id for every log line of the request.
        workspace_id: Workspace the request is scoped to.
        user_id: Authenticated caller.
        member_id: Workspace membership, when the caller claimed one.
        user_message: Current utterance.
        history: Sanitized prior turns (user/assistant only).
        workspace_context: Optional free-form context from the client.
        confirmation_token: Pending-action token echoed back by the client.
        intent: Classification result, set by the controller.
        resolution: External capability resolution, when one ran.
        connected_apps: Apps with an active connection, set after resolution.
        audit_statuses: One entry per external invocation audited.
        timer: Request phase timer.
    """

    trace_id: str
    workspace_id: str
    user_id: str
    user_message: str
    member_id: str | None = None
    history: list[dict[str, str]] = field(default_factory=list)
    workspace_context: dict[str, Any] | None = None
    confirmation_token: str | None = None
    intent: Intent | None = None
    resolution: ExternalResolution | None = None
    connected_apps: list[ExternalApp] = field(default_factory=list)
    audit_statuses: list[AuditStatus] = field(default_factory=list)
    timer: RequestTimer | None = None

    @property
    def principal(self) -> str:
        """Who a pending action belongs to: the member when known, else the user."""
        return self.member_id or self.user_id

    @property
    def entity_id(self) -> str:
        """Integration gateway entity for this caller."""
        return build_entity_id(self.workspace_id, self.member_id)

    @property
    def audit_degraded(self) -> bool:
        return AuditStatus.DEGRADED in self.audit_statuses


@dataclass
class PathExecution:
    """Mutable state container passed through pipeline steps.

    Attributes:
        ctx: The request this execution serves.
        execution_path: Path running the pipeline.
        tools: Tool set offered to the model, keyed by name.
        messages: Chat-completions messages (system, user, assistant, tool).
        system_prompt: System prompt for both model turns.
        pending_calls: Tool calls proposed by the first model turn.
        assistant_content: Text of the first model turn.
        tool_results: Results of executed calls.
        pending_action: Persisted action when the gate short-circuits.
        resumed_action: Confirmed action being executed on resume.
        final_reply: User-facing response text.
        error: Exception if the pipeline failed.
        failed_at: State whose step failed.
        state: Current state.
    """

    ctx: RequestContext
    execution_path: ExecutionPath
    tools: dict[str, "ToolDefinition"] = field(default_factory=dict)
    messages: list[dict[str, Any]] = field(default_factory=list)
    system_prompt: str = ""
    pending_calls: list["ToolCallRequest"] = field(default_factory=list)
    assistant_content: str = ""
    tool_results: list["ToolCallResult"] = field(default_factory=list)
    pending_action: "PendingAction | None" = None
    resumed_action: "PendingAction | None" = None
    final_reply: str | None = None
    error: Exception | None = None
    failed_at: PipelineState | None = None
    state: PipelineState = PipelineState.INIT
