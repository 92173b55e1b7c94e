"""Orchestrator: request context, execution paths and the fallback controller."""

from workspace_assistant.orchestrator.controller import FallbackController
from workspace_assistant.orchestrator.envelope import (
    SCHEMA_VERSION,
    Action,
    ResponseEnvelope,
    ResponseMetadata,
    Source,
    build_envelope,
    build_error_envelope,
)
from workspace_assistant.orchestrator.errors import (
    ActionableError,
    ErrorCategory,
    build_actionable_error,
    build_recoverable_fallback,
    categorize_error,
)
from workspace_assistant.orchestrator.history import sanitize_history
from workspace_assistant.orchestrator.paths import (
    AssistantPath,
    AssistantPathError,
    InternalOnlyAssistantPath,
    InternalPathError,
    RichAssistantPath,
    RichPathError,
)
from workspace_assistant.orchestrator.types import (
    AssistantType,
    ExecutionPath,
    PathExecution,
    PipelineState,
    RequestContext,
)

__all__ = [
    "Action",
    "ActionableError",
    "AssistantPath",
    "AssistantPathError",
    "AssistantType",
    "ErrorCategory",
    "ExecutionPath",
    "FallbackController",
    "InternalOnlyAssistantPath",
    "InternalPathError",
    "PathExecution",
    "PipelineState",
    "RequestContext",
    "ResponseEnvelope",
    "ResponseMetadata",
    "RichAssistantPath",
    "RichPathError",
    "SCHEMA_VERSION",
    "Source",
    "build_actionable_error",
    "build_envelope",
    "build_error_envelope",
    "build_recoverable_fallback",
    "categorize_error",
    "sanitize_history",
]
