"""Telemetry: structured logging, event constants, trace correlation, timing."""

from workspace_assistant.telemetry.events import (
    AUDIT_RECORD_DEGRADED,
    AUDIT_RECORDED,
    CONFIRMATION_CANCELLED,
    CONFIRMATION_GRANTED,
    CONFIRMATION_REQUIRED,
    CONFIRMATION_UNCLEAR,
    CONTEXT_ARGUMENTS_OVERRIDDEN,
    EXTERNAL_RESOLUTION_FAILED,
    EXTERNAL_TOOLS_RESOLVED,
    FALLBACK_FAILED,
    FALLBACK_TRIGGERED,
    INTENT_CLASSIFICATION_FAILED,
    INTENT_CLASSIFIED,
    MODEL_CALL_COMPLETED,
    MODEL_CALL_ERROR,
    MODEL_CALL_STARTED,
    PATH_SELECTED,
    PENDING_ACTION_EXPIRED,
    PIPELINE_FAILED,
    REQUEST_COMPLETED,
    REQUEST_RECEIVED,
    REQUEST_REJECTED,
    STATE_TRANSITION,
    SYNTHESIS_FAILED,
    TOOL_CALL_COMPLETED,
    TOOL_CALL_FAILED,
    TOOL_CALL_STARTED,
    TOOL_NAME_COLLISION,
    TOOL_REGISTERED,
    TOOL_REGISTRY_FROZEN,
    TOOL_RESULT_COUNT_MISMATCH,
    TOOLS_ASSEMBLED,
    UNKNOWN_STATE,
)
from workspace_assistant.telemetry.logger import configure_logging, get_logger
from workspace_assistant.telemetry.request_timer import RequestTimer
from workspace_assistant.telemetry.trace import TraceContext

__all__ = [
    "TraceContext",
    "RequestTimer",
    "get_logger",
    "configure_logging",
    # Event constants
    "REQUEST_RECEIVED",
    "REQUEST_REJECTED",
    "REQUEST_COMPLETED",
    "STATE_TRANSITION",
    "UNKNOWN_STATE",
    "PIPELINE_FAILED",
    "INTENT_CLASSIFIED",
    "INTENT_CLASSIFICATION_FAILED",
    "TOOL_REGISTERED",
    "TOOL_REGISTRY_FROZEN",
    "EXTERNAL_TOOLS_RESOLVED",
    "EXTERNAL_RESOLUTION_FAILED",
    "TOOLS_ASSEMBLED",
    "TOOL_NAME_COLLISION",
    "CONTEXT_ARGUMENTS_OVERRIDDEN",
    "MODEL_CALL_STARTED",
    "MODEL_CALL_COMPLETED",
    "MODEL_CALL_ERROR",
    "SYNTHESIS_FAILED",
    "TOOL_CALL_STARTED",
    "TOOL_CALL_COMPLETED",
    "TOOL_CALL_FAILED",
    "TOOL_RESULT_COUNT_MISMATCH",
    "CONFIRMATION_REQUIRED",
    "CONFIRMATION_GRANTED",
    "CONFIRMATION_CANCELLED",
    "CONFIRMATION_UNCLEAR",
    "PENDING_ACTION_EXPIRED",
    "AUDIT_RECORDED",
    "AUDIT_RECORD_DEGRADED",
    "PATH_SELECTED",
    "FALLBACK_TRIGGERED",
    "FALLBACK_FAILED",
]
