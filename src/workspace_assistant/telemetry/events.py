"""Semantic event constants for structured logging.

Pipeline code logs with these constants rather than ad-hoc strings so events
can be queried reliably.
"""

# Request lifecycle
REQUEST_RECEIVED = "request_received"
REQUEST_REJECTED = "request_rejected"
REQUEST_COMPLETED = "request_completed"
STATE_TRANSITION = "state_transition"
UNKNOWN_STATE = "unknown_state"
PIPELINE_FAILED = "pipeline_failed"

# Intent classification
INTENT_CLASSIFIED = "intent_classified"
INTENT_CLASSIFICATION_FAILED = "intent_classification_failed"

# Capability registry / assembly
TOOL_REGISTERED = "tool_registered"
TOOL_REGISTRY_FROZEN = "tool_registry_frozen"
EXTERNAL_TOOLS_RESOLVED = "external_tools_resolved"
EXTERNAL_RESOLUTION_FAILED = "external_resolution_failed"
TOOLS_ASSEMBLED = "tools_assembled"
TOOL_NAME_COLLISION = "tool_name_collision"
CONTEXT_ARGUMENTS_OVERRIDDEN = "context_arguments_overridden"

# LLM client
MODEL_CALL_STARTED = "model_call_started"
MODEL_CALL_COMPLETED = "model_call_completed"
MODEL_CALL_ERROR = "model_call_error"
SYNTHESIS_FAILED = "synthesis_failed"

# Tool execution
TOOL_CALL_STARTED = "tool_call_started"
TOOL_CALL_COMPLETED = "tool_call_completed"
TOOL_CALL_FAILED = "tool_call_failed"
TOOL_RESULT_COUNT_MISMATCH = "tool_result_count_mismatch"

# Confirmation gate
CONFIRMATION_REQUIRED = "confirmation_required"
CONFIRMATION_GRANTED = "confirmation_granted"
CONFIRMATION_CANCELLED = "confirmation_cancelled"
CONFIRMATION_UNCLEAR = "confirmation_unclear"
PENDING_ACTION_EXPIRED = "pending_action_expired"

# Audit
AUDIT_RECORDED = "audit_recorded"
AUDIT_RECORD_DEGRADED = "audit_record_degraded"

# Dual-path fallback
PATH_SELECTED = "path_selected"
FALLBACK_TRIGGERED = "fallback_triggered"
FALLBACK_FAILED = "fallback_failed"
