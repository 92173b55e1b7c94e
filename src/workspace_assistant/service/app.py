"""FastAPI service application."""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from workspace_assistant.audit import AuditLogger, JsonlAuditStore
from workspace_assistant.config.policy_loader import load_action_policy
from workspace_assistant.config.settings import get_settings
from workspace_assistant.governance import ConfirmationGate, InMemoryPendingActionStore
from workspace_assistant.llm_client import ChatCompletionsClient
from workspace_assistant.orchestrator import (
    ErrorCategory,
    FallbackController,
    InternalOnlyAssistantPath,
    RequestContext,
    ResponseEnvelope,
    RichAssistantPath,
    build_actionable_error,
    categorize_error,
    sanitize_history,
)
from workspace_assistant.security import sanitize_error_message
from workspace_assistant.service.adapters import HttpWorkspaceStore, MembershipDirectory
from workspace_assistant.service.models import ChatRequest
from workspace_assistant.telemetry import (
    REQUEST_COMPLETED,
    REQUEST_RECEIVED,
    REQUEST_REJECTED,
    RequestTimer,
    TraceContext,
    get_logger,
)
from workspace_assistant.tools import (
    ExternalToolResolver,
    HttpExternalToolProvider,
    ToolAssembler,
    ToolExecutor,
    build_internal_registry,
)

log = get_logger(__name__)
settings = get_settings()

USER_ID_HEADER = "X-User-Id"
REQUEST_ID_HEADER = "X-Request-Id"


def build_controller(
    store: Any, transport: httpx.AsyncBaseTransport | None = None
) -> FallbackController:
    """Wire the default controller from settings.

    Args:
        store: WorkspaceStore backing the internal tools.
        transport: Optional httpx transport for the model and gateway clients.

    Returns:
        FallbackController with both paths, the resolver and the gate.
    """
    registry = build_internal_registry(store, timezone=settings.workspace_timezone)
    assembler = ToolAssembler(registry)
    executor = ToolExecutor(AuditLogger(JsonlAuditStore(settings.audit_log_path)))
    gate = ConfirmationGate(InMemoryPendingActionStore(), policy=load_action_policy())
    model = ChatCompletionsClient(transport=transport)
    resolver = ExternalToolResolver(HttpExternalToolProvider(transport=transport))

    internal_enabled = settings.internal_tools_enabled
    return FallbackController(
        rich_path=RichAssistantPath(model, assembler, executor, gate, internal_enabled),
        internal_path=InternalOnlyAssistantPath(model, assembler, executor, internal_enabled),
        resolver=resolver,
        gate=gate,
        external_enabled=settings.external_tools_enabled,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan management.

    Collaborators already placed on ``app.state`` (e.g. by tests) are kept.
    """
    log.info("service_starting", environment=settings.environment.value)

    missing_controller = getattr(app.state, "controller", None) is None
    missing_membership = getattr(app.state, "membership", None) is None
    if missing_controller or missing_membership:
        transport = getattr(app.state, "transport", None)
        store = HttpWorkspaceStore(transport=transport)
        if missing_controller:
            app.state.controller = build_controller(store, transport=transport)
        if missing_membership:
            app.state.membership = store

    log.info(
        "service_ready",
        port=settings.service_port,
        external_tools_enabled=settings.external_tools_enabled,
    )

    yield

    log.info("service_stopped")


def _error_response(
    status_code: int, category: ErrorCategory, code: str, message: str | None = None
) -> JSONResponse:
    error = build_actionable_error(category, code=code)
    if message:
        error = error.model_copy(update={"message": message})
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": error.model_dump(mode="json", by_alias=True)},
    )


def _outcome(envelope: ResponseEnvelope) -> str:
    if not envelope.success:
        return "error"
    if envelope.metadata.fallback.attempted or envelope.metadata.fallback.reason:
        return "degraded"
    return "success"


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies are client errors (400), reported as ActionableError."""
    log.info(REQUEST_REJECTED, status_code=400, reason="invalid_body", errors=len(exc.errors()))
    return _error_response(
        400, ErrorCategory.UNKNOWN, "invalid_request", "The request body is invalid."
    )


async def health_check() -> dict[str, Any]:
    """Service health check endpoint."""
    return {
        "status": "healthy",
        "version": settings.version,
        "components": {
            "internal_tools": "enabled" if settings.internal_tools_enabled else "disabled",
            "external_tools": "enabled" if settings.external_tools_enabled else "disabled",
        },
    }


async def chat(request: Request, body: ChatRequest) -> JSONResponse:
    """Process one assistant message.

    Main entry point for user interactions. The caller is authenticated
    upstream; its id arrives in the ``X-User-Id`` header.

    Args:
        request: Incoming request (headers, app state).
        body: Chat request body.

    Returns:
        200 with a ResponseEnvelope (including degraded answers), 400/401/403
        with an ActionableError, or 503 with the error envelope.
    """
    trace = TraceContext.new_trace(request.headers.get(REQUEST_ID_HEADER))
    timer = RequestTimer(trace_id=trace.trace_id)
    headers = {REQUEST_ID_HEADER: trace.trace_id}

    log.info(
        REQUEST_RECEIVED,
        trace_id=trace.trace_id,
        entry="service",
        message_length=len(body.message or ""),
        history_length=len(body.conversation_history or []),
    )

    user_id = (request.headers.get(USER_ID_HEADER) or "").strip()
    if not user_id:
        log.info(REQUEST_REJECTED, trace_id=trace.trace_id, status_code=401, reason="missing_user")
        response = _error_response(
            401, ErrorCategory.AUTHENTICATION, "unauthenticated", "Sign in to use the assistant."
        )
        response.headers.update(headers)
        return response

    message = (body.message or "").strip()
    workspace_id = (body.workspace_id or "").strip()
    if not message or not workspace_id:
        missing = "message" if not message else "workspaceId"
        log.info(
            REQUEST_REJECTED, trace_id=trace.trace_id, status_code=400, reason=f"missing_{missing}"
        )
        response = _error_response(
            400, ErrorCategory.UNKNOWN, "invalid_request", f"'{missing}' is required."
        )
        response.headers.update(headers)
        return response

    membership: MembershipDirectory = request.app.state.membership
    if body.member_id:
        with timer.span("membership_check"):
            try:
                member = await membership.get_member(workspace_id, body.member_id)
            except Exception as e:
                log.error(
                    REQUEST_REJECTED,
                    trace_id=trace.trace_id,
                    status_code=503,
                    reason="membership_unavailable",
                    error=sanitize_error_message(e),
                    error_type=type(e).__name__,
                )
                response = _error_response(503, ErrorCategory.UNKNOWN, "membership_unavailable")
                response.headers.update(headers)
                return response
        if member is None or member.user_id != user_id:
            log.info(
                REQUEST_REJECTED, trace_id=trace.trace_id, status_code=403, reason="not_a_member"
            )
            response = _error_response(
                403,
                ErrorCategory.AUTHENTICATION,
                "forbidden",
                "You don't have access to this workspace.",
            )
            response.headers.update(headers)
            return response

    ctx = RequestContext(
        trace_id=trace.trace_id,
        workspace_id=workspace_id,
        user_id=user_id,
        user_message=message,
        member_id=body.member_id,
        history=sanitize_history(
            body.conversation_history, settings.conversation_max_history_messages
        ),
        workspace_context=body.workspace_context,
        confirmation_token=body.confirmation_token,
        timer=timer,
    )

    controller: FallbackController = request.app.state.controller
    with timer.span("orchestrator"):
        envelope = await controller.handle(ctx)

    status_code = 200 if envelope.success else 503
    error_category = None
    if envelope.error is not None:
        error_category = envelope.error.code
    elif envelope.metadata.fallback.reason:
        error_category = categorize_error(envelope.metadata.fallback.reason).value

    log.info(
        REQUEST_COMPLETED,
        trace_id=trace.trace_id,
        outcome=_outcome(envelope),
        status_code=status_code,
        duration_ms=timer.get_total_ms(),
        execution_path=envelope.metadata.execution_path.value,
        fallback_reason=envelope.metadata.fallback.reason,
        error_category=error_category,
        audit_degraded=ctx.audit_degraded,
        phases=timer.to_breakdown(),
    )
    return JSONResponse(status_code=status_code, content=envelope.to_wire(), headers=headers)


def create_app(
    controller: FallbackController | None = None,
    membership: MembershipDirectory | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Create the FastAPI application.

    Args:
        controller: Optional pre-built controller (default: wired from settings).
        membership: Optional membership directory (default: HttpWorkspaceStore).
        transport: Optional httpx transport for collaborators wired at startup
            (used by tests).

    Returns:
        FastAPI app.
    """
    application = FastAPI(
        title="Workspace Assistant Service",
        description="Conversational assistant for team workspaces",
        version=settings.version,
        lifespan=lifespan,
    )
    application.state.controller = controller
    application.state.membership = membership
    application.state.transport = transport
    application.add_exception_handler(
        RequestValidationError, validation_error_handler  # type: ignore[arg-type]
    )
    application.add_api_route("/health", health_check, methods=["GET"])
    application.add_api_route("/assistant/chat", chat, methods=["POST"])
    return application


app = create_app()


def main() -> None:
    """Run the service with uvicorn."""
    import uvicorn  # noqa: PLC0415

    uvicorn.run(
        "workspace_assistant.service.app:app",
        host=settings.service_host,
        port=settings.service_port,
    )
