"""Per-request tool set assembly and argument preparation."""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from workspace_assistant.telemetry import (
    CONTEXT_ARGUMENTS_OVERRIDDEN,
    TOOL_NAME_COLLISION,
    TOOLS_ASSEMBLED,
    get_logger,
)
from workspace_assistant.tools.registry import InternalToolRegistry
from workspace_assistant.tools.types import (
    CONTEXT_ARGUMENT_NAMES,
    ContextRequirement,
    ExternalToolDefinition,
    InternalToolDefinition,
    ToolDefinition,
)

if TYPE_CHECKING:
    from workspace_assistant.orchestrator.types import RequestContext

log = get_logger(__name__)


@dataclass
class AssembledTools:
    """Tool set offered to the model for one request."""

    tools: dict[str, ToolDefinition] = field(default_factory=dict)
    collisions: list[str] = field(default_factory=list)

    @property
    def internal_names(self) -> list[str]:
        return [name for name, tool in self.tools.items() if isinstance(tool, InternalToolDefinition)]

    @property
    def external_names(self) -> list[str]:
        return [name for name, tool in self.tools.items() if isinstance(tool, ExternalToolDefinition)]

    def to_llm_schemas(self) -> list[dict[str, Any]]:
        """Tool list in OpenAI function-calling format."""
        return [tool.to_llm_schema() for tool in self.tools.values()]


class ToolAssembler:
    """Combines the internal catalog with resolved external tools."""

    def __init__(self, registry: InternalToolRegistry) -> None:
        """Initialize the assembler.

        Args:
            registry: Frozen internal tool registry.
        """
        self.registry = registry

    def assemble(
        self,
        ctx: "RequestContext",
        internal_enabled: bool = True,
        external_enabled: bool = False,
        external_tools: list[ExternalToolDefinition] | None = None,
    ) -> AssembledTools:
        """Build the request's tool set.

        Internal tools go first. On a name collision the internal tool wins
        and the external one is dropped.

        Args:
            ctx: Request context (for log correlation).
            internal_enabled: Whether to include internal tools.
            external_enabled: Whether to include external tools.
            external_tools: Tools produced by external resolution.

        Returns:
            AssembledTools.
        """
        assembled = AssembledTools()
        if internal_enabled:
            for tool in self.registry.list_tools():
                assembled.tools[tool.name] = tool

        if external_enabled:
            for tool in external_tools or []:
                existing = assembled.tools.get(tool.name)
                if existing is not None:
                    assembled.collisions.append(tool.name)
                    log.warning(
                        TOOL_NAME_COLLISION,
                        tool_name=tool.name,
                        app=tool.app_name.value,
                        kept_origin=existing.origin.value,
                        trace_id=ctx.trace_id,
                    )
                    continue
                assembled.tools[tool.name] = tool

        log.info(
            TOOLS_ASSEMBLED,
            internal_count=len(assembled.internal_names),
            external_count=len(assembled.external_names),
            collisions=assembled.collisions,
            trace_id=ctx.trace_id,
        )
        return assembled


def prepare_arguments(
    tool: ToolDefinition, arguments: dict[str, Any], ctx: "RequestContext"
) -> dict[str, Any]:
    """Arguments actually passed to a tool's executor.

    Internal tools receive only their declared parameters plus the identity
    values from ``ctx``; any model-supplied identity or unknown key is dropped.
    External arguments pass through unchanged.

    Args:
        tool: Tool being invoked.
        arguments: Model-supplied arguments.
        ctx: Request context.

    Returns:
        Prepared argument dict.
    """
    if not isinstance(tool, InternalToolDefinition):
        return dict(arguments)

    allowed = tool.parameter_names() - CONTEXT_ARGUMENT_NAMES
    prepared = {key: value for key, value in arguments.items() if key in allowed}
    dropped = sorted(set(arguments) - set(prepared))
    if dropped:
        log.warning(
            CONTEXT_ARGUMENTS_OVERRIDDEN,
            tool_name=tool.name,
            dropped_keys=dropped,
            trace_id=ctx.trace_id,
        )

    for requirement in tool.context_requirements:
        if requirement is ContextRequirement.WORKSPACE_ID:
            prepared[requirement.argument_name] = ctx.workspace_id
        elif requirement is ContextRequirement.USER_ID:
            prepared[requirement.argument_name] = ctx.user_id
    return prepared
