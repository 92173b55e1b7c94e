"""Registry of internal tool definitions.

The registry is populated once at process start and then frozen; after
that it is shared read-only by every request.
"""

from typing import Any

from workspace_assistant.telemetry import TOOL_REGISTERED, TOOL_REGISTRY_FROZEN, get_logger
from workspace_assistant.tools.types import InternalToolDefinition, ToolOrigin

log = get_logger(__name__)


class RegistryFrozenError(RuntimeError):
    """Raised when registering into a frozen registry."""

    pass


class InternalToolRegistry:
    """Ordered, name-keyed catalog of internal tools."""

    def __init__(self) -> None:
        """Initialize empty registry."""
        self._tools: dict[str, InternalToolDefinition] = {}
        self._frozen = False

    @property
    def frozen(self) -> bool:
        """Whether the registry has been sealed."""
        return self._frozen

    def register(self, tool_def: InternalToolDefinition) -> None:
        """Register an internal tool.

        Args:
            tool_def: Internal tool definition (its executor included).

        Raises:
            RegistryFrozenError: If the registry is frozen.
            ValueError: If the name is taken or the definition is not internal.
        """
        if self._frozen:
            raise RegistryFrozenError(f"Cannot register '{tool_def.name}': registry is frozen")
        if tool_def.origin is not ToolOrigin.INTERNAL:
            raise ValueError(f"Tool '{tool_def.name}' is not an internal tool")
        if tool_def.name in self._tools:
            raise ValueError(f"Tool '{tool_def.name}' is already registered")

        self._tools[tool_def.name] = tool_def
        log.debug(
            TOOL_REGISTERED,
            tool_name=tool_def.name,
            operation=tool_def.operation,
            context_requirements=sorted(req.value for req in tool_def.context_requirements),
        )

    def freeze(self) -> "InternalToolRegistry":
        """Seal the registry against further registration.

        Returns:
            The registry itself, for chaining.
        """
        if not self._frozen:
            self._frozen = True
            log.info(TOOL_REGISTRY_FROZEN, tools_count=len(self._tools))
        return self

    def get_tool(self, name: str) -> InternalToolDefinition | None:
        """Retrieve a tool by name, or None."""
        return self._tools.get(name)

    def list_tools(self) -> list[InternalToolDefinition]:
        """List tools in registration order."""
        return list(self._tools.values())

    def list_tool_names(self) -> list[str]:
        """List tool names in registration order."""
        return list(self._tools.keys())

    def get_tool_definitions_for_llm(self) -> list[dict[str, Any]]:
        """Get tool definitions in OpenAI function calling format."""
        return [tool_def.to_llm_schema() for tool_def in self._tools.values()]

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools
