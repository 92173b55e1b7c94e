"""Capability registry, external resolution, assembly and execution of tools."""

from workspace_assistant.tools.assembler import AssembledTools, ToolAssembler, prepare_arguments
from workspace_assistant.tools.executor import FAILED_TOOLS_NOTE, ToolExecutor, summarize_failures
from workspace_assistant.tools.external import (
    ConnectionInfo,
    ExternalResolution,
    ExternalToolProvider,
    ExternalToolResolver,
    HttpExternalToolProvider,
    build_entity_id,
    rank_external_tools,
)
from workspace_assistant.tools.internal import WorkspaceStore, build_internal_registry
from workspace_assistant.tools.registry import InternalToolRegistry, RegistryFrozenError
from workspace_assistant.tools.types import (
    ContextRequirement,
    ExternalToolDefinition,
    InternalToolDefinition,
    ToolCallRequest,
    ToolCallResult,
    ToolDefinition,
    ToolOrigin,
    ToolParameter,
)

__all__ = [
    "AssembledTools",
    "ConnectionInfo",
    "ContextRequirement",
    "ExternalResolution",
    "ExternalToolDefinition",
    "ExternalToolProvider",
    "ExternalToolResolver",
    "FAILED_TOOLS_NOTE",
    "HttpExternalToolProvider",
    "InternalToolDefinition",
    "InternalToolRegistry",
    "RegistryFrozenError",
    "ToolAssembler",
    "ToolCallRequest",
    "ToolCallResult",
    "ToolDefinition",
    "ToolExecutor",
    "ToolOrigin",
    "ToolParameter",
    "WorkspaceStore",
    "build_entity_id",
    "build_internal_registry",
    "prepare_arguments",
    "rank_external_tools",
    "summarize_failures",
]
