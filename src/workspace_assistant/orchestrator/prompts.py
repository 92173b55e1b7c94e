"""System prompts and deterministic reply texts."""

from typing import Any

from workspace_assistant.intent.types import ExternalApp

BASE_INSTRUCTIONS = """You are a personal work assistant for team workspaces.

Your role:
- Help users manage their calendar, meetings, tasks, and workspace activities
- Provide summaries of channels and conversations
- Answer questions about workspace data
- Be concise, actionable, and friendly

Guidelines:
- Use available tools for real-time data when needed
- Format responses with clear headings and bullet points
- When showing dates/times, use readable formats
- If you don't have information, say so clearly
- Never invent data; only use tool outputs and user-provided context"""

RICH_PATH_INSTRUCTIONS = """
Connected apps: {apps}.
- You may use the connected-app tools for actions the user explicitly asked for
- Only report an action as done when its tool result says it succeeded"""

INTERNAL_ONLY_INSTRUCTIONS = """
Only workspace tools are available in this conversation."""

UNCONNECTED_APPS_POLICY = """
The user mentioned {apps}, which {verb} not available in this conversation. Never claim to
have read from, sent to or changed anything in {apps}. Answer the workspace part of the
request and tell the user that {apps} must be connected in Settings > Integrations."""

SYNTHESIS_NUDGE = (
    "Use the tool results above to answer the user's request. "
    "If a tool failed, say so briefly instead of guessing its output."
)


def _join_apps(apps: list[ExternalApp]) -> str:
    names = [app.display_name for app in apps]
    if len(names) <= 1:
        return "".join(names)
    return ", ".join(names[:-1]) + " and " + names[-1]


def _format_workspace_context(workspace_context: dict[str, Any] | None) -> str:
    if not workspace_context:
        return ""
    lines = [f"- {key}: {value}" for key, value in workspace_context.items() if value not in (None, "")]
    if not lines:
        return ""
    return "\n\nWorkspace context:\n" + "\n".join(lines)


def build_rich_system_prompt(
    connected_apps: list[ExternalApp], workspace_context: dict[str, Any] | None = None
) -> str:
    """System prompt for the rich path."""
    apps = _join_apps(connected_apps) or "none"
    return (
        BASE_INSTRUCTIONS
        + RICH_PATH_INSTRUCTIONS.format(apps=apps)
        + _format_workspace_context(workspace_context)
    )


def build_internal_system_prompt(
    unconnected_apps: list[ExternalApp] | None = None,
    workspace_context: dict[str, Any] | None = None,
) -> str:
    """System prompt for the internal-only path.

    Args:
        unconnected_apps: Apps the user named that have no usable connection.
        workspace_context: Optional client-provided context.
    """
    prompt = BASE_INSTRUCTIONS + INTERNAL_ONLY_INSTRUCTIONS
    if unconnected_apps:
        verb = "is" if len(unconnected_apps) == 1 else "are"
        prompt += UNCONNECTED_APPS_POLICY.format(apps=_join_apps(unconnected_apps), verb=verb)
    return prompt + _format_workspace_context(workspace_context)


def build_not_connected_reply(apps: list[ExternalApp]) -> str:
    """Deterministic reply for an external-only request with no usable connection."""
    names = _join_apps(apps) or "that app"
    verb = "isn't" if len(apps) <= 1 else "aren't"
    return (
        f"{names} {verb} connected to your workspace yet, so I can't do that right now. "
        f"To connect {names}, open Settings > Integrations and follow the prompts. "
        "In the meantime I can help with your workspace calendar, tasks, channels and cards."
    )


def build_integration_unavailable_reply(apps: list[ExternalApp], reason: str | None) -> str:
    """Deterministic reply when connections could not be checked."""
    names = _join_apps(apps) or "your integrations"
    reason_line = f" (reason: {reason})" if reason else ""
    return (
        f"I couldn't reach {names} right now{reason_line}, so I didn't take any action there. "
        "Please try again in a moment. I can still help with workspace tasks."
    )


def build_partial_results_summary(tool_names: list[str]) -> str:
    """Summary of tools that already ran before a failure."""
    if not tool_names:
        return ""
    return "Before the interruption, these operations completed: " + ", ".join(tool_names) + "."
