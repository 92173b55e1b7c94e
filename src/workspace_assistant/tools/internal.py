"""Internal workspace tool catalog.

Every internal tool is a read against the workspace store. The store is the
authority on access control: it receives the injected workspace/user ids and
must verify ownership itself.
"""

from datetime import datetime, timedelta
from typing import Any, Callable, Protocol
from zoneinfo import ZoneInfo

from workspace_assistant.tools.registry import InternalToolRegistry
from workspace_assistant.tools.types import (
    ContextRequirement,
    InternalToolDefinition,
    ToolExecutorFn,
    ToolParameter,
)

WORKSPACE_AND_USER = frozenset({ContextRequirement.WORKSPACE_ID, ContextRequirement.USER_ID})
WORKSPACE_ONLY = frozenset({ContextRequirement.WORKSPACE_ID})


class WorkspaceStore(Protocol):
    """Read/query boundary of the workspace's own data store."""

    async def query(self, operation: str, arguments: dict[str, Any]) -> Any:
        """Run a named read operation with context-injected arguments."""
        ...


Window = Callable[[datetime], dict[str, str]]


def _start_of_day(now: datetime) -> datetime:
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def _window(start_offset_days: int, length_days: int, start_key: str, end_key: str) -> Window:
    def compute(now: datetime) -> dict[str, str]:
        start = _start_of_day(now) + timedelta(days=start_offset_days)
        end = start + timedelta(days=length_days)
        return {start_key: start.isoformat(), end_key: end.isoformat()}

    return compute


def _store_executor(
    store: WorkspaceStore,
    operation: str,
    clock: Callable[[], datetime],
    window: Window | None = None,
    fixed: dict[str, Any] | None = None,
) -> ToolExecutorFn:
    async def execute(arguments: dict[str, Any]) -> Any:
        call_args = dict(fixed or {})
        call_args.update(arguments)
        if window is not None:
            call_args.update(window(clock()))
        return await store.query(operation, call_args)

    return execute


def build_internal_registry(
    store: WorkspaceStore,
    timezone: str = "UTC",
    clock: Callable[[], datetime] | None = None,
) -> InternalToolRegistry:
    """Build and freeze the static internal tool catalog.

    Args:
        store: Workspace store the tools read from.
        timezone: IANA zone used for today/tomorrow/week windows.
        clock: Optional clock override returning an aware datetime (tests).

    Returns:
        A frozen InternalToolRegistry.
    """
    tz = ZoneInfo(timezone)
    now: Callable[[], datetime] = clock or (lambda: datetime.now(tz))

    calendar = "calendar.events"
    tasks = "tasks.assigned"
    registry = InternalToolRegistry()

    def add(
        name: str,
        description: str,
        operation: str,
        context: frozenset[ContextRequirement],
        parameters: list[ToolParameter] | None = None,
        window: Window | None = None,
        fixed: dict[str, Any] | None = None,
    ) -> None:
        registry.register(
            InternalToolDefinition(
                name=name,
                description=description,
                operation=operation,
                parameters=parameters or [],
                context_requirements=context,
                executor=_store_executor(store, operation, now, window=window, fixed=fixed),
            )
        )

    add(
        "get_my_calendar_today",
        "Get the user's calendar events for today.",
        calendar,
        WORKSPACE_AND_USER,
        window=_window(0, 1, "start", "end"),
    )
    add(
        "get_my_calendar_tomorrow",
        "Get the user's calendar events for tomorrow.",
        calendar,
        WORKSPACE_AND_USER,
        window=_window(1, 1, "start", "end"),
    )
    add(
        "get_my_calendar_this_week",
        "Get the user's calendar events for the next seven days, starting today.",
        calendar,
        WORKSPACE_AND_USER,
        window=_window(0, 7, "start", "end"),
    )
    add(
        "get_my_calendar_next_week",
        "Get the user's calendar events for next week (7-14 days from now).",
        calendar,
        WORKSPACE_AND_USER,
        window=_window(7, 7, "start", "end"),
    )
    add(
        "get_my_tasks_today",
        "Get tasks assigned to the user that are due today.",
        tasks,
        WORKSPACE_AND_USER,
        window=_window(0, 1, "dueAfter", "dueBefore"),
        fixed={"includeCompleted": False},
    )
    add(
        "get_my_tasks_tomorrow",
        "Get tasks assigned to the user that are due tomorrow.",
        tasks,
        WORKSPACE_AND_USER,
        window=_window(1, 1, "dueAfter", "dueBefore"),
        fixed={"includeCompleted": False},
    )
    add(
        "get_my_tasks_this_week",
        "Get tasks assigned to the user that are due within the next seven days.",
        tasks,
        WORKSPACE_AND_USER,
        window=_window(0, 7, "dueAfter", "dueBefore"),
        fixed={"includeCompleted": False},
    )
    add(
        "get_my_all_tasks",
        "Get all tasks assigned to the user. Can optionally include completed tasks.",
        tasks,
        WORKSPACE_AND_USER,
        parameters=[
            ToolParameter(
                name="includeCompleted",
                type="boolean",
                description="Whether to include completed tasks (default: false)",
                default=False,
            )
        ],
        fixed={"includeCompleted": False},
    )
    add(
        "search_channels",
        "Search for channels in the workspace by name. Returns matching channels with their IDs.",
        "channels.search",
        WORKSPACE_ONLY,
        parameters=[
            ToolParameter(
                name="query",
                type="string",
                description="Channel name to search for (without #). Leave empty to list all.",
            )
        ],
    )
    add(
        "get_channel_summary",
        "Summarize recent activity in a channel. Use search_channels first to find the channel ID.",
        "channels.summary",
        WORKSPACE_ONLY,
        parameters=[
            ToolParameter(
                name="channelId",
                type="string",
                description="ID of the channel to summarize",
                required=True,
            ),
            ToolParameter(
                name="limit",
                type="integer",
                description="Number of recent messages to consider (default: 50)",
                default=50,
            ),
        ],
    )
    add(
        "get_workspace_overview",
        "Get an overview of the workspace: recent activity, the user's tasks and upcoming meetings.",
        "workspace.overview",
        WORKSPACE_AND_USER,
    )
    add(
        "get_my_cards",
        "Get board cards assigned to the user across the workspace.",
        "cards.assigned",
        WORKSPACE_AND_USER,
    )
    add(
        "semantic_search",
        "Search workspace content (messages, notes, tasks, cards) by meaning.",
        "search.semantic",
        WORKSPACE_ONLY,
        parameters=[
            ToolParameter(
                name="query",
                type="string",
                description="The search query in natural language",
                required=True,
            ),
            ToolParameter(
                name="limit",
                type="integer",
                description="Maximum number of results (default: 10)",
                default=10,
            ),
        ],
    )

    return registry.freeze()
