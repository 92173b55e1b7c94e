"""Tests for risk analysis, reply parsing and the confirmation gate."""

from datetime import datetime, timedelta, timezone

import pytest

from workspace_assistant.governance import (
    ActionPolicy,
    ConfirmationDecision,
    ConfirmationGate,
    GateState,
    InMemoryPendingActionStore,
    PendingAction,
    RiskLevel,
    analyze_tool_calls,
    build_cancellation_message,
    build_confirmation_prompt,
    parse_confirmation_decision,
)
from workspace_assistant.intent.types import ExternalApp
from workspace_assistant.tools.types import ExternalToolDefinition, ToolCallRequest


async def _noop(arguments: dict) -> dict:
    return {}


def _external(name: str, app: ExternalApp) -> ExternalToolDefinition:
    return ExternalToolDefinition(name=name, description=name, app_name=app, executor=_noop)


@pytest.fixture
def tools(registry) -> dict:
    """Internal catalog plus a few external tools."""
    tool_set = {tool.name: tool for tool in registry.list_tools()}
    for name, app in [
        ("SLACK_DELETE_CHANNEL", ExternalApp.SLACK),
        ("SLACK_LIST_CHANNELS", ExternalApp.SLACK),
        ("GMAIL_SEND_EMAIL", ExternalApp.GMAIL),
        ("GITHUB_CREATE_ISSUE", ExternalApp.GITHUB),
    ]:
        tool_set[name] = _external(name, app)
    return tool_set


@pytest.fixture
def policy() -> ActionPolicy:
    """Default action policy."""
    return ActionPolicy()


class TestParseConfirmationDecision:
    """Reading replies to a confirmation prompt."""

    @pytest.mark.parametrize("reply", ["confirm", "Yes", "go ahead", "yes, proceed", "ok do it"])
    def test_confirm(self, reply: str, policy) -> None:
        assert parse_confirmation_decision(reply, policy) is ConfirmationDecision.CONFIRM

    @pytest.mark.parametrize("reply", ["cancel", "no", "Stop!", "don't", "yes, actually no"])
    def test_cancel(self, reply: str, policy) -> None:
        assert parse_confirmation_decision(reply, policy) is ConfirmationDecision.CANCEL

    @pytest.mark.parametrize(
        "reply",
        [
            "",
            "what's on my calendar today",
            "yes I think so but first tell me who is in that channel",
        ],
    )
    def test_unclear(self, reply: str, policy) -> None:
        assert parse_confirmation_decision(reply, policy) is ConfirmationDecision.UNCLEAR


class TestAnalyzeToolCalls:
    """Risk classification of proposed calls."""

    def test_delete_is_critical(self, tools, policy) -> None:
        calls = [
            ToolCallRequest(
                call_id="c1", tool_name="SLACK_DELETE_CHANNEL", arguments={"channel": "general"}
            )
        ]

        analysis = analyze_tool_calls(calls, tools, policy)

        assert analysis.requires_confirmation is True
        assert analysis.risk_level is RiskLevel.CRITICAL
        assert analysis.risk_summary == "Slack: delete channel"
        assert analysis.affected_resources == ["channel: general"]

    def test_send_is_high(self, tools, policy) -> None:
        calls = [ToolCallRequest(call_id="c1", tool_name="GMAIL_SEND_EMAIL", arguments={"to": "a@b.c"})]

        analysis = analyze_tool_calls(calls, tools, policy)

        assert analysis.risk_level is RiskLevel.HIGH
        assert analysis.requires_confirmation is True

    def test_writes_and_reads_are_not_gated(self, tools, policy) -> None:
        calls = [
            ToolCallRequest(call_id="c1", tool_name="GITHUB_CREATE_ISSUE"),
            ToolCallRequest(call_id="c2", tool_name="SLACK_LIST_CHANNELS"),
        ]

        analysis = analyze_tool_calls(calls, tools, policy)

        assert analysis.requires_confirmation is False
        assert analysis.risk_level is RiskLevel.MEDIUM

    def test_internal_tools_are_never_gated(self, tools, policy) -> None:
        calls = [ToolCallRequest(call_id="c1", tool_name="get_my_cards")]

        assert analyze_tool_calls(calls, tools, policy).requires_confirmation is False

    def test_policy_overrides(self, tools) -> None:
        policy = ActionPolicy(
            never_confirm_tools=["GMAIL_SEND_EMAIL"], always_confirm_tools=["GITHUB_CREATE_ISSUE"]
        )

        send = analyze_tool_calls(
            [ToolCallRequest(call_id="c1", tool_name="GMAIL_SEND_EMAIL")], tools, policy
        )
        create = analyze_tool_calls(
            [ToolCallRequest(call_id="c1", tool_name="GITHUB_CREATE_ISSUE")], tools, policy
        )

        assert send.requires_confirmation is False
        assert create.requires_confirmation is True

    def test_prompt_mentions_risk_and_action(self, tools, policy) -> None:
        analysis = analyze_tool_calls(
            [ToolCallRequest(call_id="c1", tool_name="SLACK_DELETE_CHANNEL")], tools, policy
        )

        prompt = build_confirmation_prompt(analysis)

        assert "**Confirmation required** (risk: critical)" in prompt
        assert "**Action:** Slack: delete channel" in prompt


class TestConfirmationGate:
    """Gate state machine across two requests."""

    @staticmethod
    def _delete_call() -> list[ToolCallRequest]:
        return [ToolCallRequest(call_id="c1", tool_name="SLACK_DELETE_CHANNEL")]

    @pytest.mark.asyncio
    async def test_no_gate_for_safe_calls(self, gate, tools, make_ctx, pending_store) -> None:
        calls = [ToolCallRequest(call_id="c1", tool_name="SLACK_LIST_CHANNELS")]

        evaluation = await gate.evaluate(make_ctx(), calls, tools)

        assert evaluation.state is GateState.NO_GATE
        assert len(pending_store) == 0

    @pytest.mark.asyncio
    async def test_high_impact_batch_is_held(self, gate, tools, make_ctx) -> None:
        ctx = make_ctx("delete the #general channel in slack")

        evaluation = await gate.evaluate(ctx, self._delete_call(), tools, apps=[ExternalApp.SLACK])

        assert evaluation.state is GateState.AWAITING_CONFIRMATION
        pending = await gate.pending_for(ctx)
        assert pending is not None
        assert pending.token == evaluation.pending_action.token
        assert pending.user_message == "delete the #general channel in slack"
        assert pending.apps == [ExternalApp.SLACK]

    @pytest.mark.asyncio
    async def test_confirm_consumes_once(self, gate, tools, make_ctx) -> None:
        ctx = make_ctx()
        await gate.evaluate(ctx, self._delete_call(), tools)

        first = await gate.resolve(ctx, "yes")
        second = await gate.resolve(ctx, "yes")

        assert first.state is GateState.CONFIRMED
        assert first.pending_action.tool_names == ["SLACK_DELETE_CHANNEL"]
        assert second.state is GateState.NO_GATE

    @pytest.mark.asyncio
    async def test_cancel(self, gate, tools, make_ctx) -> None:
        ctx = make_ctx()
        await gate.evaluate(ctx, self._delete_call(), tools)

        resolution = await gate.resolve(ctx, "cancel")

        assert resolution.state is GateState.CANCELLED
        assert await gate.pending_for(ctx) is None

    @pytest.mark.asyncio
    async def test_unclear_reply_keeps_waiting(self, gate, tools, make_ctx) -> None:
        ctx = make_ctx()
        await gate.evaluate(ctx, self._delete_call(), tools)

        resolution = await gate.resolve(ctx, "hmm, which channel was that again?")

        assert resolution.state is GateState.AWAITING_CONFIRMATION
        assert resolution.decision is ConfirmationDecision.UNCLEAR
        assert await gate.pending_for(ctx) is not None

    @pytest.mark.asyncio
    async def test_wrong_token_is_unclear(self, gate, tools, make_ctx) -> None:
        ctx = make_ctx()
        await gate.evaluate(ctx, self._delete_call(), tools)

        resolution = await gate.resolve(ctx, "yes", token="not-the-token")

        assert resolution.state is GateState.AWAITING_CONFIRMATION

    @pytest.mark.asyncio
    async def test_pending_action_is_scoped_to_principal(self, gate, tools, make_ctx) -> None:
        await gate.evaluate(make_ctx(member_id="m_1"), self._delete_call(), tools)

        other = await gate.resolve(make_ctx(member_id="m_2"), "yes")

        assert other.state is GateState.NO_GATE

    @pytest.mark.asyncio
    async def test_expired_action_is_dropped(self, tools, make_ctx) -> None:
        now = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)
        clock = {"now": now}
        store = InMemoryPendingActionStore(clock=lambda: clock["now"])
        gate = ConfirmationGate(store, ttl_seconds=60, clock=lambda: clock["now"])
        ctx = make_ctx()
        await gate.evaluate(ctx, self._delete_call(), tools)

        clock["now"] = now + timedelta(seconds=61)
        resolution = await gate.resolve(ctx, "yes")

        assert resolution.state is GateState.NO_GATE
        assert len(store) == 0


class TestPendingAction:
    """Pending action model helpers."""

    def test_create_sets_expiry(self) -> None:
        now = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)

        action = PendingAction.create("ws_1", "user_1", "send it", [], ttl_seconds=600, now=now)

        assert action.expires_at == now + timedelta(seconds=600)
        assert action.is_expired(now) is False
        assert action.is_expired(now + timedelta(seconds=600)) is True
        assert len(action.token) >= 16

    def test_cancellation_message_lists_tools(self) -> None:
        message = build_cancellation_message(["SLACK_DELETE_CHANNEL"])

        assert "SLACK_DELETE_CHANNEL" in message
        assert "No changes were made" in message
