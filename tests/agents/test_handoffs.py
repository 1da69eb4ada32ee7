"""Tests for handoff filtering and resolution."""

import pytest

from bi_assistant.agents import (
    Agent,
    FunctionCall,
    Handoff,
    HandoffItem,
    HandoffResolutionError,
    RunContext,
)
from bi_assistant.agents.handoffs import available_handoffs, is_handoff_call, resolve_handoff


async def allow(current_input, context):
    return True


async def deny(current_input, context):
    return False


async def broken(current_input, context):
    raise RuntimeError("filter failed")


def test_is_handoff_call():
    assert is_handoff_call("handoff_to_ExploreAgent")
    assert not is_handoff_call("get_current_time")


@pytest.mark.anyio
async def test_filters_decide_which_handoffs_are_offered():
    agent = Agent(
        name="Triage",
        handoffs=[
            Handoff(target_agent=Agent(name="Always")),
            Handoff(target_agent=Agent(name="Allowed"), filter=allow),
            Handoff(target_agent=Agent(name="Denied"), filter=deny),
            Handoff(target_agent=Agent(name="Broken"), filter=broken),
        ],
    )

    offered = await available_handoffs(agent, "question", RunContext())

    assert [h.target_agent.name for h in offered] == ["Always", "Allowed"]


@pytest.mark.anyio
async def test_filter_receives_input_and_context():
    seen = []

    async def record(current_input, context):
        seen.append((current_input, context.state))
        return True

    agent = Agent(name="Triage", handoffs=[Handoff(target_agent=Agent(name="B"), filter=record)])

    await available_handoffs(agent, "question", RunContext(state={"thread_id": "t1"}))

    assert seen == [("question", {"thread_id": "t1"})]


def test_resolve_handoff_returns_target_and_reason():
    target = Agent(name="B")

    agent, item = resolve_handoff(
        FunctionCall(name="handoff_to_B", args={"reason": "billing question"}),
        [Handoff(target_agent=target)],
    )

    assert agent is target
    assert item == HandoffItem(agent_name="B", reason="billing question")


def test_resolve_handoff_without_reason():
    _, item = resolve_handoff(
        FunctionCall(name="handoff_to_B"), [Handoff(target_agent=Agent(name="B"))]
    )

    assert item.reason == ""


def test_resolve_unknown_handoff_raises():
    with pytest.raises(HandoffResolutionError, match="handoff_to_C"):
        resolve_handoff(
            FunctionCall(name="handoff_to_C", args={"reason": "?"}),
            [Handoff(target_agent=Agent(name="B"))],
        )
