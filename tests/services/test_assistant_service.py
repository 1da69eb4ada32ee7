"""Tests for AssistantService."""

from unittest.mock import AsyncMock, patch

import pytest

from bi_assistant.agents import (
    AgentResult,
    FunctionCall,
    FunctionCallPart,
    FunctionResponsePart,
    Guardrail,
    GuardrailResult,
    GuardrailTripwireTriggered,
    HandoffItem,
    MaxTurnsExceeded,
    ModelResponsePart,
    RunContext,
    TextPart,
    ToolCall,
)
from bi_assistant.schemas.assistant import (
    FunctionCallMessage,
    FunctionResponseMessage,
    TextMessage,
)
from bi_assistant.services.assistant import (
    FALLBACK_MESSAGE,
    AssistantService,
    result_to_messages,
    thread_to_history,
)


def test_thread_to_history_maps_roles_and_calls():
    call = FunctionCallMessage(name="get_current_time", args={})
    thread = [
        TextMessage(message="time?", actor="user"),
        call,
        FunctionResponseMessage(call_uuid=call.uuid, name="get_current_time", response="noon"),
        TextMessage(message="It is noon.", actor="model"),
    ]

    history = thread_to_history(thread)

    assert [m.role for m in history] == ["user", "model", "user", "model"]
    assert history[0].parts == [TextPart("time?")]
    assert history[1].parts == [FunctionCallPart(name="get_current_time", args={}, id=call.uuid)]
    assert history[2].parts == [
        FunctionResponsePart(
            name="get_current_time",
            response={"name": "get_current_time", "content": "noon"},
            id=call.uuid,
        )
    ]


def test_result_to_messages_keeps_return_item_order():
    result = AgentResult(
        final_output="Here is the chart.",
        return_items=[
            HandoffItem(agent_name="ExploreAgent", reason="data question"),
            ToolCall(name="get_explore_query", parameters={"explore_id": "orders"}, result={"q": 1}),
        ],
    )

    handoff, call, response, answer = result_to_messages(result)

    assert handoff.message == "Handing off to ExploreAgent: data question"
    assert call.name == "get_explore_query"
    assert call.args == {"explore_id": "orders"}
    assert response.call_uuid == call.uuid
    assert response.response == {"q": 1}
    assert answer.actor == "model"
    assert answer.message == "Here is the chart."


class TestAssistantService:
    @pytest.mark.anyio
    async def test_answers_query_with_thread(self, scripted_client):
        client = scripted_client(
            [
                ModelResponsePart(
                    function_call=FunctionCall(
                        name="handoff_to_GeneralKnowledgeAgent", args={"reason": "time"}
                    )
                )
            ],
            [ModelResponsePart(function_call=FunctionCall(name="get_current_time"))],
            [ModelResponsePart(text="It is noon.")],
        )
        service = AssistantService(client)

        reply = await service.run(
            "What time is it?",
            thread=[TextMessage(message="Hi", actor="user"), TextMessage(message="Hello!", actor="model")],
            thread_id="thread-1",
        )

        assert reply.error is False
        assert reply.final_output == "It is noon."
        assert [type(m) for m in reply.messages] == [
            TextMessage,
            FunctionCallMessage,
            FunctionResponseMessage,
            TextMessage,
        ]
        first_request = client.requests[0]["contents"]
        assert [m.text for m in first_request] == ["Hi", "Hello!", "What time is it?"]

    @pytest.mark.anyio
    async def test_failure_returns_fallback_with_query(self, scripted_client):
        service = AssistantService(scripted_client(ConnectionError("down")))

        reply = await service.run("Show revenue", thread_id="t1")

        assert reply.error is True
        assert reply.query == "Show revenue"
        assert reply.final_output is None
        assert reply.messages[0].message == FALLBACK_MESSAGE

    @pytest.mark.anyio
    async def test_turn_budget_exhaustion_returns_fallback(self, scripted_client):
        service = AssistantService(scripted_client(), max_turns=2)

        with patch(
            "bi_assistant.services.assistant.Runner.run",
            AsyncMock(side_effect=MaxTurnsExceeded(2)),
        ):
            reply = await service.run("loop")

        assert reply.error is True
        assert reply.guardrail is None

    @pytest.mark.anyio
    async def test_guardrail_trip_reports_guardrail(self, scripted_client):
        trip = GuardrailTripwireTriggered(
            Guardrail(name="no-pii", validate=AsyncMock()),
            GuardrailResult(tripwire_triggered=True, message="I can't share personal data."),
            "output",
        )
        service = AssistantService(scripted_client())

        with patch(
            "bi_assistant.services.assistant.Runner.run",
            AsyncMock(side_effect=trip),
        ):
            reply = await service.run("What is Ana's phone number?")

        assert reply.error is True
        assert reply.guardrail == "no-pii"
        assert reply.messages[0].message == "I can't share personal data."

    @pytest.mark.anyio
    async def test_run_context_carries_user_and_thread(self, scripted_client):
        captured = {}

        async def fake_run(agent, history, *, context: RunContext, **kwargs):
            captured["context"] = context
            captured["agent"] = agent.name
            return AgentResult(final_output="ok", context=context)

        service = AssistantService(scripted_client())

        with patch("bi_assistant.services.assistant.Runner.run", side_effect=fake_run):
            await service.run("hi", thread_id="t9", user={"id": "7"})

        assert captured["agent"] == "TriageAgent"
        assert captured["context"].state == {"user": {"id": "7"}, "thread_id": "t9"}
        assert captured["context"].original_query == "hi"
