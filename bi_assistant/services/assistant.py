"""Assistant service.

Runs one user query through the agent graph and turns the outcome into
messages the caller appends to its persisted thread.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

import logfire

from bi_assistant.agents import (
    AgentResult,
    AgentsError,
    FunctionCallPart,
    FunctionResponsePart,
    GuardrailTripwireTriggered,
    HandoffItem,
    Message,
    RunConfig,
    RunContext,
    Runner,
    TextPart,
    ToolCall,
)
from bi_assistant.agents.assistant import SemanticModel, build_triage_agent
from bi_assistant.schemas.assistant import (
    ChatMessage,
    FunctionCallMessage,
    FunctionResponseMessage,
    TextMessage,
)
from bi_assistant.services.llm import ContentGenerationClient, get_content_client

logger = logging.getLogger(__name__)

FALLBACK_MESSAGE = "Sorry, I encountered an error while processing your request. Please try again."


@dataclass
class AssistantReply:
    """Outcome of one assistant query.

    Attributes:
        query: The user's query, kept so the UI can offer a retry.
        messages: New thread messages, the user query excluded.
        final_output: The assistant's answer, None on error.
        error: Whether the run failed and messages hold a fallback.
        guardrail: Name of the guardrail that blocked the run, if any.
    """

    query: str
    messages: list[ChatMessage] = field(default_factory=list)
    final_output: str | None = None
    error: bool = False
    guardrail: str | None = None


def thread_to_history(thread: Sequence[ChatMessage]) -> list[Message]:
    """Convert thread messages into conversation history for the model."""
    history: list[Message] = []
    for item in thread:
        if isinstance(item, TextMessage):
            role = "user" if item.actor == "user" else "model"
            history.append(Message(role=role, parts=[TextPart(item.message)]))
        elif isinstance(item, FunctionCallMessage):
            history.append(
                Message(
                    role="model",
                    parts=[FunctionCallPart(name=item.name, args=dict(item.args), id=item.uuid)],
                )
            )
        elif isinstance(item, FunctionResponseMessage):
            history.append(
                Message(
                    role="user",
                    parts=[
                        FunctionResponsePart(
                            name=item.name,
                            response={"name": item.name, "content": item.response},
                            id=item.call_uuid,
                        )
                    ],
                )
            )
    return history


def result_to_messages(result: AgentResult) -> list[ChatMessage]:
    """Thread messages for the UI-relevant items of a run plus the answer."""
    messages: list[ChatMessage] = []
    for item in result.return_items:
        if isinstance(item, ToolCall):
            call = FunctionCallMessage(name=item.name, args=item.parameters)
            messages.append(call)
            messages.append(
                FunctionResponseMessage(call_uuid=call.uuid, name=item.name, response=item.result)
            )
        elif isinstance(item, HandoffItem):
            messages.append(
                TextMessage(
                    actor="model",
                    message=f"Handing off to {item.agent_name}: {item.reason}",
                )
            )
    messages.append(TextMessage(actor="model", message=result.final_output))
    return messages


class AssistantService:
    """Runs user queries through the triage agent graph.

    Usage:
        service = AssistantService()
        reply = await service.run("What explores can I use?", thread=[...])
    """

    def __init__(
        self,
        client: ContentGenerationClient | None = None,
        *,
        max_turns: int | None = None,
    ):
        self._client = client or get_content_client()
        self._max_turns = max_turns

    async def run(
        self,
        query: str,
        *,
        thread: Sequence[ChatMessage] = (),
        thread_id: str | None = None,
        user: dict[str, Any] | None = None,
        semantic_models: dict[str, SemanticModel] | None = None,
    ) -> AssistantReply:
        """Answer query in the context of thread.

        Failures never raise: the reply carries error=True, a fallback
        message and the original query.
        """
        history = thread_to_history([*thread, TextMessage(message=query, actor="user")])
        agent = build_triage_agent(self._client, user=user, semantic_models=semantic_models)
        context = RunContext(
            original_query=query,
            state={"user": user, "thread_id": thread_id},
        )

        with logfire.span("assistant_query", thread_id=thread_id, query=query[:100]):
            try:
                result = await Runner.run(
                    agent,
                    history,
                    context=context,
                    max_turns=self._max_turns,
                    run_config=RunConfig(workflow_name="bi_assistant", group_id=thread_id),
                    client=self._client,
                )
            except GuardrailTripwireTriggered as e:
                logger.warning(f"Query blocked by guardrail {e.guardrail_name}")
                return AssistantReply(
                    query=query,
                    messages=[TextMessage(actor="model", message=e.user_message or FALLBACK_MESSAGE)],
                    error=True,
                    guardrail=e.guardrail_name,
                )
            except AgentsError:
                logger.exception(f"Agent run failed for thread {thread_id}")
                return self._fallback(query)
            except Exception:
                logger.exception(f"Unexpected error answering query for thread {thread_id}")
                return self._fallback(query)

            logfire.info(
                "Assistant query complete",
                visited=result.context.visited_nodes,
                tool_calls=len(result.tool_calls),
            )

        return AssistantReply(
            query=query,
            messages=result_to_messages(result),
            final_output=result.final_output,
        )

    @staticmethod
    def _fallback(query: str) -> AssistantReply:
        return AssistantReply(
            query=query,
            messages=[TextMessage(actor="model", message=FALLBACK_MESSAGE)],
            error=True,
        )
