"""Tool catalog construction and tool-call execution."""

import logging
from collections.abc import Sequence
from typing import Any

import logfire

from bi_assistant.agents.lifecycle import RunHooks
from bi_assistant.agents.primitives import (
    Agent,
    FunctionCallPart,
    FunctionResponsePart,
    Handoff,
    Message,
    RunContext,
    ToolCall,
)

logger = logging.getLogger(__name__)


def tool_error(message: str) -> dict[str, Any]:
    return {"error": True, "message": message}


def build_tool_catalog(agent: Agent, handoffs: Sequence[Handoff]) -> list[dict[str, Any]]:
    """Agent tools followed by one synthetic tool per offered handoff."""
    return [tool.declaration() for tool in agent.tools] + [h.declaration() for h in handoffs]


async def execute_tool_calls(
    calls: Sequence[ToolCall],
    agent: Agent,
    hooks: RunHooks,
    context: RunContext,
) -> list[ToolCall]:
    """Execute tool calls one after another, in the order requested.

    Lookup happens in the active agent's tools only. An unknown tool or an
    exception raised by a tool becomes an error payload on the call so the
    model can react to it on the next turn.

    Returns:
        The executed calls, each with result populated.
    """
    executed: list[ToolCall] = []

    for call in calls:
        tool = agent.get_tool(call.name)
        if tool is None:
            logger.warning(f"Tool {call.name} not found on agent {agent.name}")
            call.result = tool_error(f"Tool {call.name} not found")
            executed.append(call)
            continue

        call.show_in_thread = tool.show_in_thread
        await hooks.on_tool_start(context, agent, tool, call.parameters)

        with logfire.span("tool_call", tool=tool.name, agent=agent.name):
            try:
                result = await tool.invoke(call.parameters)
            except Exception as e:
                logger.exception(f"Error executing tool {call.name}")
                call.result = tool_error(str(e))
                executed.append(call)
                continue

        await hooks.on_tool_end(context, agent, tool, call.parameters, result)
        call.result = result
        executed.append(call)

    return executed


def replay_tool_calls(calls: Sequence[ToolCall]) -> list[Message]:
    """Render executed calls as functionCall / functionResponse message pairs."""
    messages: list[Message] = []
    for call in calls:
        messages.append(
            Message(
                role="model",
                parts=[FunctionCallPart(name=call.name, args=dict(call.parameters), id=call.id)],
            )
        )
        messages.append(
            Message(
                role="user",
                parts=[
                    FunctionResponsePart(
                        name=call.name,
                        response={"name": call.name, "content": call.result},
                        id=call.id,
                    )
                ],
            )
        )
    return messages
