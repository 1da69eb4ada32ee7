"""Handoff catalog construction and resolution."""

import logging
from collections.abc import Sequence

from bi_assistant.agents.exceptions import HandoffResolutionError
from bi_assistant.agents.primitives import (
    HANDOFF_TOOL_PREFIX,
    Agent,
    AgentInput,
    FunctionCall,
    Handoff,
    HandoffItem,
    RunContext,
)

logger = logging.getLogger(__name__)


def is_handoff_call(name: str) -> bool:
    return name.startswith(HANDOFF_TOOL_PREFIX)


async def available_handoffs(
    agent: Agent,
    current_input: AgentInput,
    context: RunContext,
) -> list[Handoff]:
    """Return the handoffs that may be offered to the model this turn.

    A handoff whose filter returns False is withheld. A filter that raises
    withholds the handoff as well.
    """
    offered: list[Handoff] = []
    for handoff in agent.handoffs:
        if handoff.filter is not None:
            try:
                allowed = await handoff.filter(current_input, context)
            except Exception:
                logger.exception(f"Handoff filter for {handoff.tool_name} failed; withholding it")
                continue
            if not allowed:
                logger.debug(f"Handoff {handoff.tool_name} filtered out for agent {agent.name}")
                continue
        offered.append(handoff)
    return offered


def resolve_handoff(call: FunctionCall, offered: Sequence[Handoff]) -> tuple[Agent, HandoffItem]:
    """Map a handoff tool call back to its target agent.

    Raises:
        HandoffResolutionError: If the call names no offered handoff.
    """
    target_name = call.name.removeprefix(HANDOFF_TOOL_PREFIX)
    matches = [h for h in offered if h.target_agent.name == target_name]
    if len(matches) != 1:
        raise HandoffResolutionError(
            f"Cannot resolve handoff {call.name!r}; offered: {[h.tool_name for h in offered]}"
        )

    reason = call.args.get("reason", "")
    return matches[0].target_agent, HandoffItem(agent_name=target_name, reason=str(reason))
