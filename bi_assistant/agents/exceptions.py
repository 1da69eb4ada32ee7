"""Errors raised by the agent runtime.

Tool failures are not represented here: they are converted into error
payloads and fed back to the model instead of aborting the run.
"""

from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from bi_assistant.agents.primitives import Guardrail, GuardrailResult


class AgentsError(Exception):
    """Base class for every failure surfaced by Runner.run()."""


class GuardrailTripwireTriggered(AgentsError):
    """A guardrail vetoed the run input or the final output."""

    def __init__(
        self,
        guardrail: "Guardrail",
        result: "GuardrailResult",
        kind: Literal["input", "output"],
    ) -> None:
        super().__init__(f"Guardrail tripwire triggered: {guardrail.name}")
        self.guardrail = guardrail
        self.result = result
        self.kind = kind

    @property
    def guardrail_name(self) -> str:
        return self.guardrail.name

    @property
    def user_message(self) -> str | None:
        return self.result.message


class MaxTurnsExceeded(AgentsError):
    """The turn budget ran out before a final output was produced."""

    def __init__(self, max_turns: int) -> None:
        super().__init__(f"Max turns ({max_turns}) exceeded")
        self.max_turns = max_turns


class HandoffResolutionError(AgentsError):
    """The model requested a handoff that maps to no offered agent."""


class ModelGenerationError(AgentsError):
    """The content-generation call failed or timed out."""

    def __init__(self, agent_name: str, cause: BaseException) -> None:
        super().__init__(f"Failed to run model for agent {agent_name}: {cause}")
        self.agent_name = agent_name


class AgentRunError(AgentsError):
    """Unexpected failure inside the run loop."""
