"""Run configuration and lifecycle hooks."""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from bi_assistant.agents.primitives import (
        Agent,
        Guardrail,
        ModelSettings,
        RunContext,
        Tool,
    )


class RunHooks:
    """Observer for agent and tool lifecycle events.

    Every method is a no-op; subclass and override the ones you need.
    Hooks are awaited inline, so a slow hook slows the run.
    """

    async def on_agent_start(self, context: "RunContext", agent: "Agent") -> None:
        """Called once each time an agent becomes active."""

    async def on_tool_start(
        self,
        context: "RunContext",
        agent: "Agent",
        tool: "Tool",
        params: dict[str, Any],
    ) -> None:
        """Called before a tool executes."""

    async def on_tool_end(
        self,
        context: "RunContext",
        agent: "Agent",
        tool: "Tool",
        params: dict[str, Any],
        result: Any,
    ) -> None:
        """Called after a tool returned (not when it raised)."""


@dataclass
class RunConfig:
    """Settings that apply to a whole run rather than to one agent.

    Attributes:
        workflow_name: Name attached to the run span.
        trace_id: Caller trace identifier attached to the run span.
        group_id: Groups runs of one conversation thread.
        trace_metadata: Extra span attributes.
        tracing_disabled: Skip the run and turn spans.
        input_guardrails: Checked in addition to the starting agent's.
        output_guardrails: Checked in addition to the final agent's.
        model: Model identifier overriding every agent's.
        model_settings: Settings overriding every agent's.
        generation_timeout: Seconds allowed for one content-generation
            call; None falls back to the configured default.
    """

    workflow_name: str = "Agent workflow"
    trace_id: str | None = None
    group_id: str | None = None
    trace_metadata: dict[str, Any] = field(default_factory=dict)
    tracing_disabled: bool = False
    input_guardrails: list["Guardrail"] = field(default_factory=list)
    output_guardrails: list["Guardrail"] = field(default_factory=list)
    model: str | None = None
    model_settings: "ModelSettings | None" = None
    generation_timeout: float | None = None
