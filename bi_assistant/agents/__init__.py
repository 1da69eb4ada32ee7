"""Agent orchestration runtime.

Agents bundle a system prompt, tools, handoffs and guardrails. The Runner
drives them turn by turn until one produces a final answer.
"""

from bi_assistant.agents.exceptions import (
    AgentRunError,
    AgentsError,
    GuardrailTripwireTriggered,
    HandoffResolutionError,
    MaxTurnsExceeded,
    ModelGenerationError,
)
from bi_assistant.agents.lifecycle import RunConfig, RunHooks
from bi_assistant.agents.primitives import (
    Agent,
    AgentResult,
    FunctionCall,
    FunctionCallPart,
    FunctionResponsePart,
    Guardrail,
    GuardrailResult,
    Handoff,
    HandoffItem,
    Message,
    ModelResponsePart,
    ModelSettings,
    RunContext,
    TextPart,
    Tool,
    ToolCall,
    static_prompt,
)
from bi_assistant.agents.runner import Runner

__all__ = [
    "Agent",
    "AgentResult",
    "AgentRunError",
    "AgentsError",
    "FunctionCall",
    "FunctionCallPart",
    "FunctionResponsePart",
    "Guardrail",
    "GuardrailResult",
    "GuardrailTripwireTriggered",
    "Handoff",
    "HandoffItem",
    "HandoffResolutionError",
    "MaxTurnsExceeded",
    "Message",
    "ModelGenerationError",
    "ModelResponsePart",
    "ModelSettings",
    "RunConfig",
    "RunContext",
    "RunHooks",
    "Runner",
    "TextPart",
    "Tool",
    "ToolCall",
    "static_prompt",
]
