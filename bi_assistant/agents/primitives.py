"""Primitives of the agent runtime.

Agents, tools, handoffs and guardrails are read-only descriptors that can
be shared between concurrent runs. RunContext and the message/item lists
built during a run belong to that run alone.
"""

import asyncio
import copy
import inspect
import json
import re
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, Literal

if TYPE_CHECKING:
    from langchain_core.tools import BaseTool

HANDOFF_TOOL_PREFIX = "handoff_to_"
# Function names accepted by the content-generation services.
AGENT_NAME_PATTERN = re.compile(r"[a-zA-Z0-9_-]+")
DEFAULT_SYSTEM_PROMPT = "You are a helpful AI assistant."

Role = Literal["user", "model"]


# =============================================================================
# Messages
# =============================================================================


@dataclass(frozen=True)
class TextPart:
    text: str


@dataclass(frozen=True)
class FunctionCallPart:
    """A function call issued by the model."""

    name: str
    args: dict[str, Any] = field(default_factory=dict)
    id: str | None = None


@dataclass(frozen=True)
class FunctionResponsePart:
    """The result of a function call, fed back to the model."""

    name: str
    response: dict[str, Any] = field(default_factory=dict)
    id: str | None = None


MessagePart = TextPart | FunctionCallPart | FunctionResponsePart


@dataclass
class Message:
    """One conversation turn: a role plus an ordered list of parts."""

    role: Role
    parts: list[MessagePart] = field(default_factory=list)

    @classmethod
    def user_text(cls, *texts: str) -> "Message":
        return cls(role="user", parts=[TextPart(text) for text in texts])

    @classmethod
    def model_text(cls, *texts: str) -> "Message":
        return cls(role="model", parts=[TextPart(text) for text in texts])

    @property
    def text(self) -> str:
        """Text parts joined by newlines."""
        return "\n".join(part.text for part in self.parts if isinstance(part, TextPart))


AgentInput = str | list[Message]


@dataclass(frozen=True)
class FunctionCall:
    name: str
    args: dict[str, Any] = field(default_factory=dict)
    id: str | None = None


@dataclass(frozen=True)
class ModelResponsePart:
    """One part of a content-generation response.

    Exactly one of text, function_call or object (structured output) is
    expected to be set.
    """

    text: str | None = None
    function_call: FunctionCall | None = None
    object: dict[str, Any] | None = None


# =============================================================================
# Run state
# =============================================================================


@dataclass
class RunContext:
    """Per-run mutable bag shared with hooks, tools and guardrails.

    Attributes:
        messages: Working transcript of the run (history plus replayed
            tool calls).
        original_query: The user query that started the run.
        visited_nodes: Names of agents activated during the run, in order.
        state: Caller-supplied data (current user, thread id, ...).
    """

    messages: list[Message] = field(default_factory=list)
    original_query: str | None = None
    visited_nodes: list[str] = field(default_factory=list)
    state: dict[str, Any] = field(default_factory=dict)

    def copy(self) -> "RunContext":
        """Return a working copy that shares no mutable data with this one."""
        return RunContext(
            messages=copy.deepcopy(self.messages),
            original_query=self.original_query,
            visited_nodes=list(self.visited_nodes),
            state=copy.deepcopy(self.state),
        )


@dataclass
class ToolCall:
    """A tool invocation requested by the model."""

    name: str
    parameters: dict[str, Any] = field(default_factory=dict)
    result: Any = None
    show_in_thread: bool = False
    id: str | None = None


@dataclass(frozen=True)
class HandoffItem:
    """Record of a handoff, surfaced to the caller for display."""

    agent_name: str
    reason: str


ReturnItem = ToolCall | HandoffItem


@dataclass
class AgentResult:
    """Outcome of a successful run."""

    final_output: str
    handoff_performed: bool = False
    handoff_agent: HandoffItem | None = None
    tool_calls: list[ToolCall] = field(default_factory=list)
    context: RunContext = field(default_factory=RunContext)
    return_items: list[ReturnItem] = field(default_factory=list)
    last_agent: "Agent | None" = None


# =============================================================================
# Tools
# =============================================================================

ToolAction = Callable[[dict[str, Any]], Any]


def _object_schema(parameters: dict[str, Any] | None) -> dict[str, Any]:
    schema = dict(parameters or {})
    schema.setdefault("type", "object")
    schema.setdefault("properties", {})
    return schema


@dataclass(frozen=True)
class Tool:
    """A named capability the model can invoke.

    Attributes:
        name: Unique within an agent.
        description: Shown to the model.
        parameters: JSON-schema object describing the arguments.
        execute: Callable taking the argument dict; may be sync or async.
        show_in_thread: Whether invocations are surfaced to the end user.
    """

    name: str
    description: str
    execute: ToolAction
    parameters: dict[str, Any] = field(default_factory=dict)
    show_in_thread: bool = False

    async def invoke(self, params: dict[str, Any]) -> Any:
        """Run execute; plain callables run in a worker thread."""
        if inspect.iscoroutinefunction(self.execute):
            return await self.execute(params)
        result = await asyncio.to_thread(self.execute, params)
        if inspect.isawaitable(result):
            result = await result
        return result

    def declaration(self) -> dict[str, Any]:
        """Catalog entry sent to the content-generation service."""
        return {
            "name": self.name,
            "description": self.description,
            "parameters": _object_schema(self.parameters),
        }

    @classmethod
    def from_langchain(cls, lc_tool: "BaseTool", *, show_in_thread: bool = False) -> "Tool":
        """Wrap a langchain_core tool (e.g. one built with ``@tool``)."""
        from langchain_core.utils.function_calling import convert_to_openai_tool

        function = convert_to_openai_tool(lc_tool)["function"]

        async def execute(params: dict[str, Any]) -> Any:
            return await lc_tool.ainvoke(params)

        return cls(
            name=function["name"],
            description=function.get("description", ""),
            parameters=function.get("parameters", {}),
            execute=execute,
            show_in_thread=show_in_thread,
        )


# =============================================================================
# Guardrails
# =============================================================================


@dataclass(frozen=True)
class GuardrailResult:
    tripwire_triggered: bool
    info: dict[str, Any] | None = None
    message: str | None = None


GuardrailValidator = Callable[[Any, RunContext], Awaitable[GuardrailResult]]


@dataclass(frozen=True)
class Guardrail:
    """A validation over run input or final output that can veto the run."""

    name: str
    validate: GuardrailValidator
    description: str = ""


# =============================================================================
# Agents and handoffs
# =============================================================================

SystemPromptProvider = Callable[[], Awaitable[str]]
HandoffFilter = Callable[[AgentInput, RunContext], Awaitable[bool]]


@dataclass(frozen=True)
class ModelSettings:
    model: str | None = None
    temperature: float | None = None
    max_output_tokens: int | None = None
    top_p: float | None = None

    def merged(self, overrides: "ModelSettings | None") -> "ModelSettings":
        """Return these settings with every value set in overrides applied."""
        if overrides is None:
            return self
        changes = {
            name: value
            for name, value in vars(overrides).items()
            if value is not None
        }
        return replace(self, **changes)


@dataclass(frozen=True)
class Handoff:
    """An edge from the current agent to target_agent."""

    target_agent: "Agent"
    description: str | None = None
    filter: HandoffFilter | None = None

    @property
    def tool_name(self) -> str:
        return f"{HANDOFF_TOOL_PREFIX}{self.target_agent.name}"

    @property
    def tool_description(self) -> str:
        return (
            self.description
            or self.target_agent.handoff_description
            or self.target_agent.description
        )

    def declaration(self) -> dict[str, Any]:
        return {
            "name": self.tool_name,
            "description": self.tool_description,
            "parameters": {
                "type": "object",
                "properties": {
                    "reason": {
                        "type": "string",
                        "description": "Reason for handing off to this agent",
                    },
                },
                "required": ["reason"],
            },
        }


@dataclass(frozen=True)
class Agent:
    """Static or per-request descriptor of one conversational agent.

    The Runner consumes agents; they are never mutated during a run. Use
    clone() to derive a variant.
    """

    name: str
    description: str = ""
    system_prompt: SystemPromptProvider | None = None
    model_settings: ModelSettings = field(default_factory=ModelSettings)
    tools: Sequence[Tool] = ()
    handoffs: Sequence[Handoff] = ()
    input_guardrails: Sequence[Guardrail] = ()
    output_guardrails: Sequence[Guardrail] = ()
    inject_messages: Sequence[Message] = ()
    output_type: dict[str, dict[str, Any]] | None = None
    handoff_description: str | None = None

    def __post_init__(self) -> None:
        if not AGENT_NAME_PATTERN.fullmatch(self.name):
            raise ValueError(
                f"Agent name {self.name!r} may only contain letters, digits, '_' and '-'"
            )
        tool_names = [tool.name for tool in self.tools]
        duplicates = {name for name in tool_names if tool_names.count(name) > 1}
        if duplicates:
            raise ValueError(f"Agent {self.name} has duplicate tool names: {sorted(duplicates)}")
        reserved = [name for name in tool_names if name.startswith(HANDOFF_TOOL_PREFIX)]
        if reserved:
            raise ValueError(
                f"Agent {self.name} tool names may not start with "
                f"{HANDOFF_TOOL_PREFIX!r}: {reserved}"
            )
        targets = [handoff.target_agent.name for handoff in self.handoffs]
        if len(targets) != len(set(targets)):
            raise ValueError(f"Agent {self.name} has ambiguous handoff targets: {targets}")

    def get_tool(self, name: str) -> Tool | None:
        for tool in self.tools:
            if tool.name == name:
                return tool
        return None

    async def get_system_prompt(self) -> str:
        if self.system_prompt is None:
            return DEFAULT_SYSTEM_PROMPT
        return await self.system_prompt()

    def response_schema(self) -> dict[str, Any] | None:
        """Structured-output schema derived from output_type."""
        if not self.output_type:
            return None
        return {
            "type": "object",
            "properties": copy.deepcopy(self.output_type),
            "required": list(self.output_type),
        }

    def clone(self, **changes: Any) -> "Agent":
        return replace(self, **changes)


def static_prompt(text: str) -> SystemPromptProvider:
    """Build a system prompt provider that always returns text."""

    async def provider() -> str:
        return text

    return provider


def stringify_output(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, default=str)
