"""Runner: the turn-based control loop that drives a graph of agents.

A run loops until a final output is produced:

1. The current agent is invoked with the conversation so far.
2. If the model hands off, the loop continues with the new agent.
3. If the model calls tools, they are executed and the loop continues
   with the results appended to the conversation.
4. Otherwise the model text is the final output; output guardrails run
   and the result is returned.

The loop is bounded by max_turns.
"""

import asyncio
import copy
import logging
from contextlib import AbstractContextManager, nullcontext
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal
from uuid import uuid4

import logfire

from bi_assistant.agents.exceptions import (
    AgentRunError,
    AgentsError,
    MaxTurnsExceeded,
    ModelGenerationError,
)
from bi_assistant.agents.guardrails import run_input_guardrails, run_output_guardrails
from bi_assistant.agents.handoffs import available_handoffs, is_handoff_call, resolve_handoff
from bi_assistant.agents.lifecycle import RunConfig, RunHooks
from bi_assistant.agents.primitives import (
    Agent,
    AgentInput,
    AgentResult,
    HandoffItem,
    Message,
    ModelResponsePart,
    ModelSettings,
    ReturnItem,
    RunContext,
    ToolCall,
    stringify_output,
)
from bi_assistant.agents.tools import build_tool_catalog, execute_tool_calls, replay_tool_calls
from bi_assistant.core.config import settings

if TYPE_CHECKING:
    from bi_assistant.services.llm import ContentGenerationClient

logger = logging.getLogger(__name__)


@dataclass
class NextStep:
    """What the loop does after a turn."""

    type: Literal["final_output", "handoff", "run_again"]
    output: str | None = None
    new_agent: Agent | None = None
    handoff: HandoffItem | None = None
    tool_calls: list[ToolCall] = field(default_factory=list)


def default_model_settings() -> ModelSettings:
    return ModelSettings(
        model=settings.AI_MODEL,
        temperature=settings.AI_TEMPERATURE,
        max_output_tokens=settings.AI_MAX_OUTPUT_TOKENS,
        top_p=settings.AI_TOP_P,
    )


def _as_messages(run_input: AgentInput) -> list[Message]:
    if isinstance(run_input, str):
        return [Message.user_text(run_input)]
    return list(run_input)


def _original_query(run_input: AgentInput) -> str | None:
    if isinstance(run_input, str):
        return run_input
    for message in reversed(run_input):
        if message.role == "user" and message.text:
            return message.text
    return None


def _span(run_config: RunConfig, name: str, **attributes: Any) -> AbstractContextManager:
    if run_config.tracing_disabled:
        return nullcontext()
    return logfire.span(name, **attributes)


class Runner:
    """Executes agents, tools, guardrails and handoffs for one request."""

    @classmethod
    async def run(
        cls,
        starting_agent: Agent,
        input: AgentInput,
        *,
        context: RunContext | None = None,
        max_turns: int | None = None,
        hooks: RunHooks | None = None,
        run_config: RunConfig | None = None,
        client: "ContentGenerationClient | None" = None,
    ) -> AgentResult:
        """Run starting_agent on input until it produces a final output.

        Args:
            starting_agent: Agent active on the first turn.
            input: A user message or the conversation history. Never
                mutated.
            context: Seed for the run context. The run works on a copy;
                the final copy is returned in AgentResult.context.
            max_turns: Turn budget, defaults to settings.AGENT_MAX_TURNS.
            hooks: Lifecycle observer.
            run_config: Run-wide guardrails, model overrides and tracing.
            client: Content-generation client, defaults to the configured
                client.

        Returns:
            The result of the run.

        Raises:
            GuardrailTripwireTriggered: An input or output guardrail tripped.
            MaxTurnsExceeded: No final output within max_turns.
            HandoffResolutionError: The model chose an unknown handoff.
            ModelGenerationError: The content-generation call failed.
            AgentRunError: Any other failure.
        """
        max_turns = settings.AGENT_MAX_TURNS if max_turns is None else max_turns
        hooks = hooks or RunHooks()
        run_config = run_config or RunConfig()

        run_context = context.copy() if context is not None else RunContext()
        if run_context.original_query is None:
            run_context.original_query = _original_query(input)

        if client is None:
            from bi_assistant.services.llm import get_content_client

            client = get_content_client()

        with _span(
            run_config,
            "agent_run",
            workflow_name=run_config.workflow_name,
            trace_id=run_config.trace_id,
            group_id=run_config.group_id,
            starting_agent=starting_agent.name,
            max_turns=max_turns,
            **run_config.trace_metadata,
        ):
            try:
                return await cls._run_loop(
                    starting_agent,
                    input,
                    run_context,
                    max_turns,
                    hooks,
                    run_config,
                    client,
                )
            except AgentsError:
                raise
            except Exception as e:
                logger.exception("Error running agent")
                raise AgentRunError(f"Error running agent: {e}") from e

    @classmethod
    async def _run_loop(
        cls,
        starting_agent: Agent,
        original_input: AgentInput,
        run_context: RunContext,
        max_turns: int,
        hooks: RunHooks,
        run_config: RunConfig,
        client: "ContentGenerationClient",
    ) -> AgentResult:
        working_input = _as_messages(copy.deepcopy(original_input))
        generated_items: list[ToolCall] = []
        return_items: list[ReturnItem] = []
        last_handoff: HandoffItem | None = None

        current_agent = starting_agent
        should_run_agent_start_hooks = True
        current_turn = 0

        while current_turn < max_turns:
            current_turn += 1
            logger.debug(f"Running agent {current_agent.name} (turn {current_turn})")

            if current_turn == 1:
                await run_input_guardrails(
                    [*starting_agent.input_guardrails, *run_config.input_guardrails],
                    copy.deepcopy(original_input),
                    run_context,
                )

            if should_run_agent_start_hooks:
                run_context.visited_nodes.append(current_agent.name)
                await hooks.on_agent_start(run_context, current_agent)
                should_run_agent_start_hooks = False

            with _span(run_config, "agent_turn", agent=current_agent.name, turn=current_turn):
                next_step = await cls._run_single_turn(
                    current_agent,
                    working_input,
                    generated_items,
                    hooks,
                    run_context,
                    run_config,
                    client,
                )

            if next_step.type == "final_output":
                output = next_step.output or ""
                await run_output_guardrails(
                    [*current_agent.output_guardrails, *run_config.output_guardrails],
                    output,
                    run_context,
                )
                run_context.messages.append(Message.model_text(output))
                logger.info(
                    f"Agent run complete after {current_turn} turn(s): "
                    f"{len(generated_items)} tool call(s), final agent {current_agent.name}"
                )
                return AgentResult(
                    final_output=output,
                    handoff_performed=last_handoff is not None,
                    handoff_agent=last_handoff,
                    tool_calls=generated_items,
                    context=run_context,
                    return_items=return_items,
                    last_agent=current_agent,
                )

            if next_step.type == "handoff":
                logger.info(
                    f"Handoff from {current_agent.name} to {next_step.new_agent.name}: "
                    f"{next_step.handoff.reason}"
                )
                return_items.append(next_step.handoff)
                last_handoff = next_step.handoff
                current_agent = next_step.new_agent
                should_run_agent_start_hooks = True
            else:
                generated_items.extend(next_step.tool_calls)
                return_items.extend(call for call in next_step.tool_calls if call.show_in_thread)

        logger.warning(f"Max turns ({max_turns}) exceeded; last agent {current_agent.name}")
        raise MaxTurnsExceeded(max_turns)

    @classmethod
    async def _run_single_turn(
        cls,
        agent: Agent,
        working_input: list[Message],
        generated_items: list[ToolCall],
        hooks: RunHooks,
        run_context: RunContext,
        run_config: RunConfig,
        client: "ContentGenerationClient",
    ) -> NextStep:
        system_prompt = await agent.get_system_prompt()

        conversation = [*working_input, *replay_tool_calls(generated_items)]
        run_context.messages = list(conversation)
        contents = [*copy.deepcopy(list(agent.inject_messages)), *conversation]

        offered_handoffs = await available_handoffs(agent, conversation, run_context)
        tool_catalog = build_tool_catalog(agent, offered_handoffs)

        model_settings = (
            default_model_settings()
            .merged(agent.model_settings)
            .merged(run_config.model_settings)
            .merged(ModelSettings(model=run_config.model))
        )

        response = await cls._generate(
            client,
            agent,
            contents,
            model_settings,
            tool_catalog,
            system_prompt,
            run_config,
        )

        return await cls._process_response(
            response,
            agent,
            offered_handoffs,
            hooks,
            run_context,
        )

    @staticmethod
    async def _generate(
        client: "ContentGenerationClient",
        agent: Agent,
        contents: list[Message],
        model_settings: ModelSettings,
        tool_catalog: list[dict[str, Any]],
        system_prompt: str,
        run_config: RunConfig,
    ) -> list[ModelResponsePart]:
        timeout = run_config.generation_timeout or settings.GENERATION_TIMEOUT_SECONDS
        parameters = {
            "temperature": model_settings.temperature,
            "max_output_tokens": model_settings.max_output_tokens,
            "top_p": model_settings.top_p,
        }

        try:
            async with asyncio.timeout(timeout):
                return await client.generate(
                    contents,
                    parameters=parameters,
                    response_schema=agent.response_schema(),
                    tools=tool_catalog or None,
                    model_name=model_settings.model,
                    system_instruction=system_prompt,
                )
        except Exception as e:
            logger.exception(f"Error running model for agent {agent.name}")
            raise ModelGenerationError(agent.name, e) from e

    @staticmethod
    async def _process_response(
        response: list[ModelResponsePart],
        agent: Agent,
        offered_handoffs: list,
        hooks: RunHooks,
        run_context: RunContext,
    ) -> NextStep:
        texts = [part.text for part in response if part.text is not None]
        objects = [part.object for part in response if part.object is not None]
        calls = [part.function_call for part in response if part.function_call is not None]

        handoff_calls = [call for call in calls if is_handoff_call(call.name)]
        if handoff_calls:
            if len(handoff_calls) > 1:
                logger.warning(
                    f"Agent {agent.name} requested {len(handoff_calls)} handoffs; using the first"
                )
            discarded = len(calls) - len(handoff_calls)
            if discarded:
                logger.info(f"Discarding {discarded} tool call(s) bundled with a handoff")
            new_agent, handoff = resolve_handoff(handoff_calls[0], offered_handoffs)
            return NextStep(type="handoff", new_agent=new_agent, handoff=handoff)

        if calls:
            tool_calls = [
                ToolCall(name=call.name, parameters=dict(call.args), id=call.id or str(uuid4()))
                for call in calls
            ]
            executed = await execute_tool_calls(tool_calls, agent, hooks, run_context)
            return NextStep(type="run_again", tool_calls=executed)

        if texts:
            output = "\n".join(texts)
        elif objects:
            output = stringify_output(objects[0])
        else:
            logger.warning(f"Agent {agent.name} returned an empty response")
            output = ""
        return NextStep(type="final_output", output=output)
