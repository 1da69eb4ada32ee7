"""Agent graph of the assistant.

The triage agent is the entry point and hands off to one of three
specialists. Agents that embed per-request data (the current user, the
user's explores) are built fresh for every request.
"""

from typing import TYPE_CHECKING, Any

from bi_assistant.agents.assistant.explore import SemanticModel, build_explore_agent
from bi_assistant.agents.assistant.prompts import (
    GENERAL_KNOWLEDGE_PROMPT,
    TRIAGE_PROMPT,
    USER_INFO_PROMPT,
)
from bi_assistant.agents.assistant.tools import CURRENT_TIME_TOOL
from bi_assistant.agents.primitives import (
    Agent,
    AgentInput,
    Handoff,
    ModelSettings,
    RunContext,
    static_prompt,
)

if TYPE_CHECKING:
    from bi_assistant.services.llm import ContentGenerationClient

TRIAGE_AGENT_NAME = "TriageAgent"
USER_INFO_AGENT_NAME = "UserInfoAgent"
GENERAL_KNOWLEDGE_AGENT_NAME = "GeneralKnowledgeAgent"

USER_DETAIL_FIELDS = ("id", "first_name", "last_name", "display_name", "email", "locale")


def describe_user(user: dict[str, Any] | None) -> str:
    if not user:
        return "No user information is available."
    lines = [f"- {key}: {user[key]}" for key in USER_DETAIL_FIELDS if user.get(key)]
    return "\n".join(lines) or "No user information is available."


def build_user_info_agent(user: dict[str, Any] | None = None) -> Agent:
    """Create the user information agent for the current user."""

    async def system_prompt() -> str:
        return USER_INFO_PROMPT.format(user_details=describe_user(user))

    return Agent(
        name=USER_INFO_AGENT_NAME,
        description="Answers questions about the current user's account and activity.",
        system_prompt=system_prompt,
        model_settings=ModelSettings(temperature=0.7),
        handoff_description=(
            "Hand off to the user information agent for questions about the user's "
            "account, settings, preferences or activity."
        ),
    )


GENERAL_KNOWLEDGE_AGENT = Agent(
    name=GENERAL_KNOWLEDGE_AGENT_NAME,
    description="Answers general knowledge questions.",
    system_prompt=static_prompt(GENERAL_KNOWLEDGE_PROMPT),
    model_settings=ModelSettings(temperature=0.7),
    tools=[CURRENT_TIME_TOOL],
    handoff_description=(
        "Hand off to the general knowledge agent for facts, how-to questions and "
        "anything that does not depend on the user's data."
    ),
)


def build_triage_agent(
    client: "ContentGenerationClient",
    *,
    user: dict[str, Any] | None = None,
    semantic_models: dict[str, SemanticModel] | None = None,
) -> Agent:
    """Create the entry agent and its specialists for one request."""
    semantic_models = semantic_models or {}

    async def has_explores(_input: AgentInput, _context: RunContext) -> bool:
        return bool(semantic_models)

    return Agent(
        name=TRIAGE_AGENT_NAME,
        description="Routes the user's question to the right specialist.",
        system_prompt=static_prompt(TRIAGE_PROMPT),
        model_settings=ModelSettings(temperature=0),
        handoffs=[
            Handoff(target_agent=build_user_info_agent(user)),
            Handoff(
                target_agent=build_explore_agent(semantic_models, client),
                filter=has_explores,
            ),
            Handoff(target_agent=GENERAL_KNOWLEDGE_AGENT),
        ],
    )
