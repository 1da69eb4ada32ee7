"""Explore agent: answers questions about the user's Looker explores.

The semantic models (dimensions and measures per explore) are injected
into the conversation for every turn of this agent, and its tools delegate
explore selection and query generation to the content-generation service.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, TypedDict

from bi_assistant.agents.assistant.prompts import (
    EXPLORE_HANDOFF_DESCRIPTION,
    EXPLORE_PROMPT,
    EXPLORE_QUERY_INSTRUCTION,
    FIND_BEST_EXPLORE_INSTRUCTION,
)
from bi_assistant.agents.primitives import Agent, Message, ModelSettings, Tool, static_prompt

if TYPE_CHECKING:
    from bi_assistant.services.llm import ContentGenerationClient

logger = logging.getLogger(__name__)

EXPLORE_AGENT_NAME = "ExploreAgent"
DEFAULT_QUERY_LIMIT = 500

VISUALIZATION_TYPES = [
    "looker_column",
    "looker_bar",
    "looker_scatter",
    "looker_line",
    "looker_area",
    "looker_pie",
    "looker_donut_multiples",
    "looker_google_map",
    "looker_grid",
]

InlineQueryRunner = Callable[[dict[str, Any]], Awaitable[Any]]


class SemanticModel(TypedDict):
    """Fields of one explore, keyed in the catalog by "model:view"."""

    dimensions: list[dict[str, Any]]
    measures: list[dict[str, Any]]


class ExploreNotFoundError(ValueError):
    """The requested explore is not among the user's semantic models."""


def format_field_row(field: dict[str, Any]) -> str:
    tags = ", ".join(field.get("tags") or [])
    return (
        f"| {field.get('name', '')} | {field.get('field_type', '')} | {field.get('type', '')} "
        f"| {field.get('label', '')} | {field.get('description', '')} | {tags} |"
    )


def format_explore_fields(explore: SemanticModel) -> str:
    """Markdown table of an explore's dimensions and measures."""
    rows = [format_field_row(f) for f in [*explore["dimensions"], *explore["measures"]]]
    return "\n".join(
        [
            "Here are the dimensions and measures that are defined in this data set:",
            "| Field Id | Field Type | LookML Type | Label | Description | Tags |",
            "|----------|------------|-------------|-------|-------------|------|",
            *rows,
        ]
    )


def resolve_explore_key(
    model_name: str,
    explore_id: str,
    semantic_models: dict[str, SemanticModel],
) -> tuple[str, str, str]:
    """Normalize a model/explore pair into (explore_key, model, view).

    The model sometimes returns the full "model:view" key in either field.

    Raises:
        ExploreNotFoundError: If the explore is not in semantic_models.
    """
    model, view = model_name, explore_id
    if ":" in model:
        model, view = model.split(":", 1)
    elif ":" in view:
        model, view = view.split(":", 1)

    explore_key = f"{model}:{view}"
    if explore_key not in semantic_models:
        raise ExploreNotFoundError(f"Explore {explore_key} not found")
    return explore_key, model, view


def build_explore_messages(semantic_models: dict[str, SemanticModel]) -> list[Message]:
    """Context messages listing each explore's dimensions and measures."""
    messages = []
    for explore_key, explore in semantic_models.items():
        dimensions = ", ".join(d["name"] for d in explore["dimensions"])
        measures = ", ".join(m["name"] for m in explore["measures"])
        messages.append(
            Message.user_text(
                f"The explore {explore_key} has the following dimensions: {dimensions}",
                f"The explore {explore_key} has the following measures: {measures}",
            )
        )
    return messages


FIND_BEST_EXPLORE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "modelName": {"type": "STRING", "description": "Model"},
        "exploreId": {"type": "STRING", "description": "Explore Name"},
        "reason": {"type": "STRING", "description": "Reason for choosing the explore"},
    },
    "required": ["modelName", "exploreId", "reason"],
}


def explore_query_schema(model: str, view: str) -> dict[str, Any]:
    return {
        "type": "OBJECT",
        "properties": {
            "model": {"type": "STRING", "default": model, "description": "Model"},
            "view": {"type": "STRING", "default": view, "description": "Explore Name"},
            "fields": {"type": "ARRAY", "items": {"type": "STRING"}},
            "filters": {
                "type": "ARRAY",
                "description": "Filters to apply, one entry per dimension or measure id.",
                "items": {
                    "type": "OBJECT",
                    "properties": {
                        "field": {"type": "STRING", "description": "Dimension or measure id"},
                        "value": {"type": "STRING", "description": "Looker filter expression"},
                    },
                },
            },
            "pivots": {
                "type": "ARRAY",
                "items": {"type": "STRING"},
                "description": "Fields to pivot by. They must also be in the fields array.",
            },
            "sorts": {"type": "ARRAY", "items": {"type": "STRING"}},
            "limit": {"type": "INTEGER", "default": DEFAULT_QUERY_LIMIT},
            "vis_config": {
                "type": "OBJECT",
                "properties": {
                    "type": {
                        "type": "STRING",
                        "description": "The type of visualization to use",
                        "enum": VISUALIZATION_TYPES,
                    },
                },
                "required": ["type"],
            },
        },
        "required": ["model", "view", "fields", "filters", "limit", "vis_config"],
    }


def _first_object(parts: list) -> dict[str, Any]:
    for part in parts:
        if part.object is not None:
            return part.object
    raise ValueError("Structured response missing from content generation result")


class ExploreToolkit:
    """Explore tools bound to one user's semantic models."""

    def __init__(
        self,
        semantic_models: dict[str, SemanticModel],
        client: "ContentGenerationClient",
        run_inline_query: InlineQueryRunner | None = None,
    ):
        self.semantic_models = semantic_models
        self.client = client
        self.run_inline_query = run_inline_query

    async def find_best_explore(self, params: dict[str, Any]) -> dict[str, Any]:
        user_request = params["user_request"]
        catalog = "Below is a list of explores that you can use to answer the user request.\n\n"
        catalog += "\n".join(
            f"# Explore: {key}\n\n{format_explore_fields(explore)}"
            for key, explore in self.semantic_models.items()
        )

        parts = await self.client.generate(
            [
                Message.user_text(catalog),
                Message.user_text(f"Here is the user request: {user_request}"),
            ],
            response_schema=FIND_BEST_EXPLORE_SCHEMA,
            system_instruction=FIND_BEST_EXPLORE_INSTRUCTION,
        )
        return _first_object(parts)

    async def get_explore_query(self, params: dict[str, Any]) -> dict[str, Any]:
        explore_key, model, view = resolve_explore_key(
            params["model_name"], params["explore_id"], self.semantic_models
        )
        logger.info(f"Generating explore query for {explore_key}")

        parts = await self.client.generate(
            [
                Message.user_text(format_explore_fields(self.semantic_models[explore_key])),
                Message.user_text(
                    f"Generate the query body that answers the request:\n\n{params['user_request']}"
                ),
            ],
            response_schema=explore_query_schema(model, view),
            system_instruction=EXPLORE_QUERY_INSTRUCTION,
        )

        query = dict(_first_object(parts))
        query["model"] = model
        query["view"] = view
        query["filters"] = {
            item["field"]: item["value"]
            for item in query.get("filters") or []
            if item.get("field")
        }
        query.setdefault("limit", DEFAULT_QUERY_LIMIT)
        return query

    async def get_explore_data(self, params: dict[str, Any]) -> dict[str, Any]:
        query = await self.get_explore_query(params)
        if self.run_inline_query is None:
            return {"queryDefinition": query}
        return {"queryDefinition": query, "rawData": await self.run_inline_query(query)}

    def tools(self) -> list[Tool]:
        request_param = {"type": "string", "description": "The user request to answer"}
        explore_params = {
            "type": "object",
            "properties": {
                "user_request": request_param,
                "model_name": {
                    "type": "string",
                    "description": 'The name of the model to use, e.g. "sales_orders"',
                },
                "explore_id": {
                    "type": "string",
                    "description": 'The id of the explore to use, e.g. "orders"',
                },
            },
            "required": ["user_request", "model_name", "explore_id"],
        }
        return [
            Tool(
                name="find_best_explore",
                description=(
                    "Find the best explore to answer the user question. "
                    "Returns the explore id and model name."
                ),
                parameters={
                    "type": "object",
                    "properties": {"user_request": request_param},
                    "required": ["user_request"],
                },
                execute=self.find_best_explore,
                show_in_thread=True,
            ),
            Tool(
                name="get_explore_query",
                description=(
                    "Generate the run_inline_query request body for a Looker explore that "
                    "answers the user question. This also embeds the explore in the UI, so "
                    "you do not need to show the request body; summarize what was done."
                ),
                parameters=explore_params,
                execute=self.get_explore_query,
                show_in_thread=True,
            ),
            Tool(
                name="get_explore_data",
                description="Get the data from the explore that answers the user question.",
                parameters=explore_params,
                execute=self.get_explore_data,
                show_in_thread=True,
            ),
        ]


def build_explore_agent(
    semantic_models: dict[str, SemanticModel],
    client: "ContentGenerationClient",
    *,
    run_inline_query: InlineQueryRunner | None = None,
) -> Agent:
    """Create the explore agent for one user's semantic models."""
    toolkit = ExploreToolkit(semantic_models, client, run_inline_query)
    return Agent(
        name=EXPLORE_AGENT_NAME,
        description=(
            "Knows everything about the Looker explores the user is able to see, "
            "including their dimensions and measures."
        ),
        system_prompt=static_prompt(EXPLORE_PROMPT),
        model_settings=ModelSettings(model="gemini-2.0-flash"),
        handoff_description=EXPLORE_HANDOFF_DESCRIPTION,
        inject_messages=build_explore_messages(semantic_models),
        tools=toolkit.tools(),
    )
