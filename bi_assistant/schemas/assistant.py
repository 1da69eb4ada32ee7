"""Assistant API schemas.

Thread messages mirror the chat transcript kept by the embedding UI.
"""

import time
from typing import Annotated, Any, Literal
from uuid import uuid4

from pydantic import BaseModel, Field


def _now_ms() -> int:
    return int(time.time() * 1000)


class TextMessage(BaseModel):
    """Plain text written by the user or the model."""

    type: Literal["text"] = "text"
    uuid: str = Field(default_factory=lambda: str(uuid4()))
    message: str
    actor: Literal["user", "model"]
    created_at: int = Field(default_factory=_now_ms)


class FunctionCallMessage(BaseModel):
    """A tool call made by the model, shown in the thread."""

    type: Literal["functionCall"] = "functionCall"
    uuid: str = Field(default_factory=lambda: str(uuid4()))
    name: str
    args: dict[str, Any] = Field(default_factory=dict)
    created_at: int = Field(default_factory=_now_ms)


class FunctionResponseMessage(BaseModel):
    """The result of a tool call, linked to it by call_uuid."""

    type: Literal["functionResponse"] = "functionResponse"
    uuid: str = Field(default_factory=lambda: str(uuid4()))
    call_uuid: str
    name: str
    response: Any = None
    created_at: int = Field(default_factory=_now_ms)


ChatMessage = Annotated[
    TextMessage | FunctionCallMessage | FunctionResponseMessage,
    Field(discriminator="type"),
]


class FieldDefinition(BaseModel):
    """A dimension or measure of an explore."""

    name: str
    type: str | None = None
    field_type: str | None = None
    label: str | None = None
    description: str | None = None
    tags: list[str] = Field(default_factory=list)


class SemanticModelSchema(BaseModel):
    dimensions: list[FieldDefinition] = Field(default_factory=list)
    measures: list[FieldDefinition] = Field(default_factory=list)


class RunRequest(BaseModel):
    """A new user query on an existing thread."""

    query: str = Field(..., min_length=1, description="The user's question")
    thread_id: str | None = Field(default=None, description="Thread identifier")
    thread: list[ChatMessage] = Field(default_factory=list, description="Prior thread messages")
    user: dict[str, Any] | None = Field(default=None, description="Current user details")
    semantic_models: dict[str, SemanticModelSchema] = Field(
        default_factory=dict,
        description='Explores the user can see, keyed by "model:view"',
    )


class RunResponse(BaseModel):
    """Messages to append to the thread for this query."""

    messages: list[ChatMessage]
    final_output: str | None = None
    error: bool = False
    query: str
    guardrail: str | None = None
