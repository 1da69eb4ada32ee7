"""Content generation clients.

The runner talks to the text-generation service through the
ContentGenerationClient protocol. Two implementations are provided:

- VertexContentClient: the Vertex AI cloud function of the host product,
  called over HTTP with an HMAC-signed body.
- LangChainContentClient: an OpenAI chat model through langchain.
"""

import hashlib
import hmac
import json
import logging
from collections import defaultdict, deque
from collections.abc import Sequence
from functools import lru_cache
from typing import Any, Protocol
from uuid import uuid4

import httpx
from langchain_core.messages import (
    AIMessage,
    BaseMessage,
    HumanMessage,
    SystemMessage,
    ToolMessage,
)
from langchain_openai import ChatOpenAI

from bi_assistant.agents.primitives import (
    FunctionCall,
    FunctionCallPart,
    FunctionResponsePart,
    Message,
    ModelResponsePart,
    TextPart,
)
from bi_assistant.core.config import settings

logger = logging.getLogger(__name__)


class ContentGenerationClient(Protocol):
    """Opaque async call to the text-generation service."""

    async def generate(
        self,
        contents: Sequence[Message],
        *,
        parameters: dict[str, Any] | None = None,
        response_schema: dict[str, Any] | None = None,
        tools: list[dict[str, Any]] | None = None,
        model_name: str | None = None,
        system_instruction: str | None = None,
    ) -> list[ModelResponsePart]: ...


# =============================================================================
# Wire helpers
# =============================================================================


def serialize_message(message: Message) -> dict[str, Any]:
    """Render a message in the role/parts shape used by the cloud function."""
    parts: list[Any] = []
    for part in message.parts:
        if isinstance(part, TextPart):
            parts.append(part.text)
        elif isinstance(part, FunctionCallPart):
            parts.append({"functionCall": {"id": part.id, "name": part.name, "args": part.args}})
        elif isinstance(part, FunctionResponsePart):
            parts.append(
                {"functionResponse": {"id": part.id, "name": part.name, "response": part.response}}
            )
    return {"role": message.role, "parts": parts}


def parse_response_parts(payload: Any) -> list[ModelResponsePart]:
    """Parse a generate_content response into response parts.

    Accepts a bare list of parts, a candidates envelope or a plain
    {"text": ...} object.
    """
    if isinstance(payload, dict):
        candidates = payload.get("candidates")
        if candidates:
            content = candidates[0].get("content") or {}
            if isinstance(content, str):
                return [ModelResponsePart(text=content)]
            if "parts" in content:
                return parse_response_parts(content["parts"])
            if "text" in content:
                return [ModelResponsePart(text=content["text"])]
        if "text" in payload:
            return [ModelResponsePart(text=payload["text"])]
        raise ValueError(f"Unrecognized response format: {str(payload)[:200]}")

    parts: list[ModelResponsePart] = []
    for raw in payload or []:
        if isinstance(raw, str):
            parts.append(ModelResponsePart(text=raw))
        elif raw.get("functionCall"):
            call = raw["functionCall"]
            parts.append(
                ModelResponsePart(
                    function_call=FunctionCall(
                        name=call["name"],
                        args=call.get("args") or {},
                        id=call.get("id"),
                    )
                )
            )
        elif raw.get("object") is not None:
            parts.append(ModelResponsePart(object=raw["object"]))
        elif raw.get("text") is not None:
            parts.append(ModelResponsePart(text=raw["text"]))
    return parts


def to_json_schema(schema: Any) -> Any:
    """Lower-case Gemini-style type names (OBJECT, STRING, ...) recursively."""
    if isinstance(schema, list):
        return [to_json_schema(item) for item in schema]
    if not isinstance(schema, dict):
        return schema
    converted = {}
    for key, value in schema.items():
        if key == "type" and isinstance(value, str):
            converted[key] = value.lower()
        else:
            converted[key] = to_json_schema(value)
    return converted


# =============================================================================
# Vertex AI cloud function
# =============================================================================

DEFAULT_VERTEX_PARAMETERS: dict[str, Any] = {
    "temperature": 2,
    "max_output_tokens": 8192,
    "top_p": 0.95,
}


class VertexContentClient:
    """Client for the generate_content cloud function.

    Every request body is signed with HMAC-SHA256 keyed by the shared
    auth token and the hex digest sent in the X-Signature header.
    """

    def __init__(
        self,
        *,
        url: str | None = None,
        auth_token: str | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._url = url or settings.GENERATE_CONTENT_URL
        self._auth_token = auth_token if auth_token is not None else settings.VERTEX_CF_AUTH_TOKEN
        self._http_client = http_client

    def sign(self, body: bytes) -> str:
        return hmac.new(self._auth_token.encode(), body, hashlib.sha256).hexdigest()

    def build_body(
        self,
        contents: Sequence[Message],
        *,
        parameters: dict[str, Any] | None,
        response_schema: dict[str, Any] | None,
        tools: list[dict[str, Any]] | None,
        model_name: str | None,
        system_instruction: str | None,
    ) -> dict[str, Any]:
        merged_parameters = {
            **DEFAULT_VERTEX_PARAMETERS,
            **{k: v for k, v in (parameters or {}).items() if v is not None},
        }
        return {
            "model_name": model_name or settings.AI_MODEL,
            "contents": "",
            "parameters": merged_parameters,
            "response_schema": response_schema,
            "history": [serialize_message(message) for message in contents],
            "tools": tools or [],
            "system_instruction": system_instruction or "",
        }

    async def generate(
        self,
        contents: Sequence[Message],
        *,
        parameters: dict[str, Any] | None = None,
        response_schema: dict[str, Any] | None = None,
        tools: list[dict[str, Any]] | None = None,
        model_name: str | None = None,
        system_instruction: str | None = None,
    ) -> list[ModelResponsePart]:
        body = self.build_body(
            contents,
            parameters=parameters,
            response_schema=response_schema,
            tools=tools,
            model_name=model_name,
            system_instruction=system_instruction,
        )
        raw_body = json.dumps(body, default=str).encode()
        headers = {
            "Content-Type": "application/json",
            "X-Signature": self.sign(raw_body),
        }

        logger.debug(
            f"Calling generate_content with {len(contents)} message(s)",
            extra={"model_name": body["model_name"], "tool_count": len(body["tools"])},
        )

        if self._http_client is not None:
            response = await self._http_client.post(self._url, content=raw_body, headers=headers)
        else:
            async with httpx.AsyncClient(timeout=settings.GENERATION_TIMEOUT_SECONDS) as client:
                response = await client.post(self._url, content=raw_body, headers=headers)

        response.raise_for_status()
        return parse_response_parts(response.json())


# =============================================================================
# LangChain / OpenAI
# =============================================================================


@lru_cache(maxsize=8)
def create_chat_model(
    model_name: str,
    temperature: float | None,
    max_tokens: int | None,
    top_p: float | None,
) -> ChatOpenAI:
    """Create and cache a chat model per configuration."""
    return ChatOpenAI(
        model=model_name,
        temperature=temperature,
        max_tokens=max_tokens,
        top_p=top_p,
        api_key=settings.OPENAI_API_KEY,
    )


def to_langchain_messages(
    contents: Sequence[Message],
    system_instruction: str | None = None,
) -> list[BaseMessage]:
    """Convert conversation messages to LangChain messages.

    Function calls without an id get a generated one; the matching function
    response (by name, in order) reuses it so the pairs stay linked.
    """
    messages: list[BaseMessage] = []
    if system_instruction:
        messages.append(SystemMessage(content=system_instruction))

    pending_ids: dict[str, deque[str]] = defaultdict(deque)

    for message in contents:
        texts = [part.text for part in message.parts if isinstance(part, TextPart)]

        if message.role == "model":
            tool_calls = []
            for part in message.parts:
                if isinstance(part, FunctionCallPart):
                    call_id = part.id or f"call_{uuid4().hex[:12]}"
                    pending_ids[part.name].append(call_id)
                    tool_calls.append({"name": part.name, "args": part.args, "id": call_id})
            messages.append(AIMessage(content="\n".join(texts), tool_calls=tool_calls))
            continue

        for part in message.parts:
            if isinstance(part, FunctionResponsePart):
                queue = pending_ids[part.name]
                call_id = part.id or (queue.popleft() if queue else f"call_{uuid4().hex[:12]}")
                if part.id and part.id in queue:
                    queue.remove(part.id)
                messages.append(
                    ToolMessage(
                        content=json.dumps(part.response.get("content", part.response), default=str),
                        tool_call_id=call_id,
                        name=part.name,
                    )
                )
        if texts:
            messages.append(HumanMessage(content="\n".join(texts)))

    return messages


def _message_text(message: AIMessage) -> str:
    if isinstance(message.content, str):
        return message.content
    text = ""
    for block in message.content:
        if isinstance(block, dict) and block.get("type") == "text":
            text += block.get("text", "")
        elif isinstance(block, str):
            text += block
    return text


class LangChainContentClient:
    """Content generation through a LangChain OpenAI chat model.

    Args:
        model_name: Model used for every request, replacing the model named
            by the agent (agents are configured with Gemini model names).
    """

    def __init__(self, model_name: str | None = None):
        self._model_name = model_name or settings.OPENAI_MODEL

    async def generate(
        self,
        contents: Sequence[Message],
        *,
        parameters: dict[str, Any] | None = None,
        response_schema: dict[str, Any] | None = None,
        tools: list[dict[str, Any]] | None = None,
        model_name: str | None = None,
        system_instruction: str | None = None,
    ) -> list[ModelResponsePart]:
        parameters = parameters or {}
        model = create_chat_model(
            self._model_name,
            parameters.get("temperature"),
            parameters.get("max_output_tokens"),
            parameters.get("top_p"),
        )
        messages = to_langchain_messages(contents, system_instruction)

        if response_schema:
            schema = {"title": "structured_output", **to_json_schema(response_schema)}
            structured = model.with_structured_output(schema, method="function_calling")
            result = await structured.ainvoke(messages)
            return [ModelResponsePart(object=result)]

        if tools:
            model = model.bind_tools(
                [{"type": "function", "function": to_json_schema(tool)} for tool in tools]
            )

        response = await model.ainvoke(messages)

        parts: list[ModelResponsePart] = []
        text = _message_text(response)
        if text:
            parts.append(ModelResponsePart(text=text))
        for call in response.tool_calls or []:
            parts.append(
                ModelResponsePart(
                    function_call=FunctionCall(name=call["name"], args=call["args"], id=call["id"])
                )
            )

        logger.info(
            f"Model responded - Tool calls: {len(response.tool_calls or [])}",
            extra={"model_name": self._model_name},
        )
        return parts


def get_content_client() -> ContentGenerationClient:
    """Create the content generation client selected by LLM_PROVIDER."""
    if settings.LLM_PROVIDER == "openai":
        return LangChainContentClient()
    return VertexContentClient()
