"""Shared test fixtures."""

from collections.abc import Callable, Sequence
from typing import Any

import logfire
import pytest

from bi_assistant.agents import Message, ModelResponsePart

logfire.configure(send_to_logfire=False, console=False)


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


class ScriptedClient:
    """Content client that replays scripted responses and records requests.

    Each scripted response is a list of parts, an exception to raise, or a
    callable receiving the request dict and returning one of those.
    """

    def __init__(self, responses: Sequence[Any]):
        self.responses = list(responses)
        self.requests: list[dict[str, Any]] = []

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
        request = {
            "contents": list(contents),
            "parameters": parameters,
            "response_schema": response_schema,
            "tools": tools,
            "model_name": model_name,
            "system_instruction": system_instruction,
        }
        self.requests.append(request)
        if not self.responses:
            raise AssertionError("Unexpected content generation call")

        response = self.responses.pop(0)
        if callable(response):
            response = response(request)
        if isinstance(response, Exception):
            raise response
        return response

    def tool_names(self, index: int) -> list[str]:
        return [tool["name"] for tool in self.requests[index]["tools"] or []]


@pytest.fixture
def scripted_client() -> Callable[..., ScriptedClient]:
    """Factory: scripted_client([parts], [parts], ...)."""

    def factory(*responses: Any) -> ScriptedClient:
        return ScriptedClient(responses)

    return factory
