"""Tests for the content generation clients."""

import hashlib
import hmac
import json
from unittest.mock import patch

import httpx
import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage, ToolMessage

from bi_assistant.agents import (
    Agent,
    FunctionCall,
    FunctionCallPart,
    FunctionResponsePart,
    Message,
    ModelGenerationError,
    ModelResponsePart,
    Runner,
)
from bi_assistant.services.llm import (
    LangChainContentClient,
    VertexContentClient,
    get_content_client,
    parse_response_parts,
    serialize_message,
    to_json_schema,
    to_langchain_messages,
)

ENDPOINT = "https://functions.example.com/generate_content"


def vertex_client(handler, auth_token: str = "secret") -> VertexContentClient:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return VertexContentClient(url=ENDPOINT, auth_token=auth_token, http_client=http_client)


class TestParseResponseParts:
    def test_list_of_parts(self):
        parts = parse_response_parts(
            [
                "Let me check.",
                {"functionCall": {"name": "get_current_time", "args": None, "id": "c1"}},
                {"object": {"modelName": "sales"}},
            ]
        )

        assert parts == [
            ModelResponsePart(text="Let me check."),
            ModelResponsePart(function_call=FunctionCall(name="get_current_time", id="c1")),
            ModelResponsePart(object={"modelName": "sales"}),
        ]

    def test_candidates_envelope(self):
        payload = {"candidates": [{"content": {"parts": [{"text": "Hello"}]}}]}

        assert parse_response_parts(payload) == [ModelResponsePart(text="Hello")]

    def test_plain_text_object(self):
        assert parse_response_parts({"text": "Hi"}) == [ModelResponsePart(text="Hi")]

    def test_unrecognized_payload(self):
        with pytest.raises(ValueError, match="Unrecognized response format"):
            parse_response_parts({"status": "weird"})


def test_serialize_message_parts():
    message = Message(
        role="model",
        parts=[FunctionCallPart(name="lookup", args={"q": "x"}, id="c1")],
    )
    response = Message(
        role="user",
        parts=[FunctionResponsePart(name="lookup", response={"content": 1}, id="c1")],
    )

    assert serialize_message(Message.user_text("hi")) == {"role": "user", "parts": ["hi"]}
    assert serialize_message(message)["parts"] == [
        {"functionCall": {"id": "c1", "name": "lookup", "args": {"q": "x"}}}
    ]
    assert serialize_message(response)["parts"] == [
        {"functionResponse": {"id": "c1", "name": "lookup", "response": {"content": 1}}}
    ]


def test_to_json_schema_lowercases_types():
    schema = {
        "type": "OBJECT",
        "properties": {"fields": {"type": "ARRAY", "items": {"type": "STRING"}}},
    }

    assert to_json_schema(schema) == {
        "type": "object",
        "properties": {"fields": {"type": "array", "items": {"type": "string"}}},
    }


class TestVertexContentClient:
    @pytest.mark.anyio
    async def test_request_is_signed_and_parsed(self):
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["body"] = request.content
            captured["signature"] = request.headers["X-Signature"]
            return httpx.Response(200, json=["It is noon."])

        client = vertex_client(handler)

        parts = await client.generate(
            [Message.user_text("time?")],
            parameters={"temperature": 0, "top_p": None},
            tools=[{"name": "get_current_time", "description": "", "parameters": {}}],
            model_name="gemini-2.0-flash",
            system_instruction="Be brief.",
        )

        assert parts == [ModelResponsePart(text="It is noon.")]
        expected = hmac.new(b"secret", captured["body"], hashlib.sha256).hexdigest()
        assert captured["signature"] == expected

        body = json.loads(captured["body"])
        assert body["model_name"] == "gemini-2.0-flash"
        assert body["contents"] == ""
        assert body["history"] == [{"role": "user", "parts": ["time?"]}]
        assert body["parameters"] == {"temperature": 0, "max_output_tokens": 8192, "top_p": 0.95}
        assert body["tools"][0]["name"] == "get_current_time"
        assert body["system_instruction"] == "Be brief."
        assert body["response_schema"] is None

    @pytest.mark.anyio
    async def test_http_error_fails_the_run(self):
        client = vertex_client(lambda request: httpx.Response(500, json={"error": "boom"}))

        with pytest.raises(ModelGenerationError):
            await Runner.run(Agent(name="Basic"), "hi", client=client)


class TestToLangChainMessages:
    def test_conversation_with_tool_round_trip(self):
        contents = [
            Message.user_text("time?"),
            Message(role="model", parts=[FunctionCallPart(name="get_current_time")]),
            Message(
                role="user",
                parts=[
                    FunctionResponsePart(
                        name="get_current_time",
                        response={"name": "get_current_time", "content": {"iso": "now"}},
                    )
                ],
            ),
        ]

        messages = to_langchain_messages(contents, "Be brief.")

        system, human, ai, tool_message = messages
        assert isinstance(system, SystemMessage)
        assert isinstance(human, HumanMessage)
        assert isinstance(ai, AIMessage)
        assert isinstance(tool_message, ToolMessage)
        assert tool_message.tool_call_id == ai.tool_calls[0]["id"]
        assert json.loads(tool_message.content) == {"iso": "now"}

    def test_explicit_ids_are_kept(self):
        contents = [
            Message(role="model", parts=[FunctionCallPart(name="lookup", id="call-7")]),
            Message(role="user", parts=[FunctionResponsePart(name="lookup", id="call-7")]),
        ]

        ai, tool_message = to_langchain_messages(contents)

        assert ai.tool_calls[0]["id"] == "call-7"
        assert tool_message.tool_call_id == "call-7"


def test_content_client_follows_provider_setting():
    with patch("bi_assistant.services.llm.settings.LLM_PROVIDER", "openai"):
        assert isinstance(get_content_client(), LangChainContentClient)
    with patch("bi_assistant.services.llm.settings.LLM_PROVIDER", "vertex"):
        assert isinstance(get_content_client(), VertexContentClient)
