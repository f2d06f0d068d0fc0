import json

import httpx
import pytest

from relaychat.client.api_client import APIClientError, ChatAPIClient
from relaychat.utils.stream import FinishPart, StartPart, TextPart


def make_client(handler) -> ChatAPIClient:
    transport = httpx.MockTransport(handler)
    return ChatAPIClient(client=httpx.AsyncClient(transport=transport, base_url="http://relay.test"))


async def test_append_message_posts_role_and_content():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(201, json={"id": "7", "conversation_id": "3", "role": "user", "content": "hi"})

    async with make_client(handler) as api:
        saved = await api.append_message("3", "user", "hi")

    assert seen == {"path": "/api/conversations/3/messages", "body": {"role": "user", "content": "hi"}}
    assert saved["id"] == "7"


async def test_error_payload_becomes_client_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"error": "Conversation not found"})

    async with make_client(handler) as api:
        with pytest.raises(APIClientError) as excinfo:
            await api.append_message("99", "user", "hi")

    assert excinfo.value.status_code == 404
    assert excinfo.value.message == "Conversation not found"


async def test_transport_failure_becomes_client_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with make_client(handler) as api:
        with pytest.raises(APIClientError) as excinfo:
            await api.list_conversations()

    assert excinfo.value.status_code is None


async def test_stream_chat_yields_parsed_parts():
    body = 'f:{"messageId":"m1"}\n0:"Hel"\n0:"lo"\ne:{"finishReason":"stop"}\n\nd:{"finishReason":"stop"}\n'

    def handler(request: httpx.Request) -> httpx.Response:
        assert json.loads(request.content) == {"messages": [{"role": "user", "content": "hello"}]}
        return httpx.Response(200, text=body, headers={"X-Vercel-AI-Data-Stream": "v1"})

    async with make_client(handler) as api:
        parts = [part async for part in api.stream_chat([{"role": "user", "content": "hello"}])]

    assert parts == [StartPart("m1"), TextPart("Hel"), TextPart("lo"), FinishPart("stop", {})]


async def test_stream_chat_raises_on_error_status():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, json={"error": "The model provider API key is not configured."})

    async with make_client(handler) as api:
        with pytest.raises(APIClientError) as excinfo:
            async for _ in api.stream_chat([{"role": "user", "content": "hello"}]):
                pass

    assert excinfo.value.status_code == 503
