from typing import Any, AsyncGenerator, Dict, List, Optional

import httpx

from ..utils.stream import StreamPart, parse_part


class APIClientError(Exception):
    """A failed call to the relaychat API. ``status_code`` is None for transport failures."""

    def __init__(self, status_code: Optional[int], message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class ChatAPIClient:
    """Async client for the conversation and chat relay endpoints."""

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 60.0,
    ):
        self.client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def __aenter__(self) -> "ChatAPIClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.client.aclose()

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.is_success:
            return
        try:
            payload = response.json()
        except ValueError:
            payload = None
        message = payload.get("error") if isinstance(payload, dict) else response.text
        raise APIClientError(response.status_code, message or response.reason_phrase)

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            response = await self.client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise APIClientError(None, f"Request to {url} failed: {e}") from e
        self._raise_for_status(response)
        return response

    async def list_conversations(self) -> List[Dict[str, Any]]:
        response = await self._request("GET", "/api/conversations")
        return response.json()

    async def create_conversation(self) -> Dict[str, Any]:
        response = await self._request("POST", "/api/conversations")
        return response.json()

    async def delete_conversation(self, conversation_id: str) -> None:
        await self._request("DELETE", f"/api/conversations/{conversation_id}")

    async def list_messages(self, conversation_id: str) -> List[Dict[str, Any]]:
        response = await self._request("GET", f"/api/conversations/{conversation_id}/messages")
        return response.json()

    async def append_message(self, conversation_id: str, role: str, content: str) -> Dict[str, Any]:
        response = await self._request(
            "POST",
            f"/api/conversations/{conversation_id}/messages",
            json={"role": role, "content": content},
        )
        return response.json()

    async def stream_chat(self, messages: List[Dict[str, str]]) -> AsyncGenerator[StreamPart, None]:
        """
        Posts the history to the relay and yields parsed records as each line
        arrives. Records with unknown codes are skipped.
        """
        try:
            async with self.client.stream("POST", "/api/chat", json={"messages": messages}) as response:
                if not response.is_success:
                    await response.aread()
                    self._raise_for_status(response)
                async for line in response.aiter_lines():
                    if not line.strip():
                        continue
                    part = parse_part(line)
                    if part is not None:
                        yield part
        except httpx.HTTPError as e:
            raise APIClientError(None, f"Chat stream failed: {e}") from e
