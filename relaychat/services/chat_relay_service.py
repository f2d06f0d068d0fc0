import re
from typing import AsyncGenerator, AsyncIterator, Dict, List

from langfuse import Langfuse
from loguru import logger
from openai import AsyncOpenAI

from ..utils.stream import (
    ErrorPart,
    FinishPart,
    TextPart,
    finish_part,
    parse_part,
    start_part,
    stream_data_from_openai,
    text_part,
)

FIXTURE_TEXT = "This is a mock response from the development fixture (CHAT_MOCK=true)."
FIXTURE_MESSAGE_ID = "msg-fixture"


class ChatRelayService:
    """Relays a role-tagged history to OpenAI and re-emits the reply as data stream records."""

    def __init__(
        self,
        client: AsyncOpenAI,
        langfuse: Langfuse,
        model: str,
        system_prompt: str,
        max_duration: float,
    ):
        self.client = client
        self.langfuse = langfuse
        self.model = model
        self.system_prompt = system_prompt
        self.max_duration = max_duration

    async def open_stream(self, messages: List[Dict[str, str]]) -> AsyncIterator[str]:
        """
        Opens the provider stream. Failures to open it raise here, before any
        response headers are sent; failures after that become error records.
        """
        final_messages = [{"role": "system", "content": self.system_prompt}] + messages

        generation = self.langfuse.start_generation(
            name="chat-relay-completion",
            input=final_messages,
            model=self.model,
        )
        try:
            stream = await self.client.chat.completions.create(
                model=self.model,
                messages=final_messages,
                stream=True,
                stream_options={"include_usage": True},
            )
        except Exception as e:
            generation.update(level="ERROR", status_message=str(e))
            generation.end()
            raise

        return self._relay(stream, generation)

    async def _relay(self, stream, generation) -> AsyncGenerator[str, None]:
        final_content = ""
        try:
            async for record in stream_data_from_openai(stream, self.max_duration):
                yield record
                part = parse_part(record)
                if isinstance(part, TextPart):
                    final_content += part.text
                elif isinstance(part, ErrorPart):
                    generation.update(level="ERROR", status_message=part.message)
                elif isinstance(part, FinishPart):
                    generation.update(usage_details={
                        "input": part.usage.get("promptTokens", 0),
                        "output": part.usage.get("completionTokens", 0),
                    })
            generation.update(output=final_content)
        finally:
            generation.end()


class FixtureChatService:
    """Deterministic stand-in for ChatRelayService that never calls the provider."""

    async def open_stream(self, messages: List[Dict[str, str]]) -> AsyncIterator[str]:
        logger.debug(f"Serving fixture stream for {len(messages)} message(s)")
        return fixture_stream()


async def fixture_stream() -> AsyncGenerator[str, None]:
    yield start_part(FIXTURE_MESSAGE_ID)
    for fragment in re.findall(r"\S+\s*", FIXTURE_TEXT):
        yield text_part(fragment)
    yield finish_part("stop")
