"""Encoding and decoding of the AI SDK "data stream" wire format.

Every record is one line ``<code>:<json>\\n``. The relay emits four codes:

* ``f`` start of an assistant message, ``{"messageId": ...}``
* ``0`` a text fragment, a JSON string
* ``3`` a stream-time error, a JSON string
* ``d`` the terminal record, ``{"finishReason": ..., "usage": {...}}``
"""
import asyncio
import json
import uuid
from dataclasses import dataclass, field
from typing import Any, AsyncGenerator, Dict, Optional, Union

from loguru import logger

MEDIA_TYPE = "text/plain; charset=utf-8"
DATA_STREAM_HEADERS = {"X-Vercel-AI-Data-Stream": "v1"}

START_CODE = "f"
TEXT_CODE = "0"
ERROR_CODE = "3"
FINISH_CODE = "d"

FINISH_REASONS = {
    "stop": "stop",
    "length": "length",
    "content_filter": "content-filter",
    "tool_calls": "tool-calls",
    "function_call": "tool-calls",
    "error": "error",
}


@dataclass(frozen=True)
class StartPart:
    message_id: str


@dataclass(frozen=True)
class TextPart:
    text: str


@dataclass(frozen=True)
class ErrorPart:
    message: str


@dataclass(frozen=True)
class FinishPart:
    finish_reason: str
    usage: Dict[str, int] = field(default_factory=dict)


StreamPart = Union[StartPart, TextPart, ErrorPart, FinishPart]


def format_part(code: str, value: Any) -> str:
    return f"{code}:{json.dumps(value, ensure_ascii=False)}\n"


def start_part(message_id: str) -> str:
    return format_part(START_CODE, {"messageId": message_id})


def text_part(fragment: str) -> str:
    return format_part(TEXT_CODE, fragment)


def error_part(message: str) -> str:
    return format_part(ERROR_CODE, message)


def finish_part(finish_reason: str, prompt_tokens: int = 0, completion_tokens: int = 0) -> str:
    return format_part(
        FINISH_CODE,
        {
            "finishReason": finish_reason,
            "usage": {"promptTokens": prompt_tokens, "completionTokens": completion_tokens},
        },
    )


def map_finish_reason(reason: Optional[str]) -> str:
    if reason is None:
        return "unknown"
    return FINISH_REASONS.get(reason, "unknown")


def parse_part(line: str) -> Optional[StreamPart]:
    """Decodes one record. Unknown codes yield None; malformed lines raise ValueError."""
    code, sep, payload = line.strip().partition(":")
    if not sep:
        raise ValueError(f"Malformed data stream record: {line[:100]!r}")
    try:
        value = json.loads(payload)
    except json.JSONDecodeError as e:
        raise ValueError(f"Malformed data stream payload: {line[:100]!r}") from e

    if code == TEXT_CODE:
        return TextPart(text=value)
    if code == ERROR_CODE:
        return ErrorPart(message=value)
    if code == START_CODE:
        return StartPart(message_id=value.get("messageId", ""))
    if code == FINISH_CODE:
        return FinishPart(finish_reason=value.get("finishReason", "unknown"), usage=value.get("usage") or {})
    return None


def _fallback_message_id() -> str:
    return f"msg-{uuid.uuid4().hex}"


async def stream_data_from_openai(
    stream,
    max_duration: Optional[float] = None,
) -> AsyncGenerator[str, None]:
    """
    Re-emits an OpenAI chat completion stream as data stream records. Each
    fragment is yielded as soon as it arrives; the finish record is always last,
    including after a provider error or an exceeded time budget.
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + max_duration if max_duration else None
    finish_reason: Optional[str] = None
    prompt_tokens = completion_tokens = 0
    started = False

    try:
        async for chunk in stream:
            # The first chunk carries the completion ID.
            if not started:
                yield start_part(chunk.id)
                started = True

            if chunk.usage:
                prompt_tokens = chunk.usage.prompt_tokens or 0
                completion_tokens = chunk.usage.completion_tokens or 0

            if chunk.choices:
                choice = chunk.choices[0]
                if choice.delta and choice.delta.content:
                    yield text_part(choice.delta.content)
                if choice.finish_reason:
                    finish_reason = choice.finish_reason

            if deadline is not None and loop.time() > deadline:
                logger.warning(f"Chat stream exceeded its {max_duration}s budget, ending it")
                yield error_part(f"Response exceeded the {max_duration:g} second limit.")
                finish_reason = "error"
                break
    except Exception as e:
        logger.error(f"Chat stream failed: {e}")
        if not started:
            yield start_part(_fallback_message_id())
            started = True
        yield error_part(str(e))
        finish_reason = "error"
    finally:
        await stream.close()

    if not started:
        yield start_part(_fallback_message_id())
    yield finish_part(map_finish_reason(finish_reason), prompt_tokens, completion_tokens)
