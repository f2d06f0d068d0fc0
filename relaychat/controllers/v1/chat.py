from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from loguru import logger
from typing import Optional

from ...core.dependencies import ChatService, get_chat_service
from ...core.errors import APIError, ServiceUnavailableError
from ...utils.stream import DATA_STREAM_HEADERS, MEDIA_TYPE
from ...views.chat import ChatRequest


router = APIRouter()

@router.post("")
async def chat(
    body: ChatRequest,
    chat_service: Optional[ChatService] = Depends(get_chat_service),
):
    """
    Relays the message history to the model provider and streams the reply
    back as data stream records.
    """
    if chat_service is None:
        logger.error("Chat request rejected: OPENAI_API_KEY is not set")
        raise ServiceUnavailableError("The model provider API key is not configured.")

    try:
        stream = await chat_service.open_stream(body.to_provider_messages())
    except Exception as e:
        logger.exception("Failed to open chat stream")
        raise APIError("Chat request failed.", details=str(e)) from e

    return StreamingResponse(stream, media_type=MEDIA_TYPE, headers=DATA_STREAM_HEADERS)
