from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import JSONResponse
from typing import List
from loguru import logger

from ...core.errors import (
    ConversationNotFoundError,
    NotFoundError,
    StorageError,
    StorageNotConfiguredError,
    StorageUnavailableError,
)
from ...core.dependencies import (
    get_conversation_id,
    get_conversation_service,
    get_database,
)
from ...database.connection import Database
from ...repositories.conversation_repository import ConversationRepository
from ...repositories.message_repository import MessageRepository
from ...services.conversation_service import ConversationService
from ...views.conversation import ConversationResponse, StorageStatusResponse
from ...views.message import MessageCreate, MessageCreatedResponse, MessageResponse


router = APIRouter()

@router.get("", response_model=List[ConversationResponse])
async def list_conversations(database: Database = Depends(get_database)):
    # The sidebar must never block on storage: every failure degrades to an empty list.
    if not database.is_configured:
        return []
    try:
        await database.ensure_ready()
        async with database.session() as session:
            service = ConversationService(ConversationRepository(session), MessageRepository(session))
            return await service.list_conversations()
    except Exception:
        logger.exception("Failed to list conversations")
        return []

@router.post("", response_model=ConversationResponse, status_code=status.HTTP_201_CREATED)
async def create_conversation(
    service: ConversationService = Depends(get_conversation_service)
):
    try:
        return await service.create_conversation()
    except Exception as e:
        logger.exception("Failed to create conversation")
        raise StorageError("Failed to create conversation") from e

@router.get("/check", response_model=StorageStatusResponse)
async def check_storage(database: Database = Depends(get_database)):
    if not database.is_configured:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"ok": False, "message": StorageNotConfiguredError.default_message},
        )
    try:
        await database.ensure_ready()
    except StorageUnavailableError as e:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"ok": False, "message": e.detail},
        )
    return StorageStatusResponse(ok=True, message="Storage is configured.")

@router.delete("/{conversation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_conversation(
    conversation_id: int = Depends(get_conversation_id),
    service: ConversationService = Depends(get_conversation_service),
):
    try:
        await service.delete_conversation(conversation_id)
    except ConversationNotFoundError:
        raise NotFoundError("Conversation not found")
    except Exception as e:
        logger.exception(f"Failed to delete conversation {conversation_id}")
        raise StorageError("Failed to delete conversation") from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)

@router.get("/{conversation_id}/messages", response_model=List[MessageResponse])
async def list_messages(
    conversation_id: int = Depends(get_conversation_id),
    service: ConversationService = Depends(get_conversation_service)
):
    try:
        messages = await service.list_messages(conversation_id)
    except Exception as e:
        logger.exception(f"Failed to load messages for conversation {conversation_id}")
        raise StorageError("Failed to load messages") from e
    return [MessageResponse.from_model(m) for m in messages]

@router.post(
    "/{conversation_id}/messages",
    response_model=MessageCreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
async def append_message(
    message: MessageCreate,
    conversation_id: int = Depends(get_conversation_id),
    service: ConversationService = Depends(get_conversation_service),
):
    try:
        saved = await service.append_message(
            conversation_id=conversation_id, role=message.role, content=message.content
        )
    except ConversationNotFoundError:
        raise NotFoundError("Conversation not found")
    except Exception as e:
        logger.exception(f"Failed to save message for conversation {conversation_id}")
        raise StorageError("Failed to save message") from e
    return MessageCreatedResponse.from_model(saved)
