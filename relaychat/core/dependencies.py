from typing import AsyncIterator, Optional, Union

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ..database.connection import Database
from ..repositories.conversation_repository import ConversationRepository
from ..repositories.message_repository import MessageRepository
from ..services.chat_relay_service import ChatRelayService, FixtureChatService
from ..services.conversation_service import ConversationService
from .errors import BadRequestError

ChatService = Union[ChatRelayService, FixtureChatService]

# Clients built once by create_app() and kept on app.state
def get_database(request: Request) -> Database:
    return request.app.state.database

def get_chat_service(request: Request) -> Optional[ChatService]:
    return request.app.state.chat_service

async def get_db(database: Database = Depends(get_database)) -> AsyncIterator[AsyncSession]:
    await database.ensure_ready()
    async with database.session() as session:
        yield session

# Path parameters
def get_conversation_id(conversation_id: str) -> int:
    # Plain ASCII digits only: rejects signs, decimals and whitespace.
    if not (conversation_id.isascii() and conversation_id.isdigit()) or int(conversation_id) <= 0:
        raise BadRequestError("Conversation id must be a positive integer")
    return int(conversation_id)

# Repositories
def get_conversation_repository(db: AsyncSession = Depends(get_db)) -> ConversationRepository:
    return ConversationRepository(db)

def get_message_repository(db: AsyncSession = Depends(get_db)) -> MessageRepository:
    return MessageRepository(db)

# Services
def get_conversation_service(
    conversation_repo: ConversationRepository = Depends(get_conversation_repository),
    message_repo: MessageRepository = Depends(get_message_repository)
) -> ConversationService:
    return ConversationService(conversation_repo, message_repo)
