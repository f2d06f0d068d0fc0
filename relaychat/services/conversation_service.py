from datetime import datetime
from typing import List, Optional

from loguru import logger
from sqlalchemy.exc import IntegrityError

from ..core.errors import ConversationNotFoundError
from ..models.conversation import Conversation, DEFAULT_TITLE
from ..models.message import Message, MessageRole
from ..repositories.conversation_repository import ConversationRepository
from ..repositories.message_repository import MessageRepository
from ..utils.recency import recency_bucket
from ..views.conversation import ConversationResponse


class ConversationService:
    def __init__(self,
                 conversation_repo: ConversationRepository,
                 message_repo: MessageRepository):
        self.conversation_repo = conversation_repo
        self.message_repo = message_repo

    @staticmethod
    def to_response(conversation: Conversation, now: Optional[datetime] = None) -> ConversationResponse:
        return ConversationResponse(
            id=str(conversation.id),
            title=conversation.title or "Untitled",
            date=recency_bucket(conversation.created_at, now),
        )

    async def list_conversations(self, now: Optional[datetime] = None) -> List[ConversationResponse]:
        conversations = await self.conversation_repo.list_recent()
        return [self.to_response(c, now) for c in conversations]

    async def create_conversation(self, title: str = DEFAULT_TITLE) -> ConversationResponse:
        conversation = await self.conversation_repo.create(title=title)
        logger.info(f"Created conversation {conversation.id}")
        return self.to_response(conversation)

    async def delete_conversation(self, conversation_id: int) -> None:
        if not await self.conversation_repo.delete(conversation_id):
            raise ConversationNotFoundError(conversation_id)
        logger.info(f"Deleted conversation {conversation_id}")

    async def list_messages(self, conversation_id: int) -> List[Message]:
        return await self.message_repo.get_by_conversation_id(conversation_id)

    async def append_message(self, conversation_id: int, role: MessageRole, content: str) -> Message:
        """Persists one message; content is expected to be trimmed already."""
        try:
            return await self.message_repo.create(
                content=content, role=role, conversation_id=conversation_id
            )
        except IntegrityError as e:
            # The only constraint a validated message can break is the conversation foreign key.
            logger.warning(f"Message insert rejected for conversation {conversation_id}: {e.orig}")
            raise ConversationNotFoundError(conversation_id) from e
