from typing import List, Optional
from sqlalchemy.future import select
from ..models.message import Message, MessageRole
from .base_repository import BaseRepository

class MessageRepository(BaseRepository[Message]):

    async def create(self, content: str, role: MessageRole, conversation_id: int) -> Message:
        message = Message(content=content, role=role, conversation_id=conversation_id)
        self.db.add(message)
        try:
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        await self.db.refresh(message)
        return message

    async def get_by_id(self, id: int) -> Optional[Message]:
        result = await self.db.execute(select(Message).filter(Message.id == id))
        return result.scalars().first()

    async def get_by_conversation_id(self, conversation_id: int) -> List[Message]:
        result = await self.db.execute(
            select(Message)
            .filter(Message.conversation_id == conversation_id)
            .order_by(Message.created_at, Message.id)
        )
        return list(result.scalars().all())
