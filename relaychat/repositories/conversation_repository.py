from typing import List, Optional
from sqlalchemy.future import select
from ..models.conversation import Conversation, DEFAULT_TITLE
from .base_repository import BaseRepository

class ConversationRepository(BaseRepository[Conversation]):

    async def create(self, title: str = DEFAULT_TITLE) -> Conversation:
        conversation = Conversation(title=title)
        self.db.add(conversation)
        await self.db.commit()
        await self.db.refresh(conversation)
        return conversation

    async def get_by_id(self, id: int) -> Optional[Conversation]:
        return await self.db.get(Conversation, id)

    async def list_recent(self) -> List[Conversation]:
        result = await self.db.execute(
            select(Conversation).order_by(Conversation.created_at.desc(), Conversation.id.desc())
        )
        return list(result.scalars().all())

    async def delete(self, id: int) -> bool:
        conversation = await self.db.get(Conversation, id)
        if not conversation:
            return False
        await self.db.delete(conversation)
        await self.db.commit()
        return True
