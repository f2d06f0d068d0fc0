from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from loguru import logger

from ..utils.recency import BUCKET_ORDER, LAST_30_DAYS, LAST_7_DAYS, TODAY, YESTERDAY
from .api_client import APIClientError, ChatAPIClient

GROUP_LABELS = {
    TODAY: "Today",
    YESTERDAY: "Yesterday",
    LAST_7_DAYS: "Previous 7 days",
    LAST_30_DAYS: "Previous 30 days",
}


@dataclass
class ConversationItem:
    id: str
    title: str
    date: str


@dataclass
class ConversationGroup:
    key: str
    label: str
    items: List[ConversationItem]


class SidebarController:
    """Conversation list grouped by recency, with the active selection."""

    def __init__(self, api: ChatAPIClient, notify: Callable[[str], None] = logger.warning):
        self.api = api
        self.notify = notify
        self.conversations: List[ConversationItem] = []
        self.active_id: Optional[str] = None

    async def refresh(self) -> None:
        try:
            rows = await self.api.list_conversations()
        except APIClientError as e:
            self.notify(f"Could not load conversations: {e.message}")
            return
        self.conversations = [
            ConversationItem(id=str(row["id"]), title=row["title"], date=row["date"]) for row in rows
        ]

    def groups(self, query: str = "") -> List[ConversationGroup]:
        needle = query.strip().lower()
        buckets: Dict[str, List[ConversationItem]] = {}
        for item in self.conversations:
            if needle and needle not in item.title.lower():
                continue
            buckets.setdefault(item.date, []).append(item)
        return [
            ConversationGroup(key=key, label=GROUP_LABELS[key], items=buckets[key])
            for key in BUCKET_ORDER
            if key in buckets
        ]

    async def new_conversation(self) -> Optional[ConversationItem]:
        try:
            row = await self.api.create_conversation()
        except APIClientError as e:
            self.notify(f"Could not create a conversation: {e.message}")
            return None
        item = ConversationItem(id=str(row["id"]), title=row["title"], date=row["date"])
        self.conversations.insert(0, item)
        self.active_id = item.id
        return item

    def select(self, conversation_id: str) -> None:
        self.active_id = conversation_id

    async def delete(self, conversation_id: str) -> bool:
        try:
            await self.api.delete_conversation(conversation_id)
        except APIClientError as e:
            self.notify(f"Could not delete the conversation: {e.message}")
            return False
        self.conversations = [c for c in self.conversations if c.id != conversation_id]
        if self.active_id == conversation_id:
            self.active_id = self.conversations[0].id if self.conversations else None
        return True
