"""Client-side state machine for one active conversation.

The controller owns the local message list. User messages are appended
optimistically and rolled back if they cannot be saved; the assistant reply is
rendered fragment by fragment and saved only once the stream has ended.
"""
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional

from loguru import logger

from ..utils.stream import ErrorPart, FinishPart, TextPart
from .api_client import APIClientError, ChatAPIClient


class ChatState(str, Enum):
    IDLE = "idle"
    LOADING_HISTORY = "loading-history"
    READY = "ready"
    AWAITING_ASSISTANT_STREAM = "awaiting-assistant-stream"
    ERROR = "error"


@dataclass
class ChatMessage:
    role: str
    content: str
    server_id: Optional[str] = None
    local_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def to_wire(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


def _log_notification(message: str) -> None:
    logger.warning(message)


class ChatController:
    def __init__(
        self,
        api: ChatAPIClient,
        on_change: Optional[Callable[["ChatController"], None]] = None,
        notify: Callable[[str], None] = _log_notification,
    ):
        self.api = api
        self.on_change = on_change
        self.notify = notify
        self.conversation_id: Optional[str] = None
        self.messages: List[ChatMessage] = []
        self.state = ChatState.IDLE
        self.last_finish_reason: Optional[str] = None

    def _changed(self) -> None:
        if self.on_change:
            self.on_change(self)

    async def select_conversation(self, conversation_id: str) -> None:
        self.conversation_id = conversation_id
        self.state = ChatState.LOADING_HISTORY
        self._changed()
        try:
            rows = await self.api.list_messages(conversation_id)
        except APIClientError as e:
            self.state = ChatState.ERROR
            self.notify(f"Could not load the conversation: {e.message}")
            self._changed()
            return

        # Server history replaces the local list outright.
        self.messages = [
            ChatMessage(role=row["role"], content=row["content"], server_id=str(row["id"]))
            for row in rows
        ]
        self.state = ChatState.READY
        self._changed()

    async def start_new_conversation(self) -> Optional[str]:
        try:
            conversation = await self.api.create_conversation()
        except APIClientError as e:
            self.notify(f"Could not create a conversation: {e.message}")
            return None
        conversation_id = str(conversation["id"])
        await self.select_conversation(conversation_id)
        return conversation_id

    async def submit(self, text: str) -> bool:
        """Sends one user turn. Returns False when the input was not accepted."""
        content = text.strip()
        if not content or self.conversation_id is None or self.state != ChatState.READY:
            return False

        user_message = ChatMessage(role="user", content=content)
        self.messages.append(user_message)
        self._changed()

        try:
            saved = await self.api.append_message(self.conversation_id, "user", content)
        except APIClientError as e:
            self.messages = [m for m in self.messages if m.local_id != user_message.local_id]
            self.notify(f"Could not send the message: {e.message}")
            self._changed()
            return False
        user_message.server_id = str(saved["id"])

        await self._stream_assistant_reply()
        return True

    async def _stream_assistant_reply(self) -> None:
        conversation_id = self.conversation_id
        history = [m.to_wire() for m in self.messages]
        self.state = ChatState.AWAITING_ASSISTANT_STREAM
        self.last_finish_reason = None
        self._changed()

        assistant: Optional[ChatMessage] = None
        fragments: List[str] = []
        try:
            async for part in self.api.stream_chat(history):
                if isinstance(part, TextPart):
                    fragments.append(part.text)
                    if assistant is None:
                        assistant = ChatMessage(role="assistant", content="")
                        self.messages.append(assistant)
                    assistant.content += part.text
                    self._changed()
                elif isinstance(part, ErrorPart):
                    self.notify(f"The assistant reply failed: {part.message}")
                elif isinstance(part, FinishPart):
                    self.last_finish_reason = part.finish_reason
            if self.last_finish_reason is None:
                # Partial text is still saved below, like a reply that ended with an error record.
                self.notify("The assistant reply was cut off before it finished.")
        except APIClientError as e:
            self.notify(f"The assistant could not answer: {e.message}")
        except ValueError as e:
            self.notify(f"The assistant reply could not be read: {e}")

        text = "".join(fragments)
        if assistant is not None and text.strip():
            try:
                saved = await self.api.append_message(conversation_id, "assistant", text)
                assistant.server_id = str(saved["id"])
            except APIClientError as e:
                # The rendered reply stays on screen even though it was not saved.
                self.notify(f"Could not save the assistant reply: {e.message}")

        self.state = ChatState.READY
        self._changed()
