from typing import Dict, List
from pydantic import BaseModel, Field
from .message import MessageBase

class ChatMessage(MessageBase):
    pass

class ChatRequest(BaseModel):
    messages: List[ChatMessage] = Field(..., min_length=1)

    def to_provider_messages(self) -> List[Dict[str, str]]:
        return [{"role": m.role.value, "content": m.content} for m in self.messages]
