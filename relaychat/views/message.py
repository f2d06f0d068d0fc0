from pydantic import BaseModel, field_validator
from ..models.message import Message, MessageRole
from datetime import datetime

class MessageBase(BaseModel):
    content: str
    role: MessageRole

class MessageCreate(MessageBase):

    @field_validator("content")
    @classmethod
    def strip_content(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("content must not be empty")
        return value

class MessageResponse(MessageBase):
    id: str

    @classmethod
    def from_model(cls, message: Message) -> "MessageResponse":
        return cls(id=str(message.id), role=message.role, content=message.content)

class MessageCreatedResponse(MessageResponse):
    conversation_id: str
    created_at: datetime

    @classmethod
    def from_model(cls, message: Message) -> "MessageCreatedResponse":
        return cls(
            id=str(message.id),
            conversation_id=str(message.conversation_id),
            role=message.role,
            content=message.content,
            created_at=message.created_at,
        )
