from sqlalchemy import Column, String
from sqlalchemy.orm import relationship
from .base import BaseModel

DEFAULT_TITLE = "New conversation"

class Conversation(BaseModel):
    __tablename__ = "conversations"

    title = Column(String, nullable=False, default=DEFAULT_TITLE)

    # Relationships
    messages = relationship(
        "Message",
        back_populates="conversation",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
