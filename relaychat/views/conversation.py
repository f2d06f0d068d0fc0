from typing import Literal
from pydantic import BaseModel

RecencyBucket = Literal["today", "yesterday", "7days", "30days"]

class ConversationResponse(BaseModel):
    id: str
    title: str
    date: RecencyBucket

class StorageStatusResponse(BaseModel):
    ok: bool
    message: str
