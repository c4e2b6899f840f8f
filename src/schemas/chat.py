"""Chat schema definitions."""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

import config
from schemas.user import User


class SendMessageRequest(BaseModel):
    relation_id: str = Field(min_length=1, max_length=100)
    text: str = Field(min_length=1, max_length=config.CHAT_MESSAGE_MAX_LENGTH)

    @field_validator("text")
    @classmethod
    def text_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Message text cannot be empty")
        return value


class MarkReadRequest(BaseModel):
    relation_id: str = Field(min_length=1, max_length=100)
    message_ids: List[str] = Field(min_length=1, max_length=config.CHAT_MAX_READ_BATCH)


class MessageRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    read_at: datetime


class ChatMessage(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    relation_id: str
    sender_id: str
    text: str
    created_at: datetime
    sender: User
    reads: List[MessageRead] = []


class MessagePage(BaseModel):
    messages: List[ChatMessage]
    next_cursor: Optional[str] = None


class UnreadCounts(BaseModel):
    unread: Dict[str, int]
    total: int
