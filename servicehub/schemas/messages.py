"""Pydantic schemas for chat messages and the content filter."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

# Longest chat message accepted by the API
MAX_MESSAGE_LENGTH = 4000


class FilterRequest(BaseModel):
    content: str = Field(..., max_length=MAX_MESSAGE_LENGTH, description="Raw message text")
    language: Optional[str] = Field(default=None, description="Notice language (it, en)")


class FilterResponse(BaseModel):
    is_blocked: bool
    sanitized_content: str
    original_content: str
    blocked_reasons: list[str]
    notice: str = Field(..., description="User-facing notice, empty if none")


class SendMessageRequest(BaseModel):
    sender_id: str = Field(..., min_length=1)
    sender_type: Literal["client", "professional"]
    content: str = Field(default="", max_length=MAX_MESSAGE_LENGTH)
    file_url: Optional[str] = None
    language: Optional[str] = None


class MessageResponse(BaseModel):
    """Stored message. original_content is never exposed to participants."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    conversation_id: str
    sender_id: str
    sender_type: str
    content: str
    is_blocked: bool
    message_type: str
    file_url: Optional[str] = None
    is_read: bool
    created_at: datetime


class SendMessageResponse(BaseModel):
    message: MessageResponse
    blocked_reasons: list[str]
    notice: str


class MarkReadRequest(BaseModel):
    reader_id: str = Field(..., min_length=1)


class MarkReadResponse(BaseModel):
    updated: int
