"""Chat request/response schemas."""
from pydantic import Field
from typing import List, Optional
from datetime import datetime

from app.models.chat import MessageRole
from app.schemas.common import CamelModel


class ChatOptions(CamelModel):
    """Per-session tuning accepted when a session is created or updated."""
    title: Optional[str] = Field(None, max_length=200)
    temperature: Optional[float] = Field(None, ge=0, le=2)
    max_tokens: Optional[int] = Field(None, ge=1, le=8192)
    model: Optional[str] = None


class CreateChatSessionRequest(ChatOptions):
    pass


class UpdateChatSessionRequest(ChatOptions):
    pass


class SendChatMessageRequest(CamelModel):
    session_id: Optional[str] = None
    message: str = Field(..., min_length=1)
    temperature: Optional[float] = Field(None, ge=0, le=2)
    max_tokens: Optional[int] = Field(None, ge=1, le=8192)


class ChatMessageData(CamelModel):
    id: str
    session_id: str
    role: MessageRole
    content: str
    tokens: Optional[int] = None
    created_at: datetime


class ChatSessionData(CamelModel):
    id: str
    user_id: str
    title: Optional[str] = None
    temperature: float
    max_tokens: int
    model: str
    is_active: bool
    created_at: datetime
    updated_at: datetime


class ChatSessionWithMessagesData(ChatSessionData):
    messages: List[ChatMessageData] = []


class ChatSessionWithCountData(ChatSessionData):
    message_count: int = 0


class ChatReplyData(CamelModel):
    session_id: str
    user_message: ChatMessageData
    ai_message: ChatMessageData
    response: str
    chunks: List[str]
