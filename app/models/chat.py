"""Chat session models."""
from enum import Enum
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
from datetime import datetime
from bson import ObjectId
from app.models.user import PyObjectId


class MessageRole(str, Enum):
    USER = "USER"
    ASSISTANT = "ASSISTANT"


class ChatSessionModel(BaseModel):
    """Open-ended conversation. Soft deleted through ``is_active``."""

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
        use_enum_values=True,
        json_encoders={ObjectId: str}
    )

    id: Optional[PyObjectId] = Field(default=None, alias="_id")
    user_id: str
    title: Optional[str] = None
    temperature: float = 0.7
    max_tokens: int = 4096
    model: str
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class ChatMessageModel(BaseModel):
    """Append-only message; conversation order is created_at ascending."""

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
        use_enum_values=True,
        json_encoders={ObjectId: str}
    )

    id: Optional[PyObjectId] = Field(default=None, alias="_id")
    session_id: PyObjectId
    role: MessageRole
    content: str
    tokens: Optional[int] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
