"""Plan limits and the subscription read model."""
from enum import Enum
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
from datetime import datetime
from bson import ObjectId
from app.models.user import PyObjectId

UNLIMITED = -1


class PlanType(str, Enum):
    FREE = "FREE"
    BASIC = "BASIC"
    PRO = "PRO"


class SubscriptionStatus(str, Enum):
    ACTIVE = "ACTIVE"
    CANCELED = "CANCELED"
    PAST_DUE = "PAST_DUE"
    INCOMPLETE = "INCOMPLETE"


class PlanLimit(BaseModel):
    """Usage ceilings for a plan. ``-1`` means unlimited."""

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
        use_enum_values=True,
        json_encoders={ObjectId: str}
    )

    id: Optional[PyObjectId] = Field(default=None, alias="_id")
    plan: PlanType
    max_interviews: int = Field(..., ge=UNLIMITED)
    max_chat_messages: int = Field(..., ge=UNLIMITED)
    max_resume_uploads: int = Field(..., ge=UNLIMITED)
    is_active: bool = True
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class Subscription(BaseModel):
    """Written by the billing integration, only read here."""

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
        use_enum_values=True,
        json_encoders={ObjectId: str}
    )

    id: Optional[PyObjectId] = Field(default=None, alias="_id")
    user_id: str
    plan: PlanType
    status: SubscriptionStatus
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
