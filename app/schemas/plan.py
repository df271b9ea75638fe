"""Plan limit and usage schemas."""
from pydantic import Field
from typing import Dict, Optional
from datetime import datetime

from app.models.billing import PlanType, UNLIMITED
from app.schemas.common import CamelModel


class PlanLimitRequest(CamelModel):
    """Create or replace the limits of a plan."""
    plan: PlanType
    max_interviews: int = Field(..., ge=UNLIMITED)
    max_chat_messages: int = Field(..., ge=UNLIMITED)
    max_resume_uploads: int = Field(..., ge=UNLIMITED)
    is_active: bool = True


class UpdatePlanLimitRequest(CamelModel):
    max_interviews: Optional[int] = Field(None, ge=UNLIMITED)
    max_chat_messages: Optional[int] = Field(None, ge=UNLIMITED)
    max_resume_uploads: Optional[int] = Field(None, ge=UNLIMITED)
    is_active: Optional[bool] = None


class PlanLimitData(CamelModel):
    plan: PlanType
    max_interviews: int
    max_chat_messages: int
    max_resume_uploads: int
    is_active: bool


class UsageCounter(CamelModel):
    used: int
    limit: int


class UsageData(CamelModel):
    plan: PlanType
    subscription_active: bool
    period_start: Optional[datetime] = None
    period_end: Optional[datetime] = None
    usage: Dict[str, UsageCounter]
