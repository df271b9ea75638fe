"""Plan-based usage limits (the quota ledger)."""
import calendar
import logging
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, Optional, Tuple

from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel

from app.errors import ConfigurationError, QuotaExceeded
from app.models.billing import PlanLimit, PlanType, SubscriptionStatus, UNLIMITED
from app.models.chat import MessageRole

logger = logging.getLogger(__name__)


class QuotaAction(str, Enum):
    INTERVIEW = "INTERVIEW"
    CHAT_MESSAGE = "CHAT_MESSAGE"
    RESUME_UPLOAD = "RESUME_UPLOAD"


# action -> (PlanLimit field, wording used in user facing messages)
ACTION_LIMITS = {
    QuotaAction.INTERVIEW: ("max_interviews", "interviews"),
    QuotaAction.CHAT_MESSAGE: ("max_chat_messages", "messages"),
    QuotaAction.RESUME_UPLOAD: ("max_resume_uploads", "resume uploads"),
}


class SubscriptionInfo(BaseModel):
    plan: PlanType = PlanType.FREE
    is_active: bool = False
    period_start: Optional[datetime] = None
    period_end: Optional[datetime] = None

    @property
    def uses_billing_period(self) -> bool:
        # FREE has no renewing period, so it is always counted over the
        # user's whole history.
        return self.is_active and self.plan != PlanType.FREE


def month_bounds(now: datetime) -> Tuple[datetime, datetime]:
    """First and last instant of the calendar month containing ``now``."""
    last_day = calendar.monthrange(now.year, now.month)[1]
    start = datetime(now.year, now.month, 1)
    end = datetime(now.year, now.month, last_day, 23, 59, 59, 999999)
    return start, end


class QuotaService:
    """Decides whether a user may start an interview, upload a resume or send
    a chat message right now.

    Must be called before any AI provider call or write for the action.
    """

    def __init__(self, db: AsyncIOMotorDatabase, clock: Callable[[], datetime] = datetime.utcnow):
        self.db = db
        self.clock = clock

    async def enforce(self, user_id: str, action: QuotaAction):
        """Raise QuotaExceeded if the user has used up ``action`` on their plan."""
        subscription = await self.get_subscription_info(user_id)
        plan_limit = await self.get_plan_limit(subscription.plan)

        field, label = ACTION_LIMITS[action]
        limit = getattr(plan_limit, field)
        if limit == UNLIMITED:
            return

        used = await self.count_usage(user_id, action, self._period_for(subscription))
        if used >= limit:
            logger.info(
                "Quota exceeded for user %s: %s %s/%s on %s",
                user_id, action.value, used, limit, subscription.plan.value
            )
            raise QuotaExceeded(
                subscription.plan.value, limit, label,
                monthly=subscription.uses_billing_period
            )

    async def get_usage(self, user_id: str) -> dict:
        """Used and allowed counts for every action on the user's current plan."""
        subscription = await self.get_subscription_info(user_id)
        plan_limit = await self.get_plan_limit(subscription.plan)
        period = self._period_for(subscription)

        usage: Dict[str, dict] = {}
        for action, (field, _) in ACTION_LIMITS.items():
            usage[action.value] = {
                "used": await self.count_usage(user_id, action, period),
                "limit": getattr(plan_limit, field),
            }

        return {
            "plan": subscription.plan,
            "subscription_active": subscription.is_active,
            "period_start": period[0] if period else None,
            "period_end": period[1] if period else None,
            "usage": usage,
        }

    async def get_subscription_info(self, user_id: str) -> SubscriptionInfo:
        now = self.clock()
        active = await self.db.subscriptions.find_one({
            "user_id": user_id,
            "status": SubscriptionStatus.ACTIVE.value,
            "$or": [
                {"current_period_end": None},
                {"current_period_end": {"$gt": now}},
            ]
        })
        if not active:
            return SubscriptionInfo()

        return SubscriptionInfo(
            plan=active.get("plan", PlanType.FREE.value),
            is_active=True,
            period_start=active.get("current_period_start"),
            period_end=active.get("current_period_end"),
        )

    async def get_plan_limit(self, plan: PlanType) -> PlanLimit:
        data = await self.db.plan_limits.find_one({"plan": plan.value, "is_active": True})
        if not data:
            logger.error("No active plan limits configured for %s", plan.value)
            raise ConfigurationError(
                "Plan limits not configured. Please contact support.",
                {"plan": plan.value}
            )
        return PlanLimit(**data)

    async def count_usage(
        self,
        user_id: str,
        action: QuotaAction,
        period: Optional[Tuple[datetime, datetime]] = None
    ) -> int:
        """Count past occurrences of ``action``; lifetime when ``period`` is None."""
        created = {"created_at": {"$gte": period[0], "$lte": period[1]}} if period else {}

        if action == QuotaAction.INTERVIEW:
            return await self.db.interview_sessions.count_documents({"user_id": user_id, **created})

        if action == QuotaAction.RESUME_UPLOAD:
            return await self.db.interview_sessions.count_documents({
                "user_id": user_id,
                "resume_text": {"$ne": None},
                **created
            })

        # Chat messages belong to sessions, soft-deleted sessions included
        sessions = await self.db.chat_sessions.find({"user_id": user_id}, {"_id": 1}).to_list(length=None)
        if not sessions:
            return 0
        return await self.db.chat_messages.count_documents({
            "session_id": {"$in": [s["_id"] for s in sessions]},
            "role": MessageRole.USER.value,
            **created
        })

    def _period_for(self, subscription: SubscriptionInfo) -> Optional[Tuple[datetime, datetime]]:
        if not subscription.uses_billing_period:
            return None
        default_start, default_end = month_bounds(self.clock())
        return (
            subscription.period_start or default_start,
            subscription.period_end or default_end,
        )
