"""Admin management of plan limits."""
import logging
from datetime import datetime
from typing import List

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from app.errors import InvalidInput, NotFound
from app.models.billing import PlanLimit, PlanType
from app.schemas.plan import PlanLimitData, PlanLimitRequest, UpdatePlanLimitRequest

logger = logging.getLogger(__name__)


def _to_data(doc: dict) -> PlanLimitData:
    limit = PlanLimit(**doc)
    return PlanLimitData(
        plan=limit.plan,
        max_interviews=limit.max_interviews,
        max_chat_messages=limit.max_chat_messages,
        max_resume_uploads=limit.max_resume_uploads,
        is_active=limit.is_active,
    )


class PlanService:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db

    async def list_plan_limits(self) -> List[PlanLimitData]:
        docs = await self.db.plan_limits.find().sort("plan", 1).to_list(length=None)
        return [_to_data(doc) for doc in docs]

    async def create_plan_limit(self, request: PlanLimitRequest) -> PlanLimitData:
        limit = PlanLimit(**request.model_dump())
        try:
            await self.db.plan_limits.insert_one(limit.model_dump(by_alias=True, exclude={"id"}))
        except DuplicateKeyError:
            raise InvalidInput(f"Plan limit for {limit.plan} already exists", {"plan": limit.plan})
        logger.info("Plan limit created for %s", limit.plan)
        return _to_data(limit.model_dump(by_alias=True))

    async def update_plan_limit(self, plan: PlanType, changes: UpdatePlanLimitRequest) -> PlanLimitData:
        update = changes.model_dump(exclude_none=True)
        update["updated_at"] = datetime.utcnow()
        doc = await self.db.plan_limits.find_one_and_update(
            {"plan": plan.value},
            {"$set": update},
            return_document=ReturnDocument.AFTER
        )
        if not doc:
            raise NotFound(f"Plan limit for {plan.value} not found", {"plan": plan.value})
        logger.info("Plan limit updated for %s: %s", plan.value, update)
        return _to_data(doc)

    async def delete_plan_limit(self, plan: PlanType):
        result = await self.db.plan_limits.delete_one({"plan": plan.value})
        if result.deleted_count == 0:
            raise NotFound(f"Plan limit for {plan.value} not found", {"plan": plan.value})
        logger.info("Plan limit deleted for %s", plan.value)
