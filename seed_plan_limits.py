#!/usr/bin/env python3
"""Seed default plan limits. Existing plans are left untouched."""

import asyncio
from datetime import datetime
from app.database import Database
from app.models.billing import PlanLimit, PlanType, UNLIMITED

DEFAULT_LIMITS = [
    PlanLimit(plan=PlanType.FREE, max_interviews=3, max_chat_messages=50, max_resume_uploads=3),
    PlanLimit(plan=PlanType.BASIC, max_interviews=20, max_chat_messages=500, max_resume_uploads=20),
    PlanLimit(plan=PlanType.PRO, max_interviews=UNLIMITED, max_chat_messages=UNLIMITED, max_resume_uploads=UNLIMITED),
]


async def seed_plan_limits():
    await Database.connect()

    for limit in DEFAULT_LIMITS:
        doc = limit.model_dump(by_alias=True, exclude={"id"})
        doc["updated_at"] = datetime.utcnow()
        result = await Database.db.plan_limits.update_one(
            {"plan": limit.plan},
            {"$setOnInsert": doc},
            upsert=True
        )
        if result.upserted_id:
            print(f"✅ Created limits for {limit.plan}")
        else:
            print(f"ℹ️  Limits for {limit.plan} already exist, skipped")

    await Database.disconnect()


if __name__ == "__main__":
    asyncio.run(seed_plan_limits())
