from datetime import datetime

import pytest
from bson import ObjectId

from app.errors import ConfigurationError, QuotaExceeded
from app.models.billing import PlanType, UNLIMITED
from app.services.quota_service import QuotaAction, QuotaService, month_bounds

from tests.conftest import NOW, USER_ID, seed_plan_limits


async def add_sessions(db, *created_at, user_id=USER_ID):
    for when in created_at:
        await db.interview_sessions.insert_one({
            "user_id": user_id,
            "status": "COMPLETED",
            "resume_text": "resume",
            "created_at": when,
        })


async def add_subscription(db, plan="BASIC", status="ACTIVE", start=None, end=None):
    await db.subscriptions.insert_one({
        "user_id": USER_ID,
        "plan": plan,
        "status": status,
        "current_period_start": start,
        "current_period_end": end,
    })


def test_month_bounds():
    start, end = month_bounds(datetime(2024, 2, 10, 8, 30))
    assert start == datetime(2024, 2, 1)
    assert end == datetime(2024, 2, 29, 23, 59, 59, 999999)


async def test_missing_plan_limits_is_configuration_error(db):
    with pytest.raises(ConfigurationError):
        await QuotaService(db).enforce(USER_ID, QuotaAction.INTERVIEW)


async def test_free_plan_counts_lifetime(db):
    await seed_plan_limits(db, interviews=2)
    await add_sessions(db, datetime(2020, 1, 1), datetime(2023, 6, 1))
    quota = QuotaService(db, clock=lambda: NOW)

    with pytest.raises(QuotaExceeded) as exc_info:
        await quota.enforce(USER_ID, QuotaAction.INTERVIEW)
    assert exc_info.value.message == "FREE plan limit reached (2 interviews). Upgrade to continue."


async def test_unlimited_never_counts(db):
    await seed_plan_limits(db, interviews=UNLIMITED)
    await add_sessions(db, *[NOW] * 5)

    await QuotaService(db, clock=lambda: NOW).enforce(USER_ID, QuotaAction.INTERVIEW)


async def test_billing_period_excludes_older_sessions(db):
    await seed_plan_limits(db, interviews=10, plan=PlanType.BASIC)
    await add_subscription(db, start=datetime(2024, 5, 1), end=datetime(2024, 6, 1))
    await add_sessions(db, *[datetime(2024, 4, 30)] * 12)
    await add_sessions(db, *[datetime(2024, 5, 2)] * 9)
    quota = QuotaService(db, clock=lambda: NOW)

    assert await quota.count_usage(
        USER_ID, QuotaAction.INTERVIEW, (datetime(2024, 5, 1), datetime(2024, 6, 1))
    ) == 9
    await quota.enforce(USER_ID, QuotaAction.INTERVIEW)

    await add_sessions(db, datetime(2024, 5, 14))
    with pytest.raises(QuotaExceeded) as exc_info:
        await quota.enforce(USER_ID, QuotaAction.INTERVIEW)
    assert "BASIC plan monthly limit reached (10 interviews)" in exc_info.value.message


async def test_period_defaults_to_calendar_month(db):
    await seed_plan_limits(db, interviews=1, plan=PlanType.PRO)
    await add_subscription(db, plan="PRO")
    await add_sessions(db, datetime(2024, 4, 30, 23, 59))
    quota = QuotaService(db, clock=lambda: NOW)

    await quota.enforce(USER_ID, QuotaAction.INTERVIEW)

    usage = await quota.get_usage(USER_ID)
    assert usage["period_start"] == datetime(2024, 5, 1)
    assert usage["usage"]["INTERVIEW"] == {"used": 0, "limit": 1}


async def test_inactive_subscription_falls_back_to_free(db):
    await seed_plan_limits(db, interviews=1)
    await seed_plan_limits(db, interviews=100, plan=PlanType.BASIC)
    await add_subscription(db, status="CANCELED", start=datetime(2024, 5, 1), end=datetime(2024, 6, 1))
    await add_subscription(db, status="ACTIVE", start=datetime(2024, 3, 1), end=datetime(2024, 4, 1))
    await add_sessions(db, datetime(2024, 1, 1))
    quota = QuotaService(db, clock=lambda: NOW)

    info = await quota.get_subscription_info(USER_ID)
    assert info.plan == PlanType.FREE
    assert info.is_active is False
    with pytest.raises(QuotaExceeded):
        await quota.enforce(USER_ID, QuotaAction.INTERVIEW)


async def test_chat_messages_count_only_user_role(db):
    await seed_plan_limits(db, messages=5)
    session_id = ObjectId()
    await db.chat_sessions.insert_one({"_id": session_id, "user_id": USER_ID, "is_active": False})
    await db.chat_messages.insert_many([
        {"session_id": session_id, "role": "USER", "content": "q", "created_at": NOW},
        {"session_id": session_id, "role": "ASSISTANT", "content": "a", "created_at": NOW},
        {"session_id": ObjectId(), "role": "USER", "content": "someone else", "created_at": NOW},
    ])

    quota = QuotaService(db, clock=lambda: NOW)
    assert await quota.count_usage(USER_ID, QuotaAction.CHAT_MESSAGE) == 1
