from datetime import datetime, timedelta

import pytest
from bson import ObjectId

from app.errors import InvalidInput, NotFound, QuotaExceeded, RateLimitExceeded
from app.schemas.chat import ChatOptions, UpdateChatSessionRequest
from app.services.chat_service import ChatService, derive_title
from app.services.quota_service import QuotaService
from app.services.rate_limit_service import AiRateLimiter, RateLimitConfig

from tests.conftest import NOW, OTHER_USER_ID, USER_ID, seed_plan_limits

LONG_PROMPT = "x" * 120


def test_derive_title_short_and_long():
    assert derive_title("Tell me about REST vs gRPC") == "Tell me about REST vs gRPC"
    assert derive_title(LONG_PROMPT) == "x" * 50 + "..."
    assert derive_title("y" * 50) == "y" * 50


async def test_send_message_creates_session_with_defaults(chat_service, seeded_db, chat_provider):
    reply = await chat_service.send_message(USER_ID, "Tell me about REST vs gRPC")

    assert reply.response == "Hello, world"
    assert reply.chunks == ["Hello", ", ", "world"]
    assert reply.user_message.role == "USER"
    assert reply.ai_message.role == "ASSISTANT"
    assert reply.ai_message.content == "Hello, world"

    session = await seeded_db.chat_sessions.find_one({"_id": ObjectId(reply.session_id)})
    assert session["title"] == "Tell me about REST vs gRPC"
    assert session["temperature"] == 0.7
    assert session["max_tokens"] == 4096
    assert session["model"] == "gemini-2.0-flash"
    assert chat_provider.calls[0]["history"] == []


async def test_first_message_sets_title_of_untitled_session(chat_service, seeded_db):
    created = await chat_service.create_chat_session(USER_ID)
    assert created.title is None

    await chat_service.send_message(USER_ID, LONG_PROMPT, session_id=created.id)

    session = await seeded_db.chat_sessions.find_one({"_id": ObjectId(created.id)})
    assert session["title"] == "x" * 50 + "..."


async def test_later_messages_keep_title(chat_service, seeded_db):
    first = await chat_service.send_message(USER_ID, "First question")
    await chat_service.send_message(USER_ID, "A completely different question", session_id=first.session_id)

    session = await seeded_db.chat_sessions.find_one({"_id": ObjectId(first.session_id)})
    assert session["title"] == "First question"


async def test_history_is_bounded_and_mapped_to_provider_roles(seeded_db, gateway, quota, chat_provider):
    service = ChatService(seeded_db, gateway, quota, history_window=4)
    session = await service.create_chat_session(USER_ID)
    session_oid = ObjectId(session.id)

    base = datetime(2024, 1, 1)
    for i in range(6):
        role = "USER" if i % 2 == 0 else "ASSISTANT"
        await seeded_db.chat_messages.insert_one({
            "session_id": session_oid,
            "role": role,
            "content": f"m{i}",
            "created_at": base + timedelta(minutes=i),
        })

    await service.send_message(USER_ID, "next", session_id=session.id)

    history = chat_provider.calls[0]["history"]
    assert [(t.role, t.text) for t in history] == [
        ("user", "m2"), ("model", "m3"), ("user", "m4"), ("model", "m5")
    ]
    assert chat_provider.calls[0]["prompt"] == "next"


async def test_inactive_or_foreign_session_is_not_reused(chat_service, seeded_db):
    mine = await chat_service.send_message(USER_ID, "hello")
    await chat_service.delete_chat_session(mine.session_id, USER_ID)

    reply = await chat_service.send_message(USER_ID, "again", session_id=mine.session_id)
    assert reply.session_id != mine.session_id

    theirs = await chat_service.send_message(OTHER_USER_ID, "hi")
    reply = await chat_service.send_message(USER_ID, "hijack", session_id=theirs.session_id)
    assert reply.session_id != theirs.session_id


async def test_blank_prompt_is_rejected(chat_service, chat_provider):
    with pytest.raises(InvalidInput):
        await chat_service.send_message(USER_ID, "   ")
    assert chat_provider.calls == []


async def test_chat_quota_counts_user_messages_across_deleted_sessions(db, gateway, chat_provider):
    await seed_plan_limits(db, interviews=1, messages=2, uploads=1)
    service = ChatService(db, gateway, QuotaService(db, clock=lambda: NOW))

    first = await service.send_message(USER_ID, "one")
    await service.delete_chat_session(first.session_id, USER_ID)
    await service.send_message(USER_ID, "two")

    with pytest.raises(QuotaExceeded) as exc_info:
        await service.send_message(USER_ID, "three")

    assert exc_info.value.details["action"] == "messages"
    assert len(chat_provider.calls) == 2


async def test_list_get_update_delete(chat_service):
    first = await chat_service.send_message(USER_ID, "first")
    await chat_service.send_message(USER_ID, "second")

    sessions = await chat_service.list_chat_sessions(USER_ID)
    assert len(sessions) == 2
    assert all(s.message_count == 2 for s in sessions)

    detail = await chat_service.get_chat_session(first.session_id, USER_ID)
    assert [m.role for m in detail.messages] == ["USER", "ASSISTANT"]

    updated = await chat_service.update_chat_session(
        first.session_id, USER_ID, UpdateChatSessionRequest(title="Renamed", model="gemini-2.5-flash")
    )
    assert updated.title == "Renamed"
    assert updated.model == "gemini-2.5-flash"

    await chat_service.delete_chat_session(first.session_id, USER_ID)
    assert len(await chat_service.list_chat_sessions(USER_ID)) == 1
    with pytest.raises(NotFound):
        await chat_service.get_chat_session(first.session_id, USER_ID)


async def test_update_rejects_unknown_model(chat_service):
    session = await chat_service.create_chat_session(USER_ID, ChatOptions(title="t"))

    with pytest.raises(InvalidInput):
        await chat_service.update_chat_session(session.id, USER_ID, UpdateChatSessionRequest(model="gpt-2"))


async def test_other_users_cannot_read_session(chat_service):
    session = await chat_service.create_chat_session(USER_ID)

    with pytest.raises(NotFound):
        await chat_service.get_chat_session(session.id, OTHER_USER_ID)


async def test_rate_limited_message_creates_no_session(seeded_db, gateway, quota, chat_provider):
    limiter = AiRateLimiter(limits=RateLimitConfig(max_requests_per_minute=1))
    service = ChatService(seeded_db, gateway, quota, rate_limiter=limiter)

    await service.send_message(USER_ID, "first")
    with pytest.raises(RateLimitExceeded):
        await service.send_message(USER_ID, "second")

    assert await seeded_db.chat_sessions.count_documents({}) == 1
    assert await seeded_db.chat_messages.count_documents({}) == 2
    assert len(chat_provider.calls) == 1


async def test_retired_session_model_stores_no_message(chat_service, seeded_db, chat_provider):
    created = await chat_service.create_chat_session(USER_ID)
    await seeded_db.chat_sessions.update_one(
        {"_id": ObjectId(created.id)}, {"$set": {"model": "retired-model"}}
    )

    with pytest.raises(InvalidInput):
        await chat_service.send_message(USER_ID, "hello", session_id=created.id)

    assert await seeded_db.chat_messages.count_documents({}) == 0
    assert chat_provider.calls == []


async def test_unknown_model_option_creates_no_session(chat_service, seeded_db):
    with pytest.raises(InvalidInput):
        await chat_service.send_message(USER_ID, "hello", options=ChatOptions(model="retired-model"))

    assert await seeded_db.chat_sessions.count_documents({}) == 0
