"""Shared fixtures: in-memory Mongo, scripted AI providers, recording notifier."""
import os

os.environ.setdefault("JWT_SECRET_KEY", "test-secret")

from datetime import datetime
from typing import Any, List

import pytest
from mongomock_motor import AsyncMongoMockClient

from app.database import ensure_indexes
from app.models.billing import PlanLimit, PlanType, UNLIMITED
from app.services.ai_gateway import AIGateway
from app.services.chat_service import ChatService
from app.services.interview_service import InterviewService
from app.services.providers.registry import ModelCatalog
from app.services.quota_service import QuotaService

USER_ID = "user-1"
OTHER_USER_ID = "user-2"
NOW = datetime(2024, 5, 15, 12, 0, 0)

DEFAULT_BUCKETS = {
    "technical": ["Explain how a hash map handles collisions.", "What is a race condition?"],
    "projects": ["Walk me through the payment service you built."],
    "behavioral": ["Tell me about a time you disagreed with a teammate."],
}


class FakeInterviewProvider:
    """Scripted stand-in for a question/grading/transcription provider.

    Each ``*_result`` may be a value or an exception instance to raise.
    """

    name = "fake"

    def __init__(self, buckets=None, grade_result='{"score": 7, "feedback": "Solid answer."}',
                 transcript="I would add a retry queue."):
        self.buckets_result = DEFAULT_BUCKETS if buckets is None else buckets
        self.grade_result = grade_result
        self.transcript_result = transcript
        self.generate_calls = 0
        self.grade_calls: List[tuple] = []
        self.transcribe_calls: List[tuple] = []

    @staticmethod
    def _resolve(value):
        if isinstance(value, BaseException):
            raise value
        return value

    async def generate_question_buckets(self, resume_text: str):
        self.generate_calls += 1
        return self._resolve(self.buckets_result)

    async def grade(self, question: str, answer: str, max_score: int):
        self.grade_calls.append((question, answer, max_score))
        return self._resolve(self.grade_result)

    async def transcribe(self, audio: bytes, filename: str, mime_type: str):
        self.transcribe_calls.append((filename, mime_type, len(audio)))
        return self._resolve(self.transcript_result)


class FakeChatProvider:
    name = "fake-chat"

    def __init__(self, chunks=("Hello", ", ", "world")):
        self.chunks = list(chunks)
        self.calls: List[dict] = []

    async def stream_message(self, history, prompt, model, temperature=None, max_tokens=None):
        self.calls.append({
            "history": list(history),
            "prompt": prompt,
            "model": model,
            "temperature": temperature,
            "max_tokens": max_tokens,
        })
        for chunk in self.chunks:
            yield chunk


class FakeDocuments:
    def __init__(self, text="Senior backend engineer. Python, MongoDB, payments."):
        self.text = text
        self.calls = 0

    async def extract_text(self, data: bytes) -> str:
        self.calls += 1
        return self.text


class RecordingNotifier:
    def __init__(self):
        self.events: List[tuple] = []

    def publish(self, session_id: str, event: str, payload: Any):
        self.events.append((session_id, event, payload))

    def names(self) -> List[str]:
        return [event for _, event, _ in self.events]


class RecordingSleep:
    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float):
        self.delays.append(delay)


async def seed_plan_limits(db, interviews=3, messages=50, uploads=3, plan=PlanType.FREE):
    limit = PlanLimit(
        plan=plan,
        max_interviews=interviews,
        max_chat_messages=messages,
        max_resume_uploads=uploads,
    )
    await db.plan_limits.insert_one(limit.model_dump(by_alias=True, exclude={"id"}))


@pytest.fixture
async def db():
    database = AsyncMongoMockClient()["interview_prep_test"]
    await ensure_indexes(database)
    return database


@pytest.fixture
async def seeded_db(db):
    await seed_plan_limits(db, interviews=UNLIMITED, messages=UNLIMITED, uploads=UNLIMITED)
    for plan in (PlanType.BASIC, PlanType.PRO):
        await seed_plan_limits(db, UNLIMITED, UNLIMITED, UNLIMITED, plan=plan)
    return db


@pytest.fixture
def interview_provider():
    return FakeInterviewProvider()


@pytest.fixture
def chat_provider():
    return FakeChatProvider()


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def gateway(interview_provider, chat_provider, sleep):
    return AIGateway(
        interview_provider,
        chat_provider,
        ModelCatalog("gemini"),
        max_attempts=3,
        retry_delay=1.0,
        timeout=5.0,
        sleep=sleep,
    )


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def documents():
    return FakeDocuments()


@pytest.fixture
def quota(seeded_db):
    return QuotaService(seeded_db, clock=lambda: NOW)


@pytest.fixture
def interview_service(seeded_db, gateway, quota, notifier, documents):
    return InterviewService(seeded_db, gateway, quota, notifier, documents=documents)


@pytest.fixture
def chat_service(seeded_db, gateway, quota):
    return ChatService(seeded_db, gateway, quota)
