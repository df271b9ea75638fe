"""Database connection and utilities."""
import logging
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING
from typing import Optional
from app.config import settings

logger = logging.getLogger(__name__)


class Database:
    """MongoDB database connection manager."""

    client: Optional[AsyncIOMotorClient] = None
    db: Optional[AsyncIOMotorDatabase] = None

    @classmethod
    async def connect(cls):
        """Connect to MongoDB."""
        cls.client = AsyncIOMotorClient(settings.mongodb_url)
        cls.db = cls.client[settings.mongodb_db_name]
        await ensure_indexes(cls.db)
        logger.info("Connected to MongoDB: %s", settings.mongodb_db_name)

    @classmethod
    async def disconnect(cls):
        """Disconnect from MongoDB."""
        if cls.client:
            cls.client.close()
            logger.info("Disconnected from MongoDB")

    @classmethod
    def get_database(cls) -> AsyncIOMotorDatabase:
        """Get database instance."""
        if cls.db is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return cls.db


async def ensure_indexes(db: AsyncIOMotorDatabase):
    """Create the indexes the services rely on.

    The unique index on interview answers is what makes answer upserts
    last-write-wins under concurrent submissions.
    """
    await db.interview_answers.create_index(
        [("session_id", ASCENDING), ("question_id", ASCENDING), ("user_id", ASCENDING)],
        unique=True,
        name="uniq_answer_per_question_user"
    )
    await db.interview_questions.create_index([("session_id", ASCENDING), ("order", ASCENDING)])
    await db.interview_sessions.create_index([("user_id", ASCENDING), ("created_at", DESCENDING)])
    await db.chat_sessions.create_index([("user_id", ASCENDING), ("is_active", ASCENDING)])
    await db.chat_messages.create_index([("session_id", ASCENDING), ("created_at", ASCENDING)])
    await db.plan_limits.create_index("plan", unique=True)
    await db.subscriptions.create_index([("user_id", ASCENDING), ("status", ASCENDING)])


# Dependency for FastAPI routes
async def get_db() -> AsyncIOMotorDatabase:
    """Get database dependency for routes."""
    return Database.get_database()
