"""Service for open-ended chat sessions with the AI assistant."""
import logging
from datetime import datetime
from typing import Callable, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from app.config import settings
from app.errors import InvalidInput, NotFound
from app.models.chat import ChatMessageModel, ChatSessionModel, MessageRole
from app.models.user import to_object_id
from app.schemas.chat import (
    ChatMessageData,
    ChatOptions,
    ChatReplyData,
    ChatSessionData,
    ChatSessionWithCountData,
    ChatSessionWithMessagesData,
    UpdateChatSessionRequest,
)
from app.services.ai_gateway import AIGateway
from app.services.providers.base import ChatTurn
from app.services.quota_service import QuotaAction, QuotaService
from app.services.rate_limit_service import AiRateLimiter

logger = logging.getLogger(__name__)

PROVIDER_ROLES = {
    MessageRole.USER.value: "user",
    MessageRole.ASSISTANT.value: "model",
}


def derive_title(prompt: str, max_length: int = settings.chat_title_max_length) -> str:
    """Prompt verbatim when short enough, otherwise its head plus "..."."""
    text = prompt.strip()
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."


def _message_data(doc: dict) -> ChatMessageData:
    return ChatMessageData(
        id=str(doc["_id"]),
        session_id=str(doc["session_id"]),
        role=doc["role"],
        content=doc["content"],
        tokens=doc.get("tokens"),
        created_at=doc["created_at"],
    )


def _session_fields(doc: dict) -> dict:
    return {
        "id": str(doc["_id"]),
        "user_id": doc["user_id"],
        "title": doc.get("title"),
        "temperature": doc["temperature"],
        "max_tokens": doc["max_tokens"],
        "model": doc["model"],
        "is_active": doc.get("is_active", True),
        "created_at": doc["created_at"],
        "updated_at": doc["updated_at"],
    }


class ChatService:
    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        gateway: AIGateway,
        quota: QuotaService,
        rate_limiter: Optional[AiRateLimiter] = None,
        history_window: int = settings.chat_history_window,
        clock: Callable[[], datetime] = datetime.utcnow
    ):
        self.db = db
        self.gateway = gateway
        self.quota = quota
        self.rate_limiter = rate_limiter
        self.history_window = history_window
        self.clock = clock

    async def send_message(
        self,
        user_id: str,
        prompt: str,
        session_id: Optional[str] = None,
        options: Optional[ChatOptions] = None
    ) -> ChatReplyData:
        if not prompt or not prompt.strip():
            raise InvalidInput("Message must not be empty")
        session = await self.create_or_reuse(user_id, prompt, session_id, options)
        return await self.chat(session, user_id, prompt)

    async def create_or_reuse(
        self,
        user_id: str,
        prompt: str,
        session_id: Optional[str] = None,
        options: Optional[ChatOptions] = None
    ) -> dict:
        """Quota and rate checks, then the caller's active session or a fresh one."""
        await self.quota.enforce(user_id, QuotaAction.CHAT_MESSAGE)
        if self.rate_limiter is not None:
            self.rate_limiter.enforce(user_id, "sendMessage")

        if session_id:
            oid = to_object_id(session_id)
            if oid is not None:
                existing = await self.db.chat_sessions.find_one(
                    {"_id": oid, "user_id": user_id, "is_active": True}
                )
                if existing:
                    return existing
            logger.info("Chat session %s not usable for user %s, starting a new one", session_id, user_id)

        options = options or ChatOptions()
        self._validate_model(options.model)
        title = options.title or (derive_title(prompt) if prompt and prompt.strip() else None)
        return await self._insert_session(user_id, options, title)

    async def chat(self, session: dict, user_id: str, prompt: str) -> ChatReplyData:
        """Send one user turn and store both sides of the exchange."""
        if not prompt or not prompt.strip():
            raise InvalidInput("Message must not be empty")
        self._validate_model(session["model"])

        recent = await self.db.chat_messages.find(
            {"session_id": session["_id"]}
        ).sort([("created_at", -1), ("_id", -1)]).limit(self.history_window).to_list(length=None)
        recent.reverse()
        history = [ChatTurn(role=PROVIDER_ROLES[m["role"]], text=m["content"]) for m in recent]

        user_message = await self._insert_message(session["_id"], MessageRole.USER, prompt)

        completion = await self.gateway.send_chat_message(
            history,
            prompt,
            session["model"],
            temperature=session.get("temperature"),
            max_tokens=session.get("max_tokens"),
        )

        ai_message = await self._insert_message(session["_id"], MessageRole.ASSISTANT, completion.text)

        update = {"updated_at": self.clock()}
        if not recent and not session.get("title"):
            update["title"] = derive_title(prompt)
        await self.db.chat_sessions.update_one({"_id": session["_id"]}, {"$set": update})

        return ChatReplyData(
            session_id=str(session["_id"]),
            user_message=_message_data(user_message),
            ai_message=_message_data(ai_message),
            response=completion.text,
            chunks=completion.chunks,
        )

    async def create_chat_session(self, user_id: str, options: Optional[ChatOptions] = None) -> ChatSessionData:
        options = options or ChatOptions()
        self._validate_model(options.model)
        doc = await self._insert_session(user_id, options, options.title)
        return ChatSessionData(**_session_fields(doc))

    async def list_chat_sessions(self, user_id: str) -> List[ChatSessionWithCountData]:
        sessions = await self.db.chat_sessions.find(
            {"user_id": user_id, "is_active": True}
        ).sort("updated_at", -1).to_list(length=None)

        result = []
        for doc in sessions:
            count = await self.db.chat_messages.count_documents({"session_id": doc["_id"]})
            result.append(ChatSessionWithCountData(**_session_fields(doc), message_count=count))
        return result

    async def get_chat_session(self, session_id: str, user_id: str) -> ChatSessionWithMessagesData:
        doc = await self._get_active_session(session_id, user_id)
        messages = await self.db.chat_messages.find(
            {"session_id": doc["_id"]}
        ).sort([("created_at", 1), ("_id", 1)]).to_list(length=None)
        return ChatSessionWithMessagesData(
            **_session_fields(doc),
            messages=[_message_data(m) for m in messages],
        )

    async def update_chat_session(
        self,
        session_id: str,
        user_id: str,
        changes: UpdateChatSessionRequest
    ) -> ChatSessionData:
        doc = await self._get_active_session(session_id, user_id)
        self._validate_model(changes.model)

        update = changes.model_dump(exclude_none=True)
        update["updated_at"] = self.clock()
        await self.db.chat_sessions.update_one({"_id": doc["_id"]}, {"$set": update})
        doc.update(update)
        return ChatSessionData(**_session_fields(doc))

    async def delete_chat_session(self, session_id: str, user_id: str):
        """Soft delete. Messages stay and keep counting toward the quota."""
        doc = await self._get_active_session(session_id, user_id)
        await self.db.chat_sessions.update_one(
            {"_id": doc["_id"]},
            {"$set": {"is_active": False, "updated_at": self.clock()}}
        )
        logger.info("Chat session %s deleted by user %s", session_id, user_id)

    def _validate_model(self, model: Optional[str]):
        if model is not None and not self.gateway.catalog.validate_model(model):
            raise InvalidInput(f"Unsupported model: {model}", {"model": model})

    async def _get_active_session(self, session_id: str, user_id: str) -> dict:
        oid = to_object_id(session_id)
        doc = None
        if oid is not None:
            doc = await self.db.chat_sessions.find_one({"_id": oid, "user_id": user_id, "is_active": True})
        if not doc:
            raise NotFound("Chat session not found", {"session_id": session_id})
        return doc

    async def _insert_session(self, user_id: str, options: ChatOptions, title: Optional[str]) -> dict:
        now = self.clock()
        session = ChatSessionModel(
            user_id=user_id,
            title=title,
            temperature=options.temperature if options.temperature is not None else settings.chat_default_temperature,
            max_tokens=options.max_tokens or settings.chat_default_max_tokens,
            model=options.model or self.gateway.catalog.default_model,
            created_at=now,
            updated_at=now,
        )
        doc = session.model_dump(by_alias=True, exclude={"id"})
        result = await self.db.chat_sessions.insert_one(doc)
        doc["_id"] = result.inserted_id
        logger.info("Chat session %s created for user %s", result.inserted_id, user_id)
        return doc

    async def _insert_message(self, session_oid, role: MessageRole, content: str) -> dict:
        message = ChatMessageModel(session_id=session_oid, role=role, content=content, created_at=self.clock())
        doc = message.model_dump(by_alias=True, exclude={"id"})
        result = await self.db.chat_messages.insert_one(doc)
        doc["_id"] = result.inserted_id
        return doc
