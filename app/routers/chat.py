"""Chat router."""
from typing import List

from fastapi import APIRouter, Depends, status

from app.schemas.chat import (
    ChatOptions,
    ChatReplyData,
    ChatSessionData,
    ChatSessionWithCountData,
    ChatSessionWithMessagesData,
    CreateChatSessionRequest,
    SendChatMessageRequest,
    UpdateChatSessionRequest,
)
from app.schemas.common import ApiResponse, ok
from app.services.ai_gateway import AIGateway
from app.services.chat_service import ChatService
from app.utils.dependencies import get_chat_service, get_current_user_id, get_gateway

router = APIRouter(prefix="/api/v1/chat", tags=["Chat"])


@router.post("/sessions", response_model=ApiResponse[ChatSessionData], status_code=status.HTTP_201_CREATED)
async def create_session(
    request: CreateChatSessionRequest,
    user_id: str = Depends(get_current_user_id),
    service: ChatService = Depends(get_chat_service)
):
    session = await service.create_chat_session(user_id, request)
    return ok("Chat session created", session)


@router.get("/sessions", response_model=ApiResponse[List[ChatSessionWithCountData]])
async def list_sessions(
    user_id: str = Depends(get_current_user_id),
    service: ChatService = Depends(get_chat_service)
):
    sessions = await service.list_chat_sessions(user_id)
    return ok("Chat sessions retrieved", sessions)


@router.post("/sessions/chat", response_model=ApiResponse[ChatReplyData])
async def send_message(
    request: SendChatMessageRequest,
    user_id: str = Depends(get_current_user_id),
    service: ChatService = Depends(get_chat_service)
):
    """Send a message, reusing ``sessionId`` when it is still active."""
    options = ChatOptions(temperature=request.temperature, max_tokens=request.max_tokens)
    reply = await service.send_message(user_id, request.message, request.session_id, options)
    return ok("Message sent", reply)


@router.get("/sessions/{session_id}", response_model=ApiResponse[ChatSessionWithMessagesData])
async def get_session(
    session_id: str,
    user_id: str = Depends(get_current_user_id),
    service: ChatService = Depends(get_chat_service)
):
    session = await service.get_chat_session(session_id, user_id)
    return ok("Chat session retrieved", session)


@router.patch("/sessions/{session_id}", response_model=ApiResponse[ChatSessionData])
async def update_session(
    session_id: str,
    request: UpdateChatSessionRequest,
    user_id: str = Depends(get_current_user_id),
    service: ChatService = Depends(get_chat_service)
):
    session = await service.update_chat_session(session_id, user_id, request)
    return ok("Chat session updated", session)


@router.delete("/sessions/{session_id}", response_model=ApiResponse)
async def delete_session(
    session_id: str,
    user_id: str = Depends(get_current_user_id),
    service: ChatService = Depends(get_chat_service)
):
    await service.delete_chat_session(session_id, user_id)
    return ok("Chat session deleted", None)


@router.get("/models", response_model=ApiResponse[dict])
async def list_models(
    user_id: str = Depends(get_current_user_id),
    gateway: AIGateway = Depends(get_gateway)
):
    catalog = gateway.catalog
    return ok("Supported models", {
        "provider": catalog.provider,
        "defaultModel": catalog.default_model,
        "models": catalog.supported_models(),
    })
