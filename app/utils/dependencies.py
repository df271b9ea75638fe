"""Authentication and service dependencies."""
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.database import get_db
from app.models.user import CurrentUser
from app.services.ai_gateway import AIGateway
from app.services.chat_service import ChatService
from app.services.interview_service import InterviewService
from app.services.notifier import RealtimeNotifier
from app.services.plan_service import PlanService
from app.services.quota_service import QuotaService
from app.services.rate_limit_service import AiRateLimiter
from app.utils.security import decode_token


security = HTTPBearer()


def user_from_token(token: str) -> CurrentUser:
    """Verify a bearer token and return its principal. Raises 401 otherwise."""
    payload = decode_token(token)

    if payload is None or payload.get("type", "access") != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = payload.get("sub")
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
        )

    return CurrentUser(user_id=str(user_id), role=payload.get("role", "USER"))


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> CurrentUser:
    """Get current authenticated user from JWT token."""
    return user_from_token(credentials.credentials)


async def get_current_user_id(current_user: CurrentUser = Depends(get_current_user)) -> str:
    return current_user.user_id


async def require_admin(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return current_user


# Singletons created in the app lifespan

def get_gateway(request: Request) -> AIGateway:
    return request.app.state.gateway


def get_notifier(request: Request) -> RealtimeNotifier:
    return request.app.state.notifier


def get_rate_limiter(request: Request) -> AiRateLimiter:
    return request.app.state.rate_limiter


# Per-request services

def get_quota_service(db: AsyncIOMotorDatabase = Depends(get_db)) -> QuotaService:
    return QuotaService(db)


def get_plan_service(db: AsyncIOMotorDatabase = Depends(get_db)) -> PlanService:
    return PlanService(db)


def get_interview_service(
    db: AsyncIOMotorDatabase = Depends(get_db),
    gateway: AIGateway = Depends(get_gateway),
    quota: QuotaService = Depends(get_quota_service),
    notifier: RealtimeNotifier = Depends(get_notifier),
    rate_limiter: AiRateLimiter = Depends(get_rate_limiter)
) -> InterviewService:
    return InterviewService(db, gateway, quota, notifier, rate_limiter=rate_limiter)


def get_chat_service(
    db: AsyncIOMotorDatabase = Depends(get_db),
    gateway: AIGateway = Depends(get_gateway),
    quota: QuotaService = Depends(get_quota_service),
    rate_limiter: AiRateLimiter = Depends(get_rate_limiter)
) -> ChatService:
    return ChatService(db, gateway, quota, rate_limiter=rate_limiter)
