"""Usage router."""
from fastapi import APIRouter, Depends

from app.schemas.common import ApiResponse, ok
from app.schemas.plan import UsageData
from app.services.quota_service import QuotaService
from app.utils.dependencies import get_current_user_id, get_quota_service

router = APIRouter(prefix="/api/v1/usage", tags=["Usage"])


@router.get("", response_model=ApiResponse[UsageData])
async def get_usage(
    user_id: str = Depends(get_current_user_id),
    quota: QuotaService = Depends(get_quota_service)
):
    """Current plan, billing period and used/allowed counts per action."""
    usage = await quota.get_usage(user_id)
    return ok("Usage retrieved", UsageData(**usage))
