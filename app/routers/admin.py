"""Admin router for plan limits."""
from typing import List

from fastapi import APIRouter, Depends, status

from app.models.billing import PlanType
from app.schemas.common import ApiResponse, ok
from app.schemas.plan import PlanLimitData, PlanLimitRequest, UpdatePlanLimitRequest
from app.services.plan_service import PlanService
from app.utils.dependencies import get_plan_service, require_admin

router = APIRouter(
    prefix="/api/v1/admin",
    tags=["Admin"],
    dependencies=[Depends(require_admin)]
)


@router.get("/plan-limits", response_model=ApiResponse[List[PlanLimitData]])
async def get_plan_limits(service: PlanService = Depends(get_plan_service)):
    limits = await service.list_plan_limits()
    return ok("Plan limits retrieved successfully", limits)


@router.post("/plan-limits", response_model=ApiResponse[PlanLimitData], status_code=status.HTTP_201_CREATED)
async def create_plan_limit(
    request: PlanLimitRequest,
    service: PlanService = Depends(get_plan_service)
):
    limit = await service.create_plan_limit(request)
    return ok("Plan limit created successfully", limit)


@router.put("/plan-limits/{plan}", response_model=ApiResponse[PlanLimitData])
async def update_plan_limit(
    plan: PlanType,
    request: UpdatePlanLimitRequest,
    service: PlanService = Depends(get_plan_service)
):
    limit = await service.update_plan_limit(plan, request)
    return ok("Plan limit updated successfully", limit)


@router.delete("/plan-limits/{plan}", response_model=ApiResponse)
async def delete_plan_limit(
    plan: PlanType,
    service: PlanService = Depends(get_plan_service)
):
    await service.delete_plan_limit(plan)
    return ok("Plan limit deleted successfully", None)
