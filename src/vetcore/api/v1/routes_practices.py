from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from src.vetcore.container import ServiceContainer, get_services
from src.vetcore.domain.models.principal import Caller
from src.vetcore.domain.models.tenant import SubscriptionTier, Tenant
from src.vetcore.security import get_current_caller
from src.vetcore.services.subscriptions.service import SubscriptionHistoryPage, SubscriptionUsage

router = APIRouter(prefix="/practice", tags=["practice"])


class UpdatePracticeRequest(BaseModel):
    name: str


class UpdateSubscriptionRequest(BaseModel):
    tier: SubscriptionTier
    amount: Optional[float] = None
    payment_id: Optional[str] = None


@router.get("", response_model=Tenant)
async def get_practice(
    caller: Caller = Depends(get_current_caller),
    services: ServiceContainer = Depends(get_services),
) -> Tenant:
    return services.practices.get_practice(caller)


@router.patch("", response_model=Tenant)
async def update_practice(
    payload: UpdatePracticeRequest,
    caller: Caller = Depends(get_current_caller),
    services: ServiceContainer = Depends(get_services),
) -> Tenant:
    return services.practices.update_practice(caller, name=payload.name)


@router.post("/deactivate", response_model=Tenant)
async def deactivate_practice(
    caller: Caller = Depends(get_current_caller),
    services: ServiceContainer = Depends(get_services),
) -> Tenant:
    return services.practices.deactivate_practice(caller)


@router.get("/subscription/usage", response_model=SubscriptionUsage)
async def get_usage(
    caller: Caller = Depends(get_current_caller),
    services: ServiceContainer = Depends(get_services),
) -> SubscriptionUsage:
    return services.subscriptions.get_usage(caller)


@router.put("/subscription", response_model=Tenant)
async def update_subscription(
    payload: UpdateSubscriptionRequest,
    caller: Caller = Depends(get_current_caller),
    services: ServiceContainer = Depends(get_services),
) -> Tenant:
    return services.subscriptions.update_subscription(
        caller,
        payload.tier,
        amount=payload.amount,
        payment_id=payload.payment_id,
    )


@router.post("/subscription/cancel", response_model=Tenant)
async def cancel_subscription(
    caller: Caller = Depends(get_current_caller),
    services: ServiceContainer = Depends(get_services),
) -> Tenant:
    return services.subscriptions.cancel_subscription(caller)


@router.get("/subscription/history", response_model=SubscriptionHistoryPage)
async def get_subscription_history(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    caller: Caller = Depends(get_current_caller),
    services: ServiceContainer = Depends(get_services),
) -> SubscriptionHistoryPage:
    return services.subscriptions.get_subscription_history(caller, page=page, limit=limit)
