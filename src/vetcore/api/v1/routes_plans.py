from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel

from src.vetcore.container import ServiceContainer, get_services
from src.vetcore.domain.models.monitoring_plan import MonitoringPlan, MonitoringPlanStatus, PlanEnrollment
from src.vetcore.domain.models.principal import Caller
from src.vetcore.security import get_current_caller

router = APIRouter(prefix="/monitoring-plans", tags=["monitoring-plans"])


class CreatePlanRequest(BaseModel):
    title: str
    description: Optional[str] = None
    status: MonitoringPlanStatus = MonitoringPlanStatus.DRAFT


class UpdatePlanRequest(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None


class ChangeStatusRequest(BaseModel):
    status: MonitoringPlanStatus


class EnrollPatientRequest(BaseModel):
    patient_id: UUID


@router.get("", response_model=List[MonitoringPlan])
async def list_plans(
    status_filter: Optional[MonitoringPlanStatus] = Query(None, alias="status"),
    caller: Caller = Depends(get_current_caller),
    services: ServiceContainer = Depends(get_services),
) -> List[MonitoringPlan]:
    return services.plans.list_plans(caller, status=status_filter)


@router.post("", response_model=MonitoringPlan, status_code=status.HTTP_201_CREATED)
async def create_plan(
    payload: CreatePlanRequest,
    caller: Caller = Depends(get_current_caller),
    services: ServiceContainer = Depends(get_services),
) -> MonitoringPlan:
    return services.plans.create_plan(
        caller,
        title=payload.title,
        description=payload.description,
        status=payload.status,
    )


@router.get("/{plan_id}", response_model=MonitoringPlan)
async def get_plan(
    plan_id: UUID,
    caller: Caller = Depends(get_current_caller),
    services: ServiceContainer = Depends(get_services),
) -> MonitoringPlan:
    return services.plans.get_plan(caller, plan_id)


@router.patch("/{plan_id}", response_model=MonitoringPlan)
async def update_plan(
    plan_id: UUID,
    payload: UpdatePlanRequest,
    caller: Caller = Depends(get_current_caller),
    services: ServiceContainer = Depends(get_services),
) -> MonitoringPlan:
    return services.plans.update_plan(caller, plan_id, **payload.model_dump(exclude_unset=True))


@router.put("/{plan_id}/status", response_model=MonitoringPlan)
async def change_status(
    plan_id: UUID,
    payload: ChangeStatusRequest,
    caller: Caller = Depends(get_current_caller),
    services: ServiceContainer = Depends(get_services),
) -> MonitoringPlan:
    return services.plans.change_status(caller, plan_id, payload.status)


@router.delete("/{plan_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_plan(
    plan_id: UUID,
    caller: Caller = Depends(get_current_caller),
    services: ServiceContainer = Depends(get_services),
) -> Response:
    services.plans.delete_plan(caller, plan_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{plan_id}/enrollments", response_model=PlanEnrollment, status_code=status.HTTP_201_CREATED)
async def enroll_patient(
    plan_id: UUID,
    payload: EnrollPatientRequest,
    caller: Caller = Depends(get_current_caller),
    services: ServiceContainer = Depends(get_services),
) -> PlanEnrollment:
    return services.plans.enroll_patient(caller, plan_id, payload.patient_id)
