from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel

from src.vetcore.container import ServiceContainer, get_services
from src.vetcore.domain.models.observation_template import ObservationTemplate
from src.vetcore.domain.models.principal import Caller
from src.vetcore.security import get_current_caller

router = APIRouter(prefix="/observation-templates", tags=["observation-templates"])


class CreateTemplateRequest(BaseModel):
    monitoring_plan_id: UUID
    name: str
    # Free-form so an unknown type is reported by the service with the
    # list of allowed values.
    data_type: str
    description: Optional[str] = None
    units: Optional[str] = None
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    options: Optional[List[str]] = None


class UpdateTemplateRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    units: Optional[str] = None
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    options: Optional[List[str]] = None


@router.get("", response_model=List[ObservationTemplate])
async def list_templates(
    monitoring_plan_id: Optional[UUID] = None,
    data_type: Optional[str] = None,
    caller: Caller = Depends(get_current_caller),
    services: ServiceContainer = Depends(get_services),
) -> List[ObservationTemplate]:
    return services.templates.list_templates(caller, monitoring_plan_id=monitoring_plan_id, data_type=data_type)


@router.post("", response_model=ObservationTemplate, status_code=status.HTTP_201_CREATED)
async def create_template(
    payload: CreateTemplateRequest,
    caller: Caller = Depends(get_current_caller),
    services: ServiceContainer = Depends(get_services),
) -> ObservationTemplate:
    return services.templates.create_template(caller, **payload.model_dump())


@router.get("/{template_id}", response_model=ObservationTemplate)
async def get_template(
    template_id: UUID,
    caller: Caller = Depends(get_current_caller),
    services: ServiceContainer = Depends(get_services),
) -> ObservationTemplate:
    return services.templates.get_template(caller, template_id)


@router.patch("/{template_id}", response_model=ObservationTemplate)
async def update_template(
    template_id: UUID,
    payload: UpdateTemplateRequest,
    caller: Caller = Depends(get_current_caller),
    services: ServiceContainer = Depends(get_services),
) -> ObservationTemplate:
    return services.templates.update_template(caller, template_id, **payload.model_dump(exclude_unset=True))


@router.delete("/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_template(
    template_id: UUID,
    caller: Caller = Depends(get_current_caller),
    services: ServiceContainer = Depends(get_services),
) -> Response:
    services.templates.delete_template(caller, template_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
