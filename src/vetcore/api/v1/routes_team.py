from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, EmailStr

from src.vetcore.container import ServiceContainer, get_services
from src.vetcore.domain.models.permission import Permission
from src.vetcore.domain.models.principal import Caller, Principal, Role
from src.vetcore.security import get_current_caller, require_permissions

router = APIRouter(prefix="/team", tags=["team"])


class AddMemberRequest(BaseModel):
    email: EmailStr
    role: Role
    full_name: Optional[str] = None


class ChangeRoleRequest(BaseModel):
    role: Role


@router.get("", response_model=List[Principal])
async def list_members(
    caller: Caller = Depends(require_permissions(Permission.VIEW_TEAM_MEMBERS)),
    services: ServiceContainer = Depends(get_services),
) -> List[Principal]:
    return services.team.list_members(caller)


@router.post("", response_model=Principal, status_code=status.HTTP_201_CREATED)
async def add_member(
    payload: AddMemberRequest,
    caller: Caller = Depends(require_permissions(Permission.INVITE_TEAM_MEMBERS)),
    services: ServiceContainer = Depends(get_services),
) -> Principal:
    return services.team.add_member(caller, email=payload.email, role=payload.role, full_name=payload.full_name)


@router.patch("/{member_id}/role", response_model=Principal)
async def change_role(
    member_id: UUID,
    payload: ChangeRoleRequest,
    caller: Caller = Depends(get_current_caller),
    services: ServiceContainer = Depends(get_services),
) -> Principal:
    return services.team.change_role(caller, member_id, payload.role)


@router.post("/{member_id}/deactivate", response_model=Principal)
async def deactivate_member(
    member_id: UUID,
    caller: Caller = Depends(get_current_caller),
    services: ServiceContainer = Depends(get_services),
) -> Principal:
    return services.team.deactivate_member(caller, member_id)
