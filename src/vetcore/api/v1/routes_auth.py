from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, EmailStr

from src.vetcore.container import ServiceContainer, get_services
from src.vetcore.domain.models.principal import Principal
from src.vetcore.domain.models.tenant import Tenant
from src.vetcore.security import issue_token

router = APIRouter(prefix="/auth", tags=["auth"])


class RegisterPracticeRequest(BaseModel):
    practice_name: str
    owner_email: EmailStr
    owner_full_name: Optional[str] = None


class RegisterPracticeResponse(BaseModel):
    practice: Tenant
    owner: Principal
    access_token: str
    token_type: str = "bearer"


@router.post("/register", response_model=RegisterPracticeResponse, status_code=status.HTTP_201_CREATED)
async def register_practice(
    payload: RegisterPracticeRequest,
    services: ServiceContainer = Depends(get_services),
) -> RegisterPracticeResponse:
    """Sign up a new practice on a trial subscription and log its owner in."""

    tenant, owner = services.practices.register_practice(
        practice_name=payload.practice_name,
        owner_email=payload.owner_email,
        owner_full_name=payload.owner_full_name,
    )
    return RegisterPracticeResponse(practice=tenant, owner=owner, access_token=issue_token(owner.id))
