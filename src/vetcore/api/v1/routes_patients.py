from __future__ import annotations

from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from src.vetcore.container import ServiceContainer, get_services
from src.vetcore.domain.models.patient import Patient
from src.vetcore.domain.models.permission import Permission
from src.vetcore.domain.models.principal import Caller
from src.vetcore.security import get_current_caller, require_permissions

router = APIRouter(prefix="/patients", tags=["patients"])


class CreatePatientRequest(BaseModel):
    name: str
    species: str
    breed: Optional[str] = None
    date_of_birth: Optional[date] = None
    owner_name: Optional[str] = None
    owner_email: Optional[str] = None


class UpdatePatientRequest(BaseModel):
    name: Optional[str] = None
    species: Optional[str] = None
    breed: Optional[str] = None
    date_of_birth: Optional[date] = None
    owner_name: Optional[str] = None
    owner_email: Optional[str] = None


@router.get("", response_model=List[Patient])
async def list_patients(
    caller: Caller = Depends(require_permissions(Permission.VIEW_PATIENT)),
    services: ServiceContainer = Depends(get_services),
) -> List[Patient]:
    return services.patients.list_patients(caller)


@router.post("", response_model=Patient, status_code=status.HTTP_201_CREATED)
async def create_patient(
    payload: CreatePatientRequest,
    caller: Caller = Depends(require_permissions(Permission.CREATE_PATIENT)),
    services: ServiceContainer = Depends(get_services),
) -> Patient:
    return services.patients.create_patient(caller, **payload.model_dump())


@router.get("/{patient_id}", response_model=Patient)
async def get_patient(
    patient_id: UUID,
    caller: Caller = Depends(get_current_caller),
    services: ServiceContainer = Depends(get_services),
) -> Patient:
    return services.patients.get_patient(caller, patient_id)


@router.patch("/{patient_id}", response_model=Patient)
async def update_patient(
    patient_id: UUID,
    payload: UpdatePatientRequest,
    caller: Caller = Depends(get_current_caller),
    services: ServiceContainer = Depends(get_services),
) -> Patient:
    return services.patients.update_patient(caller, patient_id, **payload.model_dump(exclude_unset=True))
