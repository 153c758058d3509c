from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel

from src.vetcore.container import ServiceContainer, get_services
from src.vetcore.domain.models.observation import ObservationRecord
from src.vetcore.domain.models.principal import Caller
from src.vetcore.security import get_current_caller

router = APIRouter(prefix="/observations", tags=["observations"])


class RecordObservationRequest(BaseModel):
    template_id: UUID
    # Left as Any: the template decides the shape, and the validator must
    # see the JSON type the client sent (no coercion of "5" to 5).
    value: Any = None
    patient_id: Optional[UUID] = None
    notes: Optional[str] = None


class RecordHealthNoteRequest(BaseModel):
    notes: str
    patient_id: Optional[UUID] = None


@router.post("", response_model=ObservationRecord, status_code=status.HTTP_201_CREATED)
async def record_observation(
    payload: RecordObservationRequest,
    caller: Caller = Depends(get_current_caller),
    services: ServiceContainer = Depends(get_services),
) -> ObservationRecord:
    return services.observations.record_observation(
        caller,
        template_id=payload.template_id,
        value=payload.value,
        patient_id=payload.patient_id,
        notes=payload.notes,
    )


@router.post("/notes", response_model=ObservationRecord, status_code=status.HTTP_201_CREATED)
async def record_health_note(
    payload: RecordHealthNoteRequest,
    caller: Caller = Depends(get_current_caller),
    services: ServiceContainer = Depends(get_services),
) -> ObservationRecord:
    return services.observations.record_health_note(caller, notes=payload.notes, patient_id=payload.patient_id)


@router.get("", response_model=List[ObservationRecord])
async def list_observations(
    template_id: Optional[UUID] = None,
    patient_id: Optional[UUID] = None,
    recorded_from: Optional[datetime] = None,
    recorded_to: Optional[datetime] = None,
    limit: int = Query(25, ge=1, le=100),
    offset: int = Query(0, ge=0),
    caller: Caller = Depends(get_current_caller),
    services: ServiceContainer = Depends(get_services),
) -> List[ObservationRecord]:
    return services.observations.list_observations(
        caller,
        template_id=template_id,
        patient_id=patient_id,
        recorded_from=recorded_from,
        recorded_to=recorded_to,
        limit=limit,
        offset=offset,
    )


@router.get("/{record_id}", response_model=ObservationRecord)
async def get_observation(
    record_id: UUID,
    caller: Caller = Depends(get_current_caller),
    services: ServiceContainer = Depends(get_services),
) -> ObservationRecord:
    return services.observations.get_observation(caller, record_id)
