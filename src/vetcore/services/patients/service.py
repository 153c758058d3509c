from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, List, Optional
from uuid import UUID, uuid4

from src.vetcore.domain.models.patient import Patient
from src.vetcore.domain.models.permission import Permission
from src.vetcore.domain.models.principal import Caller
from src.vetcore.errors import ValidationError
from src.vetcore.infra.db.repositories import PatientRepository
from src.vetcore.services.access.guard import authorize, found_in_tenant, require_tenant

_REQUIRED = ("name", "species")


class PatientService:
    """Animals under care. Every lookup is scoped to the caller's practice."""

    def __init__(self, patients: PatientRepository) -> None:
        self._patients = patients

    def create_patient(
        self,
        caller: Caller,
        *,
        name: str,
        species: str,
        breed: Optional[str] = None,
        date_of_birth: Optional[date] = None,
        owner_name: Optional[str] = None,
        owner_email: Optional[str] = None,
    ) -> Patient:
        authorize(caller, [Permission.CREATE_PATIENT])
        tenant_id = require_tenant(caller)
        for field, val in (("name", name), ("species", species)):
            if not val or not val.strip():
                raise ValidationError(f"Patient {field} is required", field=field)

        patient = Patient(
            id=uuid4(),
            tenant_id=tenant_id,
            name=name.strip(),
            species=species.strip(),
            breed=breed,
            date_of_birth=date_of_birth,
            owner_name=owner_name,
            owner_email=owner_email,
        )
        self._patients.save(patient)
        return patient

    def get_patient(self, caller: Caller, patient_id: UUID) -> Patient:
        authorize(caller, [Permission.VIEW_PATIENT])
        tenant_id = require_tenant(caller)
        return found_in_tenant(self._patients.get(tenant_id, patient_id), "Patient")

    def list_patients(self, caller: Caller) -> List[Patient]:
        authorize(caller, [Permission.VIEW_PATIENT])
        tenant_id = require_tenant(caller)
        return self._patients.list_for_tenant(tenant_id)

    def update_patient(self, caller: Caller, patient_id: UUID, **fields: Any) -> Patient:
        authorize(caller, [Permission.EDIT_PATIENT])
        tenant_id = require_tenant(caller)
        current = found_in_tenant(self._patients.get(tenant_id, patient_id), "Patient")

        allowed = {"name", "species", "breed", "date_of_birth", "owner_name", "owner_email"}
        unknown = set(fields) - allowed
        if unknown:
            raise ValidationError(f"Unknown patient fields: {sorted(unknown)}", field=sorted(unknown)[0])
        for field in _REQUIRED:
            if field in fields and (not fields[field] or not str(fields[field]).strip()):
                raise ValidationError(f"Patient {field} is required", field=field)

        changes = {k: (v.strip() if k in _REQUIRED else v) for k, v in fields.items()}
        changes["updated_at"] = datetime.now(timezone.utc)
        updated = current.model_copy(update=changes)
        self._patients.save(updated)
        return updated
