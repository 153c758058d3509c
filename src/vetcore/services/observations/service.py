from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, List, Optional
from uuid import UUID, uuid4

from src.vetcore.domain.models.observation import ObservationRecord
from src.vetcore.domain.models.observation_template import ObservationDataType
from src.vetcore.domain.models.permission import Permission
from src.vetcore.domain.models.principal import Caller
from src.vetcore.errors import ValidationError
from src.vetcore.infra.db.repositories import (
    MonitoringPlanRepository,
    ObservationRepository,
    ObservationTemplateRepository,
    PatientRepository,
)
from src.vetcore.services.access.guard import authorize, found_in_tenant, require_tenant
from src.vetcore.services.observations.validator import validate
from src.vetcore.services.templates.bootstrap import TemplateBootstrap

logger = logging.getLogger("vetcore.observations")

MAX_PAGE_SIZE = 100


class ObservationService:
    """Record and read observation values.

    Records are validated against the template as it stands at recording
    time and are never updated afterwards.
    """

    def __init__(
        self,
        observations: ObservationRepository,
        templates: ObservationTemplateRepository,
        plans: MonitoringPlanRepository,
        patients: PatientRepository,
        bootstrap: TemplateBootstrap,
    ) -> None:
        self._observations = observations
        self._templates = templates
        self._plans = plans
        self._patients = patients
        self._bootstrap = bootstrap

    def record_observation(
        self,
        caller: Caller,
        *,
        template_id: UUID,
        value: Any = None,
        patient_id: Optional[UUID] = None,
        notes: Optional[str] = None,
    ) -> ObservationRecord:
        authorize(caller, [Permission.RECORD_OBSERVATION])
        tenant_id = require_tenant(caller)
        template = found_in_tenant(self._templates.get(tenant_id, template_id), "Observation template")

        if patient_id is not None:
            found_in_tenant(self._patients.get(tenant_id, patient_id), "Patient")
            if template.data_type != ObservationDataType.NOTE.value and not self._plans.is_enrolled(
                tenant_id, template.monitoring_plan_id, patient_id
            ):
                raise ValidationError(
                    "Patient is not enrolled in this template's monitoring plan",
                    field="patient_id",
                )

        validate(value, template)

        record = ObservationRecord(
            id=uuid4(),
            tenant_id=tenant_id,
            template_id=template.id,
            patient_id=patient_id,
            value=value,
            notes=notes,
            recorded_by=caller.principal_id,
        )
        self._observations.add(record)
        logger.info(
            "recorded observation",
            extra={"record_id": str(record.id), "template_id": str(template.id)},
        )
        return record

    def record_health_note(
        self,
        caller: Caller,
        *,
        notes: str,
        patient_id: Optional[UUID] = None,
    ) -> ObservationRecord:
        """Record free text against the practice's canonical NOTE template."""

        authorize(caller, [Permission.RECORD_OBSERVATION])
        tenant_id = require_tenant(caller)
        if not notes or not notes.strip():
            raise ValidationError("Note text is required", field="notes")

        template_id = self._bootstrap.ensure_singleton_template(tenant_id, ObservationDataType.NOTE)
        return self.record_observation(caller, template_id=template_id, patient_id=patient_id, notes=notes)

    def get_observation(self, caller: Caller, record_id: UUID) -> ObservationRecord:
        authorize(caller, [Permission.VIEW_SYMPTOM])
        tenant_id = require_tenant(caller)
        return found_in_tenant(self._observations.get(tenant_id, record_id), "Observation")

    def list_observations(
        self,
        caller: Caller,
        *,
        template_id: Optional[UUID] = None,
        patient_id: Optional[UUID] = None,
        recorded_from: Optional[datetime] = None,
        recorded_to: Optional[datetime] = None,
        limit: int = 25,
        offset: int = 0,
    ) -> List[ObservationRecord]:
        authorize(caller, [Permission.VIEW_SYMPTOM])
        tenant_id = require_tenant(caller)

        if limit < 1 or limit > MAX_PAGE_SIZE:
            raise ValidationError(f"Limit must be between 1 and {MAX_PAGE_SIZE}", field="limit")
        if offset < 0:
            raise ValidationError("Offset must not be negative", field="offset")
        if recorded_from is not None and recorded_to is not None and recorded_from > recorded_to:
            raise ValidationError("Start of range must not be after its end", field="recorded_from")

        return self._observations.list(
            tenant_id,
            template_id=template_id,
            patient_id=patient_id,
            recorded_from=recorded_from,
            recorded_to=recorded_to,
            limit=limit,
            offset=offset,
        )
