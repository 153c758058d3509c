from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4

from src.vetcore.domain.models.observation_template import (
    BOUNDED_DATA_TYPES,
    OPTION_DATA_TYPES,
    ObservationDataType,
    ObservationTemplate,
)
from src.vetcore.domain.models.permission import Permission
from src.vetcore.domain.models.principal import Caller
from src.vetcore.errors import ConflictError, ValidationError
from src.vetcore.infra.db.repositories import (
    MonitoringPlanRepository,
    ObservationRepository,
    ObservationTemplateRepository,
)
from src.vetcore.services.access.guard import authorize, found_in_tenant, require_tenant

logger = logging.getLogger("vetcore.templates")

_UNSET: Any = object()


def _parse_data_type(raw: Any) -> ObservationDataType:
    try:
        return ObservationDataType(raw)
    except ValueError as exc:
        allowed = ", ".join(t.value for t in ObservationDataType)
        raise ValidationError(f"Data type must be one of [{allowed}]", field="data_type") from exc


def check_template_definition(
    data_type: ObservationDataType,
    *,
    min_value: Optional[float],
    max_value: Optional[float],
    options: Optional[List[str]],
) -> None:
    """Reject constraint combinations that do not fit ``data_type``."""

    if data_type in BOUNDED_DATA_TYPES:
        if min_value is not None and max_value is not None and min_value > max_value:
            raise ValidationError("Minimum value cannot exceed maximum value", field="min_value")
    elif min_value is not None or max_value is not None:
        raise ValidationError(
            f"Bounds are only allowed on NUMERIC and SCALE templates, not {data_type.value}",
            field="min_value" if min_value is not None else "max_value",
        )

    if data_type in OPTION_DATA_TYPES:
        if not options:
            raise ValidationError("Enumeration templates need at least one option", field="options")
        if any(not isinstance(o, str) or not o for o in options):
            raise ValidationError("Options must be non-empty strings", field="options")
        if len(set(options)) != len(options):
            raise ValidationError("Options must be unique", field="options")
    elif options is not None:
        raise ValidationError(
            f"Options are only allowed on ENUMERATION templates, not {data_type.value}",
            field="options",
        )


class TemplateService:
    """Tenant-scoped CRUD for observation templates."""

    def __init__(
        self,
        templates: ObservationTemplateRepository,
        plans: MonitoringPlanRepository,
        observations: ObservationRepository,
    ) -> None:
        self._templates = templates
        self._plans = plans
        self._observations = observations

    def create_template(
        self,
        caller: Caller,
        *,
        monitoring_plan_id: UUID,
        name: str,
        data_type: Any,
        description: Optional[str] = None,
        units: Optional[str] = None,
        min_value: Optional[float] = None,
        max_value: Optional[float] = None,
        options: Optional[List[str]] = None,
    ) -> ObservationTemplate:
        authorize(caller, [Permission.CREATE_SYMPTOM])
        tenant_id = require_tenant(caller)

        parsed = _parse_data_type(data_type)
        if parsed == ObservationDataType.NOTE:
            raise ValidationError("Health note templates are created automatically", field="data_type")
        if not name or not name.strip():
            raise ValidationError("Template name is required", field="name")
        check_template_definition(parsed, min_value=min_value, max_value=max_value, options=options)

        found_in_tenant(self._plans.get(tenant_id, monitoring_plan_id), "Monitoring plan")

        template = ObservationTemplate(
            id=uuid4(),
            tenant_id=tenant_id,
            monitoring_plan_id=monitoring_plan_id,
            name=name.strip(),
            description=description,
            data_type=parsed.value,
            units=units,
            min_value=min_value,
            max_value=max_value,
            options=list(options) if options is not None else None,
        )
        self._templates.save(template)
        logger.info("created template", extra={"template_id": str(template.id), "data_type": parsed.value})
        return template

    def get_template(self, caller: Caller, template_id: UUID) -> ObservationTemplate:
        authorize(caller, [Permission.VIEW_SYMPTOM])
        tenant_id = require_tenant(caller)
        return found_in_tenant(self._templates.get(tenant_id, template_id), "Observation template")

    def list_templates(
        self,
        caller: Caller,
        *,
        monitoring_plan_id: Optional[UUID] = None,
        data_type: Optional[str] = None,
    ) -> List[ObservationTemplate]:
        authorize(caller, [Permission.VIEW_SYMPTOM])
        tenant_id = require_tenant(caller)
        if data_type is not None:
            data_type = _parse_data_type(data_type).value
        return self._templates.list_for_tenant(
            tenant_id, monitoring_plan_id=monitoring_plan_id, data_type=data_type
        )

    def update_template(
        self,
        caller: Caller,
        template_id: UUID,
        *,
        name: Any = _UNSET,
        description: Any = _UNSET,
        units: Any = _UNSET,
        min_value: Any = _UNSET,
        max_value: Any = _UNSET,
        options: Any = _UNSET,
    ) -> ObservationTemplate:
        """Apply a partial update and re-check the resulting definition.

        Existing records keep the value they were validated with; only new
        records see the new constraints. The data type itself is fixed.
        """

        authorize(caller, [Permission.EDIT_SYMPTOM])
        tenant_id = require_tenant(caller)
        current = found_in_tenant(self._templates.get(tenant_id, template_id), "Observation template")

        changes: Dict[str, Any] = {}
        if name is not _UNSET:
            if not name or not str(name).strip():
                raise ValidationError("Template name is required", field="name")
            changes["name"] = str(name).strip()
        if description is not _UNSET:
            changes["description"] = description
        if units is not _UNSET:
            changes["units"] = units
        if min_value is not _UNSET:
            changes["min_value"] = min_value
        if max_value is not _UNSET:
            changes["max_value"] = max_value
        if options is not _UNSET:
            changes["options"] = list(options) if options is not None else None

        updated = current.model_copy(update={**changes, "updated_at": datetime.now(timezone.utc)})
        check_template_definition(
            _parse_data_type(updated.data_type),
            min_value=updated.min_value,
            max_value=updated.max_value,
            options=updated.options,
        )
        self._templates.save(updated)
        return updated

    def delete_template(self, caller: Caller, template_id: UUID) -> None:
        authorize(caller, [Permission.DELETE_SYMPTOM])
        tenant_id = require_tenant(caller)
        found_in_tenant(self._templates.get(tenant_id, template_id), "Observation template")

        if self._observations.count_for_template(tenant_id, template_id) > 0:
            raise ConflictError("Template has recorded observations and cannot be deleted")
        self._templates.delete(tenant_id, template_id)
