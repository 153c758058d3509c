from __future__ import annotations

import logging
from typing import Dict, Union
from uuid import UUID, uuid4

from src.vetcore.domain.models.observation_template import ObservationDataType, ObservationTemplate
from src.vetcore.errors import ConfigurationError, NotFoundError
from src.vetcore.infra.db.repositories import MonitoringPlanRepository, ObservationTemplateRepository
from src.vetcore.services.audit.service import audit_service

logger = logging.getLogger("vetcore.templates")

# Categories that have exactly one canonical template per practice, with the
# display name and description used when it is created.
SINGLETON_CATEGORIES: Dict[ObservationDataType, Dict[str, str]] = {
    ObservationDataType.NOTE: {
        "name": "General Health Notes",
        "description": "Free-text health notes recorded outside a structured template.",
    },
}


class TemplateBootstrap:
    """Lazily create the canonical per-practice template of a category.

    Safe to call repeatedly and concurrently: creation goes through the
    repository's atomic insert-if-absent, so two racing callers both get the
    id of the single row that won.
    """

    def __init__(self, templates: ObservationTemplateRepository, plans: MonitoringPlanRepository) -> None:
        self._templates = templates
        self._plans = plans

    def ensure_singleton_template(
        self,
        tenant_id: UUID,
        category: Union[ObservationDataType, str] = ObservationDataType.NOTE,
    ) -> UUID:
        try:
            data_type = ObservationDataType(category)
        except ValueError as exc:
            raise ConfigurationError(f"Unknown template category {category!r}") from exc

        defaults = SINGLETON_CATEGORIES.get(data_type)
        if defaults is None:
            raise ConfigurationError(f"{data_type.value} is not a singleton template category")

        existing = self._templates.list_for_tenant(tenant_id, data_type=data_type.value)
        if existing:
            if len(existing) > 1:
                logger.warning(
                    "duplicate singleton templates found, using the earliest",
                    extra={
                        "tenant_id": str(tenant_id),
                        "category": data_type.value,
                        "count": len(existing),
                    },
                )
            return existing[0].id

        plan = self._plans.earliest_for_tenant(tenant_id)
        if plan is None:
            raise NotFoundError("Create a monitoring plan before recording health notes")

        candidate = ObservationTemplate(
            id=uuid4(),
            tenant_id=tenant_id,
            monitoring_plan_id=plan.id,
            name=defaults["name"],
            description=defaults["description"],
            data_type=data_type.value,
            is_canonical=True,
        )
        winner = self._templates.insert_singleton_if_absent(candidate)
        if winner.id == candidate.id:
            logger.info(
                "created singleton template",
                extra={"tenant_id": str(tenant_id), "category": data_type.value},
            )
            audit_service.log_event(
                action="bootstrap",
                resource_type="observation_template",
                resource_id=str(winner.id),
                extra={"category": data_type.value},
            )
        return winner.id
