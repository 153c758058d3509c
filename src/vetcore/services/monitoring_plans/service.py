from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, List, Optional
from uuid import UUID, uuid4

from src.vetcore.domain.models.monitoring_plan import MonitoringPlan, MonitoringPlanStatus, PlanEnrollment
from src.vetcore.domain.models.permission import Permission
from src.vetcore.domain.models.principal import Caller
from src.vetcore.errors import ConflictError, QuotaExceededError, ValidationError
from src.vetcore.infra.db.repositories import (
    MonitoringPlanRepository,
    ObservationTemplateRepository,
    PatientRepository,
)
from src.vetcore.services.access.guard import authorize, found_in_tenant, require_tenant
from src.vetcore.services.audit.service import audit_service
from src.vetcore.services.subscriptions.quota import ensure_can_activate

logger = logging.getLogger("vetcore.plans")

_UNSET: Any = object()


class MonitoringPlanService:
    """Monitoring plans are the quota-bounded resource of a practice.

    Every write that may move a plan into ACTIVE goes through
    ``save_within_quota`` so the count and the write are one atomic step.
    Writes that leave the plan outside ACTIVE are never quota checked.
    """

    def __init__(
        self,
        plans: MonitoringPlanRepository,
        templates: ObservationTemplateRepository,
        patients: PatientRepository,
    ) -> None:
        self._plans = plans
        self._templates = templates
        self._patients = patients

    def create_plan(
        self,
        caller: Caller,
        *,
        title: str,
        description: Optional[str] = None,
        status: MonitoringPlanStatus = MonitoringPlanStatus.DRAFT,
    ) -> MonitoringPlan:
        authorize(caller, [Permission.CREATE_MONITORING_PLAN])
        tenant_id = require_tenant(caller)
        if not title or not title.strip():
            raise ValidationError("Title is required", field="title")

        plan = MonitoringPlan(
            id=uuid4(),
            tenant_id=tenant_id,
            title=title.strip(),
            description=description,
            status=MonitoringPlanStatus(status),
            created_by=caller.principal_id,
        )
        self._persist(plan, entering_active=plan.status == MonitoringPlanStatus.ACTIVE)
        logger.info("created monitoring plan", extra={"plan_id": str(plan.id), "status": plan.status.value})
        return plan

    def get_plan(self, caller: Caller, plan_id: UUID) -> MonitoringPlan:
        authorize(caller, [Permission.VIEW_MONITORING_PLAN])
        tenant_id = require_tenant(caller)
        return found_in_tenant(self._plans.get(tenant_id, plan_id), "Monitoring plan")

    def list_plans(self, caller: Caller, *, status: Optional[MonitoringPlanStatus] = None) -> List[MonitoringPlan]:
        authorize(caller, [Permission.VIEW_MONITORING_PLAN])
        tenant_id = require_tenant(caller)
        return self._plans.list_for_tenant(tenant_id, status=status)

    def update_plan(
        self,
        caller: Caller,
        plan_id: UUID,
        *,
        title: Any = _UNSET,
        description: Any = _UNSET,
    ) -> MonitoringPlan:
        authorize(caller, [Permission.EDIT_MONITORING_PLAN])
        tenant_id = require_tenant(caller)
        current = found_in_tenant(self._plans.get(tenant_id, plan_id), "Monitoring plan")

        changes = {"updated_at": datetime.now(timezone.utc)}
        if title is not _UNSET:
            if not title or not str(title).strip():
                raise ValidationError("Title is required", field="title")
            changes["title"] = str(title).strip()
        if description is not _UNSET:
            changes["description"] = description

        updated = current.model_copy(update=changes)
        self._plans.save(updated)
        return updated

    def change_status(self, caller: Caller, plan_id: UUID, status: MonitoringPlanStatus) -> MonitoringPlan:
        authorize(caller, [Permission.EDIT_MONITORING_PLAN])
        tenant_id = require_tenant(caller)
        current = found_in_tenant(self._plans.get(tenant_id, plan_id), "Monitoring plan")

        new_status = MonitoringPlanStatus(status)
        if new_status == current.status:
            return current

        updated = current.model_copy(update={"status": new_status, "updated_at": datetime.now(timezone.utc)})
        self._persist(updated, entering_active=new_status == MonitoringPlanStatus.ACTIVE)
        logger.info(
            "changed monitoring plan status",
            extra={"plan_id": str(plan_id), "from": current.status.value, "to": new_status.value},
        )
        return updated

    def delete_plan(self, caller: Caller, plan_id: UUID) -> None:
        authorize(caller, [Permission.DELETE_MONITORING_PLAN])
        tenant_id = require_tenant(caller)
        found_in_tenant(self._plans.get(tenant_id, plan_id), "Monitoring plan")

        if self._templates.count_for_plan(tenant_id, plan_id) > 0:
            raise ConflictError("Monitoring plan still has observation templates attached")
        self._plans.delete(tenant_id, plan_id)

    def enroll_patient(self, caller: Caller, plan_id: UUID, patient_id: UUID) -> PlanEnrollment:
        authorize(caller, [Permission.EDIT_MONITORING_PLAN])
        tenant_id = require_tenant(caller)
        found_in_tenant(self._plans.get(tenant_id, plan_id), "Monitoring plan")
        found_in_tenant(self._patients.get(tenant_id, patient_id), "Patient")

        enrollment = PlanEnrollment(plan_id=plan_id, patient_id=patient_id, tenant_id=tenant_id)
        self._plans.add_enrollment(enrollment)
        return enrollment

    def _persist(self, plan: MonitoringPlan, *, entering_active: bool) -> None:
        if not entering_active:
            self._plans.save(plan)
            return
        try:
            self._plans.save_within_quota(plan, ensure_can_activate)
        except QuotaExceededError as exc:
            audit_service.log_event(
                action="activate",
                resource_type="monitoring_plan",
                outcome="denied",
                resource_id=str(plan.id),
                extra=exc.details,
            )
            raise
        audit_service.log_event(action="activate", resource_type="monitoring_plan", resource_id=str(plan.id))
