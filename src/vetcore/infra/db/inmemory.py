from __future__ import annotations

from datetime import datetime, timezone
from threading import RLock
from typing import Dict, List, Optional, Set, Tuple
from uuid import UUID

from src.vetcore.domain.models.monitoring_plan import MonitoringPlan, MonitoringPlanStatus, PlanEnrollment
from src.vetcore.domain.models.observation import ObservationRecord
from src.vetcore.domain.models.observation_template import ObservationTemplate
from src.vetcore.domain.models.patient import Patient
from src.vetcore.domain.models.principal import Principal
from src.vetcore.domain.models.tenant import SubscriptionChange, Tenant
from src.vetcore.errors import ConflictError, NotFoundError
from src.vetcore.infra.db.repositories import (
    MonitoringPlanRepository,
    ObservationRepository,
    ObservationTemplateRepository,
    PatientRepository,
    PrincipalRepository,
    QuotaCheck,
    TenantRepository,
)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class InMemoryStore:
    """Process-local tables shared by the in-memory repositories.

    A single re-entrant lock serializes every read-modify-write, which is
    what makes ``save_within_quota`` and ``insert_singleton_if_absent``
    atomic. Stored objects are deep-copied on the way in and out so callers
    can never mutate persisted state behind the repository's back.
    """

    def __init__(self) -> None:
        self.lock = RLock()
        self.tenants: Dict[UUID, Tenant] = {}
        self.subscription_changes: Dict[UUID, List[SubscriptionChange]] = {}
        self.principals: Dict[UUID, Principal] = {}
        self.plans: Dict[UUID, MonitoringPlan] = {}
        self.enrollments: Set[Tuple[UUID, UUID]] = set()
        self.templates: Dict[UUID, ObservationTemplate] = {}
        self.singletons: Dict[Tuple[UUID, str], UUID] = {}
        self.observations: Dict[UUID, ObservationRecord] = {}
        self.patients: Dict[UUID, Patient] = {}


class InMemoryTenantRepository(TenantRepository):
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    def get(self, tenant_id: UUID) -> Optional[Tenant]:
        with self._store.lock:
            tenant = self._store.tenants.get(tenant_id)
            return tenant.model_copy(deep=True) if tenant is not None else None

    def save(self, tenant: Tenant) -> None:
        with self._store.lock:
            self._store.tenants[tenant.id] = tenant.model_copy(deep=True)

    def append_subscription_change(self, change: SubscriptionChange) -> None:
        with self._store.lock:
            self._store.subscription_changes.setdefault(change.tenant_id, []).append(change.model_copy())

    def list_subscription_changes(
        self,
        tenant_id: UUID,
        *,
        limit: int = 10,
        offset: int = 0,
    ) -> List[SubscriptionChange]:
        with self._store.lock:
            # Reversed first so entries with equal start dates keep newest first.
            history = list(reversed(self._store.subscription_changes.get(tenant_id, [])))
        history.sort(key=lambda c: _as_utc(c.start_date), reverse=True)
        return [c.model_copy() for c in history[offset : offset + limit]]

    def count_subscription_changes(self, tenant_id: UUID) -> int:
        with self._store.lock:
            return len(self._store.subscription_changes.get(tenant_id, []))


class InMemoryPrincipalRepository(PrincipalRepository):
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    def get(self, principal_id: UUID) -> Optional[Principal]:
        with self._store.lock:
            principal = self._store.principals.get(principal_id)
            return principal.model_copy(deep=True) if principal is not None else None

    def get_by_email(self, email: str) -> Optional[Principal]:
        wanted = email.lower()
        with self._store.lock:
            for principal in self._store.principals.values():
                if principal.email.lower() == wanted:
                    return principal.model_copy(deep=True)
        return None

    def list_for_tenant(self, tenant_id: UUID) -> List[Principal]:
        with self._store.lock:
            members = [p.model_copy(deep=True) for p in self._store.principals.values() if p.tenant_id == tenant_id]
        members.sort(key=lambda p: _as_utc(p.created_at))
        return members

    def add(self, principal: Principal) -> None:
        with self._store.lock:
            if self.get_by_email(principal.email) is not None:
                raise ConflictError("A user with this email already exists")
            self._store.principals[principal.id] = principal.model_copy(deep=True)

    def save(self, principal: Principal) -> None:
        with self._store.lock:
            self._store.principals[principal.id] = principal.model_copy(deep=True)


class InMemoryMonitoringPlanRepository(MonitoringPlanRepository):
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    def get(self, tenant_id: UUID, plan_id: UUID) -> Optional[MonitoringPlan]:
        with self._store.lock:
            plan = self._store.plans.get(plan_id)
            if plan is None or plan.tenant_id != tenant_id:
                return None
            return plan.model_copy(deep=True)

    def list_for_tenant(
        self,
        tenant_id: UUID,
        *,
        status: Optional[MonitoringPlanStatus] = None,
    ) -> List[MonitoringPlan]:
        with self._store.lock:
            plans = [
                p.model_copy(deep=True)
                for p in self._store.plans.values()
                if p.tenant_id == tenant_id and (status is None or p.status == status)
            ]
        plans.sort(key=lambda p: _as_utc(p.created_at))
        return plans

    def count_active(self, tenant_id: UUID) -> int:
        return len(self.list_for_tenant(tenant_id, status=MonitoringPlanStatus.ACTIVE))

    def earliest_for_tenant(self, tenant_id: UUID) -> Optional[MonitoringPlan]:
        plans = self.list_for_tenant(tenant_id)
        return plans[0] if plans else None

    def save(self, plan: MonitoringPlan) -> None:
        with self._store.lock:
            self._store.plans[plan.id] = plan.model_copy(deep=True)

    def save_within_quota(self, plan: MonitoringPlan, check: QuotaCheck) -> MonitoringPlan:
        with self._store.lock:
            tenant = self._store.tenants.get(plan.tenant_id)
            if tenant is None:
                raise NotFoundError("Practice not found")
            others = sum(
                1
                for p in self._store.plans.values()
                if p.tenant_id == plan.tenant_id and p.status == MonitoringPlanStatus.ACTIVE and p.id != plan.id
            )
            check(tenant.model_copy(deep=True), others)
            self._store.plans[plan.id] = plan.model_copy(deep=True)
            return plan

    def delete(self, tenant_id: UUID, plan_id: UUID) -> bool:
        with self._store.lock:
            plan = self._store.plans.get(plan_id)
            if plan is None or plan.tenant_id != tenant_id:
                return False
            del self._store.plans[plan_id]
            self._store.enrollments = {e for e in self._store.enrollments if e[0] != plan_id}
            return True

    def add_enrollment(self, enrollment: PlanEnrollment) -> None:
        key = (enrollment.plan_id, enrollment.patient_id)
        with self._store.lock:
            if key in self._store.enrollments:
                raise ConflictError("Patient is already enrolled in this monitoring plan")
            self._store.enrollments.add(key)

    def is_enrolled(self, tenant_id: UUID, plan_id: UUID, patient_id: UUID) -> bool:
        with self._store.lock:
            plan = self._store.plans.get(plan_id)
            if plan is None or plan.tenant_id != tenant_id:
                return False
            return (plan_id, patient_id) in self._store.enrollments


class InMemoryObservationTemplateRepository(ObservationTemplateRepository):
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    def get(self, tenant_id: UUID, template_id: UUID) -> Optional[ObservationTemplate]:
        with self._store.lock:
            tmpl = self._store.templates.get(template_id)
            if tmpl is None or tmpl.tenant_id != tenant_id:
                return None
            return tmpl.model_copy(deep=True)

    def list_for_tenant(
        self,
        tenant_id: UUID,
        *,
        monitoring_plan_id: Optional[UUID] = None,
        data_type: Optional[str] = None,
    ) -> List[ObservationTemplate]:
        results: List[ObservationTemplate] = []
        with self._store.lock:
            for tmpl in self._store.templates.values():
                if tmpl.tenant_id != tenant_id:
                    continue
                if monitoring_plan_id is not None and tmpl.monitoring_plan_id != monitoring_plan_id:
                    continue
                if data_type is not None and tmpl.data_type != data_type:
                    continue
                results.append(tmpl.model_copy(deep=True))
        results.sort(key=lambda t: _as_utc(t.created_at))
        return results

    def count_for_plan(self, tenant_id: UUID, plan_id: UUID) -> int:
        return len(self.list_for_tenant(tenant_id, monitoring_plan_id=plan_id))

    def save(self, template: ObservationTemplate) -> None:
        with self._store.lock:
            self._store.templates[template.id] = template.model_copy(deep=True)

    def delete(self, tenant_id: UUID, template_id: UUID) -> bool:
        with self._store.lock:
            tmpl = self._store.templates.get(template_id)
            if tmpl is None or tmpl.tenant_id != tenant_id:
                return False
            del self._store.templates[template_id]
            if tmpl.is_canonical:
                self._store.singletons.pop((tenant_id, tmpl.data_type), None)
            return True

    def insert_singleton_if_absent(self, template: ObservationTemplate) -> ObservationTemplate:
        key = (template.tenant_id, template.data_type)
        with self._store.lock:
            existing_id = self._store.singletons.get(key)
            if existing_id is not None:
                return self._store.templates[existing_id].model_copy(deep=True)
            self._store.templates[template.id] = template.model_copy(deep=True)
            self._store.singletons[key] = template.id
            return template


class InMemoryObservationRepository(ObservationRepository):
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    def add(self, record: ObservationRecord) -> None:
        with self._store.lock:
            if record.id in self._store.observations:
                raise ConflictError("Observation already recorded")
            self._store.observations[record.id] = record

    def get(self, tenant_id: UUID, record_id: UUID) -> Optional[ObservationRecord]:
        with self._store.lock:
            record = self._store.observations.get(record_id)
        if record is None or record.tenant_id != tenant_id:
            return None
        return record

    def list(
        self,
        tenant_id: UUID,
        *,
        template_id: Optional[UUID] = None,
        patient_id: Optional[UUID] = None,
        recorded_from: Optional[datetime] = None,
        recorded_to: Optional[datetime] = None,
        limit: int = 25,
        offset: int = 0,
    ) -> List[ObservationRecord]:
        with self._store.lock:
            records = list(self._store.observations.values())
        results = []
        for record in records:
            if record.tenant_id != tenant_id:
                continue
            if template_id is not None and record.template_id != template_id:
                continue
            if patient_id is not None and record.patient_id != patient_id:
                continue
            recorded_at = _as_utc(record.recorded_at)
            if recorded_from is not None and recorded_at < _as_utc(recorded_from):
                continue
            if recorded_to is not None and recorded_at > _as_utc(recorded_to):
                continue
            results.append(record)
        results.sort(key=lambda r: _as_utc(r.recorded_at), reverse=True)
        return results[offset : offset + limit]

    def count_for_template(self, tenant_id: UUID, template_id: UUID) -> int:
        with self._store.lock:
            return sum(
                1
                for r in self._store.observations.values()
                if r.tenant_id == tenant_id and r.template_id == template_id
            )


class InMemoryPatientRepository(PatientRepository):
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    def get(self, tenant_id: UUID, patient_id: UUID) -> Optional[Patient]:
        with self._store.lock:
            patient = self._store.patients.get(patient_id)
            if patient is None or patient.tenant_id != tenant_id:
                return None
            return patient.model_copy(deep=True)

    def list_for_tenant(self, tenant_id: UUID) -> List[Patient]:
        with self._store.lock:
            patients = [p.model_copy(deep=True) for p in self._store.patients.values() if p.tenant_id == tenant_id]
        patients.sort(key=lambda p: p.name.lower())
        return patients

    def save(self, patient: Patient) -> None:
        with self._store.lock:
            self._store.patients[patient.id] = patient.model_copy(deep=True)
