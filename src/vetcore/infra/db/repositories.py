from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, List, Optional
from uuid import UUID

from src.vetcore.domain.models.monitoring_plan import MonitoringPlan, MonitoringPlanStatus, PlanEnrollment
from src.vetcore.domain.models.observation import ObservationRecord
from src.vetcore.domain.models.observation_template import ObservationTemplate
from src.vetcore.domain.models.patient import Patient
from src.vetcore.domain.models.principal import Principal
from src.vetcore.domain.models.tenant import SubscriptionChange, Tenant

# Called with the freshly loaded tenant and the number of *other* ACTIVE plans
# while the tenant is locked. Raises to veto the write.
QuotaCheck = Callable[[Tenant, int], None]


class TenantRepository(ABC):
    @abstractmethod
    def get(self, tenant_id: UUID) -> Optional[Tenant]:
        raise NotImplementedError

    @abstractmethod
    def save(self, tenant: Tenant) -> None:
        raise NotImplementedError

    @abstractmethod
    def append_subscription_change(self, change: SubscriptionChange) -> None:
        raise NotImplementedError

    @abstractmethod
    def list_subscription_changes(
        self,
        tenant_id: UUID,
        *,
        limit: int = 10,
        offset: int = 0,
    ) -> List[SubscriptionChange]:
        """Return history entries newest first."""
        raise NotImplementedError

    @abstractmethod
    def count_subscription_changes(self, tenant_id: UUID) -> int:
        raise NotImplementedError


class PrincipalRepository(ABC):
    @abstractmethod
    def get(self, principal_id: UUID) -> Optional[Principal]:
        raise NotImplementedError

    @abstractmethod
    def get_by_email(self, email: str) -> Optional[Principal]:
        raise NotImplementedError

    @abstractmethod
    def list_for_tenant(self, tenant_id: UUID) -> List[Principal]:
        raise NotImplementedError

    @abstractmethod
    def add(self, principal: Principal) -> None:
        """Insert a new principal. Raises ConflictError if the email is taken."""
        raise NotImplementedError

    @abstractmethod
    def save(self, principal: Principal) -> None:
        raise NotImplementedError


class MonitoringPlanRepository(ABC):
    @abstractmethod
    def get(self, tenant_id: UUID, plan_id: UUID) -> Optional[MonitoringPlan]:
        raise NotImplementedError

    @abstractmethod
    def list_for_tenant(
        self,
        tenant_id: UUID,
        *,
        status: Optional[MonitoringPlanStatus] = None,
    ) -> List[MonitoringPlan]:
        raise NotImplementedError

    @abstractmethod
    def count_active(self, tenant_id: UUID) -> int:
        raise NotImplementedError

    @abstractmethod
    def earliest_for_tenant(self, tenant_id: UUID) -> Optional[MonitoringPlan]:
        raise NotImplementedError

    @abstractmethod
    def save(self, plan: MonitoringPlan) -> None:
        """Insert or update a plan without any quota check."""
        raise NotImplementedError

    @abstractmethod
    def save_within_quota(self, plan: MonitoringPlan, check: QuotaCheck) -> MonitoringPlan:
        """Insert or update ``plan`` as ACTIVE, atomically with the quota check.

        The tenant is locked, its ACTIVE plans other than ``plan`` are
        counted, ``check`` is invoked and the write only happens if it does
        not raise. Raises NotFoundError if the tenant does not exist.
        """
        raise NotImplementedError

    @abstractmethod
    def delete(self, tenant_id: UUID, plan_id: UUID) -> bool:
        raise NotImplementedError

    @abstractmethod
    def add_enrollment(self, enrollment: PlanEnrollment) -> None:
        """Enroll a patient. Raises ConflictError if already enrolled."""
        raise NotImplementedError

    @abstractmethod
    def is_enrolled(self, tenant_id: UUID, plan_id: UUID, patient_id: UUID) -> bool:
        raise NotImplementedError


class ObservationTemplateRepository(ABC):
    @abstractmethod
    def get(self, tenant_id: UUID, template_id: UUID) -> Optional[ObservationTemplate]:
        raise NotImplementedError

    @abstractmethod
    def list_for_tenant(
        self,
        tenant_id: UUID,
        *,
        monitoring_plan_id: Optional[UUID] = None,
        data_type: Optional[str] = None,
    ) -> List[ObservationTemplate]:
        """Return matching templates, earliest created first."""
        raise NotImplementedError

    @abstractmethod
    def count_for_plan(self, tenant_id: UUID, plan_id: UUID) -> int:
        raise NotImplementedError

    @abstractmethod
    def save(self, template: ObservationTemplate) -> None:
        raise NotImplementedError

    @abstractmethod
    def delete(self, tenant_id: UUID, template_id: UUID) -> bool:
        raise NotImplementedError

    @abstractmethod
    def insert_singleton_if_absent(self, template: ObservationTemplate) -> ObservationTemplate:
        """Atomically insert the canonical template for its tenant and data type.

        If a canonical template already exists for ``(tenant_id, data_type)``
        the existing one is returned and nothing is written.
        """
        raise NotImplementedError


class ObservationRepository(ABC):
    @abstractmethod
    def add(self, record: ObservationRecord) -> None:
        raise NotImplementedError

    @abstractmethod
    def get(self, tenant_id: UUID, record_id: UUID) -> Optional[ObservationRecord]:
        raise NotImplementedError

    @abstractmethod
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
        """Return matching records, newest first. Date bounds are inclusive."""
        raise NotImplementedError

    @abstractmethod
    def count_for_template(self, tenant_id: UUID, template_id: UUID) -> int:
        raise NotImplementedError


class PatientRepository(ABC):
    @abstractmethod
    def get(self, tenant_id: UUID, patient_id: UUID) -> Optional[Patient]:
        raise NotImplementedError

    @abstractmethod
    def list_for_tenant(self, tenant_id: UUID) -> List[Patient]:
        raise NotImplementedError

    @abstractmethod
    def save(self, patient: Patient) -> None:
        raise NotImplementedError
