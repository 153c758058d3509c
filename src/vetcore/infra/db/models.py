from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import JSON, Boolean, Date, DateTime, Float, ForeignKey, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from src.vetcore.domain.models.monitoring_plan import MonitoringPlan, MonitoringPlanStatus
from src.vetcore.domain.models.observation import ObservationRecord
from src.vetcore.domain.models.observation_template import ObservationTemplate
from src.vetcore.domain.models.patient import Patient
from src.vetcore.domain.models.principal import Principal, Role
from src.vetcore.domain.models.tenant import SubscriptionChange, SubscriptionStatus, SubscriptionTier, Tenant


class UTCDateTime(TypeDecorator):
    """Timezone-aware datetime that always round-trips as UTC.

    SQLite drops tzinfo on the way back, so naive values read from the
    database are treated as UTC.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value

    def process_result_value(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value


class Base(DeclarativeBase):
    pass


class TenantORM(Base):
    __tablename__ = "tenants"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    subscription_tier: Mapped[str] = mapped_column(String(20), nullable=False)
    subscription_status: Mapped[str] = mapped_column(String(20), nullable=False)
    subscription_start_date: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    subscription_end_date: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    @classmethod
    def from_domain(cls, tenant: Tenant) -> "TenantORM":
        orm = cls(id=tenant.id, created_at=tenant.created_at)
        orm.apply(tenant)
        return orm

    def apply(self, tenant: Tenant) -> None:
        self.name = tenant.name
        self.subscription_tier = tenant.subscription_tier.value
        self.subscription_status = tenant.subscription_status.value
        self.subscription_start_date = tenant.subscription_start_date
        self.subscription_end_date = tenant.subscription_end_date
        self.is_active = tenant.is_active

    def to_domain(self) -> Tenant:
        return Tenant(
            id=self.id,
            name=self.name,
            subscription_tier=SubscriptionTier(self.subscription_tier),
            subscription_status=SubscriptionStatus(self.subscription_status),
            subscription_start_date=self.subscription_start_date,
            subscription_end_date=self.subscription_end_date,
            is_active=self.is_active,
            created_at=self.created_at,
        )


class SubscriptionChangeORM(Base):
    __tablename__ = "subscription_changes"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    tenant_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("tenants.id"), nullable=False, index=True)
    tier: Mapped[str] = mapped_column(String(20), nullable=False)
    start_date: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    end_date: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    amount: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    payment_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    @classmethod
    def from_domain(cls, change: SubscriptionChange) -> "SubscriptionChangeORM":
        return cls(
            id=change.id,
            tenant_id=change.tenant_id,
            tier=change.tier.value,
            start_date=change.start_date,
            end_date=change.end_date,
            amount=change.amount,
            payment_id=change.payment_id,
        )

    def to_domain(self) -> SubscriptionChange:
        return SubscriptionChange(
            id=self.id,
            tenant_id=self.tenant_id,
            tier=SubscriptionTier(self.tier),
            start_date=self.start_date,
            end_date=self.end_date,
            amount=self.amount,
            payment_id=self.payment_id,
        )


class PrincipalORM(Base):
    __tablename__ = "principals"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    full_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    tenant_id: Mapped[Optional[UUID]] = mapped_column(Uuid, ForeignKey("tenants.id"), nullable=True, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    @classmethod
    def from_domain(cls, principal: Principal) -> "PrincipalORM":
        orm = cls(id=principal.id, created_at=principal.created_at)
        orm.apply(principal)
        return orm

    def apply(self, principal: Principal) -> None:
        # Emails are stored lower-cased so the unique index is case-insensitive.
        self.email = principal.email.lower()
        self.full_name = principal.full_name
        self.role = principal.role.value
        self.tenant_id = principal.tenant_id
        self.is_active = principal.is_active

    def to_domain(self) -> Principal:
        return Principal(
            id=self.id,
            email=self.email,
            full_name=self.full_name,
            role=Role(self.role),
            tenant_id=self.tenant_id,
            is_active=self.is_active,
            created_at=self.created_at,
        )


class MonitoringPlanORM(Base):
    __tablename__ = "monitoring_plans"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    tenant_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("tenants.id"), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    created_by: Mapped[Optional[UUID]] = mapped_column(Uuid, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    @classmethod
    def from_domain(cls, plan: MonitoringPlan) -> "MonitoringPlanORM":
        orm = cls(id=plan.id, tenant_id=plan.tenant_id, created_at=plan.created_at)
        orm.apply(plan)
        return orm

    def apply(self, plan: MonitoringPlan) -> None:
        self.title = plan.title
        self.description = plan.description
        self.status = plan.status.value
        self.created_by = plan.created_by
        self.updated_at = plan.updated_at

    def to_domain(self) -> MonitoringPlan:
        return MonitoringPlan(
            id=self.id,
            tenant_id=self.tenant_id,
            title=self.title,
            description=self.description,
            status=MonitoringPlanStatus(self.status),
            created_by=self.created_by,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class PlanEnrollmentORM(Base):
    __tablename__ = "plan_enrollments"
    __table_args__ = (UniqueConstraint("plan_id", "patient_id", name="uq_plan_enrollments_plan_patient"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    tenant_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("tenants.id"), nullable=False, index=True)
    plan_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("monitoring_plans.id", ondelete="CASCADE"), nullable=False)
    patient_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("patients.id"), nullable=False)
    enrolled_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)


class PatientORM(Base):
    __tablename__ = "patients"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    tenant_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("tenants.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    species: Mapped[str] = mapped_column(String(100), nullable=False)
    breed: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    date_of_birth: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    owner_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    owner_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    @classmethod
    def from_domain(cls, patient: Patient) -> "PatientORM":
        orm = cls(id=patient.id, tenant_id=patient.tenant_id, created_at=patient.created_at)
        orm.apply(patient)
        return orm

    def apply(self, patient: Patient) -> None:
        self.name = patient.name
        self.species = patient.species
        self.breed = patient.breed
        self.date_of_birth = patient.date_of_birth
        self.owner_name = patient.owner_name
        self.owner_email = patient.owner_email
        self.updated_at = patient.updated_at

    def to_domain(self) -> Patient:
        return Patient(
            id=self.id,
            tenant_id=self.tenant_id,
            name=self.name,
            species=self.species,
            breed=self.breed,
            date_of_birth=self.date_of_birth,
            owner_name=self.owner_name,
            owner_email=self.owner_email,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class ObservationTemplateORM(Base):
    __tablename__ = "observation_templates"
    # singleton_key is NULL for ordinary templates and equals data_type for the
    # canonical one, so the constraint allows one canonical template per
    # tenant and data type without limiting ordinary templates.
    __table_args__ = (
        UniqueConstraint("tenant_id", "singleton_key", name="uq_observation_templates_tenant_singleton"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    tenant_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("tenants.id"), nullable=False, index=True)
    monitoring_plan_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("monitoring_plans.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    data_type: Mapped[str] = mapped_column(String(20), nullable=False)
    units: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    min_value: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    max_value: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    options: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
    singleton_key: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    @classmethod
    def from_domain(cls, template: ObservationTemplate) -> "ObservationTemplateORM":
        orm = cls(
            id=template.id,
            tenant_id=template.tenant_id,
            created_at=template.created_at,
            singleton_key=template.data_type if template.is_canonical else None,
        )
        orm.apply(template)
        return orm

    def apply(self, template: ObservationTemplate) -> None:
        self.monitoring_plan_id = template.monitoring_plan_id
        self.name = template.name
        self.description = template.description
        self.data_type = template.data_type
        self.units = template.units
        self.min_value = template.min_value
        self.max_value = template.max_value
        self.options = list(template.options) if template.options is not None else None
        self.updated_at = template.updated_at

    def to_domain(self) -> ObservationTemplate:
        return ObservationTemplate(
            id=self.id,
            tenant_id=self.tenant_id,
            monitoring_plan_id=self.monitoring_plan_id,
            name=self.name,
            description=self.description,
            data_type=self.data_type,
            units=self.units,
            min_value=self.min_value,
            max_value=self.max_value,
            options=self.options,
            is_canonical=self.singleton_key is not None,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class ObservationRecordORM(Base):
    __tablename__ = "observation_records"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    tenant_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("tenants.id"), nullable=False, index=True)
    template_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("observation_templates.id"), nullable=False, index=True)
    patient_id: Mapped[Optional[UUID]] = mapped_column(Uuid, ForeignKey("patients.id"), nullable=True, index=True)
    value: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    recorded_by: Mapped[Optional[UUID]] = mapped_column(Uuid, nullable=True)
    recorded_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, index=True)

    @classmethod
    def from_domain(cls, record: ObservationRecord) -> "ObservationRecordORM":
        return cls(
            id=record.id,
            tenant_id=record.tenant_id,
            template_id=record.template_id,
            patient_id=record.patient_id,
            value=record.value,
            notes=record.notes,
            recorded_by=record.recorded_by,
            recorded_at=record.recorded_at,
        )

    def to_domain(self) -> ObservationRecord:
        return ObservationRecord(
            id=self.id,
            tenant_id=self.tenant_id,
            template_id=self.template_id,
            patient_id=self.patient_id,
            value=self.value,
            notes=self.notes,
            recorded_by=self.recorded_by,
            recorded_at=self.recorded_at,
        )
