from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError

from src.vetcore.domain.models.monitoring_plan import MonitoringPlan, MonitoringPlanStatus, PlanEnrollment
from src.vetcore.errors import ConflictError, NotFoundError
from src.vetcore.infra.db.models import MonitoringPlanORM, PlanEnrollmentORM, TenantORM
from src.vetcore.infra.db.repositories import MonitoringPlanRepository, QuotaCheck
from src.vetcore.infra.db.session import SessionFactory


class SqlMonitoringPlanRepository(MonitoringPlanRepository):
    """SQL-backed MonitoringPlanRepository.

    Every query is filtered on ``tenant_id`` so a plan id belonging to
    another practice behaves exactly like a missing one.
    """

    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    def get(self, tenant_id: UUID, plan_id: UUID) -> Optional[MonitoringPlan]:
        session = self._session_factory()
        try:
            orm = session.get(MonitoringPlanORM, plan_id)
            if orm is None or orm.tenant_id != tenant_id:
                return None
            return orm.to_domain()
        finally:
            session.close()

    def list_for_tenant(
        self,
        tenant_id: UUID,
        *,
        status: Optional[MonitoringPlanStatus] = None,
    ) -> List[MonitoringPlan]:
        session = self._session_factory()
        try:
            stmt = select(MonitoringPlanORM).where(MonitoringPlanORM.tenant_id == tenant_id)
            if status is not None:
                stmt = stmt.where(MonitoringPlanORM.status == status.value)
            stmt = stmt.order_by(MonitoringPlanORM.created_at)
            return [orm.to_domain() for orm in session.scalars(stmt)]
        finally:
            session.close()

    def count_active(self, tenant_id: UUID) -> int:
        session = self._session_factory()
        try:
            stmt = select(func.count()).select_from(MonitoringPlanORM).where(
                MonitoringPlanORM.tenant_id == tenant_id,
                MonitoringPlanORM.status == MonitoringPlanStatus.ACTIVE.value,
            )
            return int(session.scalar(stmt) or 0)
        finally:
            session.close()

    def earliest_for_tenant(self, tenant_id: UUID) -> Optional[MonitoringPlan]:
        session = self._session_factory()
        try:
            stmt = (
                select(MonitoringPlanORM)
                .where(MonitoringPlanORM.tenant_id == tenant_id)
                .order_by(MonitoringPlanORM.created_at)
                .limit(1)
            )
            orm = session.scalars(stmt).first()
            return orm.to_domain() if orm is not None else None
        finally:
            session.close()

    def save(self, plan: MonitoringPlan) -> None:
        session = self._session_factory()
        try:
            self._upsert(session, plan)
            session.commit()
        finally:
            session.close()

    def save_within_quota(self, plan: MonitoringPlan, check: QuotaCheck) -> MonitoringPlan:
        session = self._session_factory()
        try:
            # Row lock on the practice serializes concurrent activations for
            # the same tenant. SQLite ignores FOR UPDATE, so this guarantee
            # needs a server database such as PostgreSQL.
            tenant_orm = session.scalars(
                select(TenantORM).where(TenantORM.id == plan.tenant_id).with_for_update()
            ).first()
            if tenant_orm is None:
                raise NotFoundError("Practice not found")

            others = session.scalar(
                select(func.count())
                .select_from(MonitoringPlanORM)
                .where(
                    MonitoringPlanORM.tenant_id == plan.tenant_id,
                    MonitoringPlanORM.status == MonitoringPlanStatus.ACTIVE.value,
                    MonitoringPlanORM.id != plan.id,
                )
            )
            # Raising here leaves the transaction uncommitted; close() rolls it back.
            check(tenant_orm.to_domain(), int(others or 0))

            self._upsert(session, plan)
            session.commit()
            return plan
        finally:
            session.close()

    def delete(self, tenant_id: UUID, plan_id: UUID) -> bool:
        session = self._session_factory()
        try:
            orm = session.get(MonitoringPlanORM, plan_id)
            if orm is None or orm.tenant_id != tenant_id:
                return False
            session.execute(delete(PlanEnrollmentORM).where(PlanEnrollmentORM.plan_id == plan_id))
            session.delete(orm)
            session.commit()
            return True
        finally:
            session.close()

    def add_enrollment(self, enrollment: PlanEnrollment) -> None:
        session = self._session_factory()
        try:
            session.add(
                PlanEnrollmentORM(
                    tenant_id=enrollment.tenant_id,
                    plan_id=enrollment.plan_id,
                    patient_id=enrollment.patient_id,
                    enrolled_at=enrollment.enrolled_at,
                )
            )
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise ConflictError("Patient is already enrolled in this monitoring plan") from exc
        finally:
            session.close()

    def is_enrolled(self, tenant_id: UUID, plan_id: UUID, patient_id: UUID) -> bool:
        session = self._session_factory()
        try:
            stmt = select(PlanEnrollmentORM.id).where(
                PlanEnrollmentORM.tenant_id == tenant_id,
                PlanEnrollmentORM.plan_id == plan_id,
                PlanEnrollmentORM.patient_id == patient_id,
            )
            return session.scalars(stmt).first() is not None
        finally:
            session.close()

    @staticmethod
    def _upsert(session, plan: MonitoringPlan) -> None:
        existing = session.get(MonitoringPlanORM, plan.id)
        if existing is None:
            session.add(MonitoringPlanORM.from_domain(plan))
        else:
            existing.apply(plan)
