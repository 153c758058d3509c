from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from src.vetcore.domain.models.observation import ObservationRecord
from src.vetcore.domain.models.observation_template import ObservationTemplate
from src.vetcore.errors import ConflictError
from src.vetcore.infra.db.models import ObservationRecordORM, ObservationTemplateORM
from src.vetcore.infra.db.repositories import ObservationRepository, ObservationTemplateRepository
from src.vetcore.infra.db.session import SessionFactory


class SqlObservationTemplateRepository(ObservationTemplateRepository):
    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    def get(self, tenant_id: UUID, template_id: UUID) -> Optional[ObservationTemplate]:
        session = self._session_factory()
        try:
            orm = session.get(ObservationTemplateORM, template_id)
            if orm is None or orm.tenant_id != tenant_id:
                return None
            return orm.to_domain()
        finally:
            session.close()

    def list_for_tenant(
        self,
        tenant_id: UUID,
        *,
        monitoring_plan_id: Optional[UUID] = None,
        data_type: Optional[str] = None,
    ) -> List[ObservationTemplate]:
        session = self._session_factory()
        try:
            stmt = select(ObservationTemplateORM).where(ObservationTemplateORM.tenant_id == tenant_id)
            if monitoring_plan_id is not None:
                stmt = stmt.where(ObservationTemplateORM.monitoring_plan_id == monitoring_plan_id)
            if data_type is not None:
                stmt = stmt.where(ObservationTemplateORM.data_type == data_type)
            stmt = stmt.order_by(ObservationTemplateORM.created_at)
            return [orm.to_domain() for orm in session.scalars(stmt)]
        finally:
            session.close()

    def count_for_plan(self, tenant_id: UUID, plan_id: UUID) -> int:
        session = self._session_factory()
        try:
            stmt = select(func.count()).select_from(ObservationTemplateORM).where(
                ObservationTemplateORM.tenant_id == tenant_id,
                ObservationTemplateORM.monitoring_plan_id == plan_id,
            )
            return int(session.scalar(stmt) or 0)
        finally:
            session.close()

    def save(self, template: ObservationTemplate) -> None:
        session = self._session_factory()
        try:
            existing = session.get(ObservationTemplateORM, template.id)
            if existing is None:
                session.add(ObservationTemplateORM.from_domain(template))
            else:
                existing.apply(template)
            session.commit()
        finally:
            session.close()

    def delete(self, tenant_id: UUID, template_id: UUID) -> bool:
        session = self._session_factory()
        try:
            orm = session.get(ObservationTemplateORM, template_id)
            if orm is None or orm.tenant_id != tenant_id:
                return False
            session.delete(orm)
            session.commit()
            return True
        finally:
            session.close()

    def insert_singleton_if_absent(self, template: ObservationTemplate) -> ObservationTemplate:
        session = self._session_factory()
        try:
            session.add(ObservationTemplateORM.from_domain(template.model_copy(update={"is_canonical": True})))
            try:
                session.commit()
                return template.model_copy(update={"is_canonical": True})
            except IntegrityError:
                # Lost the race: the unique (tenant_id, singleton_key)
                # constraint rejected our row, so return the winner.
                session.rollback()

            stmt = select(ObservationTemplateORM).where(
                ObservationTemplateORM.tenant_id == template.tenant_id,
                ObservationTemplateORM.singleton_key == template.data_type,
            )
            winner = session.scalars(stmt).one()
            return winner.to_domain()
        finally:
            session.close()


class SqlObservationRepository(ObservationRepository):
    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    def add(self, record: ObservationRecord) -> None:
        session = self._session_factory()
        try:
            session.add(ObservationRecordORM.from_domain(record))
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise ConflictError("Observation already recorded") from exc
        finally:
            session.close()

    def get(self, tenant_id: UUID, record_id: UUID) -> Optional[ObservationRecord]:
        session = self._session_factory()
        try:
            orm = session.get(ObservationRecordORM, record_id)
            if orm is None or orm.tenant_id != tenant_id:
                return None
            return orm.to_domain()
        finally:
            session.close()

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
        session = self._session_factory()
        try:
            stmt = select(ObservationRecordORM).where(ObservationRecordORM.tenant_id == tenant_id)
            if template_id is not None:
                stmt = stmt.where(ObservationRecordORM.template_id == template_id)
            if patient_id is not None:
                stmt = stmt.where(ObservationRecordORM.patient_id == patient_id)
            if recorded_from is not None:
                stmt = stmt.where(ObservationRecordORM.recorded_at >= recorded_from)
            if recorded_to is not None:
                stmt = stmt.where(ObservationRecordORM.recorded_at <= recorded_to)
            stmt = stmt.order_by(ObservationRecordORM.recorded_at.desc()).offset(offset).limit(limit)
            return [orm.to_domain() for orm in session.scalars(stmt)]
        finally:
            session.close()

    def count_for_template(self, tenant_id: UUID, template_id: UUID) -> int:
        session = self._session_factory()
        try:
            stmt = select(func.count()).select_from(ObservationRecordORM).where(
                ObservationRecordORM.tenant_id == tenant_id,
                ObservationRecordORM.template_id == template_id,
            )
            return int(session.scalar(stmt) or 0)
        finally:
            session.close()
