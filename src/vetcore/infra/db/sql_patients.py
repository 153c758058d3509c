from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, select

from src.vetcore.domain.models.patient import Patient
from src.vetcore.infra.db.models import PatientORM
from src.vetcore.infra.db.repositories import PatientRepository
from src.vetcore.infra.db.session import SessionFactory


class SqlPatientRepository(PatientRepository):
    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    def get(self, tenant_id: UUID, patient_id: UUID) -> Optional[Patient]:
        session = self._session_factory()
        try:
            orm = session.get(PatientORM, patient_id)
            if orm is None or orm.tenant_id != tenant_id:
                return None
            return orm.to_domain()
        finally:
            session.close()

    def list_for_tenant(self, tenant_id: UUID) -> List[Patient]:
        session = self._session_factory()
        try:
            stmt = select(PatientORM).where(PatientORM.tenant_id == tenant_id).order_by(func.lower(PatientORM.name))
            return [orm.to_domain() for orm in session.scalars(stmt)]
        finally:
            session.close()

    def save(self, patient: Patient) -> None:
        session = self._session_factory()
        try:
            existing = session.get(PatientORM, patient.id)
            if existing is None:
                session.add(PatientORM.from_domain(patient))
            else:
                existing.apply(patient)
            session.commit()
        finally:
            session.close()
