from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from src.vetcore.domain.models.principal import Principal
from src.vetcore.domain.models.tenant import SubscriptionChange, Tenant
from src.vetcore.errors import ConflictError
from src.vetcore.infra.db.models import PrincipalORM, SubscriptionChangeORM, TenantORM
from src.vetcore.infra.db.repositories import PrincipalRepository, TenantRepository
from src.vetcore.infra.db.session import SessionFactory


class SqlTenantRepository(TenantRepository):
    """SQL-backed TenantRepository, including the subscription history table."""

    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    def get(self, tenant_id: UUID) -> Optional[Tenant]:
        session = self._session_factory()
        try:
            orm = session.get(TenantORM, tenant_id)
            return orm.to_domain() if orm is not None else None
        finally:
            session.close()

    def save(self, tenant: Tenant) -> None:
        session = self._session_factory()
        try:
            existing = session.get(TenantORM, tenant.id)
            if existing is None:
                session.add(TenantORM.from_domain(tenant))
            else:
                existing.apply(tenant)
            session.commit()
        finally:
            session.close()

    def append_subscription_change(self, change: SubscriptionChange) -> None:
        session = self._session_factory()
        try:
            session.add(SubscriptionChangeORM.from_domain(change))
            session.commit()
        finally:
            session.close()

    def list_subscription_changes(
        self,
        tenant_id: UUID,
        *,
        limit: int = 10,
        offset: int = 0,
    ) -> List[SubscriptionChange]:
        session = self._session_factory()
        try:
            stmt = (
                select(SubscriptionChangeORM)
                .where(SubscriptionChangeORM.tenant_id == tenant_id)
                .order_by(SubscriptionChangeORM.start_date.desc())
                .offset(offset)
                .limit(limit)
            )
            return [orm.to_domain() for orm in session.scalars(stmt)]
        finally:
            session.close()

    def count_subscription_changes(self, tenant_id: UUID) -> int:
        session = self._session_factory()
        try:
            stmt = select(func.count()).select_from(SubscriptionChangeORM).where(
                SubscriptionChangeORM.tenant_id == tenant_id
            )
            return int(session.scalar(stmt) or 0)
        finally:
            session.close()


class SqlPrincipalRepository(PrincipalRepository):
    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    def get(self, principal_id: UUID) -> Optional[Principal]:
        session = self._session_factory()
        try:
            orm = session.get(PrincipalORM, principal_id)
            return orm.to_domain() if orm is not None else None
        finally:
            session.close()

    def get_by_email(self, email: str) -> Optional[Principal]:
        session = self._session_factory()
        try:
            orm = session.scalars(select(PrincipalORM).where(PrincipalORM.email == email.lower())).first()
            return orm.to_domain() if orm is not None else None
        finally:
            session.close()

    def list_for_tenant(self, tenant_id: UUID) -> List[Principal]:
        session = self._session_factory()
        try:
            stmt = (
                select(PrincipalORM)
                .where(PrincipalORM.tenant_id == tenant_id)
                .order_by(PrincipalORM.created_at)
            )
            return [orm.to_domain() for orm in session.scalars(stmt)]
        finally:
            session.close()

    def add(self, principal: Principal) -> None:
        session = self._session_factory()
        try:
            session.add(PrincipalORM.from_domain(principal))
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise ConflictError("A user with this email already exists") from exc
        finally:
            session.close()

    def save(self, principal: Principal) -> None:
        session = self._session_factory()
        try:
            existing = session.get(PrincipalORM, principal.id)
            if existing is None:
                session.add(PrincipalORM.from_domain(principal))
            else:
                existing.apply(principal)
            session.commit()
        finally:
            session.close()
