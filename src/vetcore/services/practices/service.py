from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional, Tuple
from uuid import uuid4

from src.vetcore.domain.models.permission import Permission
from src.vetcore.domain.models.principal import Caller, Principal, Role, normalize_email
from src.vetcore.domain.models.tenant import SubscriptionChange, SubscriptionStatus, SubscriptionTier, Tenant
from src.vetcore.errors import ConflictError, NotFoundError, ValidationError
from src.vetcore.infra.db.repositories import PrincipalRepository, TenantRepository
from src.vetcore.services.access.guard import authorize, require_tenant
from src.vetcore.services.audit.service import audit_service
from src.vetcore.services.subscriptions.service import subscription_end_date

logger = logging.getLogger("vetcore.practices")


class PracticeService:
    """Registration and settings of a practice.

    Practices are soft-deactivated only; their rows and history are kept.
    """

    def __init__(
        self,
        tenants: TenantRepository,
        principals: PrincipalRepository,
        trial_period_days: int = 14,
    ) -> None:
        self._tenants = tenants
        self._principals = principals
        self._trial_period_days = trial_period_days

    def register_practice(
        self,
        *,
        practice_name: str,
        owner_email: str,
        owner_full_name: Optional[str] = None,
    ) -> Tuple[Tenant, Principal]:
        """Create a practice on a trial subscription together with its owner."""

        if not practice_name or not practice_name.strip():
            raise ValidationError("Practice name is required", field="practice_name")
        try:
            owner_email = normalize_email(owner_email)
        except ValueError as exc:
            raise ValidationError(str(exc), field="owner_email") from exc
        if self._principals.get_by_email(owner_email) is not None:
            raise ConflictError("A user with this email already exists")

        start = datetime.now(timezone.utc)
        end = subscription_end_date(SubscriptionTier.TRIAL, start, self._trial_period_days)
        tenant = Tenant(
            id=uuid4(),
            name=practice_name.strip(),
            subscription_tier=SubscriptionTier.TRIAL,
            subscription_status=SubscriptionStatus.TRIAL,
            subscription_start_date=start,
            subscription_end_date=end,
        )
        owner = Principal(
            id=uuid4(),
            email=owner_email,
            full_name=owner_full_name,
            role=Role.TENANT_OWNER,
            tenant_id=tenant.id,
        )

        self._tenants.save(tenant)
        self._principals.add(owner)
        self._tenants.append_subscription_change(
            SubscriptionChange(
                id=uuid4(),
                tenant_id=tenant.id,
                tier=SubscriptionTier.TRIAL,
                start_date=start,
                end_date=end,
            )
        )
        logger.info("registered practice", extra={"tenant_id": str(tenant.id)})
        audit_service.log_event(
            action="register",
            resource_type="tenant",
            resource_id=str(tenant.id),
            subject=str(owner.id),
        )
        return tenant, owner

    def get_practice(self, caller: Caller) -> Tenant:
        return self._load(require_tenant(caller))

    def update_practice(self, caller: Caller, *, name: str) -> Tenant:
        authorize(caller, [Permission.MANAGE_PRACTICE_SETTINGS])
        tenant = self._load(require_tenant(caller))
        if not name or not name.strip():
            raise ValidationError("Practice name is required", field="name")

        updated = tenant.model_copy(update={"name": name.strip()})
        self._tenants.save(updated)
        return updated

    def deactivate_practice(self, caller: Caller) -> Tenant:
        authorize(caller, [Permission.MANAGE_PRACTICE_SETTINGS])
        tenant = self._load(require_tenant(caller))

        updated = tenant.model_copy(update={"is_active": False})
        self._tenants.save(updated)
        audit_service.log_event(action="deactivate", resource_type="tenant", resource_id=str(tenant.id))
        return updated

    def _load(self, tenant_id) -> Tenant:
        tenant = self._tenants.get(tenant_id)
        if tenant is None:
            raise NotFoundError("Practice not found")
        return tenant
