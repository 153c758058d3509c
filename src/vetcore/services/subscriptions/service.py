from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel

from src.vetcore.domain.models.permission import Permission
from src.vetcore.domain.models.principal import Caller
from src.vetcore.domain.models.tenant import SubscriptionChange, SubscriptionStatus, SubscriptionTier, Tenant
from src.vetcore.errors import NotFoundError, ValidationError
from src.vetcore.infra.db.repositories import MonitoringPlanRepository, TenantRepository
from src.vetcore.services.access.guard import authorize, require_tenant
from src.vetcore.services.audit.service import audit_service
from src.vetcore.services.subscriptions.quota import remaining_capacity, tier_cap

logger = logging.getLogger("vetcore.subscriptions")


class SubscriptionUsage(BaseModel):
    tier: SubscriptionTier
    status: SubscriptionStatus
    active_plans: int
    limit: Optional[int] = None
    remaining: Optional[int] = None


class SubscriptionHistoryPage(BaseModel):
    items: List[SubscriptionChange]
    total: int
    page: int
    limit: int


def _add_one_year(start: datetime) -> datetime:
    try:
        return start.replace(year=start.year + 1)
    except ValueError:
        # 29 February
        return start.replace(year=start.year + 1, day=28)


def subscription_end_date(tier: SubscriptionTier, start: datetime, trial_period_days: int) -> Optional[datetime]:
    """TRIAL runs for the trial period, BASIC is open ended, other paid tiers run a year."""

    if tier == SubscriptionTier.TRIAL:
        return start + timedelta(days=trial_period_days)
    if tier == SubscriptionTier.BASIC:
        return None
    return _add_one_year(start)


class SubscriptionService:
    def __init__(
        self,
        tenants: TenantRepository,
        plans: MonitoringPlanRepository,
        trial_period_days: int = 14,
    ) -> None:
        self._tenants = tenants
        self._plans = plans
        self._trial_period_days = trial_period_days

    def update_subscription(
        self,
        caller: Caller,
        tier: SubscriptionTier,
        *,
        amount: Optional[float] = None,
        payment_id: Optional[str] = None,
    ) -> Tenant:
        """Move the practice onto ``tier`` and record the change.

        Downgrading below the current number of ACTIVE plans is allowed;
        existing plans stay active but no further plan can be activated
        until usage drops under the new cap.
        """

        authorize(caller, [Permission.MANAGE_SUBSCRIPTIONS])
        tenant = self._load(require_tenant(caller))
        tier = SubscriptionTier(tier)
        if amount is not None and amount < 0:
            raise ValidationError("Amount must not be negative", field="amount")

        start = datetime.now(timezone.utc)
        end = subscription_end_date(tier, start, self._trial_period_days)
        status = SubscriptionStatus.TRIAL if tier == SubscriptionTier.TRIAL else SubscriptionStatus.ACTIVE

        updated = tenant.model_copy(
            update={
                "subscription_tier": tier,
                "subscription_status": status,
                "subscription_start_date": start,
                "subscription_end_date": end,
            }
        )
        self._tenants.save(updated)
        self._tenants.append_subscription_change(
            SubscriptionChange(
                id=uuid4(),
                tenant_id=tenant.id,
                tier=tier,
                start_date=start,
                end_date=end,
                amount=amount,
                payment_id=payment_id,
            )
        )
        audit_service.log_event(
            action="update_subscription",
            resource_type="tenant",
            resource_id=str(tenant.id),
            extra={"from": tenant.subscription_tier.value, "to": tier.value},
        )
        return updated

    def cancel_subscription(self, caller: Caller) -> Tenant:
        authorize(caller, [Permission.MANAGE_SUBSCRIPTIONS])
        tenant = self._load(require_tenant(caller))
        return self._set_status(tenant, SubscriptionStatus.CANCELED, "cancel_subscription")

    def expire_subscription(self, tenant_id: UUID) -> Tenant:
        """Billing hook: mark the subscription expired. Not caller facing."""

        tenant = self._load(tenant_id)
        return self._set_status(tenant, SubscriptionStatus.EXPIRED, "expire_subscription")

    def get_subscription_history(self, caller: Caller, *, page: int = 1, limit: int = 10) -> SubscriptionHistoryPage:
        authorize(caller, [Permission.MANAGE_SUBSCRIPTIONS, Permission.VIEW_PRACTICE_STATISTICS])
        tenant_id = require_tenant(caller)
        if page < 1:
            raise ValidationError("Page must be at least 1", field="page")
        if limit < 1 or limit > 100:
            raise ValidationError("Limit must be between 1 and 100", field="limit")

        items = self._tenants.list_subscription_changes(tenant_id, limit=limit, offset=(page - 1) * limit)
        total = self._tenants.count_subscription_changes(tenant_id)
        return SubscriptionHistoryPage(items=items, total=total, page=page, limit=limit)

    def get_usage(self, caller: Caller) -> SubscriptionUsage:
        authorize(caller, [Permission.MANAGE_SUBSCRIPTIONS, Permission.VIEW_PRACTICE_STATISTICS])
        tenant = self._load(require_tenant(caller))
        active = self._plans.count_active(tenant.id)
        return SubscriptionUsage(
            tier=tenant.subscription_tier,
            status=tenant.subscription_status,
            active_plans=active,
            limit=tier_cap(tenant.subscription_tier),
            remaining=remaining_capacity(tenant, active),
        )

    def _load(self, tenant_id: UUID) -> Tenant:
        tenant = self._tenants.get(tenant_id)
        if tenant is None:
            raise NotFoundError("Practice not found")
        return tenant

    def _set_status(self, tenant: Tenant, status: SubscriptionStatus, action: str) -> Tenant:
        updated = tenant.model_copy(update={"subscription_status": status})
        self._tenants.save(updated)
        logger.info("subscription status changed", extra={"tenant_id": str(tenant.id), "status": status.value})
        audit_service.log_event(action=action, resource_type="tenant", resource_id=str(tenant.id))
        return updated
