from __future__ import annotations

from typing import Dict, Optional

from src.vetcore.domain.models.tenant import SubscriptionStatus, SubscriptionTier, Tenant
from src.vetcore.errors import QuotaExceededError

# Maximum number of ACTIVE monitoring plans per tier. None means unlimited.
TIER_ACTIVE_PLAN_CAPS: Dict[SubscriptionTier, Optional[int]] = {
    SubscriptionTier.BASIC: 5,
    SubscriptionTier.STANDARD: 20,
    SubscriptionTier.PREMIUM: None,
    SubscriptionTier.TRIAL: None,
}

QUOTA_STATUSES = frozenset({SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIAL})


def tier_cap(tier: SubscriptionTier) -> Optional[int]:
    return TIER_ACTIVE_PLAN_CAPS.get(tier)


def can_activate(tenant: Tenant, current_active_count: int) -> bool:
    """Return whether ``tenant`` may have one more ACTIVE plan."""

    if current_active_count < 0:
        raise ValueError("current_active_count must not be negative")

    if tenant.subscription_status not in QUOTA_STATUSES:
        return False
    if tenant.subscription_tier not in TIER_ACTIVE_PLAN_CAPS:
        return False

    cap = TIER_ACTIVE_PLAN_CAPS[tenant.subscription_tier]
    return cap is None or current_active_count < cap


def ensure_can_activate(tenant: Tenant, current_active_count: int) -> None:
    """Quota check in the shape repositories expect for ``save_within_quota``."""

    if can_activate(tenant, current_active_count):
        return

    if tenant.subscription_status not in QUOTA_STATUSES:
        message = "Your subscription is not active"
    else:
        message = "Your subscription tier has reached its limit of active monitoring plans"
    raise QuotaExceededError(
        message,
        details={
            "tier": tenant.subscription_tier.value,
            "status": tenant.subscription_status.value,
            "limit": tier_cap(tenant.subscription_tier),
            "active": current_active_count,
        },
    )


def remaining_capacity(tenant: Tenant, current_active_count: int) -> Optional[int]:
    """Number of plans that may still be activated; None when unlimited."""

    if tenant.subscription_status not in QUOTA_STATUSES:
        return 0
    if tenant.subscription_tier not in TIER_ACTIVE_PLAN_CAPS:
        return 0
    cap = TIER_ACTIVE_PLAN_CAPS[tenant.subscription_tier]
    if cap is None:
        return None
    return max(cap - current_active_count, 0)
