from uuid import uuid4

import pytest

from src.vetcore.domain.models.tenant import SubscriptionStatus, SubscriptionTier, Tenant
from src.vetcore.errors import QuotaExceededError
from src.vetcore.services.subscriptions.quota import can_activate, ensure_can_activate, remaining_capacity


def _tenant(tier, status=SubscriptionStatus.ACTIVE):
    return Tenant(id=uuid4(), name="Clinic", subscription_tier=tier, subscription_status=status)


@pytest.mark.parametrize("count", range(0, 5))
def test_basic_allows_below_five(count):
    assert can_activate(_tenant(SubscriptionTier.BASIC), count)


@pytest.mark.parametrize("count", [5, 6, 50])
def test_basic_blocks_from_five(count):
    assert not can_activate(_tenant(SubscriptionTier.BASIC), count)


@pytest.mark.parametrize("count", [0, 10, 19])
def test_standard_allows_below_twenty(count):
    assert can_activate(_tenant(SubscriptionTier.STANDARD), count)


@pytest.mark.parametrize("count", [20, 21, 100])
def test_standard_blocks_from_twenty(count):
    assert not can_activate(_tenant(SubscriptionTier.STANDARD), count)


@pytest.mark.parametrize("tier", [SubscriptionTier.PREMIUM, SubscriptionTier.TRIAL])
@pytest.mark.parametrize("count", [0, 5, 20, 10_000])
def test_premium_and_trial_are_unlimited(tier, count):
    assert can_activate(_tenant(tier), count)
    assert can_activate(_tenant(tier, SubscriptionStatus.TRIAL), count)


@pytest.mark.parametrize("status", [SubscriptionStatus.EXPIRED, SubscriptionStatus.CANCELED])
@pytest.mark.parametrize("tier", list(SubscriptionTier))
def test_inactive_status_always_blocks(status, tier):
    assert not can_activate(_tenant(tier, status), 0)


def test_negative_count_is_a_programming_error():
    with pytest.raises(ValueError):
        can_activate(_tenant(SubscriptionTier.BASIC), -1)


def test_ensure_can_activate_reports_tier_and_limit():
    with pytest.raises(QuotaExceededError) as exc_info:
        ensure_can_activate(_tenant(SubscriptionTier.BASIC), 5)
    assert exc_info.value.details == {"tier": "BASIC", "status": "ACTIVE", "limit": 5, "active": 5}


def test_ensure_can_activate_for_canceled_subscription():
    with pytest.raises(QuotaExceededError) as exc_info:
        ensure_can_activate(_tenant(SubscriptionTier.PREMIUM, SubscriptionStatus.CANCELED), 0)
    assert "not active" in exc_info.value.message


def test_remaining_capacity():
    assert remaining_capacity(_tenant(SubscriptionTier.BASIC), 3) == 2
    assert remaining_capacity(_tenant(SubscriptionTier.BASIC), 7) == 0
    assert remaining_capacity(_tenant(SubscriptionTier.PREMIUM), 7) is None
    assert remaining_capacity(_tenant(SubscriptionTier.STANDARD, SubscriptionStatus.EXPIRED), 0) == 0
