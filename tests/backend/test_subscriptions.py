from datetime import datetime, timedelta, timezone

import pytest

from src.vetcore.domain.models.principal import Role
from src.vetcore.domain.models.tenant import SubscriptionStatus, SubscriptionTier
from src.vetcore.errors import AuthorizationError, ValidationError
from src.vetcore.services.subscriptions.service import subscription_end_date


def test_paid_tier_activates_subscription(services, owner):
    tenant = services.subscriptions.update_subscription(
        owner, SubscriptionTier.STANDARD, amount=49.0, payment_id="pay_123"
    )
    assert tenant.subscription_tier == SubscriptionTier.STANDARD
    assert tenant.subscription_status == SubscriptionStatus.ACTIVE
    assert tenant.subscription_end_date - tenant.subscription_start_date >= timedelta(days=365)


def test_basic_has_no_end_date_and_trial_runs_the_trial_period(services, owner):
    basic = services.subscriptions.update_subscription(owner, SubscriptionTier.BASIC)
    assert basic.subscription_end_date is None

    trial = services.subscriptions.update_subscription(owner, SubscriptionTier.TRIAL)
    assert trial.subscription_status == SubscriptionStatus.TRIAL
    assert trial.subscription_end_date - trial.subscription_start_date == timedelta(days=14)


def test_end_date_on_leap_day():
    start = datetime(2028, 2, 29, tzinfo=timezone.utc)
    assert subscription_end_date(SubscriptionTier.PREMIUM, start, 14) == datetime(2029, 2, 28, tzinfo=timezone.utc)


def test_history_is_paginated_newest_first(services, owner):
    for tier in (SubscriptionTier.BASIC, SubscriptionTier.STANDARD, SubscriptionTier.PREMIUM):
        services.subscriptions.update_subscription(owner, tier)

    first_page = services.subscriptions.get_subscription_history(owner, page=1, limit=2)
    # Registration wrote the initial TRIAL entry.
    assert first_page.total == 4
    assert [c.tier for c in first_page.items] == [SubscriptionTier.PREMIUM, SubscriptionTier.STANDARD]

    second_page = services.subscriptions.get_subscription_history(owner, page=2, limit=2)
    assert [c.tier for c in second_page.items] == [SubscriptionTier.BASIC, SubscriptionTier.TRIAL]

    with pytest.raises(ValidationError):
        services.subscriptions.get_subscription_history(owner, page=0)


def test_cancel_and_expire(services, owner):
    canceled = services.subscriptions.cancel_subscription(owner)
    assert canceled.subscription_status == SubscriptionStatus.CANCELED

    expired = services.subscriptions.expire_subscription(owner.tenant_id)
    assert expired.subscription_status == SubscriptionStatus.EXPIRED
    assert services.practices.get_practice(owner).subscription_status == SubscriptionStatus.EXPIRED


def test_usage_reports_cap_and_remaining(services, owner):
    services.subscriptions.update_subscription(owner, SubscriptionTier.BASIC)
    services.plans.create_plan(owner, title="A", status="ACTIVE")
    services.plans.create_plan(owner, title="B")

    usage = services.subscriptions.get_usage(owner)
    assert usage.active_plans == 1
    assert usage.limit == 5
    assert usage.remaining == 4


def test_clinician_sees_usage_but_cannot_change_tier(services, member_factory):
    clinician = member_factory(Role.CLINICIAN)
    assert services.subscriptions.get_usage(clinician).tier == SubscriptionTier.TRIAL
    with pytest.raises(AuthorizationError):
        services.subscriptions.update_subscription(clinician, SubscriptionTier.PREMIUM)


def test_assistant_cannot_see_usage(services, member_factory):
    assistant = member_factory(Role.ASSISTANT)
    with pytest.raises(AuthorizationError):
        services.subscriptions.get_usage(assistant)
