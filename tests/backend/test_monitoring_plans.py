from concurrent.futures import ThreadPoolExecutor
from uuid import uuid4

import pytest

from src.vetcore.domain.models.monitoring_plan import MonitoringPlanStatus
from src.vetcore.domain.models.observation_template import ObservationDataType
from src.vetcore.domain.models.principal import Role
from src.vetcore.domain.models.tenant import SubscriptionTier
from src.vetcore.errors import AuthorizationError, ConflictError, NotFoundError, QuotaExceededError


def _basic_practice_with_active_plans(services, owner, n):
    services.subscriptions.update_subscription(owner, SubscriptionTier.BASIC)
    return [
        services.plans.create_plan(owner, title=f"Plan {i}", status=MonitoringPlanStatus.ACTIVE)
        for i in range(n)
    ]


def test_plans_are_created_as_draft_by_default(services, owner):
    plan = services.plans.create_plan(owner, title="Post-op recovery")
    assert plan.status == MonitoringPlanStatus.DRAFT
    assert plan.created_by == owner.principal_id


def test_basic_tier_sixth_active_plan_is_refused_but_draft_is_allowed(services, owner):
    _basic_practice_with_active_plans(services, owner, 5)

    with pytest.raises(QuotaExceededError):
        services.plans.create_plan(owner, title="Sixth", status=MonitoringPlanStatus.ACTIVE)
    assert services.repositories.plans.count_active(owner.tenant_id) == 5
    assert len(services.plans.list_plans(owner)) == 5

    draft = services.plans.create_plan(owner, title="Sixth as draft")
    assert draft.status == MonitoringPlanStatus.DRAFT

    with pytest.raises(QuotaExceededError):
        services.plans.change_status(owner, draft.id, MonitoringPlanStatus.ACTIVE)
    assert services.plans.get_plan(owner, draft.id).status == MonitoringPlanStatus.DRAFT


def test_pausing_a_plan_frees_quota(services, owner):
    plans = _basic_practice_with_active_plans(services, owner, 5)
    draft = services.plans.create_plan(owner, title="Waiting")

    services.plans.change_status(owner, plans[0].id, MonitoringPlanStatus.PAUSED)
    activated = services.plans.change_status(owner, draft.id, MonitoringPlanStatus.ACTIVE)
    assert activated.status == MonitoringPlanStatus.ACTIVE


def test_active_plan_can_be_edited_when_at_capacity(services, owner):
    plans = _basic_practice_with_active_plans(services, owner, 5)
    updated = services.plans.update_plan(owner, plans[0].id, title="Renamed")
    assert updated.title == "Renamed"
    assert updated.status == MonitoringPlanStatus.ACTIVE

    # Re-setting the same status is a no-op, not a new activation.
    same = services.plans.change_status(owner, plans[1].id, MonitoringPlanStatus.ACTIVE)
    assert same.status == MonitoringPlanStatus.ACTIVE


def test_canceled_subscription_cannot_activate(services, owner):
    services.subscriptions.cancel_subscription(owner)
    with pytest.raises(QuotaExceededError):
        services.plans.create_plan(owner, title="Blocked", status=MonitoringPlanStatus.ACTIVE)
    services.plans.create_plan(owner, title="Still fine as draft")


def test_concurrent_activations_never_exceed_the_cap(services, owner):
    services.subscriptions.update_subscription(owner, SubscriptionTier.BASIC)
    drafts = [services.plans.create_plan(owner, title=f"Draft {i}") for i in range(12)]

    def _activate(plan_id):
        try:
            services.plans.change_status(owner, plan_id, MonitoringPlanStatus.ACTIVE)
            return True
        except QuotaExceededError:
            return False

    with ThreadPoolExecutor(max_workers=6) as pool:
        results = list(pool.map(_activate, [d.id for d in drafts]))

    assert results.count(True) == 5
    assert services.repositories.plans.count_active(owner.tenant_id) == 5


def test_plans_are_invisible_to_other_practices(services, owner, caller_for):
    plan = services.plans.create_plan(owner, title="Private")
    _, other_owner = services.practices.register_practice(
        practice_name="Hillside Vets", owner_email="boss@hillside-vets.com"
    )
    other = caller_for(other_owner)

    with pytest.raises(NotFoundError):
        services.plans.get_plan(other, plan.id)
    with pytest.raises(NotFoundError):
        services.plans.change_status(other, plan.id, MonitoringPlanStatus.ACTIVE)
    assert services.plans.list_plans(other) == []


def test_delete_is_refused_while_templates_are_attached(services, owner):
    plan = services.plans.create_plan(owner, title="With templates")
    template = services.templates.create_template(
        owner, monitoring_plan_id=plan.id, name="Weight", data_type=ObservationDataType.NUMERIC
    )

    with pytest.raises(ConflictError):
        services.plans.delete_plan(owner, plan.id)

    services.templates.delete_template(owner, template.id)
    services.plans.delete_plan(owner, plan.id)
    with pytest.raises(NotFoundError):
        services.plans.get_plan(owner, plan.id)


def test_enrollment_rejects_duplicates_and_unknown_patients(services, owner):
    plan = services.plans.create_plan(owner, title="Diabetes")
    patient = services.patients.create_patient(owner, name="Biscuit", species="Dog")

    services.plans.enroll_patient(owner, plan.id, patient.id)
    assert services.repositories.plans.is_enrolled(owner.tenant_id, plan.id, patient.id)

    with pytest.raises(ConflictError):
        services.plans.enroll_patient(owner, plan.id, patient.id)
    with pytest.raises(NotFoundError):
        services.plans.enroll_patient(owner, plan.id, uuid4())


def test_technician_cannot_create_plans(services, member_factory):
    technician = member_factory(Role.TECHNICIAN)
    with pytest.raises(AuthorizationError):
        services.plans.create_plan(technician, title="Nope")
    assert services.plans.list_plans(technician) == []
