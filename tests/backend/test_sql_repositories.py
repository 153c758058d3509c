"""The service layer running over the SQLAlchemy repositories on SQLite."""

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from src.vetcore.container import build_services
from src.vetcore.domain.models.monitoring_plan import MonitoringPlanStatus
from src.vetcore.domain.models.observation import ObservationRecord
from src.vetcore.domain.models.principal import Role
from src.vetcore.domain.models.tenant import SubscriptionTier
from src.vetcore.errors import ConflictError, NotFoundError, QuotaExceededError
from src.vetcore.infra.db.bootstrap import init_sql_repositories
from src.vetcore.security import issue_token
from src.vetcore.services.access.role_profiles import DEFAULT_ROLE_PROFILE


@pytest.fixture
def sql_services():
    return build_services(init_sql_repositories("sqlite:///:memory:"), role_profile=DEFAULT_ROLE_PROFILE)


@pytest.fixture
def sql_owner(sql_services):
    _, owner = sql_services.practices.register_practice(
        practice_name="Riverside Animal Clinic", owner_email="owner@riverside-vets.com"
    )
    return sql_services.identity.resolve_caller(issue_token(owner.id))


def test_registration_round_trips(sql_services, sql_owner):
    tenant = sql_services.practices.get_practice(sql_owner)
    assert tenant.subscription_tier == SubscriptionTier.TRIAL
    assert tenant.subscription_end_date.tzinfo is not None

    with pytest.raises(ConflictError):
        sql_services.team.add_member(sql_owner, email="OWNER@riverside-vets.com", role=Role.CLINICIAN)


def test_basic_tier_quota(sql_services, sql_owner):
    sql_services.subscriptions.update_subscription(sql_owner, SubscriptionTier.BASIC)
    for i in range(5):
        sql_services.plans.create_plan(sql_owner, title=f"Plan {i}", status=MonitoringPlanStatus.ACTIVE)

    with pytest.raises(QuotaExceededError):
        sql_services.plans.create_plan(sql_owner, title="Sixth", status=MonitoringPlanStatus.ACTIVE)
    draft = sql_services.plans.create_plan(sql_owner, title="Sixth as draft")

    assert sql_services.repositories.plans.count_active(sql_owner.tenant_id) == 5
    assert len(sql_services.plans.list_plans(sql_owner, status=MonitoringPlanStatus.DRAFT)) == 1
    with pytest.raises(QuotaExceededError):
        sql_services.plans.change_status(sql_owner, draft.id, MonitoringPlanStatus.ACTIVE)


def test_enrollment_conflict_and_plan_delete(sql_services, sql_owner):
    plan = sql_services.plans.create_plan(sql_owner, title="Renal")
    patient = sql_services.patients.create_patient(sql_owner, name="Mochi", species="Cat")

    sql_services.plans.enroll_patient(sql_owner, plan.id, patient.id)
    with pytest.raises(ConflictError):
        sql_services.plans.enroll_patient(sql_owner, plan.id, patient.id)

    sql_services.plans.delete_plan(sql_owner, plan.id)
    with pytest.raises(NotFoundError):
        sql_services.plans.get_plan(sql_owner, plan.id)


def test_singleton_template_and_observations(sql_services, sql_owner):
    plan = sql_services.plans.create_plan(sql_owner, title="General")
    severity = sql_services.templates.create_template(
        sql_owner,
        monitoring_plan_id=plan.id,
        name="Severity",
        data_type="ENUMERATION",
        options=["MILD", "SEVERE"],
    )
    recorded = sql_services.observations.record_observation(sql_owner, template_id=severity.id, value="MILD")
    note = sql_services.observations.record_health_note(sql_owner, notes="Eating well")
    again = sql_services.bootstrap.ensure_singleton_template(sql_owner.tenant_id)

    assert note.template_id == again
    stored = sql_services.templates.get_template(sql_owner, again)
    assert stored.is_canonical
    assert sql_services.templates.get_template(sql_owner, severity.id).options == ["MILD", "SEVERE"]
    assert sql_services.observations.get_observation(sql_owner, recorded.id).value == "MILD"


def test_singleton_constraint_rejects_a_second_canonical_row(sql_services, sql_owner):
    sql_services.plans.create_plan(sql_owner, title="General")
    winner_id = sql_services.bootstrap.ensure_singleton_template(sql_owner.tenant_id)
    winner = sql_services.templates.get_template(sql_owner, winner_id)

    challenger = winner.model_copy(update={"id": uuid4(), "name": "Late arrival"})
    result = sql_services.repositories.templates.insert_singleton_if_absent(challenger)

    assert result.id == winner_id
    assert len(sql_services.templates.list_templates(sql_owner, data_type="NOTE")) == 1


def test_concurrent_bootstrap_on_a_file_database(tmp_path):
    services = build_services(
        init_sql_repositories(f"sqlite:///{tmp_path / 'vetcore.db'}"), role_profile=DEFAULT_ROLE_PROFILE
    )
    _, owner = services.practices.register_practice(practice_name="Clinic", owner_email="owner@clinic-vets.com")
    caller = services.identity.resolve_caller(issue_token(owner.id))
    services.plans.create_plan(caller, title="Plan")

    with ThreadPoolExecutor(max_workers=4) as pool:
        ids = list(pool.map(lambda _: services.bootstrap.ensure_singleton_template(caller.tenant_id), range(8)))

    assert len(set(ids)) == 1
    assert len(services.repositories.templates.list_for_tenant(caller.tenant_id, data_type="NOTE")) == 1


def test_observation_range_filters(sql_services, sql_owner):
    plan = sql_services.plans.create_plan(sql_owner, title="Weights")
    template = sql_services.templates.create_template(
        sql_owner, monitoring_plan_id=plan.id, name="Weight", data_type="NUMERIC"
    )
    base = datetime(2026, 5, 1, 8, 0, tzinfo=timezone.utc)
    repo = sql_services.repositories.observations
    for i in range(3):
        repo.add(
            ObservationRecord(
                id=uuid4(),
                tenant_id=sql_owner.tenant_id,
                template_id=template.id,
                value=10 + i,
                recorded_at=base + timedelta(hours=i),
            )
        )

    ranged = sql_services.observations.list_observations(
        sql_owner, recorded_from=base + timedelta(hours=1), recorded_to=base + timedelta(hours=2)
    )
    assert [r.value for r in ranged] == [12, 11]
    assert repo.count_for_template(sql_owner.tenant_id, template.id) == 3


def test_subscription_history_and_tenant_isolation(sql_services, sql_owner):
    sql_services.subscriptions.update_subscription(sql_owner, SubscriptionTier.PREMIUM)
    history = sql_services.subscriptions.get_subscription_history(sql_owner)
    assert history.total == 2
    assert history.items[0].tier == SubscriptionTier.PREMIUM

    patient = sql_services.patients.create_patient(sql_owner, name="Biscuit", species="Dog")
    _, other = sql_services.practices.register_practice(
        practice_name="Hillside Vets", owner_email="boss@hillside-vets.com"
    )
    other_caller = sql_services.identity.resolve_caller(issue_token(other.id))
    with pytest.raises(NotFoundError):
        sql_services.patients.get_patient(other_caller, patient.id)
    assert sql_services.patients.list_patients(other_caller) == []
