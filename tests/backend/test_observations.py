from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
from pydantic import ValidationError as PydanticValidationError

from src.vetcore.domain.models.principal import Role
from src.vetcore.errors import AuthorizationError, ConfigurationError, NotFoundError, ValidationError


@pytest.fixture
def plan(services, owner):
    return services.plans.create_plan(owner, title="Kidney monitoring")


@pytest.fixture
def weight(services, owner, plan):
    return services.templates.create_template(
        owner, monitoring_plan_id=plan.id, name="Weight", data_type="NUMERIC", units="kg", min_value=0, max_value=120
    )


@pytest.fixture
def patient(services, owner, plan):
    patient = services.patients.create_patient(owner, name="Mochi", species="Cat")
    services.plans.enroll_patient(owner, plan.id, patient.id)
    return patient


def test_valid_value_is_recorded(services, owner, weight, patient):
    record = services.observations.record_observation(
        owner, template_id=weight.id, value=4.2, patient_id=patient.id
    )
    assert record.value == 4.2
    assert record.recorded_by == owner.principal_id
    assert services.observations.get_observation(owner, record.id) == record


def test_invalid_value_is_not_persisted(services, owner, weight):
    with pytest.raises(ValidationError) as exc_info:
        services.observations.record_observation(owner, template_id=weight.id, value=130)
    assert exc_info.value.message == "Value must be at most 120"
    assert services.observations.list_observations(owner) == []


def test_records_are_immutable(services, owner, weight):
    record = services.observations.record_observation(owner, template_id=weight.id, value=3)
    with pytest.raises(PydanticValidationError):
        record.value = 4


def test_patient_must_be_enrolled_in_the_templates_plan(services, owner, weight):
    stray = services.patients.create_patient(owner, name="Pepper", species="Dog")
    with pytest.raises(ValidationError) as exc_info:
        services.observations.record_observation(owner, template_id=weight.id, value=10, patient_id=stray.id)
    assert exc_info.value.field == "patient_id"

    with pytest.raises(NotFoundError):
        services.observations.record_observation(owner, template_id=weight.id, value=10, patient_id=uuid4())


def test_health_note_bootstraps_the_note_template(services, owner, plan):
    stray = services.patients.create_patient(owner, name="Pepper", species="Dog")

    first = services.observations.record_health_note(owner, notes="Bright and alert")
    second = services.observations.record_health_note(owner, notes="Limping", patient_id=stray.id)

    assert first.template_id == second.template_id
    assert first.value is None
    assert second.notes == "Limping"


def test_health_note_requires_text(services, owner, plan):
    with pytest.raises(ValidationError) as exc_info:
        services.observations.record_health_note(owner, notes="   ")
    assert exc_info.value.field == "notes"


def test_health_note_without_any_plan(services, owner):
    with pytest.raises(NotFoundError):
        services.observations.record_health_note(owner, notes="Nowhere to attach this")


def test_list_filters_and_orders_newest_first(services, owner, weight, patient):
    base = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)
    repo = services.repositories.observations
    for i in range(4):
        record = services.observations.record_observation(
            owner, template_id=weight.id, value=i, patient_id=patient.id
        )
        # Backdate to get deterministic timestamps.
        repo._store.observations[record.id] = record.model_copy(update={"recorded_at": base + timedelta(days=i)})

    everything = services.observations.list_observations(owner)
    assert [r.value for r in everything] == [3, 2, 1, 0]

    ranged = services.observations.list_observations(
        owner, recorded_from=base + timedelta(days=1), recorded_to=base + timedelta(days=2)
    )
    assert [r.value for r in ranged] == [2, 1]

    page = services.observations.list_observations(owner, patient_id=patient.id, limit=2, offset=1)
    assert [r.value for r in page] == [2, 1]

    with pytest.raises(ValidationError):
        services.observations.list_observations(owner, recorded_from=base, recorded_to=base - timedelta(days=1))
    with pytest.raises(ValidationError):
        services.observations.list_observations(owner, limit=0)


def test_observations_are_scoped_to_the_practice(services, owner, weight, caller_for):
    record = services.observations.record_observation(owner, template_id=weight.id, value=5)
    _, other_owner = services.practices.register_practice(
        practice_name="Hillside Vets", owner_email="boss@hillside-vets.com"
    )
    other = caller_for(other_owner)

    with pytest.raises(NotFoundError):
        services.observations.get_observation(other, record.id)
    with pytest.raises(NotFoundError):
        services.observations.record_observation(other, template_id=weight.id, value=5)
    assert services.observations.list_observations(other) == []


def test_front_desk_cannot_record(services, member_factory, weight):
    front_desk = member_factory(Role.FRONT_DESK)
    with pytest.raises(AuthorizationError):
        services.observations.record_observation(front_desk, template_id=weight.id, value=5)


def test_corrupted_template_surfaces_as_configuration_error(services, owner, weight):
    services.repositories.templates.save(weight.model_copy(update={"data_type": "HOLOGRAM"}))
    with pytest.raises(ConfigurationError):
        services.observations.record_observation(owner, template_id=weight.id, value=5)
