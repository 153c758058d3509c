import pytest

from src.vetcore.domain.models.permission import Permission
from src.vetcore.domain.models.principal import Role
from src.vetcore.errors import AuthenticationError, AuthorizationError, ConflictError, NotFoundError, ValidationError
from src.vetcore.security import issue_token


def test_owner_adds_and_lists_members(services, owner):
    member = services.team.add_member(owner, email="Vet@Riverside-Vets.com", role=Role.CLINICIAN, full_name="Dr. Lee")
    assert member.email == "vet@riverside-vets.com"
    assert member.tenant_id == owner.tenant_id

    members = services.team.list_members(owner)
    assert [m.role for m in members] == [Role.TENANT_OWNER, Role.CLINICIAN]


def test_owner_role_cannot_be_granted(services, owner, member_factory):
    with pytest.raises(ValidationError):
        services.team.add_member(owner, email="second-owner@riverside-vets.com", role=Role.TENANT_OWNER)

    clinician = member_factory(Role.CLINICIAN)
    with pytest.raises(ValidationError):
        services.team.change_role(owner, clinician.principal_id, Role.TENANT_OWNER)


def test_duplicate_and_invalid_emails(services, owner):
    services.team.add_member(owner, email="tech@riverside-vets.com", role=Role.TECHNICIAN)
    with pytest.raises(ConflictError):
        services.team.add_member(owner, email="TECH@riverside-vets.com", role=Role.ASSISTANT)
    with pytest.raises(ValidationError) as exc_info:
        services.team.add_member(owner, email="not-an-email", role=Role.ASSISTANT)
    assert exc_info.value.field == "email"


def test_change_role_updates_permissions_on_next_resolution(services, owner, member_factory, caller_for):
    assistant = member_factory(Role.ASSISTANT)
    updated = services.team.change_role(owner, assistant.principal_id, Role.CLINICIAN)
    assert updated.role == Role.CLINICIAN

    refreshed = caller_for(updated)
    assert refreshed.role == Role.CLINICIAN


def test_nobody_changes_their_own_role(services, owner):
    with pytest.raises(AuthorizationError):
        services.team.change_role(owner, owner.principal_id, Role.CLINICIAN)


def test_owner_cannot_be_demoted_or_deactivated(services, practice, member_factory):
    clinician = member_factory(Role.CLINICIAN)
    # A manager role granted MANAGE_TEAM_ROLES through a custom role table.
    manager = clinician.model_copy(update={"permissions": frozenset({Permission.MANAGE_TEAM_ROLES})})
    owner_id = practice[1].id

    with pytest.raises(AuthorizationError):
        services.team.change_role(manager, owner_id, Role.CLINICIAN)
    with pytest.raises(AuthorizationError):
        services.team.deactivate_member(manager, owner_id)


def test_members_of_other_practices_are_not_found(services, owner, caller_for):
    _, other_owner = services.practices.register_practice(
        practice_name="Hillside Vets", owner_email="boss@hillside-vets.com"
    )
    outsider = services.team.add_member(caller_for(other_owner), email="tech@hillside-vets.com", role=Role.TECHNICIAN)
    with pytest.raises(NotFoundError):
        services.team.change_role(owner, outsider.id, Role.ASSISTANT)


def test_managers_without_permission_are_refused(services, member_factory):
    clinician = member_factory(Role.CLINICIAN)
    technician = member_factory(Role.TECHNICIAN)
    with pytest.raises(AuthorizationError):
        services.team.change_role(clinician, technician.principal_id, Role.ASSISTANT)
    with pytest.raises(AuthorizationError):
        services.team.add_member(clinician, email="x@riverside-vets.com", role=Role.ASSISTANT)


def test_deactivated_member_is_locked_out(services, owner, member_factory):
    technician = member_factory(Role.TECHNICIAN)
    services.team.deactivate_member(owner, technician.principal_id)

    with pytest.raises(AuthenticationError):
        services.identity.resolve_caller(issue_token(technician.principal_id))
