from datetime import timedelta
from uuid import uuid4

import jwt
import pytest

from src.vetcore.config import settings
from src.vetcore.domain.models.permission import ALL_PERMISSIONS, Permission
from src.vetcore.domain.models.principal import Role
from src.vetcore.errors import AuthenticationError
from src.vetcore.security import JwtTokenVerifier, issue_token


def test_owner_token_resolves_to_owner_caller(services, practice):
    tenant, owner = practice
    caller = services.identity.resolve_caller(issue_token(owner.id))

    assert caller.principal_id == owner.id
    assert caller.tenant_id == tenant.id
    assert caller.role == Role.TENANT_OWNER
    assert caller.permissions == ALL_PERMISSIONS


def test_member_gets_role_permissions(member_factory):
    technician = member_factory(Role.TECHNICIAN)
    assert technician.role == Role.TECHNICIAN
    assert Permission.RECORD_OBSERVATION in technician.permissions
    assert Permission.CREATE_PATIENT not in technician.permissions


def _assert_rejected(services, token):
    with pytest.raises(AuthenticationError) as exc_info:
        services.identity.resolve_caller(token)
    return exc_info.value.message


def test_unknown_and_deactivated_principals_fail_identically(services, owner, member_factory):
    unknown_message = _assert_rejected(services, issue_token(uuid4()))

    assistant = member_factory(Role.ASSISTANT)
    services.team.deactivate_member(owner, assistant.principal_id)
    inactive_message = _assert_rejected(services, issue_token(assistant.principal_id))

    assert unknown_message == inactive_message


def test_deactivated_practice_locks_out_its_staff(services, owner, practice):
    services.practices.deactivate_practice(owner)
    _assert_rejected(services, issue_token(practice[1].id))


def test_tampered_and_expired_tokens_are_rejected(services, practice):
    owner_id = practice[1].id
    _assert_rejected(services, issue_token(owner_id, secret_key="some-other-secret"))
    _assert_rejected(services, issue_token(owner_id, expires_in=timedelta(seconds=-5)))
    _assert_rejected(services, "not-a-jwt")


def test_non_uuid_subject_is_rejected(services):
    token = jwt.encode(
        {"sub": "alice", "exp": 4102444800},
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )
    _assert_rejected(services, token)


def test_verifier_requires_expiry():
    token = jwt.encode({"sub": str(uuid4())}, "secret", algorithm="HS256")
    with pytest.raises(AuthenticationError):
        JwtTokenVerifier("secret").verify(token)
