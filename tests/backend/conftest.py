from typing import Callable, Tuple

import pytest
from httpx import ASGITransport, AsyncClient

from src.vetcore.container import ServiceContainer, build_services, set_services
from src.vetcore.domain.models.principal import Caller, Principal, Role
from src.vetcore.domain.models.tenant import Tenant
from src.vetcore.infra.db.bootstrap import create_inmemory_repositories
from src.vetcore.main import app
from src.vetcore.security import issue_token
from src.vetcore.services.access.role_profiles import DEFAULT_ROLE_PROFILE


@pytest.fixture
def services() -> ServiceContainer:
    """Fresh in-memory repositories and services for each test."""

    return build_services(create_inmemory_repositories(), role_profile=DEFAULT_ROLE_PROFILE)


@pytest.fixture
def practice(services) -> Tuple[Tenant, Principal]:
    return services.practices.register_practice(
        practice_name="Riverside Animal Clinic",
        owner_email="owner@riverside-vets.com",
        owner_full_name="Dana Owner",
    )


@pytest.fixture
def caller_for(services) -> Callable[[Principal], Caller]:
    def _resolve(principal: Principal) -> Caller:
        return services.identity.resolve_caller(issue_token(principal.id))

    return _resolve


@pytest.fixture
def owner(practice, caller_for) -> Caller:
    return caller_for(practice[1])


@pytest.fixture
def member_factory(services, owner, caller_for) -> Callable[[Role], Caller]:
    """Add a team member with the given role and return their resolved caller."""

    counter = {"n": 0}

    def _make(role: Role) -> Caller:
        counter["n"] += 1
        principal = services.team.add_member(
            owner,
            email=f"{role.value.lower()}{counter['n']}@riverside-vets.com",
            role=role,
        )
        return caller_for(principal)

    return _make


@pytest.fixture
async def client(services):
    set_services(services)
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            yield ac
    finally:
        set_services(None)
