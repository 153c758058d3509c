from __future__ import annotations

import logging
from typing import FrozenSet, Iterable, Optional, TypeVar
from uuid import UUID

from src.vetcore.domain.models.permission import ALL_PERMISSIONS, Permission
from src.vetcore.domain.models.principal import Caller, Role
from src.vetcore.errors import AuthorizationError, NotFoundError
from src.vetcore.services.access.role_profiles import RoleProfile
from src.vetcore.services.audit.service import audit_service

logger = logging.getLogger("vetcore.access")

T = TypeVar("T")


def resolve_permissions(role: Role, profile: RoleProfile) -> FrozenSet[Permission]:
    """Return the effective permission set for ``role``.

    The tenant owner always gets the full universe, whatever the table says.
    A role with no table entry gets nothing and the gap is logged, since it
    can only come from a broken deployment.
    """

    if role == Role.TENANT_OWNER:
        return ALL_PERMISSIONS

    permissions = profile.permissions_for(role)
    if permissions is None:
        logger.error("role has no entry in the role profile", extra={"role": str(role)})
        return frozenset()
    return permissions


def is_allowed(caller: Caller, required: Iterable[Permission], require_all: bool = False) -> bool:
    if caller.role == Role.TENANT_OWNER:
        return True

    # An empty any-of set matches nothing; an empty all-of set is vacuously held.
    needed = set(required)
    if require_all:
        return needed.issubset(caller.permissions)
    return not needed.isdisjoint(caller.permissions)


def authorize(caller: Caller, required: Iterable[Permission], require_all: bool = False) -> None:
    """Raise AuthorizationError unless ``caller`` holds the required permissions.

    With ``require_all`` false a single matching permission is enough.
    """

    needed = list(required)
    if is_allowed(caller, needed, require_all=require_all):
        return

    audit_service.log_event(
        action="authorize",
        resource_type="permission",
        outcome="denied",
        subject=str(caller.principal_id),
        extra={
            "role": caller.role.value,
            "required": sorted(p.value for p in needed),
            "require_all": require_all,
        },
    )
    raise AuthorizationError(
        "You do not have permission to perform this action",
        details={"required": sorted(p.value for p in needed)},
    )


def require_tenant(caller: Caller) -> UUID:
    """Return the caller's tenant, rejecting principals not yet onboarded."""

    if caller.tenant_id is None:
        raise AuthorizationError("You must belong to a practice to perform this action")
    return caller.tenant_id


def found_in_tenant(record: Optional[T], label: str) -> T:
    """Fold a missing record and a record of another tenant into one error.

    Repositories already return None for cross-tenant lookups, so both
    cases reach here the same way.
    """

    if record is None:
        raise NotFoundError(f"{label} not found")
    return record
