from __future__ import annotations

import logging
from typing import List, Optional
from uuid import UUID, uuid4

from src.vetcore.domain.models.permission import Permission
from src.vetcore.domain.models.principal import Caller, Principal, Role, normalize_email
from src.vetcore.errors import AuthorizationError, ValidationError
from src.vetcore.infra.db.repositories import PrincipalRepository
from src.vetcore.services.access.guard import authorize, found_in_tenant, require_tenant
from src.vetcore.services.audit.service import audit_service

logger = logging.getLogger("vetcore.team")


class TeamService:
    """Staff membership and roles within a practice.

    The owner role is assigned once, at practice registration, and can be
    neither granted nor taken away here.
    """

    def __init__(self, principals: PrincipalRepository) -> None:
        self._principals = principals

    def list_members(self, caller: Caller) -> List[Principal]:
        authorize(caller, [Permission.VIEW_TEAM_MEMBERS])
        tenant_id = require_tenant(caller)
        return self._principals.list_for_tenant(tenant_id)

    def add_member(
        self,
        caller: Caller,
        *,
        email: str,
        role: Role,
        full_name: Optional[str] = None,
    ) -> Principal:
        authorize(caller, [Permission.INVITE_TEAM_MEMBERS])
        tenant_id = require_tenant(caller)
        role = Role(role)
        if role == Role.TENANT_OWNER:
            raise ValidationError("The practice owner role cannot be granted", field="role")

        try:
            email = normalize_email(email)
        except ValueError as exc:
            raise ValidationError(str(exc), field="email") from exc

        principal = Principal(id=uuid4(), email=email, full_name=full_name, role=role, tenant_id=tenant_id)
        self._principals.add(principal)
        audit_service.log_event(
            action="add_member",
            resource_type="principal",
            resource_id=str(principal.id),
            extra={"role": role.value},
        )
        return principal

    def change_role(self, caller: Caller, member_id: UUID, role: Role) -> Principal:
        authorize(caller, [Permission.MANAGE_TEAM_ROLES])
        role = Role(role)
        member = self._load_other_member(caller, member_id)
        if role == Role.TENANT_OWNER:
            raise ValidationError("The practice owner role cannot be granted", field="role")

        updated = member.model_copy(update={"role": role})
        self._principals.save(updated)
        audit_service.log_event(
            action="change_role",
            resource_type="principal",
            resource_id=str(member_id),
            extra={"from": member.role.value, "to": role.value},
        )
        return updated

    def deactivate_member(self, caller: Caller, member_id: UUID) -> Principal:
        authorize(caller, [Permission.MANAGE_TEAM_ROLES])
        member = self._load_other_member(caller, member_id)

        updated = member.model_copy(update={"is_active": False})
        self._principals.save(updated)
        audit_service.log_event(action="deactivate_member", resource_type="principal", resource_id=str(member_id))
        return updated

    def _load_other_member(self, caller: Caller, member_id: UUID) -> Principal:
        tenant_id = require_tenant(caller)
        if member_id == caller.principal_id:
            raise AuthorizationError("You cannot change your own membership")

        member = self._principals.get(member_id)
        if member is not None and member.tenant_id != tenant_id:
            member = None
        member = found_in_tenant(member, "Team member")
        if member.role == Role.TENANT_OWNER:
            raise AuthorizationError("The practice owner cannot be modified")
        return member
