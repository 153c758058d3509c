from __future__ import annotations

import logging
from typing import Protocol
from uuid import UUID

from src.vetcore.domain.models.principal import Caller
from src.vetcore.errors import AuthenticationError
from src.vetcore.infra.db.repositories import PrincipalRepository, TenantRepository
from src.vetcore.services.access.guard import resolve_permissions
from src.vetcore.services.access.role_profiles import RoleProfile

logger = logging.getLogger("vetcore.identity")


class TokenVerifier(Protocol):
    def verify(self, token: str) -> str:
        """Return the subject of a valid credential or raise AuthenticationError."""
        ...


class IdentityResolver:
    """Turn a bearer credential into a :class:`Caller`.

    Every failure mode (bad token, unknown subject, deactivated principal,
    deactivated practice) raises the same AuthenticationError so a caller
    cannot probe which accounts exist.
    """

    _FAILURE = "Could not validate credentials"

    def __init__(
        self,
        verifier: TokenVerifier,
        principals: PrincipalRepository,
        tenants: TenantRepository,
        role_profile: RoleProfile,
    ) -> None:
        self._verifier = verifier
        self._principals = principals
        self._tenants = tenants
        self._role_profile = role_profile

    def resolve_caller(self, token: str) -> Caller:
        subject = self._verifier.verify(token)

        try:
            principal_id = UUID(subject)
        except (TypeError, ValueError) as exc:
            raise AuthenticationError(self._FAILURE) from exc

        principal = self._principals.get(principal_id)
        if principal is None or not principal.is_active:
            logger.info("rejected credential for unknown or inactive principal")
            raise AuthenticationError(self._FAILURE)

        if principal.tenant_id is not None:
            tenant = self._tenants.get(principal.tenant_id)
            if tenant is None or not tenant.is_active:
                logger.info("rejected credential for deactivated practice")
                raise AuthenticationError(self._FAILURE)

        return Caller(
            principal_id=principal.id,
            tenant_id=principal.tenant_id,
            role=principal.role,
            permissions=resolve_permissions(principal.role, self._role_profile),
        )
