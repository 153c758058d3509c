from __future__ import annotations

from contextvars import ContextVar
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional
from uuid import UUID

import jwt
from fastapi import Depends, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.vetcore.config import settings
from src.vetcore.container import ServiceContainer, get_services
from src.vetcore.domain.models.permission import Permission
from src.vetcore.domain.models.principal import Caller
from src.vetcore.errors import AuthenticationError
from src.vetcore.services.access.guard import authorize, require_tenant
from src.vetcore.tenancy import set_current_tenant

_bearer = HTTPBearer(auto_error=False)

# Context variable storing the principal id of the current caller so that
# downstream consumers such as the audit logger can attribute events without
# being handed the caller explicitly.
_current_subject: ContextVar[Optional[str]] = ContextVar("current_subject", default=None)


def get_current_subject() -> Optional[str]:
    """Return the current subject identifier, if any."""

    return _current_subject.get()


class JwtTokenVerifier:
    """Verify HS256 (or configured algorithm) bearer tokens issued by :func:`issue_token`."""

    def __init__(self, secret_key: str, algorithm: str = "HS256") -> None:
        self._secret_key = secret_key
        self._algorithm = algorithm

    def verify(self, token: str) -> str:
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self._algorithm],
                options={"require": ["sub", "exp"]},
            )
        except jwt.PyJWTError as exc:
            raise AuthenticationError("Could not validate credentials") from exc
        return str(payload["sub"])


def issue_token(
    principal_id: UUID,
    *,
    secret_key: Optional[str] = None,
    algorithm: Optional[str] = None,
    expires_in: Optional[timedelta] = None,
) -> str:
    """Issue a signed access token for ``principal_id``."""

    now = datetime.now(timezone.utc)
    expires = now + (expires_in or timedelta(minutes=settings.access_token_expire_minutes))
    payload = {"sub": str(principal_id), "iat": now, "exp": expires}
    return jwt.encode(
        payload,
        secret_key or settings.jwt_secret_key,
        algorithm=algorithm or settings.jwt_algorithm,
    )


async def get_current_caller(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(_bearer),
    services: ServiceContainer = Depends(get_services),
) -> Caller:
    """FastAPI dependency resolving the bearer token into a Caller.

    Also binds the caller's tenant and principal to the request context for
    audit logging.
    """

    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthenticationError("Not authenticated")

    caller = services.identity.resolve_caller(credentials.credentials)
    set_current_tenant(caller.tenant_id)
    _current_subject.set(str(caller.principal_id))
    return caller


def require_permissions(*required: Permission, require_all: bool = False) -> Callable[..., Caller]:
    """Build a dependency that authorizes the caller before the handler runs.

    Used on routes whose permission does not depend on the request body; the
    services check again, so this only fails requests earlier.
    """

    async def _dependency(caller: Caller = Depends(get_current_caller)) -> Caller:
        require_tenant(caller)
        authorize(caller, required, require_all=require_all)
        return caller

    return _dependency
