from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional
from uuid import UUID


# Context variable storing the tenant of the in-flight request. It is set by
# the request layer once the caller has been resolved and is read by
# cross-cutting concerns such as audit logging. Services and repositories
# never rely on it for isolation; they receive tenant ids explicitly.
_current_tenant: ContextVar[Optional[UUID]] = ContextVar("current_tenant", default=None)


def get_current_tenant() -> Optional[UUID]:
    """Return the tenant of the in-flight request, if one has been resolved."""

    return _current_tenant.get()


def set_current_tenant(tenant_id: Optional[UUID]) -> None:
    _current_tenant.set(tenant_id)


@contextmanager
def tenant_scope(tenant_id: Optional[UUID]) -> Iterator[None]:
    """Temporarily bind ``tenant_id`` as the current tenant.

    Useful for background jobs and direct service calls in tests, where no
    request pipeline sets the context.
    """

    token = _current_tenant.set(tenant_id)
    try:
        yield
    finally:
        _current_tenant.reset(token)
