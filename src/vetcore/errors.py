"""Error taxonomy shared by every decision function.

Services raise these and never HTTP exceptions; the request layer maps each
class to a status code through its ``status_code`` and ``code`` attributes.
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class VetCoreError(Exception):
    """Base class for errors raised by vetcore services."""

    status_code = 500
    code = "internal_error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)


class AuthenticationError(VetCoreError):
    """Caller identity cannot be established or the principal is inactive."""

    status_code = 401
    code = "authentication_failed"


class AuthorizationError(VetCoreError):
    """Caller lacks the required permission."""

    status_code = 403
    code = "forbidden"


class NotFoundError(VetCoreError):
    """Record is absent or belongs to another tenant; the two are indistinguishable."""

    status_code = 404
    code = "not_found"


class ValidationError(VetCoreError):
    """A caller-supplied value fails its constraints."""

    status_code = 422
    code = "validation_failed"

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.field = field
        merged = dict(details or {})
        if field is not None:
            merged.setdefault("field", field)
        super().__init__(message, merged)


class QuotaExceededError(VetCoreError):
    """Subscription tier or status does not allow another active resource."""

    status_code = 403
    code = "quota_exceeded"


class ConflictError(VetCoreError):
    """Duplicate record or the losing side of an atomic insert."""

    status_code = 409
    code = "conflict"


class ConfigurationError(VetCoreError):
    """Programming or data defect: unknown enum branch, corrupted template, bad role table.

    Never caused by the caller. The request layer logs the message and
    returns a generic internal error instead.
    """

    status_code = 500
    code = "internal_error"
