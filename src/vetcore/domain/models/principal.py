from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import FrozenSet, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from src.vetcore.domain.models.permission import Permission


class Role(str, Enum):
    TENANT_OWNER = "TENANT_OWNER"
    CLINICIAN = "CLINICIAN"
    TECHNICIAN = "TECHNICIAN"
    ASSISTANT = "ASSISTANT"
    FRONT_DESK = "FRONT_DESK"


class Principal(BaseModel):
    """An authenticated staff user."""

    id: UUID
    email: EmailStr
    full_name: Optional[str] = None
    role: Role
    # Only null before the user has been onboarded into a practice.
    tenant_id: Optional[UUID] = None
    is_active: bool = True
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class Caller(BaseModel):
    """Resolved identity of the principal performing a request.

    Built once per request by the identity resolver; decision functions
    only ever look at this, never at the raw token.
    """

    model_config = ConfigDict(frozen=True)

    principal_id: UUID
    tenant_id: Optional[UUID] = None
    role: Role
    permissions: FrozenSet[Permission] = frozenset()


_EMAIL = TypeAdapter(EmailStr)


def normalize_email(email: str) -> str:
    """Validate and lower-case an email address.

    Raises ValueError for anything that is not a deliverable-looking address.
    """

    try:
        return _EMAIL.validate_python(email).lower()
    except PydanticValidationError as exc:
        raise ValueError(f"Invalid email address: {email!r}") from exc
