from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class Patient(BaseModel):
    """An animal under the care of a practice."""

    id: UUID
    tenant_id: UUID
    name: str
    species: str
    breed: Optional[str] = None
    date_of_birth: Optional[date] = None
    owner_name: Optional[str] = None
    owner_email: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
