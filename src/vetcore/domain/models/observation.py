from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ObservationRecord(BaseModel):
    """A value recorded against an observation template.

    Records are immutable: there is no update path, and the value was
    validated once against the template as it stood at creation time.
    """

    model_config = ConfigDict(frozen=True)

    id: UUID
    tenant_id: UUID
    template_id: UUID
    patient_id: Optional[UUID] = None
    # Shape depends on the template's data type; None for NOTE records.
    value: Any = None
    notes: Optional[str] = None
    recorded_by: Optional[UUID] = None
    recorded_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
