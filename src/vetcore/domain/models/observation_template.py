from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


class ObservationDataType(str, Enum):
    NUMERIC = "NUMERIC"
    BOOLEAN = "BOOLEAN"
    SCALE = "SCALE"
    ENUMERATION = "ENUMERATION"
    TEXT = "TEXT"
    IMAGE = "IMAGE"
    NOTE = "NOTE"


# Data types that accept min/max bounds and enumeration options respectively.
BOUNDED_DATA_TYPES = frozenset({ObservationDataType.NUMERIC, ObservationDataType.SCALE})
OPTION_DATA_TYPES = frozenset({ObservationDataType.ENUMERATION})


class ObservationTemplate(BaseModel):
    """A tenant-defined schema describing what can be recorded and its constraints.

    ``data_type`` is kept as a plain string on purpose: templates are loaded
    from storage and a value outside :class:`ObservationDataType` must reach
    the validator, which reports it as a configuration defect rather than
    failing at deserialization time.
    """

    id: UUID
    tenant_id: UUID
    monitoring_plan_id: UUID
    name: str
    description: Optional[str] = None
    data_type: str
    units: Optional[str] = None
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    options: Optional[List[str]] = None
    # True for the canonical per-tenant template created by the bootstrap.
    is_canonical: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("data_type", mode="before")
    @classmethod
    def _plain_data_type(cls, value):
        if isinstance(value, Enum):
            return value.value
        return value
