from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class MonitoringPlanStatus(str, Enum):
    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"
    COMPLETED = "COMPLETED"
    ARCHIVED = "ARCHIVED"


class MonitoringPlan(BaseModel):
    """A tenant-owned plan; counts against the subscription quota while ACTIVE."""

    id: UUID
    tenant_id: UUID
    title: str
    description: Optional[str] = None
    status: MonitoringPlanStatus = MonitoringPlanStatus.DRAFT
    created_by: Optional[UUID] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class PlanEnrollment(BaseModel):
    plan_id: UUID
    patient_id: UUID
    tenant_id: UUID
    enrolled_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
