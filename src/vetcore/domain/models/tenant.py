from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class SubscriptionTier(str, Enum):
    BASIC = "BASIC"
    STANDARD = "STANDARD"
    PREMIUM = "PREMIUM"
    TRIAL = "TRIAL"


class SubscriptionStatus(str, Enum):
    ACTIVE = "ACTIVE"
    TRIAL = "TRIAL"
    EXPIRED = "EXPIRED"
    CANCELED = "CANCELED"


class Tenant(BaseModel):
    """A veterinary practice; the unit of data isolation.

    Practices are never hard-deleted. Deactivation flips ``is_active`` and
    locks every principal of the practice out at identity resolution.
    """

    id: UUID
    name: str
    subscription_tier: SubscriptionTier = SubscriptionTier.TRIAL
    subscription_status: SubscriptionStatus = SubscriptionStatus.TRIAL
    subscription_start_date: Optional[datetime] = None
    subscription_end_date: Optional[datetime] = None
    is_active: bool = True
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class SubscriptionChange(BaseModel):
    """History entry written every time a practice's tier changes."""

    id: UUID
    tenant_id: UUID
    tier: SubscriptionTier
    start_date: datetime
    end_date: Optional[datetime] = None
    amount: Optional[float] = None
    payment_id: Optional[str] = None
