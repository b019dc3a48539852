"""
Pydantic schemas for subscription plans, subscriptions and the access gate
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from app.models.subscription import SubscriptionStatus


class SubscriptionPlanResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    price: Decimal
    features: Optional[List[str]] = None
    is_active: bool


class SubscriptionCreate(BaseModel):
    plan_id: UUID


class SubscriptionActivation(BaseModel):
    """Sent by the billing collaborator once a subscription payment succeeds"""
    business_id: UUID
    external_subscription_id: str = Field(..., min_length=1, max_length=100)


class SubscriptionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    business_id: UUID
    plan_id: UUID
    status: SubscriptionStatus
    current_period_start: datetime
    current_period_end: datetime
    trial_ends_at: Optional[datetime] = None
    cancel_at_period_end: bool
    external_subscription_id: Optional[str] = None
    plan: Optional[SubscriptionPlanResponse] = None


class SubscriptionStatusResponse(BaseModel):
    is_active: bool
    status: Optional[SubscriptionStatus] = None
    trial_days_remaining: Optional[int] = None


class AccessDecision(BaseModel):
    """Outcome of the subscription gate for one caller"""
    allowed: bool
    reason: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def allow(cls) -> "AccessDecision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: str, message: str) -> "AccessDecision":
        return cls(allowed=False, reason=reason, message=message)
