# app/models/subscription.py
"""Subscription plans and the one subscription each business holds"""
from sqlalchemy import Column, String, Boolean, DateTime, Numeric, ForeignKey, Uuid, JSON, Enum as SQLEnum, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
import uuid
from app.models.base import Base


class SubscriptionStatus(str, enum.Enum):
    TRIAL = "TRIAL"
    ACTIVE = "ACTIVE"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"


class SubscriptionPlan(Base):
    __tablename__ = "subscription_plans"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    features = Column(JSON, default=list)
    is_active = Column(Boolean, default=True, index=True)

    created_at = Column(DateTime, server_default=func.now())

    def __repr__(self):
        return f"<SubscriptionPlan(id={self.id}, name={self.name})>"


class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    business_id = Column(Uuid, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, unique=True)
    plan_id = Column(Uuid, ForeignKey("subscription_plans.id"), nullable=False)

    status = Column(SQLEnum(SubscriptionStatus), default=SubscriptionStatus.TRIAL, nullable=False, index=True)
    current_period_start = Column(DateTime, nullable=False)
    current_period_end = Column(DateTime, nullable=False)
    trial_ends_at = Column(DateTime, nullable=True)  # only while TRIAL
    cancel_at_period_end = Column(Boolean, default=False, nullable=False)

    # Billing provider reference
    external_subscription_id = Column(String(100), nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    business = relationship("Business", back_populates="subscription")
    plan = relationship("SubscriptionPlan", lazy="joined")

    __table_args__ = (
        CheckConstraint("current_period_start < current_period_end", name="ck_subscriptions_period"),
    )

    def __repr__(self):
        return f"<Subscription(business_id={self.business_id}, status={self.status})>"
