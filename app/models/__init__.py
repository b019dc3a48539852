# app/models/__init__.py
from .base import Base
from .user import User, UserRole
from .business import Business, WorkingHours
from .service import Service
from .appointment import Appointment, AppointmentStatus
from .subscription import Subscription, SubscriptionPlan, SubscriptionStatus

__all__ = [
    "Base",
    "User",
    "UserRole",
    "Business",
    "WorkingHours",
    "Service",
    "Appointment",
    "AppointmentStatus",
    "Subscription",
    "SubscriptionPlan",
    "SubscriptionStatus",
]
