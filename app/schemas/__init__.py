# app/schemas/__init__.py
from .scheduling import (
    Slot,
    AvailableSlotsResponse,
    AppointmentCreate,
    AppointmentReschedule,
    AppointmentResponse,
    PaymentConfirmation,
)

from .working_hours import (
    WorkingHoursCreate,
    WorkingHoursUpdate,
    WorkingHoursBulkUpdate,
    WorkingHoursResponse,
)

from .subscription import (
    SubscriptionPlanResponse,
    SubscriptionCreate,
    SubscriptionActivation,
    SubscriptionResponse,
    SubscriptionStatusResponse,
    AccessDecision,
)

__all__ = [
    "Slot",
    "AvailableSlotsResponse",
    "AppointmentCreate",
    "AppointmentReschedule",
    "AppointmentResponse",
    "PaymentConfirmation",
    "WorkingHoursCreate",
    "WorkingHoursUpdate",
    "WorkingHoursBulkUpdate",
    "WorkingHoursResponse",
    "SubscriptionPlanResponse",
    "SubscriptionCreate",
    "SubscriptionActivation",
    "SubscriptionResponse",
    "SubscriptionStatusResponse",
    "AccessDecision",
]
