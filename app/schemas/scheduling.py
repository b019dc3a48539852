"""
Pydantic schemas for slots, appointments and payment callbacks
"""
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Optional, List
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from app.models.appointment import AppointmentStatus


def _wall_clock(value: Optional[datetime]) -> Optional[datetime]:
    """Times are business-local and naive; an explicit offset is dropped, not converted"""
    if value is not None and value.tzinfo is not None:
        return value.replace(tzinfo=None)
    return value


# ============================================================================
# Slots
# ============================================================================

class Slot(BaseModel):
    """A candidate window of one service duration, computed on demand"""
    start_time: str = Field(..., description="HH:MM")
    end_time: str = Field(..., description="HH:MM")
    available: bool


class AvailableSlotsResponse(BaseModel):
    business_id: UUID
    service_id: UUID
    date: date
    slot_step_minutes: int
    slots: List[Slot]


# ============================================================================
# Request Schemas (for incoming data)
# ============================================================================

class AppointmentCreate(BaseModel):
    """Booking request; customer_id or guest contact identifies who is booking"""
    business_id: UUID
    service_id: UUID
    start_time: datetime
    end_time: datetime
    customer_id: Optional[UUID] = None
    notes: Optional[str] = Field(None, max_length=1000)
    guest_name: Optional[str] = Field(None, max_length=255)
    guest_email: Optional[str] = Field(None, max_length=255)
    guest_phone: Optional[str] = Field(None, max_length=30)

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize_times(cls, v: datetime) -> datetime:
        return _wall_clock(v)

    @model_validator(mode="after")
    def check_interval(self):
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time")
        return self


class AppointmentReschedule(BaseModel):
    start_time: datetime
    end_time: datetime
    notes: Optional[str] = Field(None, max_length=1000)

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize_times(cls, v: datetime) -> datetime:
        return _wall_clock(v)

    @model_validator(mode="after")
    def check_interval(self):
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time")
        return self


class PaymentConfirmation(BaseModel):
    """Sent by the payment collaborator once a booking payment is approved"""
    appointment_id: UUID
    payment_method: str = Field(..., min_length=1, max_length=50)
    external_payment_id: str = Field(..., min_length=1, max_length=100)


# ============================================================================
# Response Schemas (for outgoing data)
# ============================================================================

class ServiceSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    duration_minutes: int
    price: Decimal


class BusinessSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    slug: str


class CustomerSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    full_name: Optional[str] = None
    phone: Optional[str] = None


class AppointmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    business_id: UUID
    service_id: UUID
    customer_id: Optional[UUID] = None
    guest_name: Optional[str] = None
    guest_email: Optional[str] = None
    guest_phone: Optional[str] = None
    start_time: datetime
    end_time: datetime
    status: AppointmentStatus
    notes: Optional[str] = None
    is_paid: bool
    payment_method: Optional[str] = None
    external_payment_id: Optional[str] = None
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

    service: Optional[ServiceSummary] = None
    business: Optional[BusinessSummary] = None
    customer: Optional[CustomerSummary] = None
