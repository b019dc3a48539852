# ===== app/models/appointment.py =====
from sqlalchemy import Column, String, Boolean, Text, DateTime, ForeignKey, Uuid, Enum as SQLEnum, CheckConstraint, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
import uuid
from app.models.base import Base


class AppointmentStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no-show"


# Statuses that occupy their interval
LIVE_STATUSES = (AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED)

TERMINAL_STATUSES = (
    AppointmentStatus.COMPLETED,
    AppointmentStatus.CANCELLED,
    AppointmentStatus.NO_SHOW,
)

# Nothing leaves a terminal status
ALLOWED_TRANSITIONS = {
    AppointmentStatus.PENDING: {
        AppointmentStatus.PENDING,  # reschedule
        AppointmentStatus.CONFIRMED,
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.NO_SHOW,
    },
    AppointmentStatus.CONFIRMED: {
        AppointmentStatus.PENDING,  # reschedule
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.NO_SHOW,
    },
    **{status: set() for status in TERMINAL_STATUSES},
}


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    # References
    business_id = Column(Uuid, ForeignKey("businesses.id"), nullable=False)
    service_id = Column(Uuid, ForeignKey("services.id"), nullable=False)
    customer_id = Column(Uuid, ForeignKey("users.id"), nullable=True, index=True)

    # Guest contact (used when customer_id is empty)
    guest_name = Column(String(255), nullable=True)
    guest_email = Column(String(255), nullable=True)
    guest_phone = Column(String(30), nullable=True)

    # Half-open [start_time, end_time), business local wall clock
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    notes = Column(Text, nullable=True)

    status = Column(
        SQLEnum(AppointmentStatus, values_callable=lambda e: [m.value for m in e]),
        default=AppointmentStatus.PENDING,
        nullable=False,
        index=True,
    )

    # Payment
    is_paid = Column(Boolean, default=False, nullable=False)
    payment_method = Column(String(50), nullable=True)
    external_payment_id = Column(String(100), nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
    completed_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)

    business = relationship("Business")
    service = relationship("Service")
    customer = relationship("User")

    __table_args__ = (
        CheckConstraint("start_time < end_time", name="ck_appointments_interval"),
        Index("idx_appointments_business_start", "business_id", "start_time"),
    )

    def can_transition_to(self, target: AppointmentStatus) -> bool:
        return target in ALLOWED_TRANSITIONS[AppointmentStatus(self.status)]

    def __repr__(self):
        return f"<Appointment(id={self.id}, business_id={self.business_id}, status={self.status})>"
