# ============================================================================
# FILE: app/api/v1/appointments.py
# Customer-facing booking endpoints - thin HTTP layer
# ============================================================================
from fastapi import APIRouter, Depends, Query, Path
from sqlalchemy.orm import Session
from datetime import date
from typing import List, Optional
from uuid import UUID

from app.config.database import get_db
from app.config.settings import get_settings
from app.core.context import RequestContext
from app.api.dependencies import get_request_context, optional_request_context
from app.schemas.scheduling import (
    AppointmentCreate,
    AppointmentReschedule,
    AppointmentResponse,
    AvailableSlotsResponse,
)
from app.services.appointment.appointment_service import AppointmentService
from app.services.availability.availability_service import AvailabilityService

router = APIRouter(prefix="/appointments", tags=["appointments"])


# ============================================================================
# PUBLIC (no authentication required)
# ============================================================================

@router.get("/available-slots", response_model=AvailableSlotsResponse)
async def get_available_slots(
        business_id: UUID = Query(..., description="Business to book with"),
        service_id: UUID = Query(..., description="Service to book"),
        date: date = Query(..., description="Day to list slots for (YYYY-MM-DD)"),
        db: Session = Depends(get_db)
):
    """
    Candidate slots of one service on one day, each flagged available or taken.
    A closed day returns an empty list.
    """
    slots = AvailabilityService.compute_slots(db, business_id, service_id, date)

    return AvailableSlotsResponse(
        business_id=business_id,
        service_id=service_id,
        date=date,
        slot_step_minutes=get_settings().SLOT_STEP_MINUTES,
        slots=slots,
    )


@router.post("", response_model=AppointmentResponse, status_code=201)
def create_appointment(
        data: AppointmentCreate,
        ctx: RequestContext = Depends(optional_request_context),
        db: Session = Depends(get_db)
):
    """
    Book a window. Signed-in callers book for themselves; anonymous callers
    pass guest contact details. 409 when the window was taken meanwhile,
    503 with Retry-After when the business is momentarily busy.
    """
    appointment = AppointmentService.create_appointment(db, ctx, data)
    return AppointmentResponse.model_validate(appointment)


# ============================================================================
# AUTHENTICATED (customer or business owner)
# ============================================================================

@router.get("/my", response_model=List[AppointmentResponse])
async def list_my_appointments(
        business_id: Optional[UUID] = Query(None, description="Only bookings with this business"),
        ctx: RequestContext = Depends(get_request_context),
        db: Session = Depends(get_db)
):
    """The caller's own bookings, newest first."""
    appointments = AppointmentService.list_customer_appointments(db, ctx, business_id=business_id)
    return [AppointmentResponse.model_validate(a) for a in appointments]


@router.get("/{appointment_id}", response_model=AppointmentResponse)
async def get_appointment(
        appointment_id: UUID = Path(..., description="The appointment ID"),
        ctx: RequestContext = Depends(get_request_context),
        db: Session = Depends(get_db)
):
    appointment = AppointmentService.get_appointment_for_viewer(db, ctx, appointment_id)
    return AppointmentResponse.model_validate(appointment)


@router.post("/{appointment_id}/cancel", response_model=AppointmentResponse)
async def cancel_appointment(
        appointment_id: UUID = Path(..., description="The appointment ID"),
        ctx: RequestContext = Depends(get_request_context),
        db: Session = Depends(get_db)
):
    """Cancel a pending or confirmed booking. Allowed for its customer and the business owner."""
    appointment = AppointmentService.cancel_appointment(db, ctx, appointment_id)
    return AppointmentResponse.model_validate(appointment)


@router.post("/{appointment_id}/reschedule", response_model=AppointmentResponse)
def reschedule_appointment(
        data: AppointmentReschedule,
        appointment_id: UUID = Path(..., description="The appointment ID"),
        ctx: RequestContext = Depends(get_request_context),
        db: Session = Depends(get_db)
):
    """Move a booking to a new window; it goes back to pending."""
    appointment = AppointmentService.reschedule_appointment(db, ctx, appointment_id, data)
    return AppointmentResponse.model_validate(appointment)
