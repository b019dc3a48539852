# ============================================================================
# FILE: app/api/v1/dashboard/appointments.py
# Business-side booking management - professional + active subscription
# ============================================================================
from fastapi import APIRouter, Depends, Query, Path
from sqlalchemy.orm import Session
from datetime import date
from typing import List, Optional
from uuid import UUID

from app.config.database import get_db
from app.core.context import RequestContext
from app.api.dependencies import require_active_subscription
from app.models.appointment import AppointmentStatus
from app.schemas.scheduling import AppointmentResponse
from app.services.appointment.appointment_service import AppointmentService

router = APIRouter(prefix="/appointments", tags=["dashboard-appointments"])


@router.get("", response_model=List[AppointmentResponse])
async def list_business_appointments(
        status: Optional[AppointmentStatus] = Query(None, description="Filter by status"),
        start_date: Optional[date] = Query(None, description="Appointments starting on or after this date"),
        end_date: Optional[date] = Query(None, description="Appointments starting on or before this date"),
        ctx: RequestContext = Depends(require_active_subscription),
        db: Session = Depends(get_db)
):
    """
    Get the appointments of your business in start order.
    Requires a professional account with an active subscription.
    """
    appointments = AppointmentService.list_business_appointments(
        db,
        ctx,
        status=status,
        start_date=start_date,
        end_date=end_date
    )
    return [AppointmentResponse.model_validate(a) for a in appointments]


@router.post("/{appointment_id}/confirm", response_model=AppointmentResponse)
async def confirm_appointment(
        appointment_id: UUID = Path(..., description="The appointment ID"),
        ctx: RequestContext = Depends(require_active_subscription),
        db: Session = Depends(get_db)
):
    appointment = AppointmentService.confirm_appointment(db, ctx, appointment_id)
    return AppointmentResponse.model_validate(appointment)


@router.post("/{appointment_id}/complete", response_model=AppointmentResponse)
async def complete_appointment(
        appointment_id: UUID = Path(..., description="The appointment ID"),
        ctx: RequestContext = Depends(require_active_subscription),
        db: Session = Depends(get_db)
):
    appointment = AppointmentService.complete_appointment(db, ctx, appointment_id)
    return AppointmentResponse.model_validate(appointment)


@router.post("/{appointment_id}/no-show", response_model=AppointmentResponse)
async def mark_no_show(
        appointment_id: UUID = Path(..., description="The appointment ID"),
        ctx: RequestContext = Depends(require_active_subscription),
        db: Session = Depends(get_db)
):
    appointment = AppointmentService.mark_no_show(db, ctx, appointment_id)
    return AppointmentResponse.model_validate(appointment)
