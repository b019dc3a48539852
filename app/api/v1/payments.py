# ============================================================================
# FILE: app/api/v1/payments.py
# Callbacks from the external payment collaborator (shared-secret auth)
# ============================================================================
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
import logging

from app.config.database import get_db
from app.api.dependencies import verify_payment_callback_secret
from app.schemas.scheduling import AppointmentResponse, PaymentConfirmation
from app.schemas.subscription import SubscriptionActivation, SubscriptionResponse
from app.services.appointment.appointment_service import AppointmentService
from app.services.subscription.subscription_service import SubscriptionService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/payments",
    tags=["payments"],
    dependencies=[Depends(verify_payment_callback_secret)]
)


@router.post("/confirm", response_model=AppointmentResponse)
async def confirm_booking_payment(
        data: PaymentConfirmation,
        db: Session = Depends(get_db)
):
    """
    A booking payment was approved. Repeating the callback is harmless:
    an already paid booking is returned unchanged.
    """
    logger.info(f"Payment callback for appointment {data.appointment_id} ({data.external_payment_id})")

    appointment = AppointmentService.mark_paid(
        db,
        data.appointment_id,
        data.payment_method,
        data.external_payment_id
    )
    return AppointmentResponse.model_validate(appointment)


@router.post("/subscription-activated", response_model=SubscriptionResponse)
async def subscription_payment_confirmed(
        data: SubscriptionActivation,
        db: Session = Depends(get_db)
):
    """A subscription payment went through: open a new paid period."""
    logger.info(f"Subscription payment callback for business {data.business_id}")

    subscription = SubscriptionService.activate_after_payment(
        db,
        data.business_id,
        data.external_subscription_id
    )
    return SubscriptionResponse.model_validate(subscription)
