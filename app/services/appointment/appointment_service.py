# ============================================================================
# app/services/appointment/appointment_service.py
# ============================================================================
"""Booking admission, status changes and payment marking"""
from datetime import date, datetime
from typing import List, Optional
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from app.core.context import RequestContext
from app.core.exceptions import ConflictError, ForbiddenError, InvalidStateError, NotFoundError, ValidationError
from app.models.appointment import Appointment, AppointmentStatus, LIVE_STATUSES
from app.models.business import Business
from app.schemas.scheduling import AppointmentCreate, AppointmentReschedule, AppointmentResponse
from app.services.appointment.booking_lock import get_booking_lock
from app.services.business.business_service import BusinessService
from app.services.notification.notification_service import NotificationService
from app.services.subscription.subscription_service import SubscriptionService
from app.utils.time_utils import day_bounds, utcnow

logger = logging.getLogger(__name__)


class AppointmentService:
    """Handles appointment operations"""

    # ------------------------------------------------------------------
    # Admission
    # ------------------------------------------------------------------

    @staticmethod
    def create_appointment(
            db: Session,
            ctx: RequestContext,
            data: AppointmentCreate
    ) -> Appointment:
        """
        Admit a booking for [start_time, end_time) if no live booking of the
        business overlaps it.

        The window is trusted as sent (it mirrors a slot from the generator).
        The overlap check and the insert run under the business's lock so
        two overlapping requests cannot both pass the check.

        Raises:
            NotFoundError: business or service missing
            ValidationError: empty window, or nobody to book for
            ConflictError: window overlaps a pending/confirmed booking
            BusyError: the business lock could not be taken in time
        """
        customer_id = ctx.user_id or data.customer_id
        if customer_id is None and not (data.guest_name or data.guest_email or data.guest_phone):
            raise ValidationError("Sign in, provide a customer_id, or give guest contact details")

        if data.start_time >= data.end_time:
            raise ValidationError("start_time must be before end_time")

        BusinessService.get_business(db, data.business_id)
        service = BusinessService.get_service(db, data.service_id, business_id=data.business_id)

        with get_booking_lock().hold(data.business_id):
            try:
                AppointmentService._lock_business_row(db, data.business_id)

                conflict = AppointmentService.find_conflict(
                    db, data.business_id, data.start_time, data.end_time
                )
                if conflict:
                    db.rollback()
                    logger.info(
                        f"Rejected booking {data.start_time.isoformat()}-{data.end_time.isoformat()} "
                        f"for business {data.business_id}: overlaps {conflict.id}"
                    )
                    raise ConflictError("The selected slot is no longer available")

                appointment = Appointment(
                    business_id=data.business_id,
                    service_id=service.id,
                    customer_id=customer_id,
                    guest_name=data.guest_name,
                    guest_email=data.guest_email,
                    guest_phone=data.guest_phone,
                    start_time=data.start_time,
                    end_time=data.end_time,
                    status=AppointmentStatus.PENDING,
                    notes=data.notes,
                )
                db.add(appointment)
                db.commit()
            except ConflictError:
                raise
            except Exception:
                db.rollback()
                raise

        db.refresh(appointment)
        logger.info(f"Created appointment {appointment.id} for business {appointment.business_id}")

        AppointmentService._emit("booking.created", appointment)
        return appointment

    @staticmethod
    def find_conflict(
            db: Session,
            business_id: UUID,
            start_time: datetime,
            end_time: datetime,
            exclude_id: Optional[UUID] = None
    ) -> Optional[Appointment]:
        """First live booking overlapping [start_time, end_time), if any"""
        query = db.query(Appointment).filter(
            Appointment.business_id == business_id,
            Appointment.status.in_(LIVE_STATUSES),
            Appointment.start_time < end_time,
            Appointment.end_time > start_time,
        )
        if exclude_id is not None:
            query = query.filter(Appointment.id != exclude_id)
        return query.first()

    @staticmethod
    def _lock_business_row(db: Session, business_id: UUID) -> None:
        """Row lock so API processes that share only the database also serialize"""
        if db.get_bind().dialect.name == "postgresql":
            db.query(Business).filter(Business.id == business_id).with_for_update().first()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @staticmethod
    def get_appointment(db: Session, appointment_id: UUID) -> Appointment:
        appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
        if not appointment:
            raise NotFoundError("Appointment not found")
        return appointment

    @staticmethod
    def get_appointment_for_viewer(
            db: Session,
            ctx: RequestContext,
            appointment_id: UUID
    ) -> Appointment:
        """An appointment is visible to its customer and to the business owner"""
        appointment = AppointmentService.get_appointment(db, appointment_id)
        if not AppointmentService._is_customer(ctx, appointment) and not ctx.owns_business(appointment.business_id):
            raise ForbiddenError("You don't have access to this appointment")
        return appointment

    @staticmethod
    def list_customer_appointments(
            db: Session,
            ctx: RequestContext,
            business_id: Optional[UUID] = None
    ) -> List[Appointment]:
        """The caller's own bookings, newest first"""
        if not ctx.is_authenticated:
            raise ForbiddenError("Authentication required")

        query = db.query(Appointment).filter(Appointment.customer_id == ctx.user_id)
        if business_id is not None:
            query = query.filter(Appointment.business_id == business_id)
        return query.order_by(Appointment.start_time.desc()).all()

    @staticmethod
    def list_business_appointments(
            db: Session,
            ctx: RequestContext,
            status: Optional[AppointmentStatus] = None,
            start_date: Optional[date] = None,
            end_date: Optional[date] = None
    ) -> List[Appointment]:
        """Bookings of the caller's business in ascending start order"""
        if not ctx.is_professional or ctx.business_id is None:
            raise ForbiddenError("Only business owners can list business appointments")

        query = db.query(Appointment).filter(Appointment.business_id == ctx.business_id)

        if status:
            query = query.filter(Appointment.status == status)
        if start_date:
            query = query.filter(Appointment.start_time >= day_bounds(start_date)[0])
        if end_date:
            query = query.filter(Appointment.start_time < day_bounds(end_date)[1])

        return query.order_by(Appointment.start_time.asc()).all()

    # ------------------------------------------------------------------
    # Status changes
    # ------------------------------------------------------------------

    @staticmethod
    def confirm_appointment(db: Session, ctx: RequestContext, appointment_id: UUID) -> Appointment:
        appointment = AppointmentService.get_appointment(db, appointment_id)
        AppointmentService._require_business_owner(db, ctx, appointment, "confirm")

        if appointment.status != AppointmentStatus.PENDING:
            raise InvalidStateError("Only pending appointments can be confirmed")

        return AppointmentService._apply_status(db, appointment, AppointmentStatus.CONFIRMED, "booking.confirmed")

    @staticmethod
    def complete_appointment(db: Session, ctx: RequestContext, appointment_id: UUID) -> Appointment:
        appointment = AppointmentService.get_appointment(db, appointment_id)
        AppointmentService._require_business_owner(db, ctx, appointment, "complete")
        AppointmentService._require_transition(appointment, AppointmentStatus.COMPLETED)

        appointment.completed_at = utcnow()
        return AppointmentService._apply_status(db, appointment, AppointmentStatus.COMPLETED, "booking.completed")

    @staticmethod
    def mark_no_show(db: Session, ctx: RequestContext, appointment_id: UUID) -> Appointment:
        appointment = AppointmentService.get_appointment(db, appointment_id)
        AppointmentService._require_business_owner(db, ctx, appointment, "mark as no-show")
        AppointmentService._require_transition(appointment, AppointmentStatus.NO_SHOW)

        return AppointmentService._apply_status(db, appointment, AppointmentStatus.NO_SHOW, "booking.no_show")

    @staticmethod
    def cancel_appointment(db: Session, ctx: RequestContext, appointment_id: UUID) -> Appointment:
        """The booking's customer, or the business owner while subscribed, may cancel"""
        appointment = AppointmentService.get_appointment(db, appointment_id)

        AppointmentService._require_customer_or_owner(db, ctx, appointment, "cancel")

        AppointmentService._require_transition(appointment, AppointmentStatus.CANCELLED)

        appointment.cancelled_at = utcnow()
        return AppointmentService._apply_status(db, appointment, AppointmentStatus.CANCELLED, "booking.cancelled")

    @staticmethod
    def reschedule_appointment(
            db: Session,
            ctx: RequestContext,
            appointment_id: UUID,
            data: AppointmentReschedule
    ) -> Appointment:
        """Move a live booking to a new window; it goes back to pending"""
        appointment = AppointmentService.get_appointment(db, appointment_id)

        AppointmentService._require_customer_or_owner(db, ctx, appointment, "reschedule")

        AppointmentService._require_transition(appointment, AppointmentStatus.PENDING)

        if data.start_time >= data.end_time:
            raise ValidationError("start_time must be before end_time")

        business_id = appointment.business_id
        with get_booking_lock().hold(business_id):
            try:
                AppointmentService._lock_business_row(db, business_id)

                conflict = AppointmentService.find_conflict(
                    db, business_id, data.start_time, data.end_time, exclude_id=appointment.id
                )
                if conflict:
                    db.rollback()
                    raise ConflictError("The new time is no longer available")

                appointment.start_time = data.start_time
                appointment.end_time = data.end_time
                if data.notes:
                    appointment.notes = data.notes
                appointment.status = AppointmentStatus.PENDING
                db.commit()
            except ConflictError:
                raise
            except Exception:
                db.rollback()
                raise

        db.refresh(appointment)
        logger.info(f"Rescheduled appointment {appointment.id} to {data.start_time.isoformat()}")

        AppointmentService._emit("booking.rescheduled", appointment)
        return appointment

    # ------------------------------------------------------------------
    # Payment
    # ------------------------------------------------------------------

    @staticmethod
    def mark_paid(
            db: Session,
            appointment_id: UUID,
            payment_method: str,
            external_payment_id: str
    ) -> Appointment:
        """
        Payment collaborator callback. A repeated callback for an already
        paid booking changes nothing and is not an error.
        """
        appointment = AppointmentService.get_appointment(db, appointment_id)

        if appointment.is_paid:
            logger.info(f"Payment callback for already paid appointment {appointment_id}, ignoring")
            return appointment

        appointment.is_paid = True
        appointment.payment_method = payment_method
        appointment.external_payment_id = external_payment_id
        db.commit()
        db.refresh(appointment)

        logger.info(f"Appointment {appointment_id} marked paid ({payment_method}, {external_payment_id})")

        AppointmentService._emit("payment.confirmed", appointment)
        return appointment

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _is_customer(ctx: RequestContext, appointment: Appointment) -> bool:
        return ctx.is_authenticated and appointment.customer_id == ctx.user_id

    @staticmethod
    def _require_business_owner(
            db: Session,
            ctx: RequestContext,
            appointment: Appointment,
            action: str
    ) -> None:
        """Owner actions pass the subscription gate whichever route they come from"""
        if not ctx.owns_business(appointment.business_id):
            raise ForbiddenError(f"Only the business owner can {action} this appointment")
        SubscriptionService.enforce_access(db, ctx)

    @staticmethod
    def _require_customer_or_owner(
            db: Session,
            ctx: RequestContext,
            appointment: Appointment,
            action: str
    ) -> None:
        if AppointmentService._is_customer(ctx, appointment):
            return
        if not ctx.owns_business(appointment.business_id):
            raise ForbiddenError(f"You are not allowed to {action} this appointment")
        SubscriptionService.enforce_access(db, ctx)

    @staticmethod
    def _require_transition(appointment: Appointment, target: AppointmentStatus) -> None:
        if not appointment.can_transition_to(target):
            raise InvalidStateError(
                f"Appointment is already {AppointmentStatus(appointment.status).value}"
            )

    @staticmethod
    def _apply_status(
            db: Session,
            appointment: Appointment,
            status: AppointmentStatus,
            event_type: str
    ) -> Appointment:
        previous = appointment.status
        appointment.status = status
        db.commit()
        db.refresh(appointment)

        logger.info(f"Appointment {appointment.id}: {AppointmentStatus(previous).value} -> {status.value}")

        AppointmentService._emit(event_type, appointment)
        return appointment

    @staticmethod
    def _emit(event_type: str, appointment: Appointment) -> None:
        data = AppointmentResponse.model_validate(appointment).model_dump(mode="json")
        NotificationService.emit(event_type, appointment.business_id, data)
