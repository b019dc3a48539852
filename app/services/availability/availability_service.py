# ===== app/services/availability/availability_service.py =====
from typing import List
from datetime import date, timedelta
from uuid import UUID
from sqlalchemy.orm import Session
import logging

from app.config.settings import get_settings
from app.models.appointment import Appointment, LIVE_STATUSES
from app.models.business import WorkingHours
from app.schemas.scheduling import Slot
from app.services.business.business_service import BusinessService
from app.utils.time_utils import at_minute, day_bounds, day_of_week, minutes_to_hhmm, overlaps, parse_hhmm

logger = logging.getLogger(__name__)


class AvailabilityService:
    """Turns working hours and live bookings into the slot grid of one day"""

    @staticmethod
    def compute_slots(
            db: Session,
            business_id: UUID,
            service_id: UUID,
            day: date
    ) -> List[Slot]:
        """
        Candidate slots for a service on a date, each marked available or not.

        Candidates start every SLOT_STEP_MINUTES from the opening time and
        last the service duration, so long services produce overlapping
        windows. A closed day yields an empty list.
        """
        service = BusinessService.get_service(db, service_id, business_id=business_id)

        hours = AvailabilityService.get_working_hours_for_day(db, business_id, day)
        if not hours:
            logger.info(f"No working hours for business {business_id} on {day.isoformat()}")
            return []

        booked = AvailabilityService.get_live_bookings_for_day(db, business_id, day)

        return AvailabilityService._generate_day_slots(
            day,
            hours.start_minutes,
            hours.end_minutes,
            service.duration_minutes,
            [(a.start_time, a.end_time) for a in booked],
        )

    @staticmethod
    def get_working_hours_for_day(db: Session, business_id: UUID, day: date):
        return db.query(WorkingHours).filter(
            WorkingHours.business_id == business_id,
            WorkingHours.day_of_week == day_of_week(day),
            WorkingHours.is_active == True  # noqa: E712
        ).first()

    @staticmethod
    def get_live_bookings_for_day(db: Session, business_id: UUID, day: date) -> List[Appointment]:
        day_start, day_end = day_bounds(day)
        return db.query(Appointment).filter(
            Appointment.business_id == business_id,
            Appointment.status.in_(LIVE_STATUSES),
            Appointment.start_time < day_end,
            Appointment.end_time > day_start
        ).order_by(Appointment.start_time).all()

    @staticmethod
    def _generate_day_slots(
            day: date,
            open_minutes: int,
            close_minutes: int,
            duration_minutes: int,
            busy: List[tuple]
    ) -> List[Slot]:
        """Generate time slots for a single day"""
        step = get_settings().SLOT_STEP_MINUTES
        slots = []

        current = open_minutes
        while current + duration_minutes <= close_minutes:
            slot_start = at_minute(day, current)
            slot_end = slot_start + timedelta(minutes=duration_minutes)

            occupied = any(
                overlaps(slot_start, slot_end, busy_start, busy_end)
                for busy_start, busy_end in busy
            )

            slots.append(Slot(
                start_time=minutes_to_hhmm(current),
                end_time=minutes_to_hhmm(current + duration_minutes),
                available=not occupied,
            ))

            current += step

        return slots

    @staticmethod
    def slot_window(day: date, slot: Slot) -> tuple:
        """Absolute [start, end) datetimes for a slot of the given day"""
        return at_minute(day, parse_hhmm(slot.start_time)), at_minute(day, parse_hhmm(slot.end_time))
