# app/services/schedule/working_hours_service.py
"""Service for managing a business's weekly working hours"""
from typing import Dict, List, Optional
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from app.config.settings import get_settings
from app.core.context import RequestContext
from app.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from app.models.business import WorkingHours
from app.schemas.working_hours import WorkingHoursBulkUpdate, WorkingHoursCreate, WorkingHoursUpdate
from app.utils.time_utils import parse_hhmm

logger = logging.getLogger(__name__)


class WorkingHoursService:
    """
    Weekly opening hours, at most one row per (business, weekday).
    Low write frequency: plain read-modify-write, last writer wins.
    """

    @staticmethod
    def validate_time_range(start_time: str, end_time: str, is_active: bool = True) -> None:
        try:
            start_minutes = parse_hhmm(start_time)
            end_minutes = parse_hhmm(end_time)
        except ValueError:
            raise ValidationError("Invalid time format, expected HH:MM (00:00 - 23:59)")

        if start_minutes >= end_minutes:
            raise ValidationError("Start time must be before end time")

        min_span = get_settings().MIN_WORKING_SPAN_MINUTES
        if is_active and end_minutes - start_minutes < min_span:
            raise ValidationError(f"Working hours must span at least {min_span} minutes")

    @staticmethod
    def list_working_hours(db: Session, business_id: UUID) -> List[WorkingHours]:
        return db.query(WorkingHours).filter(
            WorkingHours.business_id == business_id
        ).order_by(WorkingHours.day_of_week).all()

    @staticmethod
    def create_working_hours(
            db: Session,
            ctx: RequestContext,
            business_id: UUID,
            data: WorkingHoursCreate
    ) -> WorkingHours:
        WorkingHoursService._require_owner(ctx, business_id)
        WorkingHoursService.validate_time_range(data.start_time, data.end_time, data.is_active)

        existing = db.query(WorkingHours).filter(
            WorkingHours.business_id == business_id,
            WorkingHours.day_of_week == data.day_of_week
        ).first()
        if existing:
            raise ConflictError("Working hours for that weekday already exist")

        hours = WorkingHours(business_id=business_id, **data.model_dump())
        db.add(hours)
        db.commit()
        db.refresh(hours)

        logger.info(f"Created working hours day={hours.day_of_week} for business {business_id}")
        return hours

    @staticmethod
    def update_working_hours(
            db: Session,
            ctx: RequestContext,
            hours_id: int,
            data: WorkingHoursUpdate
    ) -> WorkingHours:
        hours = WorkingHoursService._get(db, hours_id)
        WorkingHoursService._require_owner(ctx, hours.business_id)

        changes: Dict = data.model_dump(exclude_unset=True)
        WorkingHoursService.validate_time_range(
            changes.get("start_time") or hours.start_time,
            changes.get("end_time") or hours.end_time,
            hours.is_active if changes.get("is_active") is None else changes["is_active"],
        )

        for field, value in changes.items():
            if value is not None:
                setattr(hours, field, value)

        db.commit()
        db.refresh(hours)

        logger.info(f"Updated working hours {hours_id} for business {hours.business_id}")
        return hours

    @staticmethod
    def delete_working_hours(db: Session, ctx: RequestContext, hours_id: int) -> None:
        hours = WorkingHoursService._get(db, hours_id)
        WorkingHoursService._require_owner(ctx, hours.business_id)

        db.delete(hours)
        db.commit()

        logger.info(f"Deleted working hours {hours_id}")

    @staticmethod
    def bulk_replace(
            db: Session,
            ctx: RequestContext,
            business_id: UUID,
            data: WorkingHoursBulkUpdate
    ) -> List[WorkingHours]:
        """Delete every row of the business and recreate from the payload in one transaction"""
        WorkingHoursService._require_owner(ctx, business_id)

        days = [s.day_of_week for s in data.schedules]
        if len(days) != len(set(days)):
            raise ValidationError("Duplicate weekdays are not allowed")

        for schedule in data.schedules:
            WorkingHoursService.validate_time_range(schedule.start_time, schedule.end_time, schedule.is_active)

        try:
            db.query(WorkingHours).filter(
                WorkingHours.business_id == business_id
            ).delete(synchronize_session="fetch")
            db.flush()

            created = [
                WorkingHours(business_id=business_id, **schedule.model_dump())
                for schedule in data.schedules
            ]
            db.add_all(created)
            db.commit()
        except Exception:
            db.rollback()
            raise

        logger.info(f"Replaced working hours for business {business_id} ({len(created)} days)")
        return WorkingHoursService.list_working_hours(db, business_id)

    @staticmethod
    def _get(db: Session, hours_id: int) -> WorkingHours:
        hours = db.query(WorkingHours).filter(WorkingHours.id == hours_id).first()
        if not hours:
            raise NotFoundError("Working hours not found")
        return hours

    @staticmethod
    def _require_owner(ctx: RequestContext, business_id: Optional[UUID]) -> None:
        if not ctx.owns_business(business_id):
            raise ForbiddenError("You don't have access to this business's schedule")
