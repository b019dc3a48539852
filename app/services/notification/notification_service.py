# app/services/notification/notification_service.py
"""Hands booking events to the notification worker"""
import logging
from typing import Any, Dict
from uuid import UUID

from app.config.settings import get_settings

logger = logging.getLogger(__name__)


class NotificationService:
    """Emits abstract events; delivery belongs to the worker and the business's endpoint"""

    VALID_EVENT_TYPES = [
        "booking.created",
        "booking.confirmed",
        "booking.rescheduled",
        "booking.cancelled",
        "booking.completed",
        "booking.no_show",
        "payment.confirmed",
    ]

    @staticmethod
    def emit(event_type: str, business_id: UUID, data: Dict[str, Any]) -> bool:
        """
        Queue an event for delivery. Called after the originating write has
        committed; a broker outage is logged and never undoes that write.

        Returns:
            True if the event was queued
        """
        if event_type not in NotificationService.VALID_EVENT_TYPES:
            raise ValueError(f"Invalid event type: {event_type}")

        if not get_settings().NOTIFICATIONS_ENABLED:
            logger.debug(f"Notifications disabled, dropping {event_type} for business {business_id}")
            return False

        from app.tasks.notification_tasks import dispatch_event

        try:
            dispatch_event.delay(event_type, str(business_id), data)
        except Exception as e:
            logger.error(f"Failed to queue {event_type} for business {business_id}: {e}", exc_info=True)
            return False

        logger.info(f"Queued {event_type} for business {business_id}")
        return True
