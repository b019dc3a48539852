# ===== app/tasks/notification_tasks.py =====
from datetime import datetime, timezone
from typing import Any, Dict
from uuid import UUID
import logging

import httpx

from app.config.celery_config import celery_app
from app.config.database import SessionLocal
from app.config.settings import get_settings
from app.models.business import Business

logger = logging.getLogger(__name__)
settings = get_settings()


@celery_app.task(bind=True, max_retries=settings.NOTIFICATION_MAX_RETRIES)
def dispatch_event(
        self,
        event_type: str,
        business_id: str,
        data: Dict[str, Any]
):
    """
    Deliver a booking/payment event to the business's webhook endpoint

    Args:
        event_type: e.g. "booking.created"
        business_id: Business the event belongs to
        data: JSON-ready event payload
    """
    db = SessionLocal()
    try:
        business = db.query(Business).filter(Business.id == UUID(business_id)).first()
        if not business or not business.webhook_url:
            logger.debug(f"No webhook configured for business {business_id}, skipping {event_type}")
            return {"status": "skipped", "event": event_type}

        url = business.webhook_url
    finally:
        db.close()

    payload = {
        "event": event_type,
        "business_id": business_id,
        "occurred_at": datetime.now(timezone.utc).isoformat(),
        "data": data,
    }

    try:
        logger.info(f"Delivering {event_type} for business {business_id}")

        response = httpx.post(
            url,
            json=payload,
            headers={"X-Event-Type": event_type, "User-Agent": "Turnos-Webhook/1.0"},
            timeout=settings.NOTIFICATION_WEBHOOK_TIMEOUT_SECONDS,
        )
        response.raise_for_status()

        logger.info(f"Delivered {event_type} for business {business_id} ({response.status_code})")
        return {"status": "success", "event": event_type, "status_code": response.status_code}

    except httpx.HTTPError as exc:
        logger.error(f"Failed to deliver {event_type} for business {business_id}: {exc}")

        # Retry with exponential backoff: 1min, 2min, 4min
        raise self.retry(
            exc=exc,
            countdown=60 * (2 ** self.request.retries)
        )
