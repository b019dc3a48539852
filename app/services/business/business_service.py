# app/services/business/business_service.py
"""Read-only lookups of the business/service collaborators"""
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session
import logging

from app.core.exceptions import NotFoundError
from app.models.business import Business
from app.models.service import Service

logger = logging.getLogger(__name__)


class BusinessService:
    """Resolves businesses and services, raising NotFoundError when absent"""

    @staticmethod
    def get_business(db: Session, business_id: UUID) -> Business:
        business = db.query(Business).filter(Business.id == business_id).first()
        if not business:
            raise NotFoundError("Business not found")
        return business

    @staticmethod
    def get_business_for_owner(db: Session, owner_id: UUID) -> Optional[Business]:
        return db.query(Business).filter(Business.owner_id == owner_id).first()

    @staticmethod
    def get_service(
            db: Session,
            service_id: UUID,
            business_id: Optional[UUID] = None,
            active_only: bool = True
    ) -> Service:
        """
        Get a service, optionally checking it belongs to a business.
        A service of another business is reported as missing.
        """
        query = db.query(Service).filter(Service.id == service_id)
        if business_id is not None:
            query = query.filter(Service.business_id == business_id)
        if active_only:
            query = query.filter(Service.is_active == True)  # noqa: E712

        service = query.first()
        if not service:
            raise NotFoundError("Service not found")
        return service
