# app/models/service.py
"""
Service Model - what a business sells and how long it takes.
Owned by the business CRUD collaborator; the scheduling engine reads it.
"""
from sqlalchemy import Column, String, Numeric, Integer, ForeignKey, Boolean, DateTime, Text, Uuid, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid
from app.models.base import Base


class Service(Base):
    __tablename__ = "services"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    business_id = Column(
        Uuid,
        ForeignKey("businesses.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    # Core service details
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False, default=0)

    # Fixes the length of every booking made for this service
    duration_minutes = Column(Integer, nullable=False)

    # Status and ordering
    is_active = Column(Boolean, default=True, index=True)
    display_order = Column(Integer, default=0)  # For UI sorting

    # Timestamps
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(
        DateTime,
        server_default=func.now(),
        onupdate=func.now()
    )

    business = relationship("Business", back_populates="services")

    __table_args__ = (
        CheckConstraint("duration_minutes >= 5", name="ck_services_min_duration"),
    )

    def __repr__(self):
        return f"<Service(id={self.id}, name={self.name}, business_id={self.business_id})>"

    def to_dict(self):
        """Convert to dictionary for API responses"""
        return {
            "id": str(self.id),
            "business_id": str(self.business_id),
            "name": self.name,
            "price": float(self.price) if self.price is not None else None,
            "duration_minutes": self.duration_minutes,
            "formatted_duration": self.formatted_duration,
            "is_active": self.is_active,
        }

    @property
    def formatted_duration(self) -> str:
        """Return human-readable duration string"""
        hours = self.duration_minutes // 60
        minutes = self.duration_minutes % 60

        if hours > 0 and minutes > 0:
            return f"{hours}h {minutes}m"
        elif hours > 0:
            return f"{hours}h"
        else:
            return f"{minutes}m"
