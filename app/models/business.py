# app/models/business.py
"""
Business and its weekly working hours
"""
from sqlalchemy import (
    Column, String, Boolean, DateTime, Integer, ForeignKey, Uuid,
    UniqueConstraint, CheckConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid
from app.models.base import Base
from app.utils.time_utils import parse_hhmm


class Business(Base):
    __tablename__ = "businesses"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id = Column(Uuid, ForeignKey("users.id"), nullable=False, unique=True, index=True)
    name = Column(String(200), nullable=False)
    slug = Column(String(200), nullable=False, unique=True, index=True)

    # Local wall-clock convention for every time stored for this business
    timezone = Column(String(50), default="UTC")

    # Where booking notifications are delivered (optional)
    webhook_url = Column(String(500), nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
    is_active = Column(Boolean, default=True)

    owner = relationship("User", back_populates="business")
    working_hours = relationship(
        "WorkingHours",
        back_populates="business",
        order_by="WorkingHours.day_of_week",
        cascade="all, delete-orphan",
    )
    services = relationship("Service", back_populates="business")
    subscription = relationship("Subscription", back_populates="business", uselist=False)

    def __repr__(self):
        return f"<Business(id={self.id}, name={self.name})>"


class WorkingHours(Base):
    __tablename__ = "working_hours"

    id = Column(Integer, primary_key=True)
    business_id = Column(Uuid, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True)
    day_of_week = Column(Integer, nullable=False)  # 0=Sunday, 6=Saturday
    start_time = Column(String(5), nullable=False)  # HH:MM format
    end_time = Column(String(5), nullable=False)  # HH:MM format
    is_active = Column(Boolean, default=True, nullable=False)

    business = relationship("Business", back_populates="working_hours")

    __table_args__ = (
        UniqueConstraint("business_id", "day_of_week", name="uq_working_hours_business_day"),
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_working_hours_day_of_week"),
    )

    @property
    def start_minutes(self) -> int:
        return parse_hhmm(self.start_time)

    @property
    def end_minutes(self) -> int:
        return parse_hhmm(self.end_time)

    def __repr__(self):
        return f"<WorkingHours(business_id={self.business_id}, day={self.day_of_week})>"
