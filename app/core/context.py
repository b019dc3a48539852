# app/core/context.py
"""Explicit per-request caller identity handed to every service call"""
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from app.models.user import UserRole


@dataclass(frozen=True)
class RequestContext:
    user_id: Optional[UUID] = None
    role: Optional[UserRole] = None
    # Business owned by the caller (professionals only)
    business_id: Optional[UUID] = None
    correlation_id: Optional[str] = None

    @classmethod
    def anonymous(cls, correlation_id: Optional[str] = None) -> "RequestContext":
        return cls(correlation_id=correlation_id)

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    @property
    def is_professional(self) -> bool:
        return self.role == UserRole.PROFESSIONAL

    def owns_business(self, business_id: UUID) -> bool:
        return self.is_professional and self.business_id is not None and self.business_id == business_id
