# ============================================================================
# FILE: app/models/user.py
# Platform users: customers who book, professionals who own a business
# ============================================================================
from sqlalchemy import Column, String, Boolean, DateTime, Uuid, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from passlib.context import CryptContext
import uuid
import enum
from app.models.base import Base

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class UserRole(str, enum.Enum):
    """Platform-level user roles."""
    CUSTOMER = "customer"          # Books appointments
    PROFESSIONAL = "professional"  # Owns a business; gated by subscription
    ADMIN = "admin"                # Platform staff


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=False)
    full_name = Column(String(255), nullable=True)
    phone = Column(String(30), nullable=True)

    role = Column(
        SQLEnum(UserRole),
        default=UserRole.CUSTOMER,
        nullable=False,
        index=True
    )

    # Status flags
    is_active = Column(Boolean, default=True, nullable=False)

    # Timestamps
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    business = relationship("Business", back_populates="owner", uselist=False)

    @staticmethod
    def hash_password(plain_password: str) -> str:
        """Hash a plain password."""
        return pwd_context.hash(plain_password)

    def is_professional(self) -> bool:
        return self.role == UserRole.PROFESSIONAL

    def __repr__(self):
        return f"<User {self.email} ({self.role})>"
