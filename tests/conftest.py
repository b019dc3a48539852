"""
Shared fixtures: a fresh SQLite database per test, the in-process booking
lock, notifications off, and small factories for the rows tests need.

Settings are read once at import time, so the environment is prepared
before anything under app/ is imported.
"""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["NOTIFICATIONS_ENABLED"] = "false"
os.environ["BOOKING_LOCK_BACKEND"] = "local"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"
os.environ["PAYMENT_CALLBACK_SECRET"] = "test-callback-secret"
os.environ["JWT_SECRET_KEY"] = "test-jwt-secret"

from datetime import date, datetime, timedelta  # noqa: E402
from decimal import Decimal  # noqa: E402
import uuid  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from app.api.dependencies import create_access_token  # noqa: E402
from app.config.database import get_db  # noqa: E402
from app.core.context import RequestContext  # noqa: E402
from app.main import app  # noqa: E402
from app.models import (  # noqa: E402
    Appointment,
    AppointmentStatus,
    Base,
    Business,
    Service,
    Subscription,
    SubscriptionPlan,
    SubscriptionStatus,
    User,
    UserRole,
    WorkingHours,
)
from app.services.appointment.booking_lock import LocalBookingLock, set_booking_lock  # noqa: E402

# 2030-01-07 is a Monday; day_of_week() maps it to 1
MONDAY = date(2030, 1, 7)
SUNDAY = date(2030, 1, 6)

CALLBACK_HEADERS = {"X-Callback-Secret": "test-callback-secret"}


@pytest.fixture
def engine(tmp_path):
    # File-backed so every thread's connection sees the same database
    engine = create_engine(
        f"sqlite:///{tmp_path / 'scheduling.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def booking_lock():
    lock = LocalBookingLock(timeout=5)
    set_booking_lock(lock)
    yield lock
    set_booking_lock(None)


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


class Factory:
    """Builds committed rows with sensible defaults"""

    def __init__(self, db):
        self.db = db

    def _save(self, obj):
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def user(self, role=UserRole.CUSTOMER, email=None, is_active=True):
        return self._save(User(
            email=email or f"{uuid.uuid4().hex[:10]}@example.com",
            hashed_password="not-a-real-hash",
            full_name="Test User",
            role=role,
            is_active=is_active,
        ))

    def business(self, owner=None, webhook_url=None):
        owner = owner or self.user(role=UserRole.PROFESSIONAL)
        return self._save(Business(
            owner_id=owner.id,
            name="Test Studio",
            slug=f"studio-{uuid.uuid4().hex[:8]}",
            webhook_url=webhook_url,
        ))

    def service(self, business, duration_minutes=30, is_active=True, price=Decimal("20.00")):
        return self._save(Service(
            business_id=business.id,
            name=f"Service {duration_minutes}m",
            price=price,
            duration_minutes=duration_minutes,
            is_active=is_active,
        ))

    def hours(self, business, day_of_week=1, start_time="09:00", end_time="18:00", is_active=True):
        return self._save(WorkingHours(
            business_id=business.id,
            day_of_week=day_of_week,
            start_time=start_time,
            end_time=end_time,
            is_active=is_active,
        ))

    def appointment(self, business, service, start, minutes=None, status=AppointmentStatus.PENDING,
                    customer=None, is_paid=False):
        minutes = minutes or service.duration_minutes
        return self._save(Appointment(
            business_id=business.id,
            service_id=service.id,
            customer_id=customer.id if customer else None,
            guest_name=None if customer else "Walk In",
            start_time=start,
            end_time=start + timedelta(minutes=minutes),
            status=status,
            is_paid=is_paid,
        ))

    def plan(self, name="Basic", price=Decimal("9.99"), is_active=True):
        return self._save(SubscriptionPlan(name=name, price=price, features=["booking"], is_active=is_active))

    def subscription(self, business, plan=None, status=SubscriptionStatus.TRIAL, start=None, days=7,
                     cancel_at_period_end=False, external_subscription_id=None):
        plan = plan or self.plan()
        start = start or datetime(2030, 1, 1, 12, 0)
        end = start + timedelta(days=days)
        return self._save(Subscription(
            business_id=business.id,
            plan_id=plan.id,
            status=status,
            current_period_start=start,
            current_period_end=end,
            trial_ends_at=end if status == SubscriptionStatus.TRIAL else None,
            cancel_at_period_end=cancel_at_period_end,
            external_subscription_id=external_subscription_id,
        ))


@pytest.fixture
def factory(db):
    return Factory(db)


def context_for(user, business=None) -> RequestContext:
    return RequestContext(
        user_id=user.id,
        role=user.role,
        business_id=business.id if business else None,
    )


def auth_headers(user) -> dict:
    token = create_access_token({"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}


def at(day: date, hhmm: str) -> datetime:
    hours, minutes = hhmm.split(":")
    return datetime(day.year, day.month, day.day, int(hours), int(minutes))
