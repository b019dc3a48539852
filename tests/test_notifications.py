from datetime import timedelta

import httpx
import pytest

from app.config.settings import get_settings
from app.models import UserRole
from app.schemas.scheduling import AppointmentCreate
from app.services.appointment.appointment_service import AppointmentService
from app.services.notification.notification_service import NotificationService
from app.tasks import notification_tasks
from app.utils.time_utils import utcnow

from conftest import MONDAY, at, context_for


class RecordingTask:
    def __init__(self, fail=False):
        self.calls = []
        self.fail = fail

    def delay(self, *args):
        if self.fail:
            raise ConnectionError("broker down")
        self.calls.append(args)


@pytest.fixture
def enabled(monkeypatch):
    monkeypatch.setattr(get_settings(), "NOTIFICATIONS_ENABLED", True)
    task = RecordingTask()
    monkeypatch.setattr(notification_tasks, "dispatch_event", task)
    return task


def test_unknown_event_type_is_rejected():
    with pytest.raises(ValueError):
        NotificationService.emit("booking.exploded", "b", {})


def test_disabled_notifications_are_dropped(monkeypatch):
    task = RecordingTask()
    monkeypatch.setattr(notification_tasks, "dispatch_event", task)

    assert NotificationService.emit("booking.created", "b", {}) is False
    assert task.calls == []


def test_booking_lifecycle_emits_events(db, factory, enabled):
    owner = factory.user(role=UserRole.PROFESSIONAL)
    business = factory.business(owner=owner)
    factory.subscription(business, start=utcnow() - timedelta(days=1))
    service = factory.service(business)
    customer = factory.user()

    appointment = AppointmentService.create_appointment(db, context_for(customer), AppointmentCreate(
        business_id=business.id,
        service_id=service.id,
        start_time=at(MONDAY, "09:00"),
        end_time=at(MONDAY, "09:30"),
    ))
    AppointmentService.confirm_appointment(db, context_for(owner, business), appointment.id)
    AppointmentService.mark_paid(db, appointment.id, "card", "pay_1")
    AppointmentService.mark_paid(db, appointment.id, "card", "pay_1")
    AppointmentService.cancel_appointment(db, context_for(customer), appointment.id)

    events = [call[0] for call in enabled.calls]
    assert events == ["booking.created", "booking.confirmed", "payment.confirmed", "booking.cancelled"]

    event_type, business_id, data = enabled.calls[0]
    assert business_id == str(business.id)
    assert data["id"] == str(appointment.id)
    assert data["status"] == "pending"


def test_broker_failure_does_not_fail_the_booking(db, factory, monkeypatch):
    monkeypatch.setattr(get_settings(), "NOTIFICATIONS_ENABLED", True)
    monkeypatch.setattr(notification_tasks, "dispatch_event", RecordingTask(fail=True))
    business = factory.business()
    service = factory.service(business)

    appointment = AppointmentService.create_appointment(db, context_for(factory.user()), AppointmentCreate(
        business_id=business.id,
        service_id=service.id,
        start_time=at(MONDAY, "09:00"),
        end_time=at(MONDAY, "09:30"),
    ))

    assert appointment.id is not None


# ----------------------------------------------------------------------
# Delivery task
# ----------------------------------------------------------------------

@pytest.fixture
def task_db(monkeypatch, session_factory):
    monkeypatch.setattr(notification_tasks, "SessionLocal", session_factory)


def test_delivery_posts_to_business_webhook(factory, task_db, monkeypatch):
    business = factory.business(webhook_url="https://hooks.example.com/turnos")
    sent = {}

    def fake_post(url, json, headers, timeout):
        sent.update(url=url, json=json, headers=headers)
        return httpx.Response(200, request=httpx.Request("POST", url))

    monkeypatch.setattr(notification_tasks.httpx, "post", fake_post)

    result = notification_tasks.dispatch_event("booking.created", str(business.id), {"id": "a1"})

    assert result["status"] == "success"
    assert sent["url"] == "https://hooks.example.com/turnos"
    assert sent["json"]["event"] == "booking.created"
    assert sent["json"]["data"] == {"id": "a1"}
    assert sent["headers"]["X-Event-Type"] == "booking.created"


def test_delivery_skipped_without_webhook(factory, task_db, monkeypatch):
    business = factory.business()

    def fail_post(*args, **kwargs):
        raise AssertionError("no request expected")

    monkeypatch.setattr(notification_tasks.httpx, "post", fail_post)

    result = notification_tasks.dispatch_event("booking.created", str(business.id), {})

    assert result["status"] == "skipped"


def test_delivery_failure_is_retried(factory, task_db, monkeypatch):
    business = factory.business(webhook_url="https://hooks.example.com/turnos")

    def broken_post(url, **kwargs):
        raise httpx.ConnectError("refused", request=httpx.Request("POST", url))

    monkeypatch.setattr(notification_tasks.httpx, "post", broken_post)

    # Called directly, Celery's retry re-raises the original error
    with pytest.raises(httpx.HTTPError):
        notification_tasks.dispatch_event("booking.created", str(business.id), {})
