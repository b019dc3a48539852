import threading
import uuid
from datetime import datetime, timedelta

import pytest

from app.core.context import RequestContext
from app.core.exceptions import (
    AccessDeniedError,
    BusyError,
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from app.models import Appointment, AppointmentStatus, UserRole
from app.schemas.scheduling import AppointmentCreate, AppointmentReschedule
from app.services.appointment.appointment_service import AppointmentService
from app.services.appointment.booking_lock import LocalBookingLock, set_booking_lock
from app.services.availability.availability_service import AvailabilityService
from app.utils.time_utils import utcnow

from conftest import MONDAY, at, context_for


@pytest.fixture
def shop(factory):
    owner = factory.user(role=UserRole.PROFESSIONAL)
    business = factory.business(owner=owner)
    service = factory.service(business, duration_minutes=30)
    factory.hours(business, day_of_week=1, start_time="09:00", end_time="18:00")
    factory.subscription(business, start=utcnow() - timedelta(days=1))
    customer = factory.user()
    return {
        "owner": owner,
        "business": business,
        "service": service,
        "customer": customer,
        "owner_ctx": context_for(owner, business),
        "customer_ctx": context_for(customer),
    }


def booking(shop, start="09:00", minutes=30, **extra):
    start_time = at(MONDAY, start)
    return AppointmentCreate(
        business_id=shop["business"].id,
        service_id=shop["service"].id,
        start_time=start_time,
        end_time=start_time + timedelta(minutes=minutes),
        **extra,
    )


def book(db, shop, start="09:00", **extra):
    return AppointmentService.create_appointment(db, shop["customer_ctx"], booking(shop, start, **extra))


# ----------------------------------------------------------------------
# Admission
# ----------------------------------------------------------------------

def test_create_appointment_is_pending_with_projections(db, shop):
    appointment = book(db, shop, notes="first visit")

    assert appointment.status == AppointmentStatus.PENDING
    assert appointment.customer_id == shop["customer"].id
    assert appointment.notes == "first visit"
    assert appointment.service.id == shop["service"].id
    assert appointment.business.id == shop["business"].id
    assert appointment.customer.email == shop["customer"].email
    assert not appointment.is_paid


def test_overlapping_request_is_rejected(db, shop):
    book(db, shop, start="09:00")

    with pytest.raises(ConflictError):
        AppointmentService.create_appointment(db, shop["customer_ctx"], booking(shop, start="09:15"))

    assert db.query(Appointment).count() == 1


def test_adjacent_windows_are_both_admitted(db, shop):
    book(db, shop, start="09:00")
    book(db, shop, start="09:30")

    assert db.query(Appointment).count() == 2


@pytest.mark.parametrize("start,minutes", [
    ("09:00", 30),   # same window
    ("08:45", 30),   # starts before, ends inside
    ("09:15", 30),   # starts inside, ends after
    ("08:30", 120),  # contains the existing booking
    ("09:10", 10),   # contained by the existing booking
])
def test_every_overlap_shape_conflicts(db, shop, start, minutes):
    book(db, shop, start="09:00")

    with pytest.raises(ConflictError):
        AppointmentService.create_appointment(
            db, shop["customer_ctx"], booking(shop, start=start, minutes=minutes)
        )


def test_cancelled_booking_frees_the_window(db, shop):
    first = book(db, shop)
    AppointmentService.cancel_appointment(db, shop["customer_ctx"], first.id)

    second = book(db, shop)

    assert second.status == AppointmentStatus.PENDING


def test_available_slot_can_be_booked_and_taken_slot_cannot(db, shop):
    business_id, service_id = shop["business"].id, shop["service"].id
    book(db, shop, start="10:00")

    slots = AvailabilityService.compute_slots(db, business_id, service_id, MONDAY)

    for slot in slots[:6]:
        start, end = AvailabilityService.slot_window(MONDAY, slot)
        data = AppointmentCreate(business_id=business_id, service_id=service_id, start_time=start, end_time=end)
        if slot.available:
            AppointmentService.create_appointment(db, shop["customer_ctx"], data)
        else:
            with pytest.raises(ConflictError):
                AppointmentService.create_appointment(db, shop["customer_ctx"], data)


def test_guest_booking_requires_contact(db, shop):
    anonymous = RequestContext.anonymous()

    with pytest.raises(ValidationError):
        AppointmentService.create_appointment(db, anonymous, booking(shop))

    appointment = AppointmentService.create_appointment(
        db, anonymous, booking(shop, guest_name="Ana", guest_phone="+5491100000000")
    )
    assert appointment.customer_id is None
    assert appointment.guest_name == "Ana"


def test_anonymous_caller_may_book_for_a_customer_id(db, shop):
    appointment = AppointmentService.create_appointment(
        db, RequestContext.anonymous(), booking(shop, customer_id=shop["customer"].id)
    )

    assert appointment.customer_id == shop["customer"].id


def test_unknown_business_or_service_is_not_found(db, shop):
    data = booking(shop)

    with pytest.raises(NotFoundError):
        AppointmentService.create_appointment(
            db, shop["customer_ctx"], data.model_copy(update={"business_id": uuid.uuid4()})
        )
    with pytest.raises(NotFoundError):
        AppointmentService.create_appointment(
            db, shop["customer_ctx"], data.model_copy(update={"service_id": uuid.uuid4()})
        )


def test_busy_when_business_lock_is_held(db, shop):
    lock = LocalBookingLock(timeout=0.05)
    set_booking_lock(lock)

    held = threading.Event()
    release = threading.Event()

    def holder():
        with lock.hold(shop["business"].id):
            held.set()
            release.wait(5)

    thread = threading.Thread(target=holder)
    thread.start()
    held.wait(5)
    try:
        with pytest.raises(BusyError) as excinfo:
            book(db, shop)
    finally:
        release.set()
        thread.join()

    assert excinfo.value.retry_after >= 1
    assert db.query(Appointment).count() == 0


def test_other_business_is_not_blocked_by_held_lock(db, shop, factory):
    lock = LocalBookingLock(timeout=0.05)
    set_booking_lock(lock)
    other = factory.business()
    other_service = factory.service(other)

    with lock.hold(shop["business"].id):
        data = AppointmentCreate(
            business_id=other.id,
            service_id=other_service.id,
            start_time=at(MONDAY, "09:00"),
            end_time=at(MONDAY, "09:30"),
        )
        appointment = AppointmentService.create_appointment(db, shop["customer_ctx"], data)

    assert appointment.business_id == other.id


# ----------------------------------------------------------------------
# Status changes
# ----------------------------------------------------------------------

def test_owner_confirms_then_completes(db, shop):
    appointment = book(db, shop)

    confirmed = AppointmentService.confirm_appointment(db, shop["owner_ctx"], appointment.id)
    assert confirmed.status == AppointmentStatus.CONFIRMED

    completed = AppointmentService.complete_appointment(db, shop["owner_ctx"], appointment.id)
    assert completed.status == AppointmentStatus.COMPLETED
    assert completed.completed_at is not None


def test_confirm_only_from_pending(db, shop):
    appointment = book(db, shop)
    AppointmentService.confirm_appointment(db, shop["owner_ctx"], appointment.id)

    with pytest.raises(InvalidStateError):
        AppointmentService.confirm_appointment(db, shop["owner_ctx"], appointment.id)


def test_only_owner_can_complete_or_mark_no_show(db, shop):
    appointment = book(db, shop)

    with pytest.raises(ForbiddenError):
        AppointmentService.complete_appointment(db, shop["customer_ctx"], appointment.id)
    with pytest.raises(ForbiddenError):
        AppointmentService.mark_no_show(db, shop["customer_ctx"], appointment.id)

    no_show = AppointmentService.mark_no_show(db, shop["owner_ctx"], appointment.id)
    assert no_show.status == AppointmentStatus.NO_SHOW


def test_owner_of_another_business_cannot_confirm(db, shop, factory):
    stranger = factory.user(role=UserRole.PROFESSIONAL)
    stranger_business = factory.business(owner=stranger)
    appointment = book(db, shop)

    with pytest.raises(ForbiddenError):
        AppointmentService.confirm_appointment(db, context_for(stranger, stranger_business), appointment.id)


def test_owner_changes_require_a_live_subscription(db, factory):
    owner = factory.user(role=UserRole.PROFESSIONAL)
    business = factory.business(owner=owner)
    service = factory.service(business, duration_minutes=30)
    factory.subscription(business, start=datetime(2020, 1, 1))
    customer = factory.user()
    appointment = factory.appointment(business, service, at(MONDAY, "09:00"), customer=customer)
    owner_ctx = context_for(owner, business)

    for change in (
        AppointmentService.confirm_appointment,
        AppointmentService.complete_appointment,
        AppointmentService.mark_no_show,
        AppointmentService.cancel_appointment,
    ):
        with pytest.raises(AccessDeniedError) as excinfo:
            change(db, owner_ctx, appointment.id)
        assert excinfo.value.reason == AccessDeniedError.TRIAL_EXPIRED

    with pytest.raises(AccessDeniedError):
        AppointmentService.reschedule_appointment(
            db,
            owner_ctx,
            appointment.id,
            AppointmentReschedule(start_time=at(MONDAY, "11:00"), end_time=at(MONDAY, "11:30")),
        )

    db.refresh(appointment)
    assert appointment.status == AppointmentStatus.PENDING
    assert appointment.start_time == at(MONDAY, "09:00")

    # The booking's own customer is not held to the owner's subscription
    cancelled = AppointmentService.cancel_appointment(db, context_for(customer), appointment.id)
    assert cancelled.status == AppointmentStatus.CANCELLED


def test_customer_and_owner_may_cancel_others_may_not(db, shop, factory):
    first = book(db, shop, start="09:00")
    second = book(db, shop, start="10:00")
    stranger = factory.user()

    with pytest.raises(ForbiddenError):
        AppointmentService.cancel_appointment(db, context_for(stranger), first.id)

    cancelled = AppointmentService.cancel_appointment(db, shop["customer_ctx"], first.id)
    assert cancelled.status == AppointmentStatus.CANCELLED
    assert cancelled.cancelled_at is not None

    by_owner = AppointmentService.cancel_appointment(db, shop["owner_ctx"], second.id)
    assert by_owner.status == AppointmentStatus.CANCELLED


@pytest.mark.parametrize("terminal", [
    AppointmentStatus.CANCELLED,
    AppointmentStatus.COMPLETED,
    AppointmentStatus.NO_SHOW,
])
def test_terminal_bookings_cannot_change(db, shop, factory, terminal):
    appointment = factory.appointment(
        shop["business"], shop["service"], at(MONDAY, "09:00"), status=terminal, customer=shop["customer"]
    )

    with pytest.raises(InvalidStateError):
        AppointmentService.cancel_appointment(db, shop["customer_ctx"], appointment.id)
    with pytest.raises(InvalidStateError):
        AppointmentService.complete_appointment(db, shop["owner_ctx"], appointment.id)
    with pytest.raises(InvalidStateError):
        AppointmentService.mark_no_show(db, shop["owner_ctx"], appointment.id)

    db.refresh(appointment)
    assert appointment.status == terminal
    assert appointment.cancelled_at is None
    assert appointment.completed_at is None


def test_missing_appointment_is_not_found(db, shop):
    with pytest.raises(NotFoundError):
        AppointmentService.cancel_appointment(db, shop["customer_ctx"], uuid.uuid4())


# ----------------------------------------------------------------------
# Reschedule
# ----------------------------------------------------------------------

def test_reschedule_may_overlap_its_own_window(db, shop):
    appointment = book(db, shop, start="09:00")
    AppointmentService.confirm_appointment(db, shop["owner_ctx"], appointment.id)

    moved = AppointmentService.reschedule_appointment(
        db,
        shop["customer_ctx"],
        appointment.id,
        AppointmentReschedule(start_time=at(MONDAY, "09:15"), end_time=at(MONDAY, "09:45")),
    )

    assert moved.start_time == at(MONDAY, "09:15")
    assert moved.status == AppointmentStatus.PENDING


def test_reschedule_onto_another_booking_conflicts(db, shop):
    appointment = book(db, shop, start="09:00")
    book(db, shop, start="10:00")

    with pytest.raises(ConflictError):
        AppointmentService.reschedule_appointment(
            db,
            shop["customer_ctx"],
            appointment.id,
            AppointmentReschedule(start_time=at(MONDAY, "10:00"), end_time=at(MONDAY, "10:30")),
        )

    db.refresh(appointment)
    assert appointment.start_time == at(MONDAY, "09:00")


def test_reschedule_of_terminal_booking_is_rejected(db, shop):
    appointment = book(db, shop)
    AppointmentService.cancel_appointment(db, shop["customer_ctx"], appointment.id)

    with pytest.raises(InvalidStateError):
        AppointmentService.reschedule_appointment(
            db,
            shop["customer_ctx"],
            appointment.id,
            AppointmentReschedule(start_time=at(MONDAY, "11:00"), end_time=at(MONDAY, "11:30")),
        )


# ----------------------------------------------------------------------
# Queries
# ----------------------------------------------------------------------

def test_viewer_rules(db, shop, factory):
    appointment = book(db, shop)

    assert AppointmentService.get_appointment_for_viewer(db, shop["customer_ctx"], appointment.id).id == appointment.id
    assert AppointmentService.get_appointment_for_viewer(db, shop["owner_ctx"], appointment.id).id == appointment.id
    with pytest.raises(ForbiddenError):
        AppointmentService.get_appointment_for_viewer(db, context_for(factory.user()), appointment.id)


def test_customer_list_is_newest_first(db, shop):
    book(db, shop, start="09:00")
    book(db, shop, start="11:00")

    listed = AppointmentService.list_customer_appointments(db, shop["customer_ctx"])

    assert [a.start_time for a in listed] == [at(MONDAY, "11:00"), at(MONDAY, "09:00")]


def test_business_list_filters_by_status_and_date(db, shop, factory):
    first = book(db, shop, start="09:00")
    book(db, shop, start="11:00")
    factory.appointment(shop["business"], shop["service"], at(MONDAY, "09:00") + timedelta(days=1))
    AppointmentService.confirm_appointment(db, shop["owner_ctx"], first.id)

    monday_only = AppointmentService.list_business_appointments(
        db, shop["owner_ctx"], start_date=MONDAY, end_date=MONDAY
    )
    assert [a.start_time for a in monday_only] == [at(MONDAY, "09:00"), at(MONDAY, "11:00")]

    confirmed = AppointmentService.list_business_appointments(
        db, shop["owner_ctx"], status=AppointmentStatus.CONFIRMED
    )
    assert [a.id for a in confirmed] == [first.id]

    with pytest.raises(ForbiddenError):
        AppointmentService.list_business_appointments(db, shop["customer_ctx"])


# ----------------------------------------------------------------------
# Payment callback
# ----------------------------------------------------------------------

def test_payment_callback_is_idempotent(db, shop):
    appointment = book(db, shop)

    paid = AppointmentService.mark_paid(db, appointment.id, "card", "pay_123")
    assert paid.is_paid
    assert paid.payment_method == "card"

    again = AppointmentService.mark_paid(db, appointment.id, "cash", "pay_456")
    assert again.is_paid
    assert again.payment_method == "card"
    assert again.external_payment_id == "pay_123"


def test_payment_for_unknown_booking_is_not_found(db):
    with pytest.raises(NotFoundError):
        AppointmentService.mark_paid(db, uuid.uuid4(), "card", "pay_123")
