from datetime import date, datetime, timezone

import pytest

from app.config import Settings
from app.core.exceptions import PastTimeError, TransportError, ValidationError
from app.db import models, schemas
from app.services import booking_service, checkout_service
from app.services.checkout_service import CheckoutState
from app.services.payments import gateway

from factories import SLOT, create_student, create_teacher

NOW = datetime(2026, 10, 19, 8, 0, tzinfo=timezone.utc)
SETTINGS = Settings(PAYMENT_PROVIDER="stub", PUBLIC_BASE_URL="https://app.example.com/")


def request_for(lesson_type, **overrides):
    values = {
        "lesson_type": lesson_type,
        "selected_date": date(2026, 10, 20),
        "selected_time_slot": SLOT,
        "lesson_duration_minutes": 60,
        "lesson_focus": "Conversation",
    }
    values.update(overrides)
    return schemas.BookingRequest(**values)


def run(db_session, teacher, student, request, now=NOW):
    return checkout_service.start_checkout(
        db_session, teacher, student.id, request, settings=SETTINGS, now=now
    )


class FailingGateway:
    def create_session(self, **kwargs):
        raise gateway.GatewayError("provider unavailable")


def test_free_demo_books_directly(db_session):
    student = create_student(db_session)
    teacher = create_teacher(db_session, free_demo_available=True, free_demo_duration=25)
    outcome = run(db_session, teacher, student, request_for("free-demo"))
    assert outcome.state == CheckoutState.confirmed
    assert outcome.history == [CheckoutState.idle, CheckoutState.pricing, CheckoutState.direct_booking]
    assert outcome.checkout_url is None
    assert outcome.booking.lesson_duration_minutes == 25
    assert outcome.booking.amount == 0
    assert db_session.query(models.Payment).count() == 0


def test_repeated_free_demo_reports_existing_booking(db_session):
    student = create_student(db_session)
    teacher = create_teacher(db_session, free_demo_available=True)
    first = run(db_session, teacher, student, request_for("free-demo"))
    second = run(db_session, teacher, student, request_for("free-demo"))
    assert second.state == CheckoutState.already_exists
    assert second.booking.id == first.booking.id


def test_paid_lesson_goes_through_checkout(db_session):
    student = create_student(db_session)
    teacher = create_teacher(db_session)
    outcome = run(db_session, teacher, student, request_for("single"))
    assert outcome.state == CheckoutState.checkout_redirect
    assert outcome.checkout_url.startswith(
        "https://app.example.com/dashboard/payment-success?success=true&teacherId="
    )
    payment = db_session.query(models.Payment).one()
    assert payment.status == models.PaymentStatus.paid
    assert payment.provider_session_id == f"stub_{payment.order_id}"

    params = booking_service.redirect_params(outcome.checkout_url)
    assert params["orderId"] == payment.order_id
    result = booking_service.reconcile_success_redirect(db_session, student.id, params)
    assert result.status == booking_service.BookingOutcome.already_exists
    assert db_session.query(models.Booking).count() == 1


def test_gateway_failure_ends_in_failed_state(db_session, monkeypatch):
    student = create_student(db_session)
    teacher = create_teacher(db_session)
    monkeypatch.setattr(gateway, "get_gateway", lambda settings: FailingGateway())
    outcome = run(db_session, teacher, student, request_for("single"))
    assert outcome.state == CheckoutState.failed
    assert outcome.message == TransportError.message
    assert db_session.query(models.Payment).one().status == models.PaymentStatus.failed
    assert db_session.query(models.Booking).count() == 0


def test_day_cap_stops_before_checkout(db_session, monkeypatch):
    student = create_student(db_session)
    teacher = create_teacher(db_session)

    def unexpected(settings):
        raise AssertionError("gateway must not be called")

    monkeypatch.setattr(gateway, "get_gateway", unexpected)
    request = schemas.BookingRequest(
        lesson_type="monthly",
        classes_per_month=4,
        subscription_duration_months=1,
        selected_days=["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"],
        preferred_time_slot=SLOT,
        lesson_focus="Reading",
    )
    with pytest.raises(ValidationError):
        run(db_session, teacher, student, request)
    assert db_session.query(models.Payment).count() == 0


def test_past_slot_is_rejected_at_submission(db_session):
    student = create_student(db_session)
    teacher = create_teacher(db_session)
    late = datetime(2026, 10, 20, 10, 0, tzinfo=timezone.utc)
    with pytest.raises(PastTimeError):
        run(db_session, teacher, student, request_for("single"), now=late)
    assert db_session.query(models.Payment).count() == 0
    assert db_session.query(models.Booking).count() == 0


def test_unknown_payment_provider_ends_in_failed_state(db_session):
    student = create_student(db_session)
    teacher = create_teacher(db_session)
    outcome = checkout_service.start_checkout(
        db_session,
        teacher,
        student.id,
        request_for("single"),
        settings=Settings(PAYMENT_PROVIDER="paypal"),
        now=NOW,
    )
    assert outcome.state == CheckoutState.failed
    assert outcome.message == TransportError.message
    assert db_session.query(models.Payment).count() == 0
