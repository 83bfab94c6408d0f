from datetime import datetime, timezone
from decimal import Decimal

import pytest

from app.core.exceptions import (
    ConflictError,
    MissingRedirectParameterError,
    PaymentNotCompletedError,
    ValidationError,
)
from app.db import models
from app.db.models.booking import LessonType
from app.services import booking_service
from app.services.booking_service import BookingOutcome, BookingPayload

from factories import create_student, create_teacher

LESSON_AT = datetime(2026, 10, 21, 10, 0, tzinfo=timezone.utc)


def make_payload(student, teacher, **overrides):
    values = {
        "teacher_id": teacher.user_id,
        "student_id": student.id,
        "lesson_type": LessonType.single,
        "lesson_date": LESSON_AT,
        "lesson_duration": 60,
        "amount": Decimal("30.00"),
        "currency": "usd",
        "lesson_focus": "Conversation",
    }
    values.update(overrides)
    return BookingPayload(**values)


def test_create_booking_confirms_and_copies_meeting_link(db_session):
    student = create_student(db_session)
    teacher = create_teacher(db_session, default_meeting_link="https://meet.example.com/yuki")
    result = booking_service.create_booking(db_session, make_payload(student, teacher))
    assert result.status == BookingOutcome.confirmed
    assert result.message == "Booking confirmed successfully"
    assert result.booking.status == models.BookingStatus.confirmed
    assert result.booking.meeting_link == "https://meet.example.com/yuki"


def test_duplicate_booking_returns_existing(db_session):
    student = create_student(db_session)
    teacher = create_teacher(db_session)
    first = booking_service.create_booking(db_session, make_payload(student, teacher))
    second = booking_service.create_booking(db_session, make_payload(student, teacher))
    assert second.status == BookingOutcome.already_exists
    assert second.booking.id == first.booking.id
    assert "already exists" in second.message
    assert db_session.query(models.Booking).count() == 1


def test_other_lesson_type_same_time_is_a_new_booking(db_session):
    student = create_student(db_session)
    teacher = create_teacher(db_session, trial_class_available=True)
    booking_service.create_booking(db_session, make_payload(student, teacher))
    result = booking_service.create_booking(
        db_session, make_payload(student, teacher, lesson_type=LessonType.trial)
    )
    assert result.status == BookingOutcome.confirmed
    assert db_session.query(models.Booking).count() == 2


def test_insert_raises_conflict_on_natural_key(db_session):
    student = create_student(db_session)
    teacher = create_teacher(db_session)
    existing = booking_service.insert_booking(db_session, make_payload(student, teacher))
    with pytest.raises(ConflictError) as exc:
        booking_service.insert_booking(db_session, make_payload(student, teacher))
    assert exc.value.booking_id == existing.id


def test_lost_race_is_reported_as_already_exists(db_session, monkeypatch):
    student = create_student(db_session)
    teacher = create_teacher(db_session)
    winner = booking_service.insert_booking(db_session, make_payload(student, teacher))
    original_find = booking_service.find_booking_by_natural_key
    calls = []

    def stale_lookup(*args, **kwargs):
        calls.append(args)
        if len(calls) == 1:
            return None
        return original_find(*args, **kwargs)

    monkeypatch.setattr(booking_service, "find_booking_by_natural_key", stale_lookup)
    result = booking_service.create_booking(db_session, make_payload(student, teacher))
    assert result.status == BookingOutcome.already_exists
    assert result.booking.id == winner.id
    assert db_session.query(models.Booking).count() == 1


def redirect_params(teacher, **overrides):
    params = {
        "success": "true",
        "teacherId": str(teacher.user_id),
        "lessonType": "single",
        "lessonDate": "2026-10-21T10:00:00Z",
        "lessonDuration": "60",
        "amount": "30.00",
        "currency": "usd",
        "lessonFocus": "Conversation",
        "session_id": "cs_test_1",
    }
    params.update(overrides)
    return params


def test_reconcile_redirect_is_idempotent(db_session):
    student = create_student(db_session)
    teacher = create_teacher(db_session)
    params = redirect_params(teacher)
    first = booking_service.reconcile_success_redirect(db_session, student.id, params)
    again = booking_service.reconcile_success_redirect(db_session, student.id, params)
    assert first.status == BookingOutcome.confirmed
    assert first.booking.payment_reference == "cs_test_1"
    assert again.status == BookingOutcome.already_exists
    assert again.booking.id == first.booking.id


def test_reconcile_redirect_prefers_stored_payment_params(db_session):
    student = create_student(db_session)
    teacher = create_teacher(db_session)
    payment = models.Payment(
        student_id=student.id,
        teacher_id=teacher.user_id,
        lesson_type="single",
        amount=Decimal("30.00"),
        currency="usd",
        provider=models.PaymentProvider.stub,
        order_id="order-1",
        booking_params={
            k: v for k, v in redirect_params(teacher).items() if k not in ("success", "session_id")
        },
    )
    db_session.add(payment)
    db_session.commit()
    tampered = redirect_params(teacher, amount="0.01", orderId="order-1")
    result = booking_service.reconcile_success_redirect(db_session, student.id, tampered)
    assert result.booking.amount == Decimal("30.00")


def test_reconcile_redirect_reports_missing_params(db_session):
    student = create_student(db_session)
    teacher = create_teacher(db_session)
    params = redirect_params(teacher)
    del params["lessonDate"]
    del params["amount"]
    with pytest.raises(MissingRedirectParameterError) as exc:
        booking_service.reconcile_success_redirect(db_session, student.id, params)
    assert exc.value.missing == ["lessonDate", "amount"]
    assert db_session.query(models.Booking).count() == 0


def test_payload_from_params_rejects_bad_values():
    with pytest.raises(ValidationError):
        booking_service.payload_from_params(
            1,
            {
                "teacherId": "2",
                "lessonType": "single",
                "lessonDate": "tomorrow",
                "lessonDuration": "60",
                "amount": "30",
            },
        )


def test_strip_redirect_params_keeps_unrelated_query():
    url = (
        "https://app.example.com/dashboard/payment-success?success=true&teacherId=2"
        "&lessonType=single&lessonDate=2026-10-21T10%3A00%3A00Z&lessonDuration=60"
        "&amount=30.00&orderId=abc&session_id=cs_1&tab=upcoming"
    )
    assert (
        booking_service.strip_redirect_params(url)
        == "https://app.example.com/dashboard/payment-success?tab=upcoming"
    )
    assert booking_service.redirect_params(url)["lessonDate"] == "2026-10-21T10:00:00Z"


@pytest.mark.parametrize(
    "payment_status", [models.PaymentStatus.failed, models.PaymentStatus.canceled]
)
def test_redirect_for_unsettled_payment_books_nothing(db_session, payment_status):
    student = create_student(db_session)
    teacher = create_teacher(db_session)
    db_session.add(
        models.Payment(
            student_id=student.id,
            teacher_id=teacher.user_id,
            lesson_type="single",
            amount=Decimal("30.00"),
            currency="usd",
            provider=models.PaymentProvider.stripe,
            order_id="order-2",
            status=payment_status,
            booking_params={
                k: v for k, v in redirect_params(teacher).items() if k != "success"
            },
        )
    )
    db_session.commit()
    with pytest.raises(PaymentNotCompletedError):
        booking_service.reconcile_success_redirect(
            db_session, student.id, redirect_params(teacher, orderId="order-2")
        )
    assert db_session.query(models.Booking).count() == 0
