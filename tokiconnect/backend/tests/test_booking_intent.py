from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from app.core.constants import WEEKDAYS
from app.core.exceptions import PastTimeError, ValidationError
from app.db import schemas
from app.db.models.booking import LessonType
from app.services.availability_service import AvailabilityIndex
from app.services.booking_intent import build_booking_intent
from app.services.pricing_service import RateCard

SLOT = "10:00 - 11:00"
MONDAY_MORNING = datetime(2026, 10, 19, 8, 0, tzinfo=timezone.utc)

CARD = RateCard(
    hourly_rate=Decimal("30"),
    discount_monthly4=Decimal("5"),
    trial_class_available=True,
    trial_class_price=Decimal("5"),
    free_demo_available=True,
    free_demo_duration=20,
)


def everyday(slots=(SLOT,)):
    return AvailabilityIndex.from_windows((day, slots) for day in WEEKDAYS)


def build(request, now=MONDAY_MORNING, availability=None):
    return build_booking_intent(
        request,
        teacher_id=2,
        student_id=1,
        rate_card=CARD,
        availability=availability or everyday(),
        now=now,
        tz=timezone.utc,
        currency="USD",
    )


def single_request(**overrides):
    values = {
        "lesson_type": "single",
        "selected_date": date(2026, 10, 20),
        "selected_time_slot": SLOT,
        "lesson_duration_minutes": 60,
        "lesson_focus": "Conversation",
    }
    values.update(overrides)
    return schemas.BookingRequest(**values)


def test_single_lesson_intent():
    intent = build(single_request(notes="  "))
    assert intent.lesson_type == LessonType.single
    assert intent.lesson_date == datetime(2026, 10, 20, 10, 0, tzinfo=timezone.utc)
    assert intent.lesson_duration == 60
    assert intent.quote.total == Decimal("30.00")
    assert intent.currency == "usd"
    assert intent.notes is None
    assert not intent.is_free


def test_request_fields_accept_camel_case():
    request = schemas.BookingRequest.model_validate(
        {
            "lessonType": "single",
            "selectedDate": "2026-10-20",
            "selectedTimeSlot": SLOT,
            "lessonDurationMinutes": 30,
            "lessonFocus": "Grammar",
        }
    )
    assert build(request).quote.total == Decimal("15.00")


@pytest.mark.parametrize(
    "missing, field",
    [
        ("lesson_type", "lessonType"),
        ("selected_date", "selectedDate"),
        ("selected_time_slot", "selectedTimeSlot"),
        ("lesson_duration_minutes", "lessonDurationMinutes"),
        ("lesson_focus", "lessonFocus"),
    ],
)
def test_missing_required_field(missing, field):
    with pytest.raises(ValidationError) as exc:
        build(single_request(**{missing: None}))
    assert exc.value.field == field


def test_slot_must_be_offered():
    with pytest.raises(ValidationError) as exc:
        build(single_request(selected_time_slot="12:00 - 13:00"))
    assert exc.value.field == "selectedTimeSlot"


def test_date_beyond_booking_window_rejected():
    with pytest.raises(ValidationError) as exc:
        build(single_request(selected_date=date(2026, 11, 2)))
    assert exc.value.field == "selectedDate"


def test_slot_that_slipped_into_the_past_is_rejected():
    request = single_request(selected_date=date(2026, 10, 19))
    assert build(request, now=MONDAY_MORNING + timedelta(minutes=119)).lesson_date
    with pytest.raises(PastTimeError):
        build(request, now=MONDAY_MORNING + timedelta(hours=2))


def test_free_demo_intent_uses_profile_duration():
    intent = build(single_request(lesson_type="free-demo", lesson_duration_minutes=None))
    assert intent.is_free
    assert intent.lesson_duration == 20
    assert intent.quote.total == 0


def test_trial_not_offered():
    request = single_request(lesson_type="trial")
    with pytest.raises(ValidationError):
        build_booking_intent(
            request,
            teacher_id=2,
            student_id=1,
            rate_card=RateCard(hourly_rate=Decimal("30")),
            availability=everyday(),
            now=MONDAY_MORNING,
            tz=timezone.utc,
            currency="usd",
        )


def monthly_request(**overrides):
    values = {
        "lesson_type": "monthly",
        "classes_per_month": 4,
        "subscription_duration_months": 1,
        "selected_days": ["Wednesday", "Friday"],
        "preferred_time_slot": SLOT,
        "lesson_focus": "JLPT N3",
    }
    values.update(overrides)
    return schemas.BookingRequest(**values)


def test_monthly_intent_starts_on_first_selected_day():
    intent = build(monthly_request())
    assert intent.lesson_date == datetime(2026, 10, 21, 10, 0, tzinfo=timezone.utc)
    assert intent.lesson_duration == 60
    assert intent.classes_per_month == 4
    assert intent.subscription_months == 1
    assert intent.quote.original == Decimal("120.00")
    assert intent.quote.total == Decimal("114.00")


def test_monthly_skips_todays_past_slot():
    intent = build(
        monthly_request(selected_days=["Monday"]),
        now=datetime(2026, 10, 19, 10, 30, tzinfo=timezone.utc),
    )
    assert intent.lesson_date == datetime(2026, 10, 26, 10, 0, tzinfo=timezone.utc)


def test_monthly_day_cap():
    request = monthly_request(
        selected_days=["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"]
    )
    with pytest.raises(ValidationError) as exc:
        build(request)
    assert exc.value.field == "selectedDays"
    assert "5 days" in exc.value.message


def test_monthly_day_must_be_available():
    availability = AvailabilityIndex.from_windows([("Monday", [SLOT])])
    with pytest.raises(ValidationError) as exc:
        build(monthly_request(selected_days=["Tuesday"]), availability=availability)
    assert exc.value.field == "selectedDays"


def test_redirect_params_round_trip_to_payload():
    intent = build(monthly_request(notes="Keigo"))
    params = intent.redirect_params()
    assert params["teacherId"] == "2"
    assert params["lessonType"] == "monthly"
    assert params["lessonDate"] == "2026-10-21T10:00:00+00:00"
    assert params["amount"] == "114.00"
    assert params["notes"] == "Keigo"
    payload = intent.to_payload("cs_123")
    assert payload.payment_reference == "cs_123"
    assert payload.amount == Decimal("114.00")


@pytest.mark.parametrize("classes", [5, 6, 16])
def test_monthly_plan_must_be_a_listed_size(classes):
    request = monthly_request(
        classes_per_month=classes,
        selected_days=["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"],
    )
    with pytest.raises(ValidationError) as exc:
        build(request)
    assert exc.value.field == "classesPerMonth"
    assert exc.value.message == "classesPerMonth must be one of 4, 8, 12"
