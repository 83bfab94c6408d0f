"""Common application-wide constants."""

from decimal import Decimal

WEEKDAYS = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)

# Rolling window of calendar days offered for booking
BOOKING_WINDOW_DAYS = 14

# Trial lessons always last this long regardless of the teacher's rate
TRIAL_LESSON_DURATION_MIN = 30
DEFAULT_FREE_DEMO_DURATION_MIN = 30

# Each class in a monthly plan is billed as one hour
MONTHLY_CLASS_DURATION_MIN = 60

MONTHLY_DISCOUNT_TIERS = (4, 8, 12)

CENTS = Decimal("0.01")

# Query parameters carried on checkout redirects
REDIRECT_SUCCESS_FLAG = "success"
REDIRECT_CANCEL_FLAG = "canceled"
REDIRECT_REQUIRED_PARAMS = (
    "teacherId",
    "lessonType",
    "lessonDate",
    "lessonDuration",
    "amount",
)
REDIRECT_OPTIONAL_PARAMS = (
    "currency",
    "lessonFocus",
    "notes",
    "classesPerMonth",
    "subscriptionMonths",
    "session_id",
)


__all__ = [
    "WEEKDAYS",
    "BOOKING_WINDOW_DAYS",
    "TRIAL_LESSON_DURATION_MIN",
    "DEFAULT_FREE_DEMO_DURATION_MIN",
    "MONTHLY_CLASS_DURATION_MIN",
    "MONTHLY_DISCOUNT_TIERS",
    "CENTS",
    "REDIRECT_SUCCESS_FLAG",
    "REDIRECT_CANCEL_FLAG",
    "REDIRECT_REQUIRED_PARAMS",
    "REDIRECT_OPTIONAL_PARAMS",
]
