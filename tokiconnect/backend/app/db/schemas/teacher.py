import datetime
from decimal import Decimal

from pydantic import Field

from .base import CamelModel


class AvailabilityDay(CamelModel):
    day: str
    slots: list[str] = Field(default_factory=list)


class Discounts(CamelModel):
    monthly4: int = Field(default=0, ge=0, le=100)
    monthly8: int = Field(default=0, ge=0, le=100)
    monthly12: int = Field(default=0, ge=0, le=100)


class Teacher(CamelModel):
    id: int
    name: str
    languages: list[str] = Field(default_factory=list)
    bio: str = ""
    hourly_rate: Decimal
    discounts: Discounts
    trial_class_available: bool
    trial_class_price: Decimal
    free_demo_available: bool
    free_demo_duration: int
    availability: list[AvailabilityDay] = Field(default_factory=list)


class TeacherProfileUpdate(CamelModel):
    language: str | None = None
    bio: str | None = None
    hourly_rate: Decimal | None = Field(default=None, ge=0)
    discounts: Discounts | None = None
    trial_class_available: bool | None = None
    trial_class_price: Decimal | None = Field(default=None, ge=0)
    free_demo_available: bool | None = None
    free_demo_duration: int | None = Field(default=None, gt=0)
    default_meeting_link: str | None = None
    availability: list[AvailabilityDay] | None = None


class AvailableDate(CamelModel):
    date: datetime.date
    day: str


class DaySlots(CamelModel):
    date: datetime.date
    day: str
    slots: list[str]
