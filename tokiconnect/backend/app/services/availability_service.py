"""Teacher weekly availability and the rolling booking window."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Iterable

from sqlalchemy.orm import Session

from ..core.constants import BOOKING_WINDOW_DAYS, WEEKDAYS
from ..core.exceptions import ValidationError
from ..db import models

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AvailableDate:
    date: date
    day: str


def weekday_name(value: date) -> str:
    return WEEKDAYS[value.weekday()]


def normalize_weekday(value: str) -> str:
    cleaned = (value or "").strip().capitalize()
    if cleaned not in WEEKDAYS:
        raise ValidationError("day", f"Unknown weekday: {value!r}")
    return cleaned


def slot_start(slot: str) -> time:
    """Return the start of a ``"H:MM - H:MM"`` slot label."""

    head = (slot or "").split("-", 1)[0].strip()
    try:
        hours, minutes = head.split(":", 1)
        return time(int(hours), int(minutes))
    except ValueError as exc:
        raise ValidationError("timeSlot", f"Invalid time slot: {slot!r}") from exc


class AvailabilityIndex:
    def __init__(self, slots_by_day: dict[str, list[str]] | None = None) -> None:
        self._slots = {day: list(slots) for day, slots in (slots_by_day or {}).items() if slots}

    @classmethod
    def from_windows(cls, windows: Iterable[tuple[str, Iterable[str]]]) -> "AvailabilityIndex":
        slots_by_day: dict[str, list[str]] = {}
        for day, slots in windows:
            slots_by_day.setdefault(normalize_weekday(day), []).extend(
                slot.strip() for slot in slots if slot and slot.strip()
            )
        return cls(slots_by_day)

    @property
    def weekdays(self) -> list[str]:
        return [day for day in WEEKDAYS if day in self._slots]

    def upcoming_dates(self, today: date, days: int = BOOKING_WINDOW_DAYS) -> list[AvailableDate]:
        window = (today + timedelta(days=offset) for offset in range(days))
        return [
            AvailableDate(date=day, day=weekday_name(day))
            for day in window
            if weekday_name(day) in self._slots
        ]

    def slots_for(self, value: date) -> list[str]:
        return list(self._slots.get(weekday_name(value), []))

    def offers(self, value: date, slot: str) -> bool:
        return slot.strip() in self.slots_for(value)

    def as_windows(self) -> list[tuple[str, list[str]]]:
        return [(day, list(self._slots[day])) for day in self.weekdays]


def combine_in_zone(value: date, slot: str, tz: tzinfo) -> datetime:
    return datetime.combine(value, slot_start(slot), tzinfo=tz)


def load_index(teacher: models.TeacherProfile) -> AvailabilityIndex:
    return AvailabilityIndex.from_windows(
        (row.weekday, row.slots or []) for row in teacher.availability
    )


def replace_availability(
    db: Session,
    teacher: models.TeacherProfile,
    windows: Iterable[tuple[str, Iterable[str]]],
) -> AvailabilityIndex:
    """Replace the teacher's whole weekly availability. Caller commits."""

    index = AvailabilityIndex.from_windows(windows)
    teacher.availability.clear()
    db.flush()
    for day, slots in index.as_windows():
        teacher.availability.append(models.TeacherAvailability(weekday=day, slots=slots))
    logger.info(
        "Replaced teacher availability",
        extra={"teacher_id": teacher.user_id, "weekdays": index.weekdays},
    )
    return index


__all__ = [
    "AvailableDate",
    "AvailabilityIndex",
    "combine_in_zone",
    "load_index",
    "normalize_weekday",
    "replace_availability",
    "slot_start",
    "weekday_name",
]
