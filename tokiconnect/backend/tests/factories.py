from decimal import Decimal

from app.core.constants import WEEKDAYS
from app.db import models

SLOT = "10:00 - 11:00"


def create_student(session, email="student@example.com"):
    user = models.User(
        email=email,
        password_hash="x",
        first_name="Sam",
        last_name="Student",
        role=models.UserRole.student,
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def create_teacher(
    session,
    email="teacher@example.com",
    hourly_rate="30.00",
    days=WEEKDAYS,
    slots=(SLOT, "14:00 - 15:00"),
    **profile_fields,
):
    user = models.User(
        email=email,
        password_hash="x",
        first_name="Yuki",
        last_name="Tanaka",
        role=models.UserRole.teacher,
    )
    session.add(user)
    session.commit()
    profile = models.TeacherProfile(
        user_id=user.id,
        language="Japanese, English",
        bio="Conversation practice",
        hourly_rate=Decimal(hourly_rate),
        **profile_fields,
    )
    for day in days:
        profile.availability.append(models.TeacherAvailability(weekday=day, slots=list(slots)))
    session.add(profile)
    session.commit()
    session.refresh(profile)
    return profile
