from datetime import date, datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session, selectinload

from ...api import deps
from ...config import get_settings
from ...core.exceptions import BookingError
from ...db.session import get_db
from ...db import models, schemas
from ...services import availability_service, checkout_service
from ..errors import to_http

router = APIRouter(prefix="/teachers", tags=["teachers"])


def get_teacher_or_404(db: Session, teacher_id: int) -> models.TeacherProfile:
    teacher = (
        db.query(models.TeacherProfile)
        .options(
            selectinload(models.TeacherProfile.user),
            selectinload(models.TeacherProfile.availability),
        )
        .filter(models.TeacherProfile.user_id == teacher_id)
        .first()
    )
    if not teacher or teacher.user.role != models.UserRole.teacher:
        raise HTTPException(status_code=404, detail="Teacher not found")
    return teacher


def _serialize_teacher(teacher: models.TeacherProfile) -> schemas.Teacher:
    index = availability_service.load_index(teacher)
    languages = [lang.strip() for lang in (teacher.language or "").split(",") if lang.strip()]
    return schemas.Teacher(
        id=teacher.user_id,
        name=teacher.user.full_name,
        languages=languages,
        bio=teacher.bio or "",
        hourly_rate=teacher.hourly_rate or 0,
        discounts=schemas.Discounts(
            monthly4=teacher.discount_monthly4 or 0,
            monthly8=teacher.discount_monthly8 or 0,
            monthly12=teacher.discount_monthly12 or 0,
        ),
        trial_class_available=bool(teacher.trial_class_available),
        trial_class_price=teacher.trial_class_price or 0,
        free_demo_available=bool(teacher.free_demo_available),
        free_demo_duration=teacher.free_demo_duration or 30,
        availability=[
            schemas.AvailabilityDay(day=day, slots=slots) for day, slots in index.as_windows()
        ],
    )


def _today() -> date:
    tz = checkout_service.lesson_zone(get_settings())
    return datetime.now(timezone.utc).astimezone(tz).date()


@router.get("/{teacher_id}", response_model=schemas.Teacher)
def get_teacher(teacher_id: int, db: Session = Depends(get_db)):
    return _serialize_teacher(get_teacher_or_404(db, teacher_id))


@router.get("/{teacher_id}/available-dates", response_model=list[schemas.AvailableDate])
def list_available_dates(teacher_id: int, db: Session = Depends(get_db)):
    teacher = get_teacher_or_404(db, teacher_id)
    index = availability_service.load_index(teacher)
    window = get_settings().booking_window_days
    return [
        schemas.AvailableDate(date=entry.date, day=entry.day)
        for entry in index.upcoming_dates(_today(), window)
    ]


@router.get("/{teacher_id}/slots", response_model=schemas.DaySlots)
def list_slots(teacher_id: int, date: date, db: Session = Depends(get_db)):
    teacher = get_teacher_or_404(db, teacher_id)
    index = availability_service.load_index(teacher)
    return schemas.DaySlots(
        date=date,
        day=availability_service.weekday_name(date),
        slots=index.slots_for(date),
    )


@router.patch("/me", response_model=schemas.Teacher)
def update_my_profile(
    payload: schemas.TeacherProfileUpdate,
    db: Session = Depends(get_db),
    current: deps.SessionContext = Depends(deps.require_roles("teacher")),
):
    teacher = db.get(models.TeacherProfile, current.id)
    if not teacher:
        teacher = models.TeacherProfile(user_id=current.id)
        db.add(teacher)
    changes = payload.model_dump(exclude_unset=True, exclude={"availability", "discounts"})
    for key, value in changes.items():
        setattr(teacher, key, value)
    if payload.discounts is not None:
        teacher.discount_monthly4 = payload.discounts.monthly4
        teacher.discount_monthly8 = payload.discounts.monthly8
        teacher.discount_monthly12 = payload.discounts.monthly12
    if payload.availability is not None:
        try:
            availability_service.replace_availability(
                db, teacher, ((entry.day, entry.slots) for entry in payload.availability)
            )
        except BookingError as exc:
            db.rollback()
            raise to_http(exc) from exc
    db.commit()
    return _serialize_teacher(get_teacher_or_404(db, current.id))
