import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...api import deps
from ...config import get_settings
from ...core.constants import REDIRECT_CANCEL_FLAG, REDIRECT_SUCCESS_FLAG
from ...core.exceptions import BookingError, MissingRedirectParameterError
from ...db.session import get_db
from ...db import models, schemas
from ...db.models.booking import LessonType
from ...services import booking_service, checkout_service
from ...services.pricing_service import PriceQuote
from ..errors import to_http
from .teachers import get_teacher_or_404

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["bookings"])

_CREATE_REQUIRED = ("teacher_id", "lesson_type", "lesson_date", "lesson_duration", "amount")


def _quote_out(quote: PriceQuote, currency: str) -> schemas.PriceQuote:
    return schemas.PriceQuote(
        original=quote.original,
        discounted=quote.discounted,
        discount=quote.discount,
        total=quote.total,
        currency=currency,
    )


def _booking_out(booking: models.Booking | None) -> schemas.Booking | None:
    return schemas.Booking.model_validate(booking) if booking is not None else None


@router.post("/quote", response_model=schemas.PriceQuote)
def quote_booking(
    payload: schemas.CheckoutRequest,
    db: Session = Depends(get_db),
    user: deps.SessionContext = Depends(deps.require_roles("student")),
):
    teacher = get_teacher_or_404(db, payload.teacher_id)
    try:
        intent = checkout_service.prepare_intent(teacher, user.id, payload)
    except BookingError as exc:
        raise to_http(exc) from exc
    return _quote_out(intent.quote, intent.currency)


@router.post("/checkout", response_model=schemas.CheckoutResponse)
def checkout(
    payload: schemas.CheckoutRequest,
    db: Session = Depends(get_db),
    user: deps.SessionContext = Depends(deps.require_roles("student")),
):
    teacher = get_teacher_or_404(db, payload.teacher_id)
    try:
        outcome = checkout_service.start_checkout(db, teacher, user.id, payload)
    except BookingError as exc:
        raise to_http(exc) from exc
    if outcome.state == checkout_service.CheckoutState.failed:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=outcome.message)
    return schemas.CheckoutResponse(
        state=outcome.state.value,
        message=outcome.message,
        quote=_quote_out(outcome.quote, get_settings().payment_currency.lower()),
        booking=_booking_out(outcome.booking),
        checkout_url=outcome.checkout_url,
    )


@router.post("/create", response_model=schemas.BookingResult)
def create_booking(
    payload: schemas.BookingCreate,
    db: Session = Depends(get_db),
    user: deps.SessionContext = Depends(deps.require_roles("student")),
):
    if any(getattr(payload, name) is None for name in _CREATE_REQUIRED):
        raise HTTPException(status_code=400, detail="Missing required booking fields")
    if not db.get(models.TeacherProfile, payload.teacher_id):
        raise HTTPException(status_code=404, detail="Teacher not found")
    try:
        lesson_type = LessonType(payload.lesson_type)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail="Invalid lessonType") from exc
    booking_payload = booking_service.BookingPayload(
        teacher_id=payload.teacher_id,
        student_id=user.id,
        lesson_type=lesson_type,
        lesson_date=payload.lesson_date,
        lesson_duration=payload.lesson_duration,
        amount=payload.amount,
        currency=(payload.currency or get_settings().payment_currency).lower(),
        lesson_focus=payload.lesson_focus,
        notes=payload.notes,
        classes_per_month=payload.classes_per_month,
        subscription_months=payload.subscription_months,
    )
    try:
        result = booking_service.create_booking(db, booking_payload)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to store booking", extra={"student_id": user.id})
        raise HTTPException(status_code=500, detail="Failed to create booking") from exc
    return schemas.BookingResult(
        status=result.status.value,
        message=result.message,
        booking=_booking_out(result.booking),
    )


@router.post("/redirect", response_model=schemas.RedirectResponse)
def reconcile_redirect(
    payload: schemas.RedirectRequest,
    db: Session = Depends(get_db),
    user: deps.SessionContext = Depends(deps.require_roles("student")),
):
    params = booking_service.redirect_params(payload.url)
    clean_url = booking_service.strip_redirect_params(payload.url)
    if params.get(REDIRECT_CANCEL_FLAG) == "true":
        return schemas.RedirectResponse(
            status="canceled", message="Payment was canceled", clean_url=clean_url
        )
    if params.get(REDIRECT_SUCCESS_FLAG) != "true":
        return JSONResponse(
            status_code=400,
            content={"message": "Not a payment redirect", "cleanUrl": clean_url},
        )
    try:
        result = booking_service.reconcile_success_redirect(db, user.id, params)
    except MissingRedirectParameterError as exc:
        logger.warning(
            "Payment redirect without booking parameters",
            extra={"student_id": user.id, "missing": exc.missing},
        )
        return JSONResponse(
            status_code=400, content={"message": exc.message, "cleanUrl": clean_url}
        )
    except BookingError as exc:
        http_exc = to_http(exc)
        return JSONResponse(
            status_code=http_exc.status_code,
            content={"message": exc.message, "cleanUrl": clean_url},
        )
    return schemas.RedirectResponse(
        status=result.status.value,
        message=result.message,
        clean_url=clean_url,
        booking=_booking_out(result.booking),
    )


@router.get("/mine", response_model=list[schemas.Booking])
def list_my_bookings(
    db: Session = Depends(get_db),
    user: deps.SessionContext = Depends(deps.require_roles("student", "teacher")),
):
    query = db.query(models.Booking)
    if user.role == models.UserRole.teacher.value:
        query = query.filter(models.Booking.teacher_id == user.id)
    else:
        query = query.filter(models.Booking.student_id == user.id)
    return query.order_by(models.Booking.lesson_date).all()
