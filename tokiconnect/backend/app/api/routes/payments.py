import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from starlette.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from ...config import get_settings
from ...db.session import get_db
from ...db import models
from ...services import payment_service
from ...services.payments import gateway

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["payments"])

_STATUS_MAP = {
    "pending": models.PaymentStatus.pending,
    "succeeded": models.PaymentStatus.paid,
    "paid": models.PaymentStatus.paid,
    "canceled": models.PaymentStatus.canceled,
    "failed": models.PaymentStatus.failed,
}


def _settle(db: Session, parsed: dict) -> dict:
    status_value = _STATUS_MAP.get(parsed.get("status"))
    if status_value is None:
        logger.info(
            "Ignoring webhook event",
            extra={"order_id": parsed.get("order_id"), "session_id": parsed.get("session_id")},
        )
        return {"status": "ignored"}
    if not parsed.get("order_id") and not parsed.get("session_id"):
        raise HTTPException(status_code=400, detail="Invalid webhook")
    query = db.query(models.Payment)
    payment = None
    if parsed.get("order_id"):
        payment = query.filter_by(order_id=parsed["order_id"]).first()
    elif parsed.get("session_id"):
        payment = query.filter_by(provider_session_id=parsed["session_id"]).first()
    if not payment:
        raise HTTPException(status_code=404, detail="Payment not found")
    if parsed.get("session_id") and not payment.provider_session_id:
        payment.provider_session_id = parsed["session_id"]
    payment_service.apply_payment(db, payment, status_value)
    return {"status": "ok"}


@router.post("/webhook")
async def payments_webhook(request: Request, db: Session = Depends(get_db)):
    body = await request.body()
    gateway_client = gateway.get_gateway(get_settings())
    try:
        parsed = gateway_client.parse_webhook(body, request.headers.get("stripe-signature"))
    except gateway.GatewayError as exc:
        logger.warning("Rejected payment webhook: %s", exc)
        raise HTTPException(status_code=400, detail="Invalid webhook") from exc
    return await run_in_threadpool(_settle, db, parsed)
