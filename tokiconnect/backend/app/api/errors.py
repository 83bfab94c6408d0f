from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..core.exceptions import (
    BookingError,
    ConflictError,
    MissingRedirectParameterError,
    PastTimeError,
    PaymentNotCompletedError,
    TransportError,
    ValidationError,
)


def to_http(exc: BookingError) -> HTTPException:
    if isinstance(exc, MissingRedirectParameterError):
        code = status.HTTP_400_BAD_REQUEST
    elif isinstance(exc, (ValidationError, PastTimeError)):
        code = status.HTTP_422_UNPROCESSABLE_ENTITY
    elif isinstance(exc, PaymentNotCompletedError):
        code = status.HTTP_402_PAYMENT_REQUIRED
    elif isinstance(exc, ConflictError):
        code = status.HTTP_409_CONFLICT
    elif isinstance(exc, TransportError):
        code = status.HTTP_502_BAD_GATEWAY
    else:
        code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=code, detail=exc.message)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    error = errors[0] if errors else {}
    field = next(
        (str(part) for part in reversed(error.get("loc", ())) if isinstance(part, str)),
        "request",
    )
    if error.get("type") == "missing":
        message = f"{field} is required"
    else:
        message = f"Invalid {field}"
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"message": message},
    )


def install_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
