import logging

from fastapi import FastAPI, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from booking_api.config import settings
from booking_api.database import init_db
from booking_api.responses import bad_request
from booking_api.routers import auth, health, notifications, payments
from booking_api.services.email import send_email
from booking_api.services.otp import InvalidInput, OtpError, OtpManager, build_store

logging.basicConfig(level=settings.log_level)
LOGGER = logging.getLogger(__name__)

app = FastAPI(title="Booking Backend")

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials="*" not in settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(auth.router)
app.include_router(payments.router)
app.include_router(notifications.router)


@app.exception_handler(OtpError)
def handle_otp_error(request: Request, exc: OtpError) -> JSONResponse:
    if isinstance(exc, InvalidInput):
        content = {"error": exc.message}
    else:
        content = {"success": False, "error": exc.message}
    return JSONResponse(status_code=exc.status_code, content=content)


# Body errors on these routes answer like a missing field.
VALIDATION_ERRORS = {
    "/auth/send-otp": "Email is required",
    "/auth/resend-otp": "Email is required",
    "/auth/verify-otp": "Email and OTP are required",
    "/auth/custom-token": "UID and email are required",
}


@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, exc: RequestValidationError):
    error = VALIDATION_ERRORS.get(request.url.path)
    if error is None:
        return await request_validation_exception_handler(request, exc)
    LOGGER.info("Rejected %s body: %s", request.url.path, exc.errors())
    return bad_request(error)


@app.on_event("startup")
def startup() -> None:
    init_db()
    app.state.otp_manager = OtpManager(
        sender=send_email,
        store=build_store(settings.otp_store_backend),
        ttl_seconds=settings.otp_ttl_seconds,
    )
    LOGGER.info("Server is running on port %s", settings.port)


@app.on_event("shutdown")
def shutdown() -> None:
    app.state.otp_manager = None
