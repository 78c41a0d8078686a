from datetime import datetime, timezone
import logging

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.exc import SQLAlchemyError

from booking_api.config import settings
from booking_api.responses import bad_request, failure
from booking_api.schemas.otp import (
    CustomTokenRequest,
    CustomTokenResponse,
    OtpRequest,
    OtpResponse,
    OtpVerifyRequest,
    OtpVerifyResponse,
)
from booking_api.services.documents import document_store
from booking_api.services.otp import OtpManager
from booking_api.services.tokens import TokenError, create_custom_token

LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def get_otp_manager(request: Request) -> OtpManager:
    manager = getattr(request.app.state, "otp_manager", None)
    if manager is None:
        raise RuntimeError("OTP manager is not running")
    return manager


@router.post("/send-otp", response_model=OtpResponse, response_model_exclude_none=True)
def send_otp(payload: OtpRequest, manager: OtpManager = Depends(get_otp_manager)):
    try:
        issued = manager.issue(payload.email)
    except SQLAlchemyError:
        LOGGER.exception("OTP store error while sending to %s", payload.email)
        return failure(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to send OTP")
    return OtpResponse(
        message="OTP sent successfully",
        expires_in=issued.expires_in,
        otp=issued.code if settings.otp_debug else None,
    )


@router.post("/verify-otp", response_model=OtpVerifyResponse)
def verify_otp(payload: OtpVerifyRequest, manager: OtpManager = Depends(get_otp_manager)):
    try:
        manager.verify(payload.email, payload.otp)
    except SQLAlchemyError:
        LOGGER.exception("OTP store error while verifying %s", payload.email)
        return failure(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to verify OTP")
    return OtpVerifyResponse(message="Email verified successfully")


@router.post("/resend-otp", response_model=OtpResponse, response_model_exclude_none=True)
def resend_otp(payload: OtpRequest, manager: OtpManager = Depends(get_otp_manager)):
    try:
        issued = manager.resend(payload.email)
    except SQLAlchemyError:
        LOGGER.exception("OTP store error while resending to %s", payload.email)
        return failure(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to resend OTP")
    return OtpResponse(
        message="New OTP sent successfully",
        expires_in=issued.expires_in,
        otp=issued.code if settings.otp_debug else None,
    )


@router.post("/custom-token", response_model=CustomTokenResponse)
def custom_token(payload: CustomTokenRequest):
    if not payload.uid or not payload.email:
        return bad_request("UID and email are required")

    LOGGER.info("Generating custom token for uid=%s", payload.uid)
    try:
        if document_store.get("users", payload.uid) is None:
            LOGGER.warning("No user document for uid=%s, creating one", payload.uid)
            document_store.set(
                "users",
                payload.uid,
                {
                    "uid": payload.uid,
                    "email": payload.email,
                    "createdAt": datetime.now(timezone.utc).isoformat(),
                },
            )
        token = create_custom_token(payload.uid, payload.email)
    except (TokenError, SQLAlchemyError) as exc:
        LOGGER.exception("Failed to generate custom token for uid=%s", payload.uid)
        return failure(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))
    return CustomTokenResponse(token=token)
