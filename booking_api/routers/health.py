from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

from booking_api.config import settings

router = APIRouter(tags=["health"])


@router.get("/", response_class=PlainTextResponse)
def root() -> str:
    return "Backend is running!"


@router.get("/api-debug")
def api_debug() -> dict:
    return {
        "success": True,
        "message": "Backend is working",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "endpoints": {
            "root": "/",
            "paymentHealth": "/payment-health",
            "createPaymentIntent": "/create-payment-intent",
            "confirmPayment": "/confirm-payment",
            "auth": {
                "sendOtp": "/auth/send-otp",
                "verifyOtp": "/auth/verify-otp",
                "resendOtp": "/auth/resend-otp",
                "customToken": "/auth/custom-token",
            },
        },
        "env": {
            "port": settings.port,
            "stripeKey": "set" if settings.stripe_secret_key else "not set",
            "emailUser": "set" if settings.email_sender else "not set",
        },
    }
