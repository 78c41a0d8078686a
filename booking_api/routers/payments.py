import logging
from datetime import datetime, timezone

import stripe
from fastapi import APIRouter, status

from booking_api.config import settings
from booking_api.responses import bad_request, failure
from booking_api.schemas.payments import (
    ConfirmPaymentRequest,
    CurrencyRequest,
    PaymentIntentRequest,
)
from booking_api.services import payments
from booking_api.services.currency import SUPPORTED_CURRENCIES, currency_for_country

LOGGER = logging.getLogger(__name__)

router = APIRouter(tags=["payments"])


@router.post("/create-payment-intent")
def create_payment_intent(payload: PaymentIntentRequest):
    LOGGER.info(
        "Payment request amount=%s currency=%s country=%s",
        payload.amount,
        payload.currency,
        payload.country,
    )
    try:
        return payments.create_payment_intent(
            amount=payload.amount,
            currency=payload.currency,
            customer_email=payload.customer_email,
            metadata=payload.metadata,
            country=payload.country,
        )
    except payments.PaymentError as exc:
        return failure(status.HTTP_400_BAD_REQUEST, str(exc))
    except stripe.StripeError as exc:
        LOGGER.error("Stripe error creating payment intent: %s", exc)
        return failure(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            exc.user_message or str(exc),
            errorCode=exc.code,
            errorType=type(exc).__name__,
        )


@router.post("/confirm-payment")
def confirm_payment(payload: ConfirmPaymentRequest):
    try:
        return payments.confirm_payment(payload.payment_intent_id, payload.booking_data)
    except payments.PaymentError as exc:
        return failure(status.HTTP_400_BAD_REQUEST, str(exc))
    except stripe.StripeError as exc:
        LOGGER.error("Stripe error confirming %s: %s", payload.payment_intent_id, exc)
        return failure(status.HTTP_500_INTERNAL_SERVER_ERROR, exc.user_message or str(exc))


@router.get("/payment-health")
def payment_health() -> dict:
    return {
        "success": True,
        "message": "Payment service is running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "stripe": "configured" if settings.stripe_secret_key else "not configured",
        "endpoints": ["/create-payment-intent", "/confirm-payment"],
    }


@router.get("/supported-currencies")
def supported_currencies() -> dict:
    return {"success": True, "currencies": SUPPORTED_CURRENCIES}


@router.post("/get-currency")
def get_currency(payload: CurrencyRequest):
    if not payload.country:
        return bad_request("Country is required")
    currency, symbol = currency_for_country(payload.country)
    return {
        "success": True,
        "currency": currency,
        "symbol": symbol,
        "country": payload.country,
    }
