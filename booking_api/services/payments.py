from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

import stripe
from sqlalchemy.exc import SQLAlchemyError

from booking_api.config import settings
from booking_api.services import currency as currency_rules
from booking_api.services.documents import document_store

LOGGER = logging.getLogger(__name__)

BOOKING_STATUSES = {
    "succeeded": ("confirmed", "Payment successful"),
    "processing": ("processing", "Payment is processing"),
    "requires_action": ("requires_action", "Payment requires additional action"),
    "requires_confirmation": ("requires_action", "Payment requires additional action"),
    "canceled": ("failed", "Payment failed or was canceled"),
    "requires_payment_method": ("failed", "Payment failed or was canceled"),
}


class PaymentError(ValueError):
    pass


def _stripe_create_intent(**params: Any) -> Any:
    return stripe.PaymentIntent.create(api_key=settings.stripe_secret_key, **params)


def _stripe_retrieve_intent(payment_intent_id: str) -> Any:
    return stripe.PaymentIntent.retrieve(
        payment_intent_id, api_key=settings.stripe_secret_key
    )


def _utc_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def create_payment_intent(
    amount: Optional[float],
    currency: str = "inr",
    customer_email: Optional[str] = None,
    metadata: Optional[dict[str, Any]] = None,
    country: Optional[str] = "India",
) -> dict[str, Any]:
    if not amount or amount <= 0:
        raise PaymentError("Valid amount is required")
    try:
        final_currency = currency_rules.resolve_payment_currency(currency, country)
        amount_minor = currency_rules.to_minor_units(amount)
        currency_rules.check_minimum(amount_minor, final_currency)
    except currency_rules.CurrencyError as exc:
        raise PaymentError(str(exc)) from exc

    LOGGER.info("Creating payment intent: %s %s", amount_minor, final_currency)
    # Stripe metadata values must be strings.
    intent_metadata = {key: str(value) for key, value in (metadata or {}).items()}
    intent_metadata.update(
        customerEmail=customer_email or "",
        country=country or "",
        originalAmount=str(amount),
        timestamp=_utc_iso(),
    )
    intent = _stripe_create_intent(
        amount=amount_minor,
        currency=final_currency,
        automatic_payment_methods={"enabled": True},
        statement_descriptor_suffix=currency_rules.statement_descriptor_suffix(
            final_currency
        ),
        metadata=intent_metadata,
    )
    LOGGER.info("Payment intent created: %s", intent.id)
    return {
        "success": True,
        "clientSecret": intent.client_secret,
        "paymentIntentId": intent.id,
        "amount": amount_minor / 100,
        "currency": final_currency.upper(),
        "displayAmount": amount,
        "formattedAmount": currency_rules.format_currency(amount, final_currency),
    }


def confirm_payment(
    payment_intent_id: Optional[str], booking_data: Optional[dict[str, Any]] = None
) -> dict[str, Any]:
    if not payment_intent_id:
        raise PaymentError("Payment Intent ID is required")

    intent = _stripe_retrieve_intent(payment_intent_id)
    LOGGER.info("Payment intent %s status: %s", payment_intent_id, intent.status)
    booking_status, message = BOOKING_STATUSES.get(
        intent.status, ("pending", "Payment processing")
    )
    if intent.status == "succeeded" and booking_data:
        _record_booking(payment_intent_id, intent, booking_data)

    return {
        "success": intent.status == "succeeded",
        "status": intent.status,
        "bookingStatus": booking_status,
        "message": message,
        "paymentIntent": {
            "id": intent.id,
            "amount": intent.amount / 100,
            "currency": intent.currency,
            "created": datetime.fromtimestamp(intent.created, tz=timezone.utc).isoformat(),
            "metadata": dict(intent.metadata or {}),
        },
    }


def _record_booking(payment_intent_id: str, intent: Any, booking_data: dict[str, Any]) -> None:
    now = _utc_iso()
    booking = {
        **booking_data,
        "paymentIntentId": payment_intent_id,
        "paymentStatus": "succeeded",
        "paymentAmount": intent.amount / 100,
        "paymentCurrency": intent.currency,
        "paymentDate": now,
        "status": "confirmed",
        "createdAt": now,
        "updatedAt": now,
    }
    try:
        booking_id = document_store.add("bookings", booking)
    except SQLAlchemyError:
        # The charge already went through; report payment status regardless.
        LOGGER.exception("Failed to store booking for %s", payment_intent_id)
        return
    LOGGER.info("Booking created with id %s", booking_id)
