from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class PaymentIntentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    amount: Optional[float] = None
    currency: str = "inr"
    customer_email: Optional[str] = Field(default=None, alias="customerEmail")
    metadata: dict[str, Any] = Field(default_factory=dict)
    country: Optional[str] = "India"


class ConfirmPaymentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    payment_intent_id: Optional[str] = Field(default=None, alias="paymentIntentId")
    booking_data: Optional[dict[str, Any]] = Field(default=None, alias="bookingData")


class CurrencyRequest(BaseModel):
    country: Optional[str] = None
