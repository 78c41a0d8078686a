import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from booking_api.responses import bad_request, failure
from booking_api.schemas.notifications import (
    AdminNotificationRequest,
    BookingNotificationRequest,
    SaveTokenRequest,
)
from booking_api.services.currency import symbol_for_country
from booking_api.services.documents import document_store
from booking_api.services.push import PushSendError, build_message, send_push_messages

LOGGER = logging.getLogger(__name__)

router = APIRouter(tags=["notifications"])


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _collect_tokens(collection: str) -> list[str]:
    return [doc["token"] for doc in document_store.list(collection) if doc.get("token")]


def booking_title_and_body(booking: dict[str, Any]) -> tuple[str, str]:
    user_name = booking.get("userName")
    if booking.get("category") == "resorts":
        title = "🏨 New Resort Booking"
        body = (
            f"{user_name} booked {booking.get('numberOfRooms')} room(s) "
            f"for {booking.get('numberOfNights')} night(s)"
        )
    elif booking.get("category") == "tours":
        title = "🚌 New Tour Booking"
        body = (
            f"{user_name} booked {booking.get('numberOfPeople')} people "
            f"for {booking.get('itemName')}"
        )
    elif booking.get("type") == "Restaurant":
        title = "🍽️ New Restaurant Reservation"
        body = f"{user_name} reserved for {booking.get('numberOfAdults')} people"
    else:
        title = "📅 New Booking"
        body = f"{user_name} made a new booking for {booking.get('itemName')}"
    body += f" - {symbol_for_country(booking.get('country'))}{booking.get('totalPrice')}"
    return title, body


@router.post("/save-token")
def save_token(payload: SaveTokenRequest):
    LOGGER.info("Saving %s push token", payload.user_type)
    now = _now_iso()
    token_data = {
        "token": payload.token,
        "userType": payload.user_type,
        "userData": payload.user_data,
        "platform": "android",
        "createdAt": now,
        "updatedAt": now,
        **payload.user_data,
    }
    collection = "adminTokens" if payload.user_type == "admin" else "userTokens"
    doc_id = payload.user_data.get("uid") or payload.token
    if not doc_id:
        return failure(status.HTTP_400_BAD_REQUEST, "Token or userData.uid is required")
    try:
        document_store.set(collection, str(doc_id), token_data, merge=True)
    except SQLAlchemyError as exc:
        LOGGER.exception("Failed to save %s token", payload.user_type)
        return failure(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))
    return {
        "success": True,
        "message": f"{payload.user_type} token saved successfully",
        "docId": str(doc_id),
    }


@router.post("/send-notifications")
def send_notifications():
    try:
        messages = [
            build_message(
                token,
                "Booking App",
                "This is a test notification!",
                {"extraData": "Some data"},
            )
            for token in _collect_tokens("expoTokens")
        ]
        send_push_messages(messages)
    except (PushSendError, SQLAlchemyError) as exc:
        LOGGER.exception("Failed to send test notifications")
        return failure(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))
    return {"success": True, "sent": len(messages)}


@router.post("/send-admin-notification")
def send_admin_notification(payload: AdminNotificationRequest):
    if not payload.title or not payload.message:
        return bad_request("Title and message required")

    collection = "adminTokens" if payload.user_type == "admin" else "expoTokens"
    try:
        tokens = _collect_tokens(collection)
        if not tokens:
            LOGGER.info("No tokens found for userType=%s", payload.user_type)
            return JSONResponse(
                status_code=status.HTTP_404_NOT_FOUND,
                content={"error": "No tokens found"},
            )
        data = {**payload.data, "type": "booking_notification", "timestamp": _now_iso()}
        messages = [build_message(token, payload.title, payload.message, data) for token in tokens]
        sent = send_push_messages(messages)
    except (PushSendError, SQLAlchemyError) as exc:
        LOGGER.exception("Failed to send admin notifications")
        return failure(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))

    LOGGER.info("Notifications sent to %s recipients", sent)
    return {
        "success": True,
        "sent": sent,
        "message": f"Notifications sent to {sent} {payload.user_type}(s)",
    }


@router.post("/send-booking-notification")
def send_booking_notification(payload: BookingNotificationRequest):
    booking = payload.booking
    if not booking:
        return bad_request("Booking data required")

    try:
        tokens = _collect_tokens("adminTokens")
        if not tokens:
            LOGGER.info("No admin tokens found")
            return JSONResponse(
                status_code=status.HTTP_404_NOT_FOUND,
                content={"error": "No admin tokens found"},
            )
        title, body = booking_title_and_body(booking)
        data = {
            "type": "new_booking",
            "bookingId": booking.get("id"),
            "category": booking.get("category"),
            "userId": booking.get("userId"),
            "userName": booking.get("userName"),
            "totalPrice": booking.get("totalPrice"),
            "timestamp": _now_iso(),
        }
        sent = send_push_messages([build_message(token, title, body, data) for token in tokens])
    except (PushSendError, SQLAlchemyError) as exc:
        LOGGER.exception("Failed to send booking notification")
        return failure(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))

    LOGGER.info("Booking notification sent to %s admin(s)", sent)
    return {
        "success": True,
        "sent": sent,
        "message": f"Booking notification sent to {sent} admin(s)",
    }
