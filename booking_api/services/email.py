from __future__ import annotations

import base64
import json
import logging
from datetime import datetime, timedelta, timezone
from email.message import EmailMessage
from pathlib import Path
from typing import Any, Optional
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from booking_api.config import settings

LOGGER = logging.getLogger(__name__)

GMAIL_SEND_ENDPOINT = "https://gmail.googleapis.com/gmail/v1/users/me/messages/send"
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"


class EmailSendError(RuntimeError):
    pass


def send_email(recipient: str, subject: str, body_html: str) -> None:
    sender = settings.email_sender
    if not sender:
        raise EmailSendError("Email sender is not configured")

    raw_message = build_raw_message(sender, recipient, subject, body_html)
    token = _get_access_token()
    request = Request(
        GMAIL_SEND_ENDPOINT,
        data=json.dumps({"raw": raw_message}).encode("utf-8"),
        headers={
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        },
        method="POST",
    )
    try:
        with urlopen(request, timeout=10) as response:
            response.read()
    except HTTPError as exc:
        error_body = exc.read().decode("utf-8", errors="replace")
        LOGGER.error("Gmail API error to=%s response=%s", recipient, error_body)
        raise EmailSendError("Failed to send email") from exc
    except URLError as exc:
        raise EmailSendError("Failed to reach Gmail API") from exc


def build_raw_message(sender: str, recipient: str, subject: str, body_html: str) -> str:
    message = EmailMessage()
    message["From"] = sender
    message["To"] = recipient
    message["Subject"] = subject
    message.set_content(body_html, subtype="html")
    # Gmail expects base64url-encoded RFC 2822 content.
    return base64.urlsafe_b64encode(message.as_bytes()).decode("ascii")


def _get_access_token() -> str:
    """Return a Gmail access token, refreshing the authorized-user token file when stale.

    The file is the ``token.json`` written by Google's installed-app flow; it
    carries ``client_id``, ``client_secret`` and ``refresh_token`` alongside the
    cached ``token`` and its ``expiry``.
    """
    token_path = Path(settings.gmail_token_file or "credentials/token.json")
    if not token_path.exists():
        raise EmailSendError(f"Missing Gmail token file: {token_path}")
    token_data = json.loads(token_path.read_text(encoding="utf-8"))

    expires_at = _parse_expiry(token_data.get("expiry"))
    if token_data.get("token") and expires_at:
        if expires_at > datetime.now(timezone.utc) + timedelta(minutes=1):
            return token_data["token"]

    missing = [
        key for key in ("client_id", "client_secret", "refresh_token") if not token_data.get(key)
    ]
    if missing:
        raise EmailSendError(f"Gmail token file lacks {', '.join(missing)}")

    refreshed = _refresh_access_token(token_data)
    token_data["token"] = refreshed["access_token"]
    token_data["expiry"] = (
        datetime.now(timezone.utc) + timedelta(seconds=int(refreshed.get("expires_in", 3600)))
    ).isoformat()
    token_path.write_text(json.dumps(token_data), encoding="utf-8")
    return token_data["token"]


def _refresh_access_token(token_data: dict[str, Any]) -> dict[str, Any]:
    form = {key: token_data[key] for key in ("client_id", "client_secret", "refresh_token")}
    form["grant_type"] = "refresh_token"
    request = Request(
        token_data.get("token_uri") or GOOGLE_TOKEN_URI,
        data=urlencode(form).encode("utf-8"),
        method="POST",
    )
    try:
        with urlopen(request, timeout=10) as response:
            data = json.loads(response.read().decode("utf-8"))
    except HTTPError as exc:
        LOGGER.error("Gmail token refresh error: %s", exc.read().decode("utf-8", errors="replace"))
        raise EmailSendError("Failed to refresh Gmail token") from exc
    except URLError as exc:
        raise EmailSendError("Failed to reach Gmail token endpoint") from exc
    if not data.get("access_token"):
        raise EmailSendError("Gmail token refresh did not return an access token")
    return data


def _parse_expiry(value: Any) -> Optional[datetime]:
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
