from __future__ import annotations

import json
import logging
from typing import Any, Iterator, Sequence
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from booking_api.config import settings

LOGGER = logging.getLogger(__name__)

# Expo accepts at most 100 messages per request.
BATCH_SIZE = 100


class PushSendError(RuntimeError):
    pass


def build_message(
    token: str, title: str, body: str, data: dict[str, Any] | None = None
) -> dict[str, Any]:
    return {
        "to": token,
        "sound": "default",
        "title": title,
        "body": body,
        "data": data or {},
    }


def chunked(messages: Sequence[dict[str, Any]], size: int = BATCH_SIZE) -> Iterator[list]:
    for start in range(0, len(messages), size):
        yield list(messages[start : start + size])


def send_push_messages(messages: Sequence[dict[str, Any]]) -> int:
    """POST messages to Expo in batches; returns how many tickets came back."""
    accepted = 0
    for chunk in chunked(messages):
        result = _post_chunk(chunk)
        tickets = result.get("data")
        if isinstance(tickets, list):
            accepted += len(tickets)
    return accepted


def _post_chunk(chunk: list[dict[str, Any]]) -> dict[str, Any]:
    headers = {
        "Accept": "application/json",
        "Content-Type": "application/json",
    }
    if settings.expo_access_token:
        headers["Authorization"] = f"Bearer {settings.expo_access_token}"
    request = Request(
        settings.expo_push_url,
        data=json.dumps(chunk).encode("utf-8"),
        headers=headers,
        method="POST",
    )
    try:
        with urlopen(request, timeout=10) as response:
            payload = response.read().decode("utf-8")
    except HTTPError as exc:
        error_body = exc.read().decode("utf-8", errors="replace")
        LOGGER.error("Expo push error: %s", error_body)
        raise PushSendError("Failed to send push notifications") from exc
    except URLError as exc:
        raise PushSendError("Failed to reach Expo push API") from exc
    if not payload:
        return {}
    try:
        return json.loads(payload)
    except ValueError as exc:
        raise PushSendError("Expo push API returned invalid JSON") from exc
