import os
from datetime import datetime, timedelta, timezone

# Settings are read at import time; point them at throwaway resources first.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["OTP_STORE_BACKEND"] = "memory"
os.environ.setdefault("EMAIL_SENDER", "bookings@example.com")

import pytest
from fastapi.testclient import TestClient

from booking_api.database import Base, engine
from booking_api.main import app
from booking_api.routers.auth import get_otp_manager
from booking_api.services.email import EmailSendError
from booking_api.services.otp import InMemoryOtpStore, OtpManager


class FrozenClock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> None:
        self.now = self.now + timedelta(**delta)


class RecordingSender:
    def __init__(self) -> None:
        self.sent: list[tuple[str, str, str]] = []
        self.fail = False

    def __call__(self, recipient: str, subject: str, body_html: str) -> None:
        if self.fail:
            raise EmailSendError("SMTP is down")
        self.sent.append((recipient, subject, body_html))


@pytest.fixture(autouse=True)
def _schema():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def sender() -> RecordingSender:
    return RecordingSender()


@pytest.fixture
def otp_manager(sender, clock) -> OtpManager:
    return OtpManager(sender=sender, store=InMemoryOtpStore(), clock=clock, ttl_seconds=600)


@pytest.fixture
def client(otp_manager):
    app.dependency_overrides[get_otp_manager] = lambda: otp_manager
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
