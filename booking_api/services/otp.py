"""One-time password issuance and verification.

Codes are keyed by email address. At most one code is pending per address;
issuing or resending replaces the previous one, and a code is consumed by the
first successful verification.
"""

from __future__ import annotations

import logging
import secrets
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Protocol

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError

from booking_api.database import session_scope
from booking_api.models.otp import OtpEntry

LOGGER = logging.getLogger(__name__)

MailSender = Callable[[str, str, str], None]
Clock = Callable[[], datetime]


class OtpError(Exception):
    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidInput(OtpError):
    pass


class NotFoundOrExpired(OtpError):
    pass


class Expired(OtpError):
    pass


class Mismatch(OtpError):
    pass


class DeliveryFailed(OtpError):
    status_code = 500


@dataclass(frozen=True)
class OtpRecord:
    code: str
    issued_at: datetime
    expires_at: datetime


@dataclass(frozen=True)
class OtpIssued:
    identity: str
    code: str
    expires_at: datetime
    expires_in: str


class OtpStore(Protocol):
    def get(self, identity: str) -> Optional[OtpRecord]: ...

    def set(self, identity: str, record: OtpRecord) -> None: ...

    def delete(self, identity: str) -> None: ...

    def consume(self, identity: str, code: str, now: datetime) -> bool: ...

    def purge_expired(self, now: datetime) -> int: ...

    def __len__(self) -> int: ...


class InMemoryOtpStore:
    def __init__(self) -> None:
        self._records: dict[str, OtpRecord] = {}

    def get(self, identity: str) -> Optional[OtpRecord]:
        return self._records.get(identity)

    def set(self, identity: str, record: OtpRecord) -> None:
        self._records[identity] = record

    def delete(self, identity: str) -> None:
        self._records.pop(identity, None)

    def consume(self, identity: str, code: str, now: datetime) -> bool:
        record = self._records.get(identity)
        if record is None or record.code != code or now > record.expires_at:
            return False
        del self._records[identity]
        return True

    def purge_expired(self, now: datetime) -> int:
        expired = [key for key, record in self._records.items() if now > record.expires_at]
        for key in expired:
            del self._records[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._records)


def _as_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo on the way back.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SqlOtpStore:
    """OTP records in the ``otp_codes`` table, shared by every app instance.

    The manager's lock only covers one process, so the writes that decide
    single use (``consume``) and replacement (``set``) are settled by the
    database itself.
    """

    def get(self, identity: str) -> Optional[OtpRecord]:
        with session_scope() as session:
            entry = session.execute(
                select(OtpEntry).where(OtpEntry.identifier == identity)
            ).scalar_one_or_none()
            if entry is None:
                return None
            return OtpRecord(
                code=entry.code,
                issued_at=_as_utc(entry.issued_at),
                expires_at=_as_utc(entry.expires_at),
            )

    def set(self, identity: str, record: OtpRecord) -> None:
        values = {
            "code": record.code,
            "issued_at": record.issued_at,
            "expires_at": record.expires_at,
        }
        try:
            with session_scope() as session:
                session.add(OtpEntry(identifier=identity, **values))
        except IntegrityError:
            # A row for this identity already exists; replace it in place.
            with session_scope() as session:
                session.execute(
                    update(OtpEntry).where(OtpEntry.identifier == identity).values(**values)
                )

    def delete(self, identity: str) -> None:
        with session_scope() as session:
            session.execute(delete(OtpEntry).where(OtpEntry.identifier == identity))

    def consume(self, identity: str, code: str, now: datetime) -> bool:
        with session_scope() as session:
            result = session.execute(
                delete(OtpEntry).where(
                    OtpEntry.identifier == identity,
                    OtpEntry.code == code,
                    OtpEntry.expires_at >= now,
                )
            )
            return result.rowcount == 1

    def purge_expired(self, now: datetime) -> int:
        with session_scope() as session:
            result = session.execute(delete(OtpEntry).where(OtpEntry.expires_at < now))
            return result.rowcount or 0

    def __len__(self) -> int:
        with session_scope() as session:
            return session.execute(select(func.count(OtpEntry.id))).scalar_one()


def generate_code() -> str:
    return str(100000 + secrets.randbelow(900000))


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _describe_ttl(ttl_seconds: int) -> str:
    minutes = max(1, ttl_seconds // 60)
    return f"{minutes} minutes" if minutes != 1 else "1 minute"


def _build_message(code: str, validity: str, resend: bool) -> tuple[str, str]:
    if resend:
        subject = "Your New OTP Verification Code"
        intro = "Your new OTP verification code is:"
    else:
        subject = "Your OTP Verification Code"
        intro = "Your OTP verification code is:"
    body = f"""
        <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
          <h2 style="color: #333;">Email Verification</h2>
          <p>{intro}</p>
          <div style="background: #f4f4f4; padding: 15px; text-align: center; font-size: 24px; font-weight: bold; letter-spacing: 5px; margin: 20px 0;">
            {code}
          </div>
          <p>This code will expire in {validity}.</p>
          <p>If you didn't request this code, please ignore this email.</p>
        </div>
    """
    return subject, body


class OtpManager:
    def __init__(
        self,
        sender: MailSender,
        store: Optional[OtpStore] = None,
        clock: Clock = _utcnow,
        ttl_seconds: int = 600,
        code_factory: Callable[[], str] = generate_code,
    ) -> None:
        self._sender = sender
        self._store = store if store is not None else InMemoryOtpStore()
        self._clock = clock
        self._ttl = timedelta(seconds=ttl_seconds)
        self._code_factory = code_factory
        self._lock = threading.Lock()
        self.expires_in = _describe_ttl(ttl_seconds)

    @property
    def store(self) -> OtpStore:
        return self._store

    def issue(self, identity: str) -> OtpIssued:
        _require(identity, message="Email is required")
        return self._issue(identity, resend=False)

    def resend(self, identity: str) -> OtpIssued:
        _require(identity, message="Email is required")
        return self._issue(identity, resend=True)

    def verify(self, identity: str, submitted_code: object) -> None:
        """Consume the pending code for ``identity`` if ``submitted_code`` matches.

        Any non-empty ``submitted_code`` is accepted for comparison; values that
        are not the exact stored string (numbers, longer strings) are a mismatch.
        """
        _require(identity, message="Email and OTP are required")
        if not submitted_code or (
            isinstance(submitted_code, str) and not submitted_code.strip()
        ):
            raise InvalidInput("Email and OTP are required")
        with self._lock:
            now = self._clock()
            record = self._store.get(identity)
            if record is None:
                raise NotFoundOrExpired("OTP not found or expired")
            if now > record.expires_at:
                self._store.delete(identity)
                raise Expired("OTP has expired")
            if record.code != submitted_code:
                raise Mismatch("Invalid OTP")
            if not self._store.consume(identity, record.code, now):
                # Another instance sharing the store consumed or replaced it first.
                raise NotFoundOrExpired("OTP not found or expired")
        LOGGER.info("OTP verified for %s", identity)

    def purge_expired(self) -> int:
        with self._lock:
            return self._store.purge_expired(self._clock())

    def _issue(self, identity: str, resend: bool) -> OtpIssued:
        now = self._clock()
        record = OtpRecord(
            code=self._code_factory(),
            issued_at=now,
            expires_at=now + self._ttl,
        )
        with self._lock:
            self._store.purge_expired(now)
            if resend:
                self._store.delete(identity)
            self._store.set(identity, record)

        subject, body = _build_message(record.code, self.expires_in, resend)
        try:
            self._sender(identity, subject, body)
        except Exception as exc:
            LOGGER.exception("Failed to deliver OTP to %s", identity)
            raise DeliveryFailed(
                "Failed to resend OTP" if resend else "Failed to send OTP"
            ) from exc

        LOGGER.info("%s sent to %s", "New OTP" if resend else "OTP", identity)
        return OtpIssued(
            identity=identity,
            code=record.code,
            expires_at=record.expires_at,
            expires_in=self.expires_in,
        )


def _require(*values: Optional[str], message: str) -> None:
    for value in values:
        if not isinstance(value, str) or not value.strip():
            raise InvalidInput(message)


def build_store(backend: str) -> OtpStore:
    if backend == "memory":
        return InMemoryOtpStore()
    if backend == "database":
        return SqlOtpStore()
    raise ValueError(f"Unknown OTP store backend: {backend}")
