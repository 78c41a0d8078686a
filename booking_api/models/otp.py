from sqlalchemy import Column, DateTime, Index, Integer, String

from booking_api.database import Base


class OtpEntry(Base):
    __tablename__ = "otp_codes"

    id = Column(Integer, primary_key=True)
    identifier = Column(String(255), nullable=False, unique=True)
    code = Column(String(10), nullable=False)
    issued_at = Column(DateTime(timezone=True), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (Index("ix_otp_expires_at", "expires_at"),)
