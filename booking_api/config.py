import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv(override=True)


def _env_bool(name: str, default: bool = False) -> bool:
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_list(name: str, default: str) -> tuple[str, ...]:
    raw_value = os.getenv(name, default)
    return tuple(item.strip() for item in raw_value.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    port: int = int(os.getenv("PORT", "12345"))
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./booking.db")
    cors_origins: tuple[str, ...] = field(
        default_factory=lambda: _env_list("CORS_ORIGINS", "*")
    )
    otp_ttl_seconds: int = int(os.getenv("OTP_TTL_SECONDS", "600"))
    otp_store_backend: str = os.getenv("OTP_STORE_BACKEND", "memory").strip().lower()
    otp_debug: bool = _env_bool("OTP_DEBUG", False)
    email_sender: str = os.getenv("EMAIL_SENDER") or os.getenv("EMAIL_USER", "")
    gmail_token_file: str = os.getenv("GMAIL_TOKEN_FILE", "")
    stripe_secret_key: str = os.getenv("STRIPE_SECRET_KEY", "")
    expo_push_url: str = os.getenv(
        "EXPO_PUSH_URL", "https://exp.host/--/api/v2/push/send"
    )
    expo_access_token: str = os.getenv("EXPO_ACCESS_TOKEN", "")
    jwt_secret: str = os.getenv("JWT_SECRET", "")
    jwt_algorithm: str = os.getenv("JWT_ALGORITHM", "HS256")
    custom_token_expire_minutes: int = int(
        os.getenv("CUSTOM_TOKEN_EXPIRE_MINUTES", "60")
    )


settings = Settings()
