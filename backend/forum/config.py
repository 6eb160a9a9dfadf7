"""Application configuration."""
from collections import Counter
from functools import lru_cache
import math

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App
    app_name: str = "Tech Bant Community"
    debug: bool = False
    log_level: str = "INFO"
    allowed_origins: str = "http://localhost:5173,http://localhost:3000"

    # Database
    database_url: str = "sqlite:///./data/forum.db"

    # Hosted auth / storage
    supabase_url: str
    supabase_anon_key: str = ""
    supabase_service_role_key: str = ""
    supabase_jwt_secret: str
    jwt_algorithm: str = "HS256"
    jwt_audience: str = "authenticated"
    storage_bucket: str = "media"
    http_timeout_seconds: float = 10.0

    # OAuth
    allowed_oauth_redirects: str = "http://localhost:5173,http://localhost:3000"
    oauth_state_ttl_minutes: int = 10

    # Email
    resend_api_key: str = ""
    resend_from: str = "noreply@techbantcommunity.com"
    resend_api_url: str = "https://api.resend.com/emails"

    # Sessions, lockout and OTP policy
    session_ttl_hours: int = 24
    max_login_attempts: int = 5
    lockout_minutes: int = 15
    otp_ttl_minutes: int = 10
    otp_max_attempts: int = 5

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    @field_validator("supabase_url")
    @classmethod
    def validate_supabase_url(cls, value: str) -> str:
        """Require an absolute base URL without a trailing slash."""
        value = value.strip()
        if not value.startswith(("http://", "https://")):
            raise ValueError("SUPABASE_URL must be an http(s) URL.")
        return value.rstrip("/")

    @field_validator("supabase_jwt_secret")
    @classmethod
    def validate_jwt_secret(cls, value: str) -> str:
        """Fail closed if SUPABASE_JWT_SECRET is weak or placeholder quality."""
        if not value:
            raise ValueError("SUPABASE_JWT_SECRET must be set.")

        if len(value) < 32:
            raise ValueError("SUPABASE_JWT_SECRET must be at least 32 characters.")

        weak_values = {"changeme", "changeme-in-production", "secret", "password", "test"}
        lowered = value.lower()
        if lowered in weak_values or "changeme" in lowered:
            raise ValueError("SUPABASE_JWT_SECRET must not be a placeholder value.")

        counts = Counter(value)
        entropy_per_char = -sum((count / len(value)) * math.log2(count / len(value)) for count in counts.values())
        if entropy_per_char * len(value) < 100:
            raise ValueError("SUPABASE_JWT_SECRET entropy is too low; use the project's generated secret.")

        return value

    @property
    def oauth_redirect_allowlist(self) -> list[str]:
        return _split_csv(self.allowed_oauth_redirects)

    @property
    def cors_origins(self) -> list[str]:
        return _split_csv(self.allowed_origins)


def _split_csv(raw: str) -> list[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
