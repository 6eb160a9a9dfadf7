"""Authentication/session models."""
import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from forum.database import Base, utc_now


class UserSession(Base):
    """Opaque refresh handle paired with the provider-issued bearer token."""

    __tablename__ = "sessions"
    __table_args__ = (
        Index("ix_sessions_user_active", "user_id", "is_active"),
        Index("ix_sessions_expires_at", "expires_at"),
    )

    id = Column(String(64), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    token_id = Column(Text, nullable=False)
    ip_address = Column(String(45))
    user_agent = Column(String(255))
    created_at = Column(DateTime, default=utc_now, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    last_activity = Column(DateTime, default=utc_now, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    user = relationship("User", back_populates="sessions")


class AccountLockout(Base):
    """Consecutive failed logins for one user."""

    __tablename__ = "account_lockouts"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    failed_attempts = Column(Integer, default=0, nullable=False)
    locked_until = Column(DateTime)
    created_at = Column(DateTime, default=utc_now, nullable=False)

    user = relationship("User", back_populates="lockout")


class OTPCode(Base):
    """One-time code for 2FA or password reset; only the bcrypt hash is kept."""

    __tablename__ = "otps"
    __table_args__ = (
        Index("ix_otps_lookup", "type", "used", "email", "created_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    email = Column(String(255), nullable=False)
    code = Column(String(60), nullable=False)
    type = Column(String(20), nullable=False)  # 2fa, password_reset
    expires_at = Column(DateTime, nullable=False)
    used = Column(Boolean, default=False, nullable=False)
    attempts = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=utc_now, nullable=False)

    user = relationship("User", back_populates="otps")


class SecurityEvent(Base):
    """Append-only audit row. user_id is not a foreign key so rows outlive users."""

    __tablename__ = "security_events"
    __table_args__ = (
        Index("ix_security_events_user_created", "user_id", "created_at"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36))
    event_type = Column(String(50), nullable=False, index=True)
    ip_address = Column(String(45))
    user_agent = Column(String(255))
    success = Column(Boolean, nullable=False)
    details = Column(Text)
    created_at = Column(DateTime, default=utc_now, nullable=False)


class OAuthState(Base):
    """CSRF state minted when an OAuth redirect starts."""

    __tablename__ = "oauth_states"

    state = Column(String(64), primary_key=True)
    provider = Column(String(20), nullable=False)
    redirect_url = Column(String(1000), nullable=False)
    created_at = Column(DateTime, default=utc_now, nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)


class TwoFactorSetting(Base):
    """Per-user 2FA toggle."""

    __tablename__ = "two_factor_auth"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    enabled = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    user = relationship("User", back_populates="two_factor")
