"""User and follow graph models."""
import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from forum.database import Base, utc_now

DEFAULT_AVATAR = (
    "https://images.pexels.com/photos/774909/pexels-photo-774909.jpeg"
    "?auto=compress&cs=tinysrgb&w=40&h=40&fit=crop"
)


class User(Base):
    """Forum profile; the id is the hosted auth provider's user id."""

    __tablename__ = "users"

    id = Column(String(36), primary_key=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    avatar = Column(String(500), default=DEFAULT_AVATAR)
    bio = Column(Text)
    location = Column(String(100))
    website = Column(String(255))
    is_admin = Column(Boolean, default=False, nullable=False)
    is_verified = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    role = Column(String(20), default="user", nullable=False, index=True)
    provider = Column(String(20), default="email", nullable=False)

    # Denormalized counters, kept in step by posts.py / users.py
    posts_count = Column(Integer, default=0, nullable=False)
    followers_count = Column(Integer, default=0, nullable=False)
    following_count = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime, default=utc_now, nullable=False, index=True)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    # Relationships
    posts = relationship("Post", back_populates="author", cascade="all, delete-orphan")
    comments = relationship("Comment", back_populates="author", cascade="all, delete-orphan")
    likes = relationship("Like", back_populates="user", cascade="all, delete-orphan")
    bookmarks = relationship("Bookmark", back_populates="user", cascade="all, delete-orphan")
    media = relationship("Media", back_populates="user", cascade="all, delete-orphan")
    sessions = relationship("UserSession", back_populates="user", cascade="all, delete-orphan")
    otps = relationship("OTPCode", back_populates="user", cascade="all, delete-orphan")
    lockout = relationship("AccountLockout", back_populates="user", cascade="all, delete-orphan", uselist=False)
    two_factor = relationship("TwoFactorSetting", back_populates="user", cascade="all, delete-orphan", uselist=False)
    reports = relationship(
        "Report",
        back_populates="reporter",
        cascade="all, delete-orphan",
        foreign_keys="Report.reporter_id",
    )
    following = relationship(
        "Follow",
        foreign_keys="Follow.follower_id",
        back_populates="follower",
        cascade="all, delete-orphan",
    )
    followers = relationship(
        "Follow",
        foreign_keys="Follow.following_id",
        back_populates="followed",
        cascade="all, delete-orphan",
    )


class Follow(Base):
    """Directed follow edge between two users."""

    __tablename__ = "follows"
    __table_args__ = (
        UniqueConstraint("follower_id", "following_id", name="uq_follow"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    follower_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    following_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=utc_now, nullable=False)

    follower = relationship("User", foreign_keys=[follower_id], back_populates="following")
    followed = relationship("User", foreign_keys=[following_id], back_populates="followers")
