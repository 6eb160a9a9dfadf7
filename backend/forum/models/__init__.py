"""SQLAlchemy models package."""
from forum.models.user import Follow, User
from forum.models.post import Bookmark, Comment, Like, Post
from forum.models.media import Media
from forum.models.report import Report
from forum.models.auth import (
    AccountLockout,
    OAuthState,
    OTPCode,
    SecurityEvent,
    TwoFactorSetting,
    UserSession,
)

__all__ = [
    "User",
    "Follow",
    "Post",
    "Comment",
    "Like",
    "Bookmark",
    "Media",
    "Report",
    "UserSession",
    "AccountLockout",
    "OTPCode",
    "SecurityEvent",
    "OAuthState",
    "TwoFactorSetting",
]
