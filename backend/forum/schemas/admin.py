"""Admin console and moderation schemas."""
from datetime import datetime

from pydantic import BaseModel, field_validator, model_validator

from forum.services.permissions import ADMIN_ROLES, ROLES
from forum.schemas.user import UserSummary

REPORT_STATUSES = ("pending", "reviewed", "resolved", "dismissed")
RESOLUTION_STATUSES = ("resolved", "rejected")


class AdminCreate(BaseModel):
    """Create an admin account (super admin only)."""

    name: str = ""
    email: str = ""
    password: str = ""
    role: str = "admin"

    @model_validator(mode="after")
    def check_fields(self) -> "AdminCreate":
        if not self.email or not self.password or not self.name.strip():
            raise ValueError("Name, email, and password are required")
        if (self.role or "admin") not in ADMIN_ROLES:
            raise ValueError("Invalid role")
        self.role = self.role or "admin"
        return self


class AdminUserUpdate(BaseModel):
    role: str | None = None
    is_active: bool | None = None

    @field_validator("role")
    @classmethod
    def validate_role(cls, value: str | None) -> str | None:
        if value and value not in ROLES:
            raise ValueError("Invalid role")
        return value or None


class PromoteRequest(BaseModel):
    role: str = "admin"

    @field_validator("role")
    @classmethod
    def validate_role(cls, value: str) -> str:
        value = value or "admin"
        if value not in ROLES:
            raise ValueError("Invalid role. Must be user, admin, or super_admin")
        return value


class AdminPostUpdate(BaseModel):
    is_pinned: bool | None = None
    is_hot: bool | None = None


class ReportCreate(BaseModel):
    """Content report filed by any signed-in user."""

    post_id: str | None = None
    comment_id: str | None = None
    reason: str = ""

    @model_validator(mode="after")
    def check_fields(self) -> "ReportCreate":
        if not self.reason.strip():
            raise ValueError("Reason is required")
        if not self.post_id and not self.comment_id:
            raise ValueError("Post or comment ID is required")
        return self


class ReportStatusUpdate(BaseModel):
    status: str = ""

    class Config:
        validate_default = True

    @field_validator("status")
    @classmethod
    def validate_status(cls, value: str) -> str:
        if not value:
            raise ValueError("Status is required")
        if value not in REPORT_STATUSES:
            raise ValueError(f"Invalid status. Must be one of: {', '.join(REPORT_STATUSES)}")
        return value


class ReportResolve(BaseModel):
    status: str = ""

    class Config:
        validate_default = True

    @field_validator("status")
    @classmethod
    def validate_status(cls, value: str) -> str:
        if not value:
            raise ValueError("Status is required")
        if value not in RESOLUTION_STATUSES:
            raise ValueError("Status must be 'resolved' or 'rejected'")
        return value


class ReportResponse(BaseModel):
    id: str
    reporter_id: str
    post_id: str | None = None
    comment_id: str | None = None
    reason: str
    status: str
    reviewed_by: str | None = None
    reviewed_at: datetime | None = None
    resolved_by: str | None = None
    resolved_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
    reporter: UserSummary | None = None

    class Config:
        from_attributes = True


class ReportResolveResponse(BaseModel):
    message: str
    report: ReportResponse


class StatsResponse(BaseModel):
    """Dashboard counts."""

    total_users: int
    total_posts: int
    total_comments: int
    total_admins: int
    active_users: int
    new_users_today: int
    new_posts_today: int
    new_comments_today: int
    total_likes: int
    total_bookmarks: int
    total_media: int
