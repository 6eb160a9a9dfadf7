"""User profile schemas."""
from datetime import datetime

from pydantic import BaseModel, field_validator

from forum.schemas.common import strip_tags


class UserSummary(BaseModel):
    """Author/follower card embedded in other responses."""

    id: str
    name: str
    email: str
    avatar: str | None = None
    is_admin: bool
    is_verified: bool

    class Config:
        from_attributes = True


class UserResponse(BaseModel):
    """Full user profile."""

    id: str
    name: str
    email: str
    avatar: str | None = None
    bio: str | None = None
    location: str | None = None
    website: str | None = None
    is_admin: bool
    is_verified: bool
    is_active: bool
    role: str
    provider: str
    posts_count: int
    followers_count: int
    following_count: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class UserUpdate(BaseModel):
    """Profile fields a user may change on themselves."""

    name: str | None = None
    bio: str | None = None
    location: str | None = None
    website: str | None = None
    avatar: str | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str | None) -> str | None:
        if not value:
            return None
        name = strip_tags(value.strip())
        if not 1 <= len(name) <= 100:
            raise ValueError("Name must be 1-100 characters")
        return name

    @field_validator("bio")
    @classmethod
    def validate_bio(cls, value: str | None) -> str | None:
        if value is None:
            return None
        bio = strip_tags(value.strip())
        if len(bio) > 500:
            raise ValueError("Bio must be less than 500 characters")
        return bio

    @field_validator("location")
    @classmethod
    def clean_location(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return strip_tags(value.strip())[:100]
